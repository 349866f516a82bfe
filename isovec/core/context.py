"""
Defines ``IsoContext``, the bundle of shared services for one run.

The recipe registry, the decay chain cache and the state ledger are
process-wide in spirit: every actor in a run must see the same ones.
Rather than hiding them in module globals, they are built together here
and passed to handles explicitly, so tests can create a fresh, isolated
set per case.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .composition import CompositionStore
from .config import CoreConfig
from .decay import DecayChainCache, DecaySolver
from .ledger import StateLedger
from .recipes import RecipeRegistry
from .sinks import PersistenceSink


@dataclass(frozen=True)
class IsoContext:
    """Immutable container wiring the services of a single run together."""
    config: CoreConfig
    store: CompositionStore
    ledger: StateLedger
    registry: RecipeRegistry
    cache: DecayChainCache

    @classmethod
    def create(
        cls,
        config: Optional[CoreConfig] = None,
        sink: Optional[PersistenceSink] = None,
        solver: Optional[DecaySolver] = None,
    ) -> "IsoContext":
        """Build a fresh context; unspecified services get their defaults."""
        config = config or CoreConfig()
        store = CompositionStore(config)
        ledger = StateLedger(store, sink)
        return cls(
            config=config,
            store=store,
            ledger=ledger,
            registry=RecipeRegistry(store, ledger),
            cache=DecayChainCache(store, solver),
        )
