"""
Recipe registry: named compositions interned for the whole run.

Recipes are loaded once at setup, logged immediately through the
``StateLedger`` and never removed or replaced afterwards. Actors look
recipes up by name and share the interned ``Composition`` through their
handles, which is what makes decay memoisation effective.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple, Union

from .composition import Composition, CompositionStore
from .errors import DuplicateRecipe, UnknownRecipe
from .isotopes import Basis
from .ledger import StateLedger

logger = logging.getLogger(__name__)


@dataclass
class RecipeRecord:
    """One recipe as handed over by the input layer.

    ``isotopes`` is a sequence of ``(isotope id, quantity)`` pairs in the
    given ``basis``.
    """
    name: str
    basis: Union[Basis, str] = Basis.MASS
    isotopes: List[Tuple[int, float]] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping) -> "RecipeRecord":
        """Build a record from ``{"name", "basis", "isotopes"}``.

        ``isotopes`` may be a list of pairs or an isotope -> quantity map.
        """
        isotopes = data.get("isotopes", [])
        if isinstance(isotopes, Mapping):
            isotopes = list(isotopes.items())
        return cls(
            name=data["name"],
            basis=data.get("basis", Basis.MASS),
            isotopes=[(int(tope), float(value)) for tope, value in isotopes],
        )

    def fractions(self) -> Dict[int, float]:
        # Repeated isotopes accumulate
        values: Dict[int, float] = {}
        for tope, value in self.isotopes:
            values[tope] = values.get(tope, 0.0) + value
        return values


class RecipeRegistry:
    """Append-only map of recipe name to interned composition."""

    def __init__(self, store: CompositionStore, ledger: StateLedger):
        self.store = store
        self.ledger = ledger
        self._recipes: Dict[str, Composition] = {}
        self._lock = threading.Lock()

    def load(self, name: str, fractions: Mapping[int, float], basis=Basis.MASS) -> Composition:
        """Construct, log and register a recipe under ``name``."""
        with self._lock:
            if name in self._recipes:
                raise DuplicateRecipe(name)
            recipe = self.store.construct(fractions, basis)
            self.ledger.record(recipe)
            self._recipes[name] = recipe
        logger.info("Loaded recipe %r as state %d (%d isotopes)", name, recipe.state_id, len(recipe))
        return recipe

    def lookup(self, name: str) -> Composition:
        try:
            return self._recipes[name]
        except KeyError:
            raise UnknownRecipe(name) from None

    def logged(self, name: str) -> bool:
        return name in self._recipes

    def count(self) -> int:
        return len(self._recipes)

    def names(self) -> List[str]:
        return sorted(self._recipes)

    def describe(self) -> Dict[str, List[str]]:
        """Return the ``store.describe`` lines of every recipe, keyed by name."""
        return {name: self.store.describe(self._recipes[name]) for name in self.names()}

    def __contains__(self, name) -> bool:
        return name in self._recipes

    def __len__(self) -> int:
        return len(self._recipes)


def load_recipes(registry: RecipeRegistry, records: Iterable[Union[RecipeRecord, Mapping]]) -> int:
    """Feed parsed recipe records into ``registry`` one by one.

    Records may be ``RecipeRecord`` instances or plain mappings of the
    same shape. Returns the number of recipes loaded. The first failing
    record aborts loading and its error propagates.
    """
    loaded = 0
    for record in records:
        if not isinstance(record, RecipeRecord):
            record = RecipeRecord.from_mapping(record)
        registry.load(record.name, record.fractions(), record.basis)
        loaded += 1
    return loaded
