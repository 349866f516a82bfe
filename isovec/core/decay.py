"""
Decay chain cache and the default decay solver.

Decaying a composition means solving the Bateman equations over the
isotopes it contains and everything they decay into. That solve is the
expensive step of a run, and many actors decay the same recipe by the
same elapsed time every step, so ``DecayChainCache`` memoises each
distinct (composition, elapsed time) pair and hands every caller the
same daughter ``Composition``.

Cache keys are content digests of the parent (exact normalised fractions
plus mass), not object identities. Identical compositions reached along
different paths therefore share entries, compositions that differ in any
value never do, and a daughter that is itself decayed becomes a cache root
of its own without any bookkeeping.

The solver is a pluggable capability: anything with a
``solve(fractions, elapsed_time)`` method that is pure and deterministic.
``MatrixDecaySolver`` is the default, using the matrix exponential of the
decay transition matrix.
"""

from __future__ import annotations

import logging
import math
import numbers
import threading
from collections import deque
from concurrent.futures import Future
from typing import Dict, List, Mapping, Optional, Protocol, Set, Tuple

import numpy as np
from scipy import linalg

from .composition import Composition, CompositionMap, CompositionStore
from .config import CoreConfig
from .errors import InvalidDecayTime
from .isotopes import mass_number
from .nuclides import DEFAULT_NUCLIDES, Nuclide, validate_nuclide_data

logger = logging.getLogger(__name__)


class DecaySolver(Protocol):
    def solve(self, fractions: Mapping[int, float], elapsed_time: int) -> CompositionMap:
        ...


class MatrixDecaySolver:
    """Solve decay with the matrix exponential of the transition matrix.

    Mass fractions are converted to relative atom amounts (``m / A``),
    evolved with ``N(t) = expm(M t) N(0)`` where ``M[i, i] = -lambda_i`` and
    ``M[j, i] = lambda_i * BR(i -> j)``, then converted back to mass. The
    returned map is on a mass basis but not renormalised, so mass carried
    away by emitted particles shows up as a sum below one.

    Elapsed times are integers in ``config.time_unit``.
    """

    def __init__(self, nuclide_data: Optional[Mapping[int, Nuclide]] = None, config: Optional[CoreConfig] = None):
        self.nuclides: Dict[int, Nuclide] = dict(DEFAULT_NUCLIDES if nuclide_data is None else nuclide_data)
        validate_nuclide_data(self.nuclides)
        self.cfg = config or CoreConfig()

    def chain(self, isotopes) -> List[int]:
        """Return the sorted closure of ``isotopes`` under decay."""
        seen: Set[int] = set()
        to_process = deque(isotopes)
        while to_process:
            current = to_process.popleft()
            if current in seen:
                continue
            seen.add(current)
            nuclide = self.nuclides.get(current)
            if nuclide is not None:
                to_process.extend(d for d in nuclide.decay_products if d not in seen)
        return sorted(seen)

    def transition_matrix(self, order: List[int]) -> np.ndarray:
        index = {tope: i for i, tope in enumerate(order)}
        M = np.zeros((len(order), len(order)))
        for i, tope in enumerate(order):
            nuclide = self.nuclides.get(tope)
            if nuclide is None:
                continue
            lam = nuclide.decay_constant
            M[i, i] = -lam
            for daughter, br in nuclide.decay_products.items():
                M[index[daughter], i] += lam * br
        return M

    def solve(self, fractions: Mapping[int, float], elapsed_time: int) -> CompositionMap:
        if elapsed_time == 0:
            return dict(fractions)
        order = self.chain(fractions)
        N0 = np.array([fractions.get(tope, 0.0) / mass_number(tope) for tope in order])
        M = self.transition_matrix(order)
        t = elapsed_time * self.cfg.seconds_per_time_unit
        Nt = linalg.expm(M * t) @ N0
        # expm round-off can leave tiny negative amounts
        Nt = np.clip(Nt, 0.0, None)
        result: CompositionMap = {}
        for tope, amount in zip(order, Nt):
            value = float(amount) * mass_number(tope)
            if tope in fractions or value >= self.cfg.percent_tolerance:
                result[tope] = value
        return result


class DecayChainCache:
    """Memoised parent -> (elapsed time) -> daughter mapping.

    Entries are append-only: once a daughter exists for a key it is
    returned unchanged for the rest of the run. Lookups and inserts are
    funnelled through one lock; the solve itself runs outside it, and
    concurrent callers for the same key wait on a shared future so the
    solver runs at most once per key.

    Attributes:
        store: Store used to hash parents and build daughters.
        solver: Decay capability invoked on cache misses.
        solver_calls: Number of solver invocations so far.
        hits: Number of requests answered from the cache.
    """

    def __init__(self, store: CompositionStore, solver: Optional[DecaySolver] = None):
        self.store = store
        self.solver = solver if solver is not None else MatrixDecaySolver(config=store.cfg)
        self.solver_calls = 0
        self.hits = 0
        self._lock = threading.Lock()
        self._parents: Dict[str, Composition] = {}
        self._decay_times: Dict[str, Set[int]] = {}
        self._daughters: Dict[str, Dict[int, Composition]] = {}
        self._pending: Dict[Tuple[str, int], Future] = {}

    @staticmethod
    def _validated_time(elapsed_time) -> int:
        if isinstance(elapsed_time, bool) or not isinstance(elapsed_time, numbers.Integral):
            raise InvalidDecayTime(elapsed_time)
        if elapsed_time < 0:
            raise InvalidDecayTime(elapsed_time)
        return int(elapsed_time)

    def get_or_compute_daughter(self, parent: Composition, elapsed_time: int) -> Composition:
        """Return the daughter of ``parent`` after ``elapsed_time``.

        A key computed before is served from the cache. Otherwise the
        solver runs once; any exception it raises propagates to this
        caller and to every concurrent waiter, and the key stays
        uncomputed.
        """
        t = self._validated_time(elapsed_time)
        key = self.store.digest(parent)
        with self._lock:
            daughter = self._daughters.get(key, {}).get(t)
            if daughter is not None:
                self.hits += 1
                logger.debug("Decay cache hit for %s at t=%d", key[:8], t)
                return daughter
            future = self._pending.get((key, t))
            owner = future is None
            if owner:
                future = Future()
                self._pending[(key, t)] = future
                self.solver_calls += 1
                # the first parent seen for a digest is the one the cache keeps alive
                canonical = self._parents.setdefault(key, parent)
        if not owner:
            return future.result()

        try:
            daughter = self._compute(canonical, t)
        except Exception as exc:
            with self._lock:
                del self._pending[(key, t)]
            future.set_exception(exc)
            raise

        with self._lock:
            self._decay_times.setdefault(key, set()).add(t)
            self._daughters.setdefault(key, {})[t] = daughter
            del self._pending[(key, t)]
        future.set_result(daughter)
        return daughter

    def _compute(self, parent: Composition, t: int) -> Composition:
        logger.info("Solving decay of %r over t=%d", parent, t)
        fractions = self.store.mass_fractions(parent)
        values = self.store.validate_map(self.solver.solve(fractions, t))
        mass = parent.mass * math.fsum(values.values())
        daughter = self.store.build(values, mass, parent=parent, decay_time=t)
        return self.store.minimize(daughter)

    def decay_times(self, parent: Composition) -> List[int]:
        """Elapsed times already computed for ``parent``, ascending."""
        key = self.store.digest(parent)
        with self._lock:
            return sorted(self._decay_times.get(key, ()))

    def daughters(self, parent: Composition) -> Dict[int, Composition]:
        key = self.store.digest(parent)
        with self._lock:
            return dict(self._daughters.get(key, {}))

    def daughter(self, parent: Composition, elapsed_time: int) -> Optional[Composition]:
        """Cached daughter for the key, or None without computing it."""
        return self.daughters(parent).get(elapsed_time)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(d) for d in self._daughters.values())
