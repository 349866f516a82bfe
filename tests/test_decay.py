"""
Tests for the core.decay and core.nuclides modules.

This module tests decay memoisation, concurrency of cache inserts,
solver failure propagation and the default matrix-exponential solver.
"""

import math
import os
import sys
import threading
import time
import unittest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from isovec.core.composition import CompositionStore
from isovec.core.config import CoreConfig
from isovec.core.decay import DecayChainCache, MatrixDecaySolver
from isovec.core.errors import InvalidDecayTime, InvalidIsotope
from isovec.core.ledger import StateLedger
from isovec.core.nuclides import DEFAULT_NUCLIDES, YEAR, Nuclide, validate_nuclide_data
from isovec.core.recipes import RecipeRegistry


class CountingSolver:
    """Deterministic fake: moves half of every isotope's mass per time unit
    into the isotope one mass number lower, and counts invocations."""

    def __init__(self, delay: float = 0.0):
        self.calls = []
        self.delay = delay
        self._lock = threading.Lock()

    def solve(self, fractions, elapsed_time):
        with self._lock:
            self.calls.append((dict(fractions), elapsed_time))
        if self.delay:
            time.sleep(self.delay)
        keep = 0.5 ** elapsed_time
        result = {}
        for tope, value in fractions.items():
            result[tope] = result.get(tope, 0.0) + value * keep
            if elapsed_time:
                result[tope - 1] = result.get(tope - 1, 0.0) + value * (1.0 - keep)
        return result


class FailingSolver:
    def __init__(self):
        self.calls = 0

    def solve(self, fractions, elapsed_time):
        self.calls += 1
        raise RuntimeError("solver diverged")


class TestDecayChainCache(unittest.TestCase):
    """Tests for DecayChainCache memoisation."""

    def setUp(self):
        self.store = CompositionStore()
        self.solver = CountingSolver()
        self.cache = DecayChainCache(self.store, self.solver)
        self.registry = RecipeRegistry(self.store, StateLedger(self.store))
        self.parent = self.registry.load("fuel", {92235: 0.05, 92238: 0.95})

    def test_same_key_computed_once(self):
        first = self.cache.get_or_compute_daughter(self.parent, 12)
        second = self.cache.get_or_compute_daughter(self.parent, 12)
        self.assertIs(first, second)
        self.assertEqual(first.state_id, second.state_id)
        self.assertEqual(len(self.solver.calls), 1)
        self.assertEqual(self.cache.solver_calls, 1)
        self.assertEqual(self.cache.hits, 1)

    def test_daughter_fields(self):
        daughter = self.cache.get_or_compute_daughter(self.parent, 1)
        self.assertIs(daughter.parent, self.parent)
        self.assertEqual(daughter.decay_time, 1)
        self.assertEqual(daughter.state_id, 0)
        self.assertAlmostEqual(self.store.mass_fraction(daughter, 92234), 0.025)
        self.assertAlmostEqual(self.store.mass_fraction(daughter, 92237), 0.475)
        self.assertAlmostEqual(self.store.mass_fraction(daughter, 92238), 0.475)

    def test_solver_gets_normalized_fractions(self):
        heavy = self.store.construct({92235: 4.0, 92238: 12.0})
        self.cache.get_or_compute_daughter(heavy, 2)
        fractions, elapsed = self.solver.calls[0]
        self.assertEqual(elapsed, 2)
        self.assertAlmostEqual(fractions[92235], 0.25)
        self.assertAlmostEqual(fractions[92238], 0.75)

    def test_daughter_keeps_parent_mass(self):
        heavy = self.store.construct({92235: 4.0, 92238: 12.0})
        daughter = self.cache.get_or_compute_daughter(heavy, 3)
        self.assertAlmostEqual(daughter.mass, 16.0)

    def test_zero_time_is_identity(self):
        daughter = self.cache.get_or_compute_daughter(self.parent, 0)
        self.assertTrue(self.store.equals(daughter, self.parent))

    def test_distinct_times_distinct_entries(self):
        d1 = self.cache.get_or_compute_daughter(self.parent, 1)
        d2 = self.cache.get_or_compute_daughter(self.parent, 2)
        self.assertIsNot(d1, d2)
        self.assertEqual(self.cache.decay_times(self.parent), [1, 2])
        self.assertEqual(self.cache.daughters(self.parent), {1: d1, 2: d2})
        self.assertIs(self.cache.daughter(self.parent, 2), d2)
        self.assertIsNone(self.cache.daughter(self.parent, 3))
        self.assertEqual(len(self.cache), 2)

    def test_identical_content_shares_entry(self):
        twin = self.store.construct({92235: 0.05, 92238: 0.95})
        first = self.cache.get_or_compute_daughter(self.parent, 6)
        second = self.cache.get_or_compute_daughter(twin, 6)
        self.assertIs(first, second)
        self.assertEqual(len(self.solver.calls), 1)

    def test_large_unequal_parents_get_their_own_daughters(self):
        c1 = self.store.construct({92235: 0.3e8, 92238: 0.7e8})
        c2 = self.store.construct({92235: 0.3e8 + 2e-5, 92238: 0.7e8 - 2e-5})
        self.assertFalse(self.store.equals(c1, c2))
        d1 = self.cache.get_or_compute_daughter(c1, 0)
        d2 = self.cache.get_or_compute_daughter(c2, 0)
        self.assertIsNot(d1, d2)
        self.assertIs(d2.parent, c2)
        self.assertTrue(self.store.equals(d1, c1))
        self.assertTrue(self.store.equals(d2, c2))
        self.assertEqual(len(self.solver.calls), 2)

    def test_daughter_can_be_decayed_again(self):
        d1 = self.cache.get_or_compute_daughter(self.parent, 1)
        d2 = self.cache.get_or_compute_daughter(d1, 1)
        self.assertIs(d2.parent, d1)
        self.assertEqual(len(self.solver.calls), 2)

    def test_invalid_times(self):
        for bad in (-1, 1.5, "3", True):
            with self.assertRaises(InvalidDecayTime):
                self.cache.get_or_compute_daughter(self.parent, bad)
        self.assertEqual(len(self.solver.calls), 0)

    def test_solver_failure_propagates_and_is_not_cached(self):
        solver = FailingSolver()
        cache = DecayChainCache(self.store, solver)
        with self.assertRaises(RuntimeError):
            cache.get_or_compute_daughter(self.parent, 5)
        with self.assertRaises(RuntimeError):
            cache.get_or_compute_daughter(self.parent, 5)
        self.assertEqual(solver.calls, 2)
        self.assertEqual(len(cache), 0)

    def test_solver_output_is_validated(self):
        class BadSolver:
            def solve(self, fractions, elapsed_time):
                return {5: 1.0}

        cache = DecayChainCache(self.store, BadSolver())
        with self.assertRaises(InvalidIsotope):
            cache.get_or_compute_daughter(self.parent, 1)

    def test_concurrent_requests_share_one_solve(self):
        solver = CountingSolver(delay=0.05)
        cache = DecayChainCache(self.store, solver)
        results = []
        results_lock = threading.Lock()
        start = threading.Barrier(8)

        def worker():
            start.wait()
            daughter = cache.get_or_compute_daughter(self.parent, 12)
            with results_lock:
                results.append(daughter)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(results), 8)
        self.assertEqual(len(solver.calls), 1)
        self.assertTrue(all(r is results[0] for r in results))

    def test_concurrent_failure_reaches_waiters(self):
        class SlowFailingSolver:
            def __init__(self):
                self.calls = 0

            def solve(self, fractions, elapsed_time):
                self.calls += 1
                time.sleep(0.05)
                raise RuntimeError("boom")

        solver = SlowFailingSolver()
        cache = DecayChainCache(self.store, solver)
        errors = []
        errors_lock = threading.Lock()
        start = threading.Barrier(4)

        def worker():
            start.wait()
            try:
                cache.get_or_compute_daughter(self.parent, 7)
            except RuntimeError as exc:
                with errors_lock:
                    errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(errors), 4)
        self.assertLessEqual(solver.calls, 4)
        self.assertEqual(len(cache), 0)


class TestMatrixDecaySolver(unittest.TestCase):
    """Tests for the default decay solver."""

    def setUp(self):
        self.cfg = CoreConfig(time_unit="year")
        self.solver = MatrixDecaySolver(config=self.cfg)

    def test_default_table_is_valid(self):
        validate_nuclide_data(DEFAULT_NUCLIDES)

    def test_zero_time_returns_input(self):
        fractions = {55137: 0.3, 92238: 0.7}
        self.assertEqual(self.solver.solve(fractions, 0), fractions)

    def test_single_half_life(self):
        # Cs-137: 30.08 y, so 30 years leaves just over half
        result = self.solver.solve({55137: 1.0}, 30)
        expected = math.exp(-math.log(2) * 30.0 / 30.08)
        self.assertAlmostEqual(result[55137], expected, places=6)
        self.assertAlmostEqual(result[56137], 1.0 - expected, places=6)

    def test_unknown_isotopes_are_stable(self):
        result = self.solver.solve({26056: 1.0}, 1000)
        self.assertAlmostEqual(result[26056], 1.0)

    def test_chain_closure(self):
        order = self.solver.chain([94241])
        self.assertIn(95241, order)
        self.assertIn(93237, order)
        self.assertIn(92233, order)

    def test_alpha_decay_loses_mass(self):
        # Pu-238 -> U-234 over many half-lives, U-234 held stable
        table = {94238: Nuclide(94238, 87.7 * YEAR, {92234: 1.0})}
        result = MatrixDecaySolver(table, self.cfg).solve({94238: 1.0}, 2000)
        self.assertLess(result[94238], 1e-6)
        self.assertAlmostEqual(result[92234], 234.0 / 238.0, places=4)

    def test_custom_table(self):
        table = {1003: Nuclide(1003, 1.0 * YEAR, {2003: 1.0})}
        solver = MatrixDecaySolver(table, self.cfg)
        result = solver.solve({1003: 1.0}, 1)
        self.assertAlmostEqual(result[1003], 0.5)
        self.assertAlmostEqual(result[2003], 0.5)

    def test_bad_branching_ratio(self):
        table = {1003: Nuclide(1003, YEAR, {2003: 0.7, 1002: 0.7})}
        with self.assertRaises(ValueError):
            MatrixDecaySolver(table, self.cfg)

    def test_cache_with_default_solver(self):
        store = CompositionStore(self.cfg)
        cache = DecayChainCache(store)
        parent = store.construct({1003: 1.0})
        daughter = cache.get_or_compute_daughter(parent, 1)
        expected = 0.5 ** (1.0 / 12.32)
        # tritium and helium-3 share a mass number, so mass is conserved
        self.assertAlmostEqual(daughter.mass, 1.0)
        self.assertAlmostEqual(store.mass_fraction(daughter, 1003), expected, places=6)


if __name__ == "__main__":
    unittest.main()
