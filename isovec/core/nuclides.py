"""
Default nuclide decay data.

A compact table of half-lives and decay branches for the actinides and
fission/activation products most often found in fuel-cycle recipes.
Values are rounded evaluated-data figures, good enough to drive the
default ``MatrixDecaySolver``; runs that need a full library should pass
their own table. Isotopes missing from the table are treated as stable.

Each entry maps an isotope id to a ``Nuclide`` holding its half-life in
seconds and a ``{daughter id: branching ratio}`` map.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping

import numpy as np

from .isotopes import validate_isotope

# Time constants for half-life definitions
SECOND = 1.0
MINUTE = 60.0
HOUR = 3600.0
DAY = 86400.0
YEAR = 365.25 * DAY
STABLE = float("inf")


@dataclass
class Nuclide:
    """Decay data for one isotope."""
    isotope: int
    half_life_s: float
    decay_products: Dict[int, float] = field(default_factory=dict)

    @property
    def decay_constant(self) -> float:
        """Decay constant lambda = ln(2) / t_half, 0 for stable isotopes."""
        if self.half_life_s <= 0 or not np.isfinite(self.half_life_s):
            return 0.0
        return float(np.log(2) / self.half_life_s)

    @property
    def is_stable(self) -> bool:
        return self.decay_constant == 0.0 or not self.decay_products


def _n(isotope: int, half_life_s: float, **products: float) -> Nuclide:
    # products are keyed "d<isotope id>" so they can be keyword arguments
    return Nuclide(isotope, half_life_s, {int(k[1:]): br for k, br in products.items()})


DEFAULT_NUCLIDES: Dict[int, Nuclide] = {
    n.isotope: n
    for n in [
        # Light activation products
        _n(1003, 12.32 * YEAR, d2003=1.0),
        _n(6014, 5700.0 * YEAR, d7014=1.0),
        _n(27060, 5.2714 * YEAR, d28060=1.0),
        # Fission products
        _n(36085, 10.739 * YEAR, d37085=1.0),
        _n(38090, 28.79 * YEAR, d39090=1.0),
        _n(39090, 64.0 * HOUR, d40090=1.0),
        _n(43099, 2.111e5 * YEAR, d44099=1.0),
        _n(53129, 1.57e7 * YEAR, d54129=1.0),
        _n(55134, 2.0652 * YEAR, d56134=1.0),
        _n(55137, 30.08 * YEAR, d56137=1.0),
        _n(63154, 8.6 * YEAR, d64154=0.9998, d62154=0.0002),
        # Thorium and uranium series heads
        _n(90232, 1.405e10 * YEAR, d88228=1.0),
        _n(88228, 5.75 * YEAR, d90228=1.0),
        _n(90228, 1.9116 * YEAR, d88224=1.0),
        _n(91231, 3.276e4 * YEAR, d89227=1.0),
        _n(92232, 68.9 * YEAR, d90228=1.0),
        _n(92233, 1.592e5 * YEAR, d90229=1.0),
        _n(92234, 2.455e5 * YEAR, d90230=1.0),
        _n(92235, 7.04e8 * YEAR, d90231=1.0),
        _n(90231, 25.52 * HOUR, d91231=1.0),
        _n(92236, 2.342e7 * YEAR, d90232=1.0),
        _n(92238, 4.468e9 * YEAR, d90234=1.0),
        _n(90234, 24.1 * DAY, d92234=1.0),
        _n(90230, 7.538e4 * YEAR, d88226=1.0),
        _n(88226, 1600.0 * YEAR, d82206=1.0),
        # Transuranics
        _n(93237, 2.144e6 * YEAR, d91233=1.0),
        _n(91233, 26.975 * DAY, d92233=1.0),
        _n(94238, 87.7 * YEAR, d92234=1.0),
        _n(94239, 2.411e4 * YEAR, d92235=1.0),
        _n(94240, 6561.0 * YEAR, d92236=1.0),
        _n(94241, 14.29 * YEAR, d95241=1.0),
        _n(94242, 3.75e5 * YEAR, d92238=1.0),
        _n(95241, 432.6 * YEAR, d93237=1.0),
        _n(95243, 7370.0 * YEAR, d93239=1.0),
        _n(93239, 2.356 * DAY, d94239=1.0),
        _n(96242, 162.8 * DAY, d94238=1.0),
        _n(96244, 18.1 * YEAR, d94240=1.0),
    ]
}


def validate_nuclide_data(data: Mapping[int, Nuclide]) -> None:
    """Check isotope ids and branching ratios of a nuclide table.

    Raises ``InvalidIsotope`` for malformed ids and ``ValueError`` when a
    nuclide's branching ratios are negative or sum to more than one.
    """
    for tope, nuclide in data.items():
        validate_isotope(tope)
        total = 0.0
        for daughter, br in nuclide.decay_products.items():
            validate_isotope(daughter)
            if br < 0:
                raise ValueError(f"Negative branching ratio {br} for {tope} -> {daughter}")
            total += br
        if total > 1.0 + 1e-9:
            raise ValueError(f"Branching ratios of {tope} sum to {total}")
