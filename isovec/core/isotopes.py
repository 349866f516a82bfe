"""
Isotope identifiers and basic nuclear bookkeeping.

Isotopes are identified by a single integer in ``ZZZAAA`` form, i.e.
``Z * 1000 + A``: U-235 is ``92235`` and H-3 is ``1003``. The helpers in
this module decode and validate those identifiers; everything else in
the engine relies on them rather than re-implementing the arithmetic.
"""

from __future__ import annotations

import numbers
from enum import Enum

from .errors import InvalidIsotope

#: Avogadro's number (atoms per mole)
AVOGADRO = 6.02214076e23

#: Highest atomic number accepted in an isotope identifier (lawrencium)
MAX_ATOMIC_NUMBER = 103

#: Multiplier separating Z from A in ``ZZZAAA`` identifiers
ZZZAAA_SHIFT = 1000


class Basis(Enum):
    """Whether an input fraction map counts mass or atoms."""
    MASS = "mass"
    ATOM = "atom"

    @classmethod
    def parse(cls, value) -> "Basis":
        """Accept a ``Basis`` or its case-insensitive string name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown composition basis: {value!r}") from None


def atomic_number(tope: int) -> int:
    """Return Z for an isotope identifier."""
    validate_isotope(tope)
    return int(tope) // ZZZAAA_SHIFT


def mass_number(tope: int) -> int:
    """Return A for an isotope identifier."""
    validate_isotope(tope)
    return int(tope) % ZZZAAA_SHIFT


def make_isotope(z: int, a: int) -> int:
    """Build and validate the identifier for atomic number ``z`` and mass number ``a``."""
    tope = z * ZZZAAA_SHIFT + a
    validate_isotope(tope)
    return tope


def is_valid_isotope(tope) -> bool:
    # bool is an int subclass but never an isotope
    if isinstance(tope, bool) or not isinstance(tope, numbers.Integral):
        return False
    z, a = divmod(int(tope), ZZZAAA_SHIFT)
    return 1 <= z <= MAX_ATOMIC_NUMBER and a >= z


def validate_isotope(tope) -> None:
    """Raise ``InvalidIsotope`` unless ``tope`` is a well-formed identifier."""
    if not is_valid_isotope(tope):
        raise InvalidIsotope(tope)
