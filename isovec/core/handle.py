"""
IsoVector: the value-type handle actors use to hold material isotopics.

A handle wraps a shared ``Composition``. Many handles may point at the
same composition (typically an interned recipe or a cached daughter);
nothing a handle does ever edits that shared object. Arithmetic returns
new handles over new unlogged compositions, and ``decay`` rebinds only
the handle it is called on.
"""

from __future__ import annotations

from typing import List, Mapping, Optional

from .composition import Composition, CompositionMap
from .context import IsoContext
from .isotopes import Basis


class IsoVector:
    """Handle over a shared isotopic composition."""

    # mutable through decay(), so not usable as a dict key
    __hash__ = None

    def __init__(self, composition: Composition, context: IsoContext):
        self._composition = composition
        self.context = context

    @classmethod
    def from_map(cls, context: IsoContext, fractions: Mapping[int, float], basis=Basis.MASS) -> "IsoVector":
        return cls(context.store.construct(fractions, basis), context)

    @classmethod
    def from_recipe(cls, context: IsoContext, name: str) -> "IsoVector":
        return cls(context.registry.lookup(name), context)

    @property
    def composition(self) -> Composition:
        return self._composition

    @property
    def _store(self):
        return self.context.store

    # --- Operators ---------------------------------------------------------
    def _check_peer(self, other: "IsoVector") -> None:
        if other.context is not self.context:
            raise ValueError("Cannot combine IsoVectors from different contexts")

    def __add__(self, other):
        if not isinstance(other, IsoVector):
            return NotImplemented
        self._check_peer(other)
        return IsoVector(self._store.add(self._composition, other._composition), self.context)

    def __sub__(self, other):
        """Subtract like isotopes; raises ``RangeError`` on negative results."""
        if not isinstance(other, IsoVector):
            return NotImplemented
        self._check_peer(other)
        return IsoVector(self._store.subtract(self._composition, other._composition), self.context)

    def __mul__(self, factor):
        if isinstance(factor, IsoVector):
            return NotImplemented
        return IsoVector(self._store.scale(self._composition, factor), self.context)

    __rmul__ = __mul__

    def __truediv__(self, factor):
        if isinstance(factor, IsoVector):
            return NotImplemented
        return IsoVector(self._store.divide(self._composition, factor), self.context)

    def __eq__(self, other):
        if not isinstance(other, IsoVector):
            return NotImplemented
        return self._store.equals(self._composition, other._composition)

    # --- Reads -------------------------------------------------------------
    @property
    def state_id(self) -> int:
        return self._composition.state_id

    @property
    def logged(self) -> bool:
        return self._composition.logged

    @property
    def mass(self) -> float:
        return self._composition.mass

    @property
    def mass_normalizer(self) -> float:
        return self._composition.mass_normalizer

    @property
    def decay_time(self) -> int:
        return self._composition.decay_time

    @property
    def parent(self) -> Optional[Composition]:
        return self._composition.parent

    def mass_comp(self) -> CompositionMap:
        """Normalised mass fractions of every isotope."""
        return self._store.mass_fractions(self._composition)

    def atom_comp(self) -> CompositionMap:
        return self._store.atom_fractions(self._composition)

    def mass_fraction(self, tope: int) -> float:
        return self._store.mass_fraction(self._composition, tope)

    def atom_fraction(self, tope: int) -> float:
        return self._store.atom_fraction(self._composition, tope)

    def quantity(self, tope: int) -> float:
        return self._store.quantity(self._composition, tope)

    def is_zero(self, tope: int) -> bool:
        """True if the isotope's mass is below the mass tolerance."""
        return self._store.is_zero(self._composition, tope)

    def minimize(self) -> None:
        self._store.minimize(self._composition)

    def describe(self) -> List[str]:
        return self._store.describe(self._composition)

    # --- Time and persistence ----------------------------------------------
    def decay(self, elapsed_time: int) -> "IsoVector":
        """Advance this handle by ``elapsed_time`` and return it.

        The daughter comes from the shared decay cache; other handles on
        the previous composition keep pointing at it.
        """
        self._composition = self.context.cache.get_or_compute_daughter(self._composition, elapsed_time)
        return self

    def record(self) -> bool:
        """Log the composition; True if a new state was written."""
        return self.context.ledger.record(self._composition)

    def __repr__(self) -> str:
        return f"IsoVector({self._composition!r})"
