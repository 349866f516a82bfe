"""
Composition storage: validation, normalisation and arithmetic.

A ``Composition`` is a mass-basis isotope map together with two
normalisers. The stored values need not sum to one; the true mass
fraction of an isotope is ``fractions[tope] / mass_normalizer`` and the
true atom fraction is ``fractions[tope] / A / atom_normalizer``. Keeping
the normalisers separate lets arithmetic results be produced without
rescaling the whole map on every read.

Each composition also records the total ``mass`` it represents, so the
absolute quantity of an isotope is ``mass * mass_fraction``. Arithmetic
works on quantities; ``minimize`` only changes the stored representation.

Compositions are shared between many ``IsoVector`` handles and are never
modified once they carry a state id. All operations that "change" a
composition return a new one.
"""

from __future__ import annotations

import hashlib
import logging
import math
import numbers
import struct
import weakref
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .config import CoreConfig
from .errors import FrozenCompositionError, InvalidDivisor, NegativeFraction, RangeError
from .isotopes import Basis, mass_number, validate_isotope

logger = logging.getLogger(__name__)

CompositionMap = Dict[int, float]


class Composition:
    """Mass-basis isotopic composition shared between handles.

    Attributes:
        state_id: 0 until the composition is interned or recorded, then a
            permanent identity. Non-zero state ids freeze the object.
        fractions: Read-only view of the stored mass-basis values.
        mass_normalizer: Divisor turning stored values into mass fractions.
        atom_normalizer: Divisor turning ``value / A`` into atom fractions.
        mass: Total mass represented by the composition.
        parent: Composition this one decayed from, or None.
        decay_time: Elapsed time of the decay that produced this one.
    """

    def __init__(
        self,
        fractions: CompositionMap,
        mass_normalizer: float,
        atom_normalizer: float,
        mass: float,
        parent: Optional["Composition"] = None,
        decay_time: int = 0,
    ):
        self.state_id = 0
        # (values, mass normaliser, atom normaliser) are replaced together
        self._stored = (dict(fractions), mass_normalizer, atom_normalizer)
        self.mass = mass
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self.decay_time = decay_time

    def __setattr__(self, name, value):
        if self.__dict__.get("state_id", 0) > 0:
            raise FrozenCompositionError(
                f"Composition {self.state_id} is logged; cannot set {name!r}"
            )
        object.__setattr__(self, name, value)

    @property
    def stored(self) -> Tuple[Mapping[int, float], float, float]:
        """Consistent ``(fractions, mass_normalizer, atom_normalizer)`` snapshot."""
        values, mass_norm, atom_norm = self._stored
        return MappingProxyType(values), mass_norm, atom_norm

    @property
    def fractions(self) -> Mapping[int, float]:
        return MappingProxyType(self._stored[0])

    @property
    def mass_normalizer(self) -> float:
        return self._stored[1]

    @property
    def atom_normalizer(self) -> float:
        return self._stored[2]

    @property
    def parent(self) -> Optional["Composition"]:
        # The reference is navigational only; the decay cache owns parents.
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def logged(self) -> bool:
        return self.state_id > 0

    def isotopes(self) -> List[int]:
        return sorted(self._stored[0])

    def __contains__(self, tope) -> bool:
        return tope in self._stored[0]

    def __len__(self) -> int:
        return len(self._stored[0])

    def __repr__(self) -> str:
        return (
            f"Composition(state_id={self.state_id}, isotopes={len(self)}, "
            f"mass={self.mass!r}, decay_time={self.decay_time})"
        )


class CompositionStore:
    """Construct, compare and combine compositions.

    The store is stateless apart from its configuration; it owns the
    tolerance policy (``mass_tolerance`` for quantities, ``percent_tolerance``
    for normalised fractions) so that every comparison in the engine uses
    the same epsilons.
    """

    def __init__(self, config: Optional[CoreConfig] = None):
        self.cfg = config or CoreConfig()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def construct(self, fractions: Mapping[int, float], basis=Basis.MASS) -> Composition:
        """Build a new unlogged composition from a caller supplied map.

        Every identifier is validated and every value must be a finite,
        non-negative number. Atom-basis input is converted to mass basis
        with ``m_i = a_i * A_i / sum_j(a_j * A_j)``; mass-basis input is kept
        as given and its sum becomes the composition's mass.
        """
        basis = Basis.parse(basis)
        values = self.validate_map(fractions)
        if basis is Basis.ATOM:
            weighted = {tope: value * mass_number(tope) for tope, value in values.items()}
            total = math.fsum(weighted.values())
            if total > 0.0:
                values = {tope: w / total for tope, w in weighted.items()}
                mass = 1.0
            else:
                values = weighted
                mass = 0.0
        else:
            mass = math.fsum(values.values())
        return self.build(values, mass)

    def validate_map(self, fractions: Mapping[int, float]) -> CompositionMap:
        """Return a validated ``{int isotope: float}`` copy of ``fractions``."""
        values: CompositionMap = {}
        for tope, value in fractions.items():
            validate_isotope(tope)
            if not isinstance(value, numbers.Real) or isinstance(value, bool):
                raise NegativeFraction(tope, value)
            value = float(value)
            if not math.isfinite(value) or value < 0.0:
                raise NegativeFraction(tope, value)
            values[int(tope)] = value
        return values

    def build(
        self,
        values: CompositionMap,
        mass: float,
        parent: Optional[Composition] = None,
        decay_time: int = 0,
    ) -> Composition:
        mass_norm, atom_norm = self.normalizers(values)
        return Composition(values, mass_norm, atom_norm, mass, parent=parent, decay_time=decay_time)

    @staticmethod
    def normalizers(values: Mapping[int, float]) -> tuple[float, float]:
        """Return ``(mass_normalizer, atom_normalizer)`` for stored values."""
        mass_norm = math.fsum(values.values())
        atom_norm = math.fsum(value / mass_number(tope) for tope, value in values.items())
        return mass_norm, atom_norm

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def mass_fraction(self, c: Composition, tope: int) -> float:
        values, mass_norm, _ = c.stored
        value = values.get(tope)
        if value is None or mass_norm == 0.0:
            return 0.0
        return value / mass_norm

    def atom_fraction(self, c: Composition, tope: int) -> float:
        values, _, atom_norm = c.stored
        value = values.get(tope)
        if value is None or atom_norm == 0.0:
            return 0.0
        return value / mass_number(tope) / atom_norm

    def mass_fractions(self, c: Composition) -> CompositionMap:
        return {tope: self.mass_fraction(c, tope) for tope in c.isotopes()}

    def atom_fractions(self, c: Composition) -> CompositionMap:
        return {tope: self.atom_fraction(c, tope) for tope in c.isotopes()}

    def quantity(self, c: Composition, tope: int) -> float:
        """Absolute mass of ``tope`` in ``c``."""
        return c.mass * self.mass_fraction(c, tope)

    def quantities(self, c: Composition) -> CompositionMap:
        return {tope: self.quantity(c, tope) for tope in c.isotopes()}

    def is_zero(self, c: Composition, tope: int) -> bool:
        return self.quantity(c, tope) < self.cfg.mass_tolerance

    def is_minimal(self, c: Composition) -> bool:
        return c.mass_normalizer == 1.0 or c.mass_normalizer == 0.0

    # ------------------------------------------------------------------
    # Normalisation
    # ------------------------------------------------------------------
    def minimize(self, c: Composition) -> Composition:
        """Rescale stored values so that ``mass_normalizer`` is exactly 1.

        Quantities and fractions are unchanged; only floating point drift
        accumulated in the stored map is bounded. The new map and both
        normalisers are swapped in with a single assignment, so concurrent
        readers see either the old representation or the new one. Returns
        ``c``.
        """
        values, norm, atom_norm = c.stored
        if norm == 1.0 or norm == 0.0:
            return c
        if c.logged:
            raise FrozenCompositionError(f"Composition {c.state_id} is logged and not minimal")
        c._stored = ({tope: value / norm for tope, value in values.items()}, 1.0, atom_norm / norm)
        return c

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------
    def add(self, a: Composition, b: Composition) -> Composition:
        """Isotope-wise sum of quantities as a new minimised composition."""
        summed: CompositionMap = {}
        for tope in set(a.fractions) | set(b.fractions):
            summed[tope] = self.quantity(a, tope) + self.quantity(b, tope)
        return self.minimize(self.build(summed, math.fsum(summed.values())))

    def subtract(self, a: Composition, b: Composition) -> Composition:
        """Isotope-wise difference of quantities as a new minimised composition.

        Raises ``RangeError`` if any isotope would fall below
        ``-mass_tolerance``. Differences within the tolerance are clamped
        to zero.
        """
        diff: CompositionMap = {}
        for tope in sorted(set(a.fractions) | set(b.fractions)):
            value = self.quantity(a, tope) - self.quantity(b, tope)
            if value < -self.cfg.mass_tolerance:
                raise RangeError(tope, value)
            if value < 0.0:
                logger.debug("Clamping %.3g kg of isotope %d to zero after subtraction", value, tope)
                value = 0.0
            diff[tope] = value
        return self.minimize(self.build(diff, math.fsum(diff.values())))

    def scale(self, c: Composition, factor: float) -> Composition:
        """Return a copy of ``c`` representing ``factor`` times its mass."""
        factor = float(factor)
        if not math.isfinite(factor) or factor < 0.0:
            raise NegativeFraction(None, factor)
        values, mass_norm, atom_norm = c.stored
        scaled = Composition(
            values, mass_norm, atom_norm, c.mass * factor,
            parent=c.parent, decay_time=c.decay_time,
        )
        return self.minimize(scaled)

    def divide(self, c: Composition, divisor: float) -> Composition:
        """Return a copy of ``c`` representing its mass divided by ``divisor``."""
        if divisor == 0:
            raise InvalidDivisor(divisor)
        return self.scale(c, 1.0 / float(divisor))

    def equals(self, a: Composition, b: Composition) -> bool:
        """True iff every isotope's quantity agrees within the mass tolerance."""
        if a is b:
            return True
        for tope in set(a.fractions) | set(b.fractions):
            if abs(self.quantity(a, tope) - self.quantity(b, tope)) > self.cfg.mass_tolerance:
                return False
        return True

    # ------------------------------------------------------------------
    # Identity and display
    # ------------------------------------------------------------------
    def digest(self, c: Composition) -> str:
        """Return a stable content hash of ``c``.

        The hash covers the exact normalised mass fractions and the total
        mass, so it is independent of how the stored map happens to be
        scaled. Values are not rounded: compositions that differ in any
        bit hash differently, and at worst an equivalent composition
        misses the decay cache. Explicit zero entries are skipped. blake2s
        keeps the value stable across interpreter sessions regardless of
        PYTHONHASHSEED.
        """
        h = hashlib.blake2s(digest_size=16)
        for tope in c.isotopes():
            fraction = self.mass_fraction(c, tope)
            if fraction == 0.0:
                continue
            h.update(int(tope).to_bytes(4, byteorder="big", signed=False))
            h.update(struct.pack(">d", fraction))
        h.update(b"mass")
        h.update(struct.pack(">d", float(c.mass)))
        return h.hexdigest()

    def describe(self, c: Composition) -> List[str]:
        """Return one ``"<isotope>: <mass fraction>"`` line per isotope."""
        return [f"{tope}: {self.mass_fraction(c, tope):.6g}" for tope in c.isotopes()]
