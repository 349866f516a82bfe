"""Exceptions raised by the composition engine."""

from __future__ import annotations


class CompositionError(Exception):
    """Base class for every error raised by ``isovec.core``."""


class InvalidIsotope(CompositionError, ValueError):
    """An isotope identifier does not decode to a valid ZZZAAA pair."""

    def __init__(self, tope):
        super().__init__(f"Invalid isotope identifier: {tope!r}")
        self.tope = tope


class NegativeFraction(CompositionError, ValueError):
    """A quantity supplied at construction (or a scale factor) is negative."""

    def __init__(self, tope, value):
        if tope is None:
            message = f"Scale factor must be finite and non-negative, got {value!r}"
        else:
            message = f"Negative quantity {value!r} for isotope {tope!r}"
        super().__init__(message)
        self.tope = tope
        self.value = value


class RangeError(CompositionError, ArithmeticError):
    """Subtraction would leave a negative quantity beyond the mass tolerance."""

    def __init__(self, tope, value):
        super().__init__(
            f"Subtraction leaves {value!r} kg of isotope {tope}; the result must be non-negative"
        )
        self.tope = tope
        self.value = value


class InvalidDivisor(CompositionError, ZeroDivisionError):
    """A composition was divided by zero."""

    def __init__(self, divisor):
        super().__init__(f"Cannot divide a composition by {divisor!r}")
        self.divisor = divisor


class UnknownRecipe(CompositionError, KeyError):
    """Lookup of a recipe name that was never loaded."""

    def __init__(self, name):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown recipe: {self.name!r}"


class DuplicateRecipe(CompositionError, ValueError):
    """A recipe name was loaded twice."""

    def __init__(self, name):
        super().__init__(f"Recipe {name!r} is already registered")
        self.name = name


class FrozenCompositionError(CompositionError, AttributeError):
    """Attempt to modify a composition that already has a state id."""


class InvalidDecayTime(CompositionError, ValueError):
    """Decay requested for a negative or non-integer elapsed time."""

    def __init__(self, elapsed_time):
        super().__init__(f"Elapsed decay time must be a non-negative integer, got {elapsed_time!r}")
        self.elapsed_time = elapsed_time
