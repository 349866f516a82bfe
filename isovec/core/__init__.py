"""Core composition engine: compositions, recipes, decay caching and handles."""

from .composition import Composition, CompositionStore
from .config import CoreConfig, configure_logging
from .context import IsoContext
from .decay import DecayChainCache, DecaySolver, MatrixDecaySolver
from .errors import (
    CompositionError,
    DuplicateRecipe,
    FrozenCompositionError,
    InvalidDecayTime,
    InvalidDivisor,
    InvalidIsotope,
    NegativeFraction,
    RangeError,
    UnknownRecipe,
)
from .handle import IsoVector
from .isotopes import Basis, atomic_number, mass_number, validate_isotope
from .ledger import StateLedger
from .recipes import RecipeRecord, RecipeRegistry, load_recipes
from .sinks import JsonLinesSink, MemorySink, PersistenceSink

__all__ = [
    "Basis",
    "Composition",
    "CompositionError",
    "CompositionStore",
    "CoreConfig",
    "DecayChainCache",
    "DecaySolver",
    "DuplicateRecipe",
    "FrozenCompositionError",
    "InvalidDecayTime",
    "InvalidDivisor",
    "InvalidIsotope",
    "IsoContext",
    "IsoVector",
    "JsonLinesSink",
    "MatrixDecaySolver",
    "MemorySink",
    "NegativeFraction",
    "PersistenceSink",
    "RangeError",
    "RecipeRecord",
    "RecipeRegistry",
    "StateLedger",
    "UnknownRecipe",
    "atomic_number",
    "configure_logging",
    "load_recipes",
    "mass_number",
    "validate_isotope",
]
