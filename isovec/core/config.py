"""
Engine configuration definitions.

This module defines the configuration dataclass used to parameterise the
composition engine. Configurations are defined with explicit defaults so
that test runs can be created easily without requiring the user to supply
values for every field. See ``CoreConfig`` for the top-level
configuration consumed by ``IsoContext``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

#: Smallest mass (kg) distinguishable from zero.
MASS_TOLERANCE = 1e-6

#: Smallest fraction distinguishable from zero.
PERCENT_TOLERANCE = 1e-14

#: Seconds per supported simulation time unit.
TIME_UNITS = {
    "second": 1.0,
    "day": 86400.0,
    "month": 365.25 * 86400.0 / 12.0,
    "year": 365.25 * 86400.0,
}


@dataclass
class CoreConfig:
    """Top level configuration for composition engine runs.

    Tolerances default to the values the simulation has always used for
    mass conservation and fraction normalisation. ``time_unit`` is the unit
    of the integer elapsed times passed to decay; the default solver
    converts it to seconds through ``seconds_per_time_unit``.
    """

    # Numeric tolerance policy
    mass_tolerance: float = MASS_TOLERANCE
    percent_tolerance: float = PERCENT_TOLERANCE

    # Simulation clock
    time_unit: str = "month"

    # Level applied to the ``isovec`` logger by ``configure_logging``
    log_level: str = "WARNING"

    # Reserved for consumers that need extra knobs without a schema change
    extras: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.time_unit not in TIME_UNITS:
            raise ValueError(
                f"Unknown time unit {self.time_unit!r}; expected one of {sorted(TIME_UNITS)}"
            )
        if self.mass_tolerance < 0 or self.percent_tolerance < 0:
            raise ValueError("Tolerances must be non-negative")

    @property
    def seconds_per_time_unit(self) -> float:
        return TIME_UNITS[self.time_unit]

    def to_dict(self) -> dict:
        """Return a dict representation of the configuration.

        Useful for serialisation or interfacing with dynamic
        configuration loaders.
        """
        return self.__dict__.copy()


def configure_logging(config: CoreConfig) -> logging.Logger:
    """Apply ``config.log_level`` to the package logger and return it."""
    logger = logging.getLogger("isovec")
    logger.setLevel(config.log_level.upper())
    return logger
