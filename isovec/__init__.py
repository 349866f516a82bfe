"""
Isotopic composition and decay-chain engine.

This package models the isotopic make-up of nuclear material as mass or
atom fractions, supports arithmetic on compositions, tracks radioactive
decay over simulated time and interns frequently reused compositions
("recipes") with memoized decay results.

The major subpackage is:

``isovec.core``        Compositions, the recipe registry, the decay
                       chain cache, the state ledger and the ``IsoVector``
                       handle used by simulation actors.

Please see the individual modules for further documentation.
"""

__all__ = [
    "core",
]
