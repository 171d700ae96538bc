""" Public API for the :mod:`~dopri.algorithms` package.
"""

from .dynamics import RHSSystem, create_rhs_system
from .integrators import (AdaptiveRK, DenseSolution, GridSolution,
                          IntegrationStats, RKOptions, integrate_dense,
                          integrate_on_grid)

__all__ = [
    "RHSSystem",
    "create_rhs_system",
    "AdaptiveRK",
    "RKOptions",
    "GridSolution",
    "DenseSolution",
    "IntegrationStats",
    "integrate_on_grid",
    "integrate_dense",
]
