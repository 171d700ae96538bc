""" Public API for the :mod:`~dopri.algorithms.integrators` package.
"""

from .options import RKOptions
from .rk import (AdaptiveRK, _BogackiShampine32, _DormandPrince54,
                 integrate_dense, integrate_on_grid)
from .tableau import (BOGACKI_SHAMPINE_32, DORMAND_PRINCE_54,
                      ButcherTableau)
from .types import DenseSolution, GridSolution, IntegrationStats

DormandPrince54 = _DormandPrince54
BogackiShampine32 = _BogackiShampine32

__all__ = [
    "AdaptiveRK",
    "DormandPrince54",
    "BogackiShampine32",
    "RKOptions",
    "ButcherTableau",
    "DORMAND_PRINCE_54",
    "BOGACKI_SHAMPINE_32",
    "GridSolution",
    "DenseSolution",
    "IntegrationStats",
    "integrate_on_grid",
    "integrate_dense",
]
