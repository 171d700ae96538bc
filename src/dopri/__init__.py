"""dopri: embedded adaptive Runge-Kutta integration with dense output.

Dormand-Prince 5(4) with automatic step-size control, FSAL stage reuse and
cubic Hermite continuous extension.
"""

from dopri.algorithms.dynamics import RHSSystem, create_rhs_system
from dopri.algorithms.integrators import (BOGACKI_SHAMPINE_32,
                                          DORMAND_PRINCE_54, AdaptiveRK,
                                          BogackiShampine32, ButcherTableau,
                                          DenseSolution, DormandPrince54,
                                          GridSolution, IntegrationStats,
                                          RKOptions, integrate_dense,
                                          integrate_on_grid)
from dopri.algorithms.utils.exceptions import (ConfigurationError,
                                               DegenerateIntervalError,
                                               DomainError, DopriError,
                                               IntegrationError,
                                               OutOfRangeError,
                                               StepLimitExceeded,
                                               StepSizeUnderflow)
from dopri.utils.log_config import setup_logging

__version__ = "0.1.0"

__all__ = [
    "RHSSystem",
    "create_rhs_system",
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
    "DopriError",
    "ConfigurationError",
    "DegenerateIntervalError",
    "DomainError",
    "IntegrationError",
    "StepSizeUnderflow",
    "StepLimitExceeded",
    "OutOfRangeError",
    "setup_logging",
]
