"""Runtime options of the adaptive Runge-Kutta integrators.

:class:`~dopri.algorithms.integrators.options.RKOptions` holds HOW WELL an
integration runs (tolerances, step bounds, limits). The step-size bounds
default to fractions of the integration span, which is only known once the
output times are given, so the options are resolved per call with
:meth:`~dopri.algorithms.integrators.options.RKOptions.resolve`.
"""

import math
from dataclasses import dataclass, replace
from typing import Optional

from dopri.algorithms.utils.config import (ATOL, MAX_STEP_FRACTION, MAX_STEPS,
                                           MIN_STEP_DIVISOR, RTOL)
from dopri.algorithms.utils.exceptions import ConfigurationError


@dataclass(frozen=True)
class RKOptions:
    """Tolerances and step-size bounds for one integration.

    Parameters
    ----------
    rtol : float, default 1e-5
        Relative tolerance, scalar and positive.
    atol : float, default 1e-8
        Absolute tolerance, scalar and positive.
    max_step : float or None, default None
        Upper bound on ``|dt|``. ``None`` resolves to ``0.1*|t_end - t_start|``,
        ``0`` removes the bound.
    min_step : float or None, default None
        Rejections asking for a smaller ``|dt|`` stop the integration.
        ``None`` resolves to ``|t_end - t_start|/1e18``.
    initial_step : float, default 0.0
        First trial step. ``0`` selects the Hairer-Wanner heuristic; a non-zero
        value must carry the sign of the integration direction.
    max_steps : int, default 100000
        Upper bound on attempted steps (accepted plus rejected).
    strict : bool, default False
        When True, early termination raises
        :class:`~dopri.algorithms.utils.exceptions.IntegrationError` instead of
        returning the partial solution.
    """

    rtol: float = RTOL
    atol: float = ATOL
    max_step: Optional[float] = None
    min_step: Optional[float] = None
    initial_step: float = 0.0
    max_steps: int = MAX_STEPS
    strict: bool = False

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        """Validate the options."""
        if not self.rtol > 0.0:
            raise ConfigurationError(f"rtol must be positive, got {self.rtol}")
        if not self.atol > 0.0:
            raise ConfigurationError(f"atol must be positive, got {self.atol}")
        if self.max_step is not None and not self.max_step >= 0.0:
            raise ConfigurationError(f"max_step must be non-negative, got {self.max_step}")
        if self.min_step is not None and not self.min_step >= 0.0:
            raise ConfigurationError(f"min_step must be non-negative, got {self.min_step}")
        if self.max_steps < 1:
            raise ConfigurationError(f"max_steps must be at least 1, got {self.max_steps}")

    def resolve(self, t_start: float, t_end: float) -> "RKOptions":
        """Return a copy with the span-dependent defaults filled in."""
        span = abs(t_end - t_start)
        max_step = MAX_STEP_FRACTION * span if self.max_step is None else self.max_step
        if max_step == 0.0:
            max_step = math.inf
        min_step = span / MIN_STEP_DIVISOR if self.min_step is None else self.min_step
        return replace(self, max_step=float(max_step), min_step=float(min_step))

    def with_overrides(self, **overrides) -> "RKOptions":
        """Return a copy with the given fields replaced."""
        if not overrides:
            return self
        unknown = set(overrides) - set(self.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        return replace(self, **overrides)
