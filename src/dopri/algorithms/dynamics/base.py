"""Systems of ordinary differential equations seen by the integrators.

A system only has to expose its state dimension and a right-hand side
``rhs(t, y) -> dy/dt``.  Integrators go through
:meth:`~dopri.algorithms.dynamics.base._DynamicalSystem.evaluate`, which
coerces the result to float64 and checks its length.
"""

from abc import ABC, abstractmethod
from typing import Callable, Protocol, runtime_checkable

import numpy as np

from dopri.algorithms.utils.exceptions import ConfigurationError


@runtime_checkable
class DynamicalSystemProtocol(Protocol):
    """Structural type accepted by every integrator entry point."""

    @property
    def dim(self) -> int:
        ...

    @property
    def rhs(self) -> Callable[[float, np.ndarray], np.ndarray]:
        ...


class _DynamicalSystem(ABC):
    """Base class of the systems the driver integrates.

    Parameters
    ----------
    dim : int
        Length of the state vector.

    Notes
    -----
    The right-hand side may close over mutable data but is assumed free of
    side effects.  One instance must not be integrated from two threads at
    the same time.
    """

    def __init__(self, dim: int):
        if dim <= 0:
            raise ValueError(f"State dimension must be positive, got {dim}")
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    @property
    @abstractmethod
    def rhs(self) -> Callable[[float, np.ndarray], np.ndarray]:
        """Callable ``f(t, y)`` returning ``dim`` derivative values."""
        pass

    def is_out_of_domain(self, y: np.ndarray) -> bool:
        """Return True when *y* is not a valid state of the system.

        Every state is valid by default.  A trial state flagged here makes
        the controller reject the step and shrink it by its largest factor.
        """
        return False

    def evaluate(self, t: float, y: np.ndarray, out: np.ndarray) -> None:
        """Write ``rhs(t, y)`` into *out*.

        Raises
        ------
        ConfigurationError
            If the right-hand side does not return ``dim`` values.
        """
        dy = np.asarray(self.rhs(t, y), dtype=np.float64)
        if dy.shape != (self._dim,):
            raise ConfigurationError(
                f"rhs returned shape {dy.shape}, expected ({self._dim},)"
            )
        out[:] = dy
