"""Result containers returned by the adaptive Runge-Kutta integrators."""

from dataclasses import dataclass, field
from typing import Union

import numpy as np

from dopri.algorithms.integrators.kernels import hermite_evaluate
from dopri.algorithms.utils.exceptions import OutOfRangeError

STATUS_SUCCESS = "success"
STATUS_MIN_STEP = "min_step"
STATUS_MAX_STEPS = "max_steps"


@dataclass(frozen=True, eq=False)
class IntegrationStats:
    """Step statistics of one integration.

    Attributes
    ----------
    n_accepted, n_rejected : int
        Number of accepted and rejected steps.
    n_evaluations : int
        Number of right-hand side evaluations, the initial step heuristic
        included.
    status : str
        ``"success"``, ``"min_step"`` or ``"max_steps"``.
    message : str
        Human-readable description of the termination.
    step_sizes : numpy.ndarray
        Signed size of every accepted step.
    error_norms : numpy.ndarray
        Scaled error norm of every accepted step.
    """
    n_accepted: int
    n_rejected: int
    n_evaluations: int
    status: str = STATUS_SUCCESS
    message: str = ""
    step_sizes: np.ndarray = field(default_factory=lambda: np.empty(0))
    error_norms: np.ndarray = field(default_factory=lambda: np.empty(0))

    @property
    def success(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass(frozen=True, eq=False)
class GridSolution:
    """Solution sampled at caller supplied output times.

    Attributes
    ----------
    times : numpy.ndarray
        Requested output times, shape (n_points,).
    states : numpy.ndarray
        State at every output time, shape (n_points, n_dim).  After an early
        termination the rows past the last accepted step are NaN.
    stats : IntegrationStats
        Step statistics.
    """
    times: np.ndarray
    states: np.ndarray
    stats: IntegrationStats

    def __post_init__(self):
        if len(self.times) != len(self.states):
            raise ValueError(
                f"Times and states must have same length: "
                f"{len(self.times)} != {len(self.states)}"
            )

    @property
    def success(self) -> bool:
        return self.stats.success


@dataclass(frozen=True, eq=False)
class DenseSolution:
    """Piecewise cubic Hermite solution over the integrated interval.

    Segment ``i`` spans ``[times[i], times[i+1]]``; its interpolant is defined
    by ``coefficients[i]`` (shape ``(n_dim, 4)``).

    Attributes
    ----------
    times : numpy.ndarray
        Accepted step boundaries, shape (n_segments + 1,).
    states : numpy.ndarray
        State at every boundary, shape (n_segments + 1, n_dim).
    coefficients : numpy.ndarray
        Hermite coefficients, shape (n_segments, n_dim, 4).
    stats : IntegrationStats
        Step statistics.
    """
    times: np.ndarray
    states: np.ndarray
    coefficients: np.ndarray
    stats: IntegrationStats

    def __post_init__(self):
        if len(self.times) != len(self.states):
            raise ValueError(
                f"Times and states must have same length: "
                f"{len(self.times)} != {len(self.states)}"
            )
        if len(self.coefficients) != len(self.times) - 1:
            raise ValueError(
                f"Expected {len(self.times) - 1} coefficient blocks, got {len(self.coefficients)}"
            )

    @property
    def success(self) -> bool:
        return self.stats.success

    @property
    def direction(self) -> int:
        if len(self.times) > 1 and self.times[-1] < self.times[0]:
            return -1
        return 1

    @property
    def n_segments(self) -> int:
        return len(self.coefficients)

    @property
    def t_start(self) -> float:
        return float(self.times[0])

    @property
    def t_end(self) -> float:
        return float(self.times[-1])

    def segments(self):
        """Iterate over ``(t0, t1, coefficients)`` of every segment."""
        for i in range(self.n_segments):
            yield float(self.times[i]), float(self.times[i + 1]), self.coefficients[i]

    def at(self, t: float) -> np.ndarray:
        """Evaluate the solution at time *t*.

        Boundary times return the recorded state exactly.

        Raises
        ------
        OutOfRangeError
            If *t* lies outside ``[t_start, t_end]``.
        """
        t = float(t)
        d = self.direction
        if d * (t - self.times[0]) < 0.0 or d * (t - self.times[-1]) > 0.0 or t != t:
            raise OutOfRangeError(t, self.t_start, self.t_end)

        # boundaries are increasing once multiplied by the direction
        j = int(np.searchsorted(d * self.times, d * t, side="right")) - 1
        if self.times[j] == t:
            return self.states[j].copy()

        t0 = self.times[j]
        theta = (t - t0) / (self.times[j + 1] - t0)
        out = np.empty(self.states.shape[1], dtype=np.float64)
        hermite_evaluate(self.coefficients[j], theta, out)
        return out

    def __call__(self, t: Union[np.ndarray, float]) -> np.ndarray:
        """Evaluate the solution at a scalar time or an array of times.

        Returns an array of shape ``(n_dim,)`` for a scalar *t* and
        ``(n_times, n_dim)`` otherwise.
        """
        if np.ndim(t) == 0:
            return self.at(float(t))
        t_arr = np.asarray(t, dtype=np.float64).ravel()
        y_out = np.empty((t_arr.size, self.states.shape[1]), dtype=np.float64)
        for i, ti in enumerate(t_arr):
            y_out[i] = self.at(ti)
        return y_out
