"""Output strategies invoked by the driver after every accepted step.

The driver builds the Hermite coefficients of an accepted step before the
FSAL carry-over and the buffer swap, so a strategy sees the step start
``ws.t``, the step ``ws.dt``, both end states and ``ws.cont``.
"""

from abc import ABC, abstractmethod

import numpy as np

from dopri.algorithms.integrators.kernels import hermite_evaluate
from dopri.algorithms.integrators.types import (DenseSolution, GridSolution,
                                                IntegrationStats)
from dopri.algorithms.integrators.workspace import _RKWorkspace


class _OutputStrategy(ABC):
    """Collect the output of accepted steps and build the final solution."""

    @abstractmethod
    def on_accept(self, ws: _RKWorkspace) -> None:
        """Record the step ``[ws.t, ws.t + ws.dt]`` just accepted."""
        pass

    @abstractmethod
    def build(self, stats: IntegrationStats):
        """Return the solution object from everything recorded so far."""
        pass


class _GridOutput(_OutputStrategy):
    """Interpolate accepted steps onto the requested output times.

    Parameters
    ----------
    t_out : numpy.ndarray
        Output times, strictly monotonic in the integration direction.
    y0 : numpy.ndarray
        Initial state, stored verbatim as the first row.
    """

    def __init__(self, t_out: np.ndarray, y0: np.ndarray):
        self._t_out = t_out
        self._states = np.full((t_out.size, y0.size), np.nan, dtype=np.float64)
        self._states[0] = y0

    def on_accept(self, ws: _RKWorkspace) -> None:
        t_out = self._t_out
        n_out = t_out.size
        t_new = ws.t_new
        while ws.out_index < n_out and (
            ws.direction * (t_out[ws.out_index] - t_new) <= 0.0 or ws.last_step
        ):
            t_q = t_out[ws.out_index]
            row = self._states[ws.out_index]
            if t_q == t_new:
                row[:] = ws.trial
            else:
                hermite_evaluate(ws.cont, (t_q - ws.t) / ws.dt, row)
            ws.out_index += 1

    def build(self, stats: IntegrationStats) -> GridSolution:
        return GridSolution(times=self._t_out.copy(), states=self._states, stats=stats)


class _DenseOutput(_OutputStrategy):
    """Record every accepted step for later evaluation anywhere in the span."""

    def __init__(self, t_start: float, y0: np.ndarray):
        self._times = [float(t_start)]
        self._states = [np.array(y0, dtype=np.float64)]
        self._coefficients = []

    def on_accept(self, ws: _RKWorkspace) -> None:
        self._times.append(ws.t_new)
        self._states.append(ws.trial.copy())
        self._coefficients.append(ws.cont.copy())

    def build(self, stats: IntegrationStats) -> DenseSolution:
        dim = self._states[0].size
        if self._coefficients:
            coefficients = np.array(self._coefficients)
        else:
            coefficients = np.empty((0, dim, 4), dtype=np.float64)
        return DenseSolution(
            times=np.array(self._times, dtype=np.float64),
            states=np.array(self._states),
            coefficients=coefficients,
            stats=stats,
        )
