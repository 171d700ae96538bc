"""Mutable buffers of one in-flight Runge-Kutta integration.

A workspace is created fresh by every integration call and passed into each
stepping routine; it is never shared between integrations.  The current and
trial states live in a two-row arena and are exchanged by flipping an index,
so accepting a step costs no copy and the two buffers never alias.
"""

import numpy as np

from dopri.algorithms.integrators.tableau import ButcherTableau


class _RKWorkspace:
    """Own the numeric buffers used by the stepping kernels.

    Parameters
    ----------
    dim : int
        Dimension of the state space.
    tableau : :class:`~dopri.algorithms.integrators.tableau.ButcherTableau`
        Tableau whose stage count sizes the stage derivative matrix.
    y0 : numpy.ndarray
        Initial state, copied into the current buffer.
    t_start, t_end : float
        Integration interval.

    Attributes
    ----------
    ks : numpy.ndarray of shape (dim, stages)
        Stage derivatives; column 0 holds the FSAL carry ``f(t, current)``.
    err : numpy.ndarray of shape (dim,)
        Error estimate of the last attempted step.
    scratch : numpy.ndarray of shape (dim,)
        Stage state of the stage being evaluated.
    cont : numpy.ndarray of shape (dim, 4)
        Hermite coefficients of the last accepted step.
    direction : int
        +1 for forward, -1 for backward integration.
    t, t_end, dt : float
        Start of the current step, end of the interval, signed step size.
    order : int
        Order used in the controller exponent.
    last_step : bool
        True when an accepted current step ends the integration.
    out_index : int
        Cursor into the requested output times.
    """

    def __init__(self, dim: int, tableau: ButcherTableau, y0: np.ndarray, t_start: float, t_end: float):
        self.dim = dim
        self.stages = tableau.stages
        self.order = tableau.order

        self.ks = np.zeros((dim, tableau.stages), dtype=np.float64)
        self._states = np.zeros((2, dim), dtype=np.float64)
        self._cur = 0
        self.err = np.zeros(dim, dtype=np.float64)
        self.scratch = np.zeros(dim, dtype=np.float64)
        self.cont = np.zeros((dim, 4), dtype=np.float64)

        self._states[0] = y0
        self.t = float(t_start)
        self.t_end = float(t_end)
        self.direction = 1 if t_end > t_start else -1
        self.dt = 0.0
        self.last_step = False
        self.out_index = 1

        self.n_accepted = 0
        self.n_rejected = 0
        self.n_evaluations = 0

    @property
    def current(self) -> np.ndarray:
        """State at the start of the current step."""
        return self._states[self._cur]

    @property
    def trial(self) -> np.ndarray:
        """Propagated state of the last attempted step."""
        return self._states[1 - self._cur]

    @property
    def t_new(self) -> float:
        """End of the current step; the last step ends exactly at ``t_end``."""
        if self.last_step:
            return self.t_end
        return self.t + self.dt

    def swap(self) -> None:
        """Make the trial state the current one."""
        self._cur = 1 - self._cur

    def evaluate(self, system, t: float, y: np.ndarray, out: np.ndarray) -> None:
        """Evaluate the system right-hand side into *out*, counting the call."""
        self.n_evaluations += 1
        system.evaluate(t, y, out)

    def carry_fsal(self) -> None:
        """Load the last stage derivative as the first stage of the next step."""
        self.ks[:, 0] = self.ks[:, self.stages - 1]

    def __repr__(self):
        return (f"_RKWorkspace(dim={self.dim}, stages={self.stages}, t={self.t}, "
                f"dt={self.dt}, direction={self.direction})")
