"""Provide embedded adaptive Runge-Kutta integrators with dense output.

The driver follows DOPRI5 as described by Hairer, Norsett and Wanner: an
initial step estimate, one embedded FSAL step per iteration, an error-norm
step-size controller and a cubic Hermite continuous extension built for
every accepted step.  Two output strategies sit on top of the driver: a grid
strategy filling caller supplied output times and a dense strategy keeping
every step for evaluation anywhere in the interval.

References
----------
Hairer, E.; Norsett, S.; Wanner, G. (1993). "Solving Ordinary Differential
Equations I", p.134, p.165-169.

Dormand, J. R.; Prince, P. J. (1980). "A family of embedded Runge-Kutta
formulas".
"""

import math
from dataclasses import asdict
from typing import Callable, Optional, Tuple

import numpy as np

from dopri.algorithms.dynamics.base import _DynamicalSystem
from dopri.algorithms.dynamics.rhs import RHSSystem
from dopri.algorithms.integrators.base import _Integrator
from dopri.algorithms.integrators.kernels import (combine_stages,
                                                  hermite_coefficients,
                                                  scaled_error_norm,
                                                  stage_state)
from dopri.algorithms.integrators.options import RKOptions
from dopri.algorithms.integrators.output import (_DenseOutput, _GridOutput,
                                                 _OutputStrategy)
from dopri.algorithms.integrators.tableau import (BOGACKI_SHAMPINE_32,
                                                  DORMAND_PRINCE_54,
                                                  ButcherTableau)
from dopri.algorithms.integrators.types import (STATUS_MAX_STEPS,
                                                STATUS_MIN_STEP,
                                                STATUS_SUCCESS, DenseSolution,
                                                GridSolution, IntegrationStats)
from dopri.algorithms.integrators.workspace import _RKWorkspace
from dopri.algorithms.utils.config import (DOMAIN_REJECT_ERR, END_HIT_FACTOR,
                                           FAC_MAX, FAC_MIN,
                                           HINIT_DOMAIN_RETRIES,
                                           HINIT_FALLBACK, HINIT_SMALL_NORM,
                                           HINIT_TINY_DERIV, SAFETY_FAC)
from dopri.algorithms.utils.exceptions import (ConfigurationError,
                                               DegenerateIntervalError,
                                               DomainError, StepLimitExceeded,
                                               StepSizeUnderflow)
from dopri.utils.log_config import logger


def hinit(system: _DynamicalSystem, ws: _RKWorkspace, options: RKOptions) -> float:
    """Estimate the first step size and load ``f(t0, y0)`` into ``ws.ks[:, 0]``.

    Heuristic of Hairer et al. (1993), p.169, with infinity norms in place of
    the weighted root-mean-square norms of the Fortran code.

    Returns
    -------
    float
        Signed initial step size.

    Raises
    ------
    :class:`~dopri.algorithms.utils.exceptions.DegenerateIntervalError`
        If the interval has zero length.
    :class:`~dopri.algorithms.utils.exceptions.DomainError`
        If the right-hand side rejects the initial state.  A rejected trial
        Euler step only shrinks ``h0``.
    """
    span = ws.t_end - ws.t
    if span == 0.0:
        raise DegenerateIntervalError(ws.t, ws.t_end)
    direction = ws.direction
    y0 = ws.current
    f0 = ws.ks[:, 0]

    tau = max(options.rtol * np.linalg.norm(y0, np.inf), options.atol)
    d0 = np.linalg.norm(y0, np.inf) / tau
    ws.evaluate(system, ws.t, y0, f0)
    d1 = np.linalg.norm(f0, np.inf) / tau
    if d0 < HINIT_SMALL_NORM or d1 < HINIT_SMALL_NORM:
        h0 = HINIT_FALLBACK
    else:
        h0 = 0.01 * (d0 / d1)

    # explicit Euler step; scratch and err are free before the first step
    x1 = ws.scratch
    f1 = ws.err
    for _ in range(HINIT_DOMAIN_RETRIES):
        x1[:] = y0 + direction * h0 * f0
        try:
            ws.evaluate(system, ws.t + direction * h0, x1, f1)
        except DomainError as exc:
            logger.debug(f"Trial Euler step h0={h0!r} left the domain: {exc}")
            h0 *= FAC_MIN
            continue

        # estimate of the second derivative
        d2 = np.linalg.norm(f1 - f0, np.inf) / (tau * h0)
        dmax = max(d1, d2)
        if dmax <= HINIT_TINY_DERIV:
            h1 = max(HINIT_FALLBACK, 1e-3 * h0)
        else:
            h1 = 10.0 ** (-(2.0 + math.log10(dmax)) / ws.order)
        break
    else:
        h1 = max(HINIT_FALLBACK, 1e-3 * h0)

    return float(direction * min(100.0 * h0, h1, abs(span)))


def rk_embedded_step(system: _DynamicalSystem, ws: _RKWorkspace, tableau: ButcherTableau) -> None:
    """Attempt one embedded step of size ``ws.dt`` from ``ws.current``.

    Assumes ``ws.ks[:, 0]`` holds ``f(ws.t, ws.current)``.  Overwrites the
    remaining stage columns, ``ws.scratch``, ``ws.trial`` and ``ws.err``; the
    current state and the FSAL column are left untouched.

    A :class:`~dopri.algorithms.utils.exceptions.DomainError` raised by the
    right-hand side propagates to the driver, which rejects the step.
    """
    y0 = ws.current
    ks = ws.ks
    dt = ws.dt
    for s in range(1, tableau.stages):
        stage_state(y0, ks, tableau.a[s], s, dt, ws.scratch)
        ws.evaluate(system, ws.t + tableau.c[s] * dt, ws.scratch, ks[:, s])
    combine_stages(y0, ks, tableau.b, dt, ws.trial, ws.err)


def step_size_control(
    trial: np.ndarray,
    err_vec: np.ndarray,
    y0: np.ndarray,
    dt: float,
    options: RKOptions,
    order: int,
    is_out_of_domain: Optional[Callable[[np.ndarray], bool]] = None,
) -> Tuple[float, float]:
    """Return the scaled error norm of a step and the next step size.

    Follows Hairer et al. (1993), Eq. (4.10), (4.11) and (4.13) with
    ``fac = 0.25**(1/5)``, ``facmin = 0.1`` and ``facmax = 5``.  The step is
    accepted iff the returned error is at most one.  A trial state outside
    the domain, or a non-finite error, yields ``(10, dt*facmin)``.
    """
    if is_out_of_domain is not None and is_out_of_domain(trial):
        return DOMAIN_REJECT_ERR, dt * FAC_MIN

    err = float(scaled_error_norm(err_vec, y0, trial, options.atol, options.rtol))
    if not math.isfinite(err):
        return DOMAIN_REJECT_ERR, dt * FAC_MIN
    if err == 0.0:
        return err, dt * FAC_MAX

    fac = SAFETY_FAC * (1.0 / err) ** (1.0 / order)
    return err, dt * min(FAC_MAX, max(FAC_MIN, fac))


def setup_hermite(ws: _RKWorkspace) -> None:
    """Build the Hermite coefficients of the step just accepted.

    Must run before the FSAL carry-over and the buffer swap: it reads
    ``f(t, y0)`` from the first stage column and ``f(t + dt, y1)`` from the
    last one.
    """
    hermite_coefficients(
        ws.current, ws.trial, ws.ks[:, 0], ws.ks[:, ws.stages - 1], ws.dt, ws.cont
    )


def _limit_step(dt: float, direction: int, max_step: float) -> float:
    if abs(dt) > max_step:
        return direction * max_step
    return dt


def _rk_driver(
    system: _DynamicalSystem,
    ws: _RKWorkspace,
    tableau: ButcherTableau,
    options: RKOptions,
    output: _OutputStrategy,
) -> IntegrationStats:
    """Run the accept/reject loop until the end point or a failure.

    ``ws.dt`` must hold the signed first step and ``ws.ks[:, 0]`` the
    derivative at the initial state.  Every accepted step is handed to
    *output*.
    """
    step_sizes = []
    error_norms = []
    status = STATUS_SUCCESS
    message = "Integration reached the end point."
    n_attempts = 0

    # a first step covering the whole span ends exactly on the end point
    if abs(ws.dt) >= abs(ws.t_end - ws.t):
        ws.dt = ws.t_end - ws.t
        ws.last_step = True
    while True:
        if n_attempts >= options.max_steps:
            status = STATUS_MAX_STEPS
            message = f"Maximum number of steps ({options.max_steps}) reached at t={ws.t!r}."
            logger.warning(f"{message} Stopping.")
            break
        n_attempts += 1

        try:
            rk_embedded_step(system, ws, tableau)
        except DomainError as exc:
            logger.debug(f"Stage left the domain at t={ws.t!r} dt={ws.dt!r}: {exc}")
            err, new_dt = DOMAIN_REJECT_ERR, ws.dt * FAC_MIN
        else:
            err, new_dt = step_size_control(
                ws.trial, ws.err, ws.current, ws.dt, options, ws.order, system.is_out_of_domain
            )

        if err <= 1.0:
            ws.n_accepted += 1
            step_sizes.append(ws.dt)
            error_norms.append(err)

            setup_hermite(ws)
            output.on_accept(ws)

            ws.carry_fsal()
            if ws.last_step:
                break

            ws.swap()
            ws.t += ws.dt
            ws.dt = _limit_step(new_dt, ws.direction, options.max_step)

            # hit the end point exactly if the next step lands within 1% of it
            if ws.direction * (ws.t + END_HIT_FACTOR * ws.dt) >= ws.direction * ws.t_end:
                ws.dt = ws.t_end - ws.t
                ws.last_step = True
        elif abs(new_dt) < options.min_step:
            status = STATUS_MIN_STEP
            message = (f"Step size {abs(new_dt)!r} fell below min_step={options.min_step!r} "
                       f"at t={ws.t!r}.")
            logger.warning(f"{message} Stopping.")
            break
        else:
            logger.debug(f"Rejected step t={ws.t!r} dt={ws.dt!r} err={err!r}")
            ws.last_step = False
            ws.n_rejected += 1
            ws.dt = _limit_step(new_dt, ws.direction, options.max_step)

    return IntegrationStats(
        n_accepted=ws.n_accepted,
        n_rejected=ws.n_rejected,
        n_evaluations=ws.n_evaluations,
        status=status,
        message=message,
        step_sizes=np.array(step_sizes, dtype=np.float64),
        error_norms=np.array(error_norms, dtype=np.float64),
    )


def _as_system(system) -> _DynamicalSystem:
    """Wrap a protocol-conforming object lacking the evaluation helpers."""
    if isinstance(system, _DynamicalSystem):
        return system
    return RHSSystem(system.rhs, system.dim, name=type(system).__name__,
                     domain=getattr(system, "is_out_of_domain", None))


class _AdaptiveStepRK(_Integrator):
    """Implement an embedded adaptive Runge-Kutta integrator with FSAL.

    Parameters
    ----------
    name : str
        Identifier passed to the :class:`~dopri.algorithms.integrators.base._Integrator` base class.
    tableau : :class:`~dopri.algorithms.integrators.tableau.ButcherTableau`
        Embedded FSAL pair driving the stepper.
    rtol, atol : float, optional
        Relative and absolute error tolerances.
    max_step, min_step : float or None, optional
        Step-size bounds; ``None`` derives them from the integration span.
    initial_step : float, optional
        First trial step, ``0`` for the automatic estimate.
    max_steps : int, optional
        Upper bound on attempted steps.
    strict : bool, optional
        Raise instead of returning a partial solution on early termination.

    Notes
    -----
    One integrator instance may run any number of integrations, each with
    its own workspace; the tableau is shared read-only.
    """

    def __init__(self,
                 name: str,
                 tableau: ButcherTableau,
                 rtol: float = RKOptions.rtol,
                 atol: float = RKOptions.atol,
                 max_step: Optional[float] = None,
                 min_step: Optional[float] = None,
                 initial_step: float = 0.0,
                 max_steps: int = RKOptions.max_steps,
                 strict: bool = False,
                 **options):
        super().__init__(name, **options)
        self._tableau = tableau
        self._rk_options = RKOptions(
            rtol=rtol,
            atol=atol,
            max_step=max_step,
            min_step=min_step,
            initial_step=initial_step,
            max_steps=max_steps,
            strict=strict,
        )

    @property
    def order(self) -> int:
        """Return the formal order of accuracy of the method."""
        return self._tableau.order

    @property
    def tableau(self) -> ButcherTableau:
        return self._tableau

    @property
    def rk_options(self) -> RKOptions:
        return self._rk_options

    def integrate(self, system: _DynamicalSystem, y0: np.ndarray, t_vals: np.ndarray, **kwargs) -> GridSolution:
        """Integrate and sample the solution at every time in *t_vals*.

        Parameters
        ----------
        system : :class:`~dopri.algorithms.dynamics.base._DynamicalSystem`
            System to integrate.
        y0 : array_like
            Initial state, stored verbatim as the first row of the result.
        t_vals : array_like
            Output times, at least two and strictly monotonic; the first and
            last define the integration interval.
        **kwargs
            Per-call overrides of :class:`~dopri.algorithms.integrators.options.RKOptions` fields.

        Returns
        -------
        :class:`~dopri.algorithms.integrators.types.GridSolution`
        """
        y0 = np.array(y0, dtype=np.float64)
        t_vals = np.array(t_vals, dtype=np.float64)
        self.validate_inputs(system, y0, t_vals)
        options = self._prepare_options(t_vals[0], t_vals[-1], kwargs)
        output = _GridOutput(t_vals, y0)
        return self._run(system, y0, t_vals[0], t_vals[-1], options, output)

    def integrate_dense(self, system: _DynamicalSystem, y0: np.ndarray, t_span, **kwargs) -> DenseSolution:
        """Integrate over ``t_span = (t_start, t_end)`` keeping every step.

        Raises
        ------
        :class:`~dopri.algorithms.utils.exceptions.ConfigurationError`
            If *t_span* does not hold exactly two times.
        """
        y0 = np.array(y0, dtype=np.float64)
        t_span = np.array(t_span, dtype=np.float64)
        if t_span.ndim != 1 or t_span.size != 2:
            raise ConfigurationError("dense output requires a two-point span")
        self.validate_inputs(system, y0, t_span)
        options = self._prepare_options(t_span[0], t_span[-1], kwargs)
        output = _DenseOutput(t_span[0], y0)
        return self._run(system, y0, t_span[0], t_span[-1], options, output)

    def _prepare_options(self, t_start: float, t_end: float, overrides: dict) -> RKOptions:
        options = self._rk_options.with_overrides(**overrides).resolve(t_start, t_end)
        direction = 1 if t_end > t_start else -1
        if options.initial_step != 0.0 and np.sign(options.initial_step) != direction:
            raise ConfigurationError(
                f"initial_step={options.initial_step!r} has the wrong sign for "
                f"integration from {t_start!r} to {t_end!r}"
            )
        return options

    def _run(self, system, y0, t_start, t_end, options: RKOptions, output: _OutputStrategy):
        system = _as_system(system)
        ws = _RKWorkspace(system.dim, self._tableau, y0, float(t_start), float(t_end))

        dt = hinit(system, ws, options)
        if options.initial_step != 0.0:
            dt = float(options.initial_step)
        ws.dt = _limit_step(dt, ws.direction, options.max_step)
        logger.debug(f"{self.name}: initial step {ws.dt!r} on [{ws.t!r}, {ws.t_end!r}]")

        stats = _rk_driver(system, ws, self._tableau, options, output)
        solution = output.build(stats)

        if options.strict and not stats.success:
            if stats.status == STATUS_MIN_STEP:
                raise StepSizeUnderflow(stats.message, partial=solution)
            raise StepLimitExceeded(stats.message, partial=solution)
        return solution


class _DormandPrince54(_AdaptiveStepRK):
    """Implement the Dormand-Prince 5(4) adaptive Runge-Kutta method.

    Seven stages with the FSAL property, so an accepted step costs six new
    right-hand side evaluations.  The 5th order solution is propagated and
    the embedded 4th order one provides the error estimate.
    """

    def __init__(self, **opts):
        super().__init__("_DOPRI54", DORMAND_PRINCE_54, **opts)


class _BogackiShampine32(_AdaptiveStepRK):
    """Implement the Bogacki-Shampine 3(2) adaptive Runge-Kutta method.

    Four stages with the FSAL property; cheaper per step than DOPRI5 and
    useful for loose tolerances.
    """

    def __init__(self, **opts):
        super().__init__("_BS32", BOGACKI_SHAMPINE_32, **opts)


class AdaptiveRK:
    """Implement a factory class for creating adaptive step-size Runge-Kutta integrators.

    The available orders are 5 (Dormand-Prince 5(4)) and 3 (Bogacki-Shampine 3(2)).

    Examples
    --------
    >>> dopri5 = AdaptiveRK(order=5, rtol=1e-8)
    >>> bs3 = AdaptiveRK(order=3)
    """
    _map = {5: _DormandPrince54, 3: _BogackiShampine32}

    def __new__(cls, order=5, **opts):
        """Create an adaptive step-size Runge-Kutta integrator of specified order.

        Raises
        ------
        ValueError
            If the specified order is not supported.
        """
        if order not in cls._map:
            raise ValueError("Adaptive RK order must be 3 or 5")
        return cls._map[order](**opts)


def integrate_on_grid(system: _DynamicalSystem,
                      y0: np.ndarray,
                      t_out: np.ndarray,
                      options: Optional[RKOptions] = None,
                      **overrides) -> GridSolution:
    """Integrate with DOPRI5 and return the solution at the times *t_out*.

    Parameters
    ----------
    system : :class:`~dopri.algorithms.dynamics.base._DynamicalSystem`
        System to integrate.
    y0 : array_like
        Initial state.
    t_out : array_like
        At least two strictly monotonic output times; the first and last
        define the interval.
    options : :class:`~dopri.algorithms.integrators.options.RKOptions`, optional
        Integration options; keyword *overrides* replace single fields.
    """
    options = RKOptions() if options is None else options
    integrator = _DormandPrince54(**asdict(options.with_overrides(**overrides)))
    return integrator.integrate(system, y0, t_out)


def integrate_dense(system: _DynamicalSystem,
                    y0: np.ndarray,
                    t_span,
                    options: Optional[RKOptions] = None,
                    **overrides) -> DenseSolution:
    """Integrate with DOPRI5 over ``(t_start, t_end)`` with dense output."""
    options = RKOptions() if options is None else options
    integrator = _DormandPrince54(**asdict(options.with_overrides(**overrides)))
    return integrator.integrate_dense(system, y0, t_span)
