import logging

import numpy as np
import pytest
from scipy.integrate import solve_ivp

from dopri.algorithms.dynamics.rhs import create_rhs_system
from dopri.algorithms.integrators import (AdaptiveRK, BogackiShampine32,
                                          DenseSolution, DormandPrince54,
                                          GridSolution, RKOptions,
                                          integrate_dense, integrate_on_grid)
from dopri.algorithms.utils.config import END_HIT_FACTOR
from dopri.algorithms.utils.exceptions import (ConfigurationError,
                                               DegenerateIntervalError,
                                               DomainError, IntegrationError,
                                               OutOfRangeError,
                                               StepSizeUnderflow)

EULER_REFERENCE = np.array([-0.70581088, -0.70870044, 0.86389931])


@pytest.fixture(scope="module")
def rigid_body():
    def rhs(t, y):
        return np.array([y[1] * y[2], -y[0] * y[2], -0.51 * y[0] * y[1]])

    return create_rhs_system(rhs, dim=3, name="euler_rigid_body")


@pytest.fixture(scope="module")
def oscillator():
    def rhs(t, y):
        return np.array([y[1], -y[0]])

    return create_rhs_system(rhs, dim=2, name="harmonic_oscillator")


@pytest.fixture(scope="module")
def decay():
    return create_rhs_system(lambda t, y: -y, dim=1, name="decay")


def _robertson():
    def rhs(t, y):
        dy1 = -0.04 * y[0] + 1e4 * y[1] * y[2]
        dy3 = 3e7 * y[1] ** 2
        return np.array([dy1, -dy1 - dy3, dy3])

    return create_rhs_system(rhs, dim=3, name="robertson")


def test_factory():
    dop = AdaptiveRK(order=5, rtol=1e-8)
    assert isinstance(dop, DormandPrince54)
    assert dop.order == 5
    assert dop.rk_options.rtol == 1e-8
    assert str(dop) == "DOPRI-_DOPRI54"

    bs = AdaptiveRK(order=3)
    assert isinstance(bs, BogackiShampine32)
    assert bs.order == 3
    assert bs.tableau.stages == 4

    with pytest.raises(ValueError):
        AdaptiveRK(order=4)


def test_rigid_body_accuracy(rigid_body):
    y0 = np.array([0.0, 1.0, 1.0])
    t_vals = np.linspace(0.0, 12.0, 10)

    sol = integrate_on_grid(rigid_body, y0, t_vals, rtol=1e-4, atol=1e-4)

    assert isinstance(sol, GridSolution)
    assert sol.success
    assert sol.states.shape == (10, 3)
    assert np.array_equal(sol.times, t_vals)
    assert np.array_equal(sol.states[0], y0)
    assert np.linalg.norm(sol.states[-1] - EULER_REFERENCE) < 1e-3
    assert not np.any(np.isnan(sol.states))


def test_grid_does_not_alias_inputs(rigid_body):
    y0 = np.array([0.0, 1.0, 1.0])
    t_vals = np.linspace(0.0, 1.0, 5)
    sol = integrate_on_grid(rigid_body, y0, t_vals)

    sol.states[0, 0] = 99.0
    sol.times[0] = -1.0
    assert y0[0] == 0.0
    assert t_vals[0] == 0.0


def test_repeated_integration_is_deterministic(rigid_body):
    y0 = np.array([0.0, 1.0, 1.0])
    t_vals = np.linspace(0.0, 12.0, 25)
    integrator = AdaptiveRK(order=5, rtol=1e-6, atol=1e-8)

    first = integrator.integrate(rigid_body, y0, t_vals)
    second = integrator.integrate(rigid_body, y0, t_vals)

    assert np.array_equal(first.states, second.states)
    assert np.array_equal(first.stats.step_sizes, second.stats.step_sizes)
    assert first.stats.n_evaluations == second.stats.n_evaluations


def test_evaluation_count(rigid_body):
    y0 = np.array([0.0, 1.0, 1.0])
    sol = integrate_on_grid(rigid_body, y0, [0.0, 12.0], rtol=1e-7, atol=1e-9)
    st = sol.stats

    # two evaluations for the initial step, six per attempt thanks to FSAL
    assert st.n_evaluations == 2 + 6 * (st.n_accepted + st.n_rejected)
    assert st.step_sizes.size == st.n_accepted
    assert st.error_norms.size == st.n_accepted
    assert np.all(st.error_norms <= 1.0)
    assert st.step_sizes.sum() == pytest.approx(12.0, rel=1e-12)


def test_backward_integration(decay):
    # y' = -y from t=2 back to t=0: y(0) = y(2)*e^2
    y2 = np.array([np.exp(-2.0)])
    t_vals = np.linspace(2.0, 0.0, 11)

    sol = integrate_on_grid(decay, y2, t_vals, rtol=1e-9, atol=1e-12)

    assert sol.success
    assert np.all(sol.stats.step_sizes < 0.0)
    assert sol.states[-1, 0] == pytest.approx(1.0, rel=1e-7)
    assert np.allclose(sol.states[:, 0], np.exp(-t_vals), rtol=1e-6)


def test_forward_step_sizes_positive(oscillator):
    sol = integrate_on_grid(oscillator, [1.0, 0.0], [0.0, 3.0])
    assert np.all(sol.stats.step_sizes > 0.0)


def test_matches_exact_and_scipy(oscillator):
    y0 = np.array([1.0, 0.0])
    t_vals = np.linspace(0.0, 10.0, 50)

    sol = AdaptiveRK(order=5, rtol=1e-10, atol=1e-12).integrate(oscillator, y0, t_vals)
    ref = solve_ivp(lambda t, y: [y[1], -y[0]], (0.0, 10.0), y0, method="DOP853",
                    t_eval=t_vals, rtol=1e-12, atol=1e-12)

    assert ref.success
    assert np.allclose(sol.states[:, 0], np.cos(t_vals), atol=1e-7)
    assert np.allclose(sol.states, ref.y.T, atol=1e-7)


def test_bs32_accuracy(decay):
    t_vals = np.linspace(0.0, 2.0, 9)
    sol = AdaptiveRK(order=3, rtol=1e-6, atol=1e-9).integrate(decay, [1.0], t_vals)

    assert sol.success
    assert np.allclose(sol.states[:, 0], np.exp(-t_vals), atol=1e-4)
    st = sol.stats
    assert st.n_evaluations == 2 + 3 * (st.n_accepted + st.n_rejected)


def test_max_step_is_enforced(decay):
    sol = integrate_on_grid(decay, [1.0], [0.0, 10.0], max_step=0.05)
    steps = np.abs(sol.stats.step_sizes)
    assert np.all(steps[:-1] <= 0.05)
    # the final step may stretch by up to 1% to land on the end point
    assert steps[-1] <= 0.05 * END_HIT_FACTOR
    assert sol.stats.n_accepted >= 190


def test_initial_step_override(decay):
    sol = integrate_on_grid(decay, [1.0], [0.0, 1.0], initial_step=0.01)
    assert sol.stats.step_sizes[0] == 0.01

    with pytest.raises(ConfigurationError):
        integrate_on_grid(decay, [1.0], [0.0, 1.0], initial_step=-0.01)
    with pytest.raises(ConfigurationError):
        integrate_on_grid(decay, [1.0], [1.0, 0.0], initial_step=0.01)


def test_options_object_with_overrides(decay):
    opts = RKOptions(rtol=1e-9, atol=1e-12)
    sol = integrate_on_grid(decay, [1.0], [0.0, 1.0], options=opts, max_step=0.1)
    assert sol.states[-1, 0] == pytest.approx(np.exp(-1.0), rel=1e-8)
    assert np.all(sol.stats.step_sizes <= 0.1 * END_HIT_FACTOR)


@pytest.mark.parametrize("y0, t_vals", [
    ([1.0, 0.0], [0.0, 1.0]),            # wrong state length
    ([[1.0]], [0.0, 1.0]),               # state not a vector
    ([1.0], [0.0]),                      # single output time
    ([1.0], [0.0, 2.0, 1.0]),            # not monotonic
    ([1.0], [0.0, 1.0, 1.0, 2.0]),       # repeated time
    ([1.0], [0.0, np.inf]),              # non-finite time
])
def test_configuration_errors(decay, y0, t_vals):
    with pytest.raises(ConfigurationError):
        integrate_on_grid(decay, y0, t_vals)


def test_degenerate_interval(decay):
    with pytest.raises(DegenerateIntervalError):
        integrate_on_grid(decay, [1.0], [1.0, 1.0])
    with pytest.raises(DegenerateIntervalError):
        integrate_dense(decay, [1.0], (3.0, 3.0))


def test_bad_rhs_shape():
    sys = create_rhs_system(lambda t, y: np.zeros(3), dim=2, name="bad_shape")
    with pytest.raises(ConfigurationError):
        integrate_on_grid(sys, [1.0, 0.0], [0.0, 1.0])


def test_protocol_object_is_accepted():
    class Decay:
        dim = 1

        @property
        def rhs(self):
            return lambda t, y: -y

    sol = integrate_on_grid(Decay(), [1.0], [0.0, 1.0], rtol=1e-8, atol=1e-10)
    assert sol.states[-1, 0] == pytest.approx(np.exp(-1.0), rel=1e-6)


def test_dense_output(rigid_body):
    y0 = np.array([0.0, 1.0, 1.0])
    sol = integrate_dense(rigid_body, y0, (0.0, 12.0), rtol=1e-4, atol=1e-4)

    assert isinstance(sol, DenseSolution)
    assert sol.success
    assert sol.times[0] == 0.0
    assert sol.times[-1] == 12.0
    assert sol.n_segments == sol.stats.n_accepted
    assert np.all(np.diff(sol.times) > 0.0)
    assert np.array_equal(sol.states[0], y0)

    # consecutive segments share their boundary
    segs = list(sol.segments())
    for (_, t1, _), (t0, _, _) in zip(segs[:-1], segs[1:]):
        assert t1 == t0

    # boundaries return the stored states exactly
    for t, y in zip(sol.times, sol.states):
        assert np.array_equal(sol.at(t), y)

    assert np.linalg.norm(sol(12.0) - EULER_REFERENCE) < 1e-3


def test_dense_agrees_with_grid(rigid_body):
    y0 = np.array([0.0, 1.0, 1.0])
    t_vals = np.linspace(0.0, 12.0, 31)
    kw = dict(rtol=1e-6, atol=1e-8)

    grid = integrate_on_grid(rigid_body, y0, t_vals, **kw)
    dense = integrate_dense(rigid_body, y0, (0.0, 12.0), **kw)

    assert np.array_equal(dense.stats.step_sizes, grid.stats.step_sizes)
    assert np.array_equal(dense.states[-1], grid.states[-1])

    values = dense(t_vals)
    assert values.shape == (31, 3)
    assert np.allclose(values, grid.states, rtol=1e-12, atol=1e-12)


def test_dense_backward(decay):
    sol = integrate_dense(decay, [np.exp(-1.0)], (1.0, 0.0), rtol=1e-9, atol=1e-12)
    assert sol.direction == -1
    assert sol.t_start == 1.0
    assert sol.t_end == 0.0
    assert sol.at(0.5)[0] == pytest.approx(np.exp(-0.5), rel=1e-6)
    assert np.array_equal(sol.at(1.0), sol.states[0])


def test_dense_out_of_range(decay):
    sol = integrate_dense(decay, [1.0], (0.0, 1.0))
    with pytest.raises(OutOfRangeError):
        sol.at(1.5)
    with pytest.raises(OutOfRangeError):
        sol.at(-1e-3)
    with pytest.raises(OutOfRangeError):
        sol(np.array([0.5, 2.0]))
    # it is also a ValueError
    with pytest.raises(ValueError):
        sol.at(np.nan)


def test_dense_requires_two_point_span(decay):
    with pytest.raises(ConfigurationError):
        integrate_dense(decay, [1.0], [0.0, 0.5, 1.0])


def test_min_step_underflow_returns_partial(caplog):
    sys = create_rhs_system(lambda t, y: np.array([y[1], -y[0]]), dim=2,
                            name="nowhere", domain=lambda y: True)
    t_vals = np.linspace(0.0, 1.0, 4)

    with caplog.at_level(logging.WARNING, logger="dopri"):
        sol = integrate_on_grid(sys, [1.0, 0.0], t_vals)

    assert not sol.success
    assert sol.stats.status == "min_step"
    assert sol.stats.n_accepted == 0
    assert sol.stats.n_rejected > 0
    assert np.array_equal(sol.states[0], [1.0, 0.0])
    assert np.all(np.isnan(sol.states[1:]))
    assert "min_step" in caplog.text


def test_min_step_underflow_strict():
    sys = create_rhs_system(lambda t, y: -y, dim=1, name="nowhere", domain=lambda y: True)

    with pytest.raises(StepSizeUnderflow) as excinfo:
        integrate_dense(sys, [1.0], (0.0, 1.0), strict=True)

    partial = excinfo.value.partial
    assert isinstance(partial, DenseSolution)
    assert partial.n_segments == 0
    assert partial.stats.status == "min_step"


def test_domain_rejection_recovers():
    calls = []

    def out_of_domain(y):
        calls.append(y[0])
        return len(calls) == 1

    sys = create_rhs_system(lambda t, y: -y, dim=1, name="decay_once_rejected",
                            domain=out_of_domain)
    sol = integrate_on_grid(sys, [1.0], [0.0, 1.0], rtol=1e-8, atol=1e-10)

    assert sol.success
    assert sol.stats.n_rejected >= 1
    assert sol.states[-1, 0] == pytest.approx(np.exp(-1.0), rel=1e-6)


def test_stiff_problem_terminates():
    sys = _robertson()
    y0 = np.array([1.0, 0.0, 0.0])
    t_vals = np.array([0.0, 1e11])

    sol = integrate_on_grid(sys, y0, t_vals, rtol=1e-8, atol=1e-8, max_steps=2000)

    assert not sol.success
    assert sol.stats.status in ("max_steps", "min_step")
    assert sol.stats.n_accepted + sol.stats.n_rejected <= 2000
    assert np.array_equal(sol.states[0], y0)

    with pytest.raises(IntegrationError) as excinfo:
        integrate_on_grid(sys, y0, t_vals, rtol=1e-8, atol=1e-8, max_steps=500, strict=True)
    assert isinstance(excinfo.value.partial, GridSolution)


def test_rhs_domain_error_rejects_step():
    calls = []

    def rhs(t, y):
        calls.append(t)
        # first stage of the first attempt
        if len(calls) == 3:
            raise DomainError("negative argument")
        return -y

    sys = create_rhs_system(rhs, dim=1, name="decay_with_domain_error")
    sol = integrate_on_grid(sys, [1.0], [0.0, 1.0], rtol=1e-8, atol=1e-10)

    assert sol.success
    assert sol.stats.n_rejected >= 1
    assert sol.stats.n_evaluations == len(calls)
    assert sol.states[-1, 0] == pytest.approx(np.exp(-1.0), rel=1e-6)


def test_domain_error_at_initial_state_propagates():
    def rhs(t, y):
        raise DomainError("invalid initial state")

    sys = create_rhs_system(rhs, dim=1, name="nowhere")
    with pytest.raises(DomainError):
        integrate_on_grid(sys, [1.0], [0.0, 1.0])


def test_domain_error_in_initial_euler_step_shrinks_it():
    calls = []

    def rhs(t, y):
        calls.append(t)
        # the explicit Euler step of the initial step heuristic
        if len(calls) == 2:
            raise DomainError("outside")
        return -y

    sys = create_rhs_system(rhs, dim=1, name="decay_euler_rejected")
    sol = integrate_on_grid(sys, [1.0], [0.0, 1.0], rtol=1e-8, atol=1e-10)

    assert sol.success
    assert calls[2] < calls[1]
    assert sol.stats.n_evaluations == len(calls)
    assert sol.states[-1, 0] == pytest.approx(np.exp(-1.0), rel=1e-6)


def test_valid_state_on_domain_boundary_does_not_raise():
    def rhs(t, y):
        if y[0] < 0.0:
            raise DomainError("negative")
        return -np.ones(1)

    sys = create_rhs_system(rhs, dim=1, name="ramp_to_wall")
    sol = integrate_on_grid(sys, [0.0], [0.0, 1.0])

    assert not sol.success
    assert sol.stats.status == "min_step"
    assert sol.stats.n_accepted == 0
    assert sol.states[0, 0] == 0.0


def test_protocol_object_domain_predicate_is_used():
    class Nowhere:
        dim = 1

        @property
        def rhs(self):
            return lambda t, y: -y

        def is_out_of_domain(self, y):
            return True

    sol = integrate_on_grid(Nowhere(), [1.0], [0.0, 1.0])
    assert sol.stats.status == "min_step"
    assert sol.stats.n_accepted == 0


def test_dense_zero_dimensional_time(decay):
    sol = integrate_dense(decay, [1.0], (0.0, 1.0))
    value = sol(np.array(0.5))
    assert value.shape == (1,)
    assert np.array_equal(value, sol.at(0.5))
