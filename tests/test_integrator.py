import math

import numpy as np
import pytest
import torch
from scipy.integrate import solve_ivp

from picardode import (ConvergenceFailure, DomainError, IterState,
                       PicardIntegrator, check_finite, integrate)

E = math.exp(1.0)


def _linear(x, y):
    return y


def _logistic(x, y):
    return y * (1.0 - y)


def _e_error(dx, **opts):
    state = integrate(IterState(0.0, 1.0), dx, _linear, 1.0, **opts)
    assert state.x == 1.0
    return abs(state.y - E)


# ---- accuracy ---------------------------------------------------------------
def test_e_with_tiny_step_reaches_roundoff_floor():
    assert _e_error(1e-6) < 1e-9


def test_e_with_moderate_step():
    err = _e_error(1e-3)
    assert 1e-9 < err < 1e-6


def test_truncation_error_dominates_at_large_step():
    coarse, fine = _e_error(1e-1), _e_error(1e-3)
    assert coarse > 1e3 * fine
    assert coarse < 1e-2


def test_exact_mode_gives_the_same_answer():
    state = integrate(IterState(0.0, 1.0), 1e-3, _linear, 1.0)
    exact = integrate(IterState(0.0, 1.0), 1e-3, _linear, 1.0, exact=True)
    assert exact.y == pytest.approx(state.y, rel=1e-12)


def test_nonlinear_against_scipy():
    sol = solve_ivp(_logistic, (0.0, 5.0), np.array([0.1]),
                    method="DOP853", rtol=1e-12, atol=1e-14)
    state = integrate(IterState(0.0, 0.1), 1e-3, _logistic, 5.0)

    assert state.x == 5.0
    assert abs(state.y - sol.y[0, -1]) < 1e-6


# ---- boundary landing -------------------------------------------------------
@pytest.mark.parametrize("dx", [0.3, 0.07, 0.123, 1e-1, 0.7, 2.5])
def test_lands_exactly_on_bound(dx):
    seen = []
    state = integrate(IterState(0.0, 1.0), dx, _linear, 1.0,
                      output=lambda x, y: seen.append(x))

    assert state.x == 1.0
    assert max(seen) == 1.0
    assert seen == sorted(seen)
    assert len(seen) == state.stats["step"]


def test_zero_length_interval_takes_one_empty_step():
    state = integrate(IterState(2.0, 5.0), 0.1, _linear, 2.0)
    assert state.as_tuple() == (2.0, 5.0)
    assert state.stats["step"] == 1


def test_bound_behind_start_integrates_backwards():
    state = integrate(IterState(1.0, E), 0.01, _linear, 0.0)
    assert state.x == 0.0
    assert state.stats["step"] == 1
    assert state.y == pytest.approx(E * 0.5 / 1.5)


def test_rhs_call_count():
    state = integrate(IterState(0.0, 1.0), 0.01, _linear, 1.0)
    stats = state.stats
    assert stats["fcall"] == stats["step"] + 2 * stats["picard"]


# ---- errors -----------------------------------------------------------------
@pytest.mark.parametrize("dx", [0.0, -0.1, math.nan, math.inf])
def test_rejects_bad_step(dx):
    with pytest.raises(ValueError):
        integrate(IterState(0.0, 1.0), dx, _linear, 1.0)


def test_rejects_step_below_resolution():
    with pytest.raises(ValueError):
        integrate(IterState(1e17, 1.0), 1.0, lambda x, y: 0.0, 2e17)


def test_nan_propagates_through_remaining_steps():
    rhs = lambda x, y: math.nan if x >= 0.5 else y
    seen = []
    state = integrate(IterState(0.0, 1.0), 0.1, rhs, 1.0,
                      output=lambda x, y: seen.append((x, y)))

    assert state.x == 1.0
    assert math.isnan(state.y)
    first_nan = next(i for i, (_, y) in enumerate(seen) if math.isnan(y))
    assert all(math.isfinite(y) for _, y in seen[:first_nan])
    assert all(math.isnan(y) for _, y in seen[first_nan:])
    with pytest.raises(DomainError):
        check_finite(state)


def test_strict_raises_domain_error_at_first_nan():
    rhs = lambda x, y: math.nan if x >= 0.5 else y
    state = IterState(0.0, 1.0)

    with pytest.raises(DomainError) as info:
        integrate(state, 0.1, rhs, 1.0, strict=True)

    assert info.value.x < 1.0
    assert state.x == info.value.x


def test_singular_rhs_blows_up_without_special_handling():
    # y' = y**2, y(0) = 1 has a pole at x = 1
    state = integrate(IterState(0.0, 1.0), 1e-2, lambda x, y: y * y, 0.5)
    assert state.y == pytest.approx(2.0, rel=1e-3)


def test_convergence_failure_propagates():
    with pytest.raises(ConvergenceFailure):
        integrate(IterState(0.0, 1.0), 2.0, lambda x, y: -y, 10.0, max_iter=10)


# ---- PicardIntegrator -------------------------------------------------------
def test_integrator_run_matches_integrate():
    solver = PicardIntegrator(_linear, 0.0, 1.0, 1.0, dx=0.01)
    x, y = solver.run()

    ref = integrate(IterState(0.0, 1.0), 0.01, _linear, 1.0)
    assert (x, y) == ref.as_tuple()
    assert solver.done


def test_integrator_step_once():
    out = []
    solver = PicardIntegrator(_linear, 0.0, 1.0, 1.0, dx=0.4,
                              output=lambda x, y: out.append(x))

    assert not solver.done
    steps = []
    while not solver.done:
        steps.append(solver.step_once()[0])

    assert steps == out
    assert steps[-1] == 1.0
    assert len(steps) == 3
    # further calls are no-ops once landed
    assert solver.step_once() == (1.0, solver.state.y)
    assert solver.state.stats["step"] == 3


def test_integrator_strict():
    solver = PicardIntegrator(lambda x, y: math.nan, 0.0, 1.0, 1.0,
                              dx=0.1, strict=True)
    with pytest.raises(DomainError):
        solver.run()


def test_integrator_float32_tensor_state():
    solver = PicardIntegrator(_linear, 0.0,
                              torch.tensor(1.0, dtype=torch.float32), 1.0,
                              dx=1e-2)
    x, y = solver.run()

    assert x == 1.0
    assert solver.state.y.dtype == torch.float32
    assert y == pytest.approx(E, abs=5e-4)


def test_vector_state_rejected():
    with pytest.raises(ValueError):
        IterState(0.0, torch.ones(2))
    with pytest.raises(ValueError):
        IterState(0.0, torch.tensor(1))


def test_state_copy_is_independent():
    state = IterState(0.0, 1.0)
    copy = state.copy()
    result = integrate(copy, 0.5, _linear, 1.0)

    assert result is copy
    assert state.as_tuple() == (0.0, 1.0)
    assert state.stats["step"] == 0
