import warnings

import numpy as np
import pytest

from qtsstat.core import QTS, QTSSample, SolverOptions, ConvergenceWarning, GridMismatchError
from qtsstat.core import quaternion as quat
from qtsstat.stats import (
    FrechetResult,
    geometric_mean,
    geometric_median,
    frechet_mean,
    frechet_median,
    inverse_distance_weights,
)


def _about_z(angle):
    return np.array([np.cos(angle / 2), 0.0, 0.0, np.sin(angle / 2)])


def _identity_sample(n=3, m=5):
    t = np.linspace(0.0, 1.0, m)
    return QTSSample([QTS(time=t, values=np.tile(quat.IDENTITY, (m, 1))) for _ in range(n)])


def test_single_member_returned_unchanged():
    q = _about_z(0.7)
    res = geometric_mean([q])
    assert isinstance(res, FrechetResult)
    assert res.iterations == 0
    assert res.converged
    assert np.allclose(res.estimate, q)


def test_identical_members_converge_immediately():
    q = _about_z(0.4)
    res = geometric_mean([q, q, q, q])
    assert res.converged
    assert res.iterations == 1
    assert np.allclose(res.estimate, q)


def test_mean_of_rotations_about_one_axis_is_mid_angle():
    res = geometric_mean([_about_z(0.2), _about_z(0.6), _about_z(1.0)])
    assert res.converged
    assert np.allclose(res.estimate, _about_z(0.6), atol=1e-8)


def test_mean_ignores_member_signs():
    qs = [_about_z(0.2), -_about_z(0.6), _about_z(1.0)]
    res = geometric_mean(qs)
    assert quat.geodesic_distance(res.estimate, _about_z(0.6)) == pytest.approx(0.0, abs=1e-8)


def test_mean_of_q_and_minus_q_is_q():
    # both members denote the same rotation; the estimate takes the first member's sign
    q = _about_z(1.1)
    res = geometric_mean([q, -q])
    assert res.converged
    assert np.allclose(res.estimate, q)


def test_median_resists_outlier():
    qs = [_about_z(a) for a in (0.0, 0.05, 0.1, 0.15, 2.5)]
    mean = geometric_mean(qs).estimate
    median = geometric_median(qs).estimate
    target = _about_z(0.1)
    assert quat.geodesic_distance(median, target) < quat.geodesic_distance(mean, target)
    assert quat.geodesic_distance(median, target) < 0.05


def test_inverse_distance_weights_sum_to_one_and_floor_zero_distance():
    w = inverse_distance_weights(np.array([0.0, 1.0, 2.0]), 1e-12)
    assert w.sum() == pytest.approx(1.0)
    assert w[0] > 0.99


def test_iteration_cap_warns_and_flags():
    qs = [_about_z(0.0), _about_z(1.0), _about_z(2.0)] + [
        np.array([np.cos(0.6), np.sin(0.6), 0.0, 0.0])
    ]
    with pytest.warns(ConvergenceWarning):
        res = geometric_mean(qs, SolverOptions(tol=1e-300, max_iter=2))
    assert not res.converged
    assert res.iterations == 2
    assert np.isclose(np.linalg.norm(res.estimate), 1.0)


def test_converged_solve_does_not_warn():
    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        geometric_mean([_about_z(0.1), _about_z(0.3)])


def test_inputs_not_mutated():
    qs = np.array([_about_z(0.1), -_about_z(0.3)])
    before = qs.copy()
    geometric_median(qs)
    assert np.array_equal(qs, before)


def test_frechet_mean_of_identity_sample():
    s = _identity_sample(3, 5)
    mean = frechet_mean(s)
    assert isinstance(mean, QTS)
    assert mean.n == 5
    assert np.allclose(mean.values, np.tile(quat.IDENTITY, (5, 1)))
    assert np.allclose(mean.time, s.grid())


def test_frechet_mean_and_median_pointwise():
    t = np.array([0.0, 1.0])
    s = QTSSample(
        [
            QTS(time=t, values=np.array([_about_z(0.0), _about_z(1.0)])),
            QTS(time=t, values=np.array([_about_z(0.2), _about_z(1.2)])),
            QTS(time=t, values=np.array([_about_z(0.4), _about_z(1.4)])),
        ]
    )
    mean, diagnostics = frechet_mean(s, return_diagnostics=True)
    assert len(diagnostics) == 2
    assert all(r.converged for r in diagnostics)
    assert np.allclose(mean.values, [_about_z(0.2), _about_z(1.2)], atol=1e-8)

    median = frechet_median(s)
    assert median.name == "median"
    assert np.allclose(median.values, [_about_z(0.2), _about_z(1.2)], atol=1e-6)


def test_frechet_mean_requires_shared_grid():
    s = QTSSample(
        [
            QTS(time=[0.0, 1.0], values=[_about_z(0.0), _about_z(0.1)]),
            QTS(time=[0.0, 1.5], values=[_about_z(0.0), _about_z(0.1)]),
        ]
    )
    with pytest.raises(GridMismatchError):
        frechet_mean(s)


def test_frechet_mean_accepts_plain_list_of_qts():
    t = [0.0, 1.0]
    series = [QTS(time=t, values=[_about_z(0.1), _about_z(0.2)]) for _ in range(2)]
    mean = frechet_mean(series)
    assert np.allclose(mean.values, [_about_z(0.1), _about_z(0.2)])
