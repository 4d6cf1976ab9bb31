import numpy as np
import pytest

from qtsstat.core import (
    QTS,
    DissimilarityOptions,
    GridMismatchError,
    InvalidConfigurationError,
    InvalidQTS,
)
from qtsstat.distance import dissimilarity, pearson_dissimilarity


def _qts(angles, axis=3, time=None):
    angles = np.asarray(angles, dtype=float)
    time = np.arange(angles.size, dtype=float) if time is None else time
    values = np.zeros((angles.size, 4))
    values[:, 0] = np.cos(angles / 2)
    values[:, axis] = np.sin(angles / 2)
    return QTS(time=time, values=values)


def test_l2_sums_squared_geodesic_distances():
    a = _qts([0.0, 0.0, 0.0])
    b = _qts([0.3, 0.4, 0.0])
    assert dissimilarity(a, b, "l2") == pytest.approx(0.5)
    assert dissimilarity(a, b, "normalized_l2") == pytest.approx(np.sqrt(0.25 / 3))


def test_l2_zero_on_self_and_symmetric():
    a = _qts([0.0, 0.5, 1.0])
    b = _qts([0.2, 0.1, 1.4])
    assert dissimilarity(a, a, "l2") == 0.0
    assert dissimilarity(a, b, "l2") == pytest.approx(dissimilarity(b, a, "l2"))


def test_pointwise_metrics_require_equal_grids():
    a = _qts([0.0, 0.5, 1.0])
    b = _qts([0.0, 0.5, 1.0], time=[0.0, 1.0, 3.0])
    c = _qts([0.0, 0.5])
    for metric in ("l2", "normalized_l2", "pearson"):
        with pytest.raises(GridMismatchError):
            dissimilarity(a, b, metric)
        with pytest.raises(GridMismatchError):
            dissimilarity(a, c, metric)


def test_unknown_metric_is_a_configuration_error():
    a = _qts([0.0])
    with pytest.raises(InvalidConfigurationError):
        dissimilarity(a, a, "cosine")


def test_rejects_non_qts_inputs():
    a = _qts([0.0])
    with pytest.raises(InvalidQTS):
        dissimilarity(a, a.values, "l2")


def test_pearson_zero_for_proportional_channels():
    a = _qts([0.0, 0.2, 0.4, 0.6])
    b = _qts([0.1, 0.5, 0.9, 1.3])
    # x and y channels are constant zero in both, z channels are perfectly correlated
    assert pearson_dissimilarity(a, b) == pytest.approx(0.0, abs=1e-12)
    assert dissimilarity(a, b, "pearson") == pytest.approx(0.0, abs=1e-12)


def test_pearson_penalizes_anti_correlation():
    a = _qts([0.0, 0.2, 0.4, 0.6])
    b = _qts([0.6, 0.4, 0.2, 0.0])
    # z channels correlate at -1, the constant x and y channels at 1
    assert dissimilarity(a, b, "pearson") == pytest.approx(1.0 - (1.0 + 1.0 - 1.0) / 3.0)


def test_pearson_constant_channel_in_one_series_counts_as_uncorrelated():
    a = _qts([0.0, 0.2, 0.4, 0.6], axis=3)
    b = _qts([0.0, 0.2, 0.4, 0.6], axis=1)
    # x: constant in a only -> 0, y: constant equal -> 1, z: constant in b only -> 0
    assert dissimilarity(a, b, "pearson") == pytest.approx(1.0 - 1.0 / 3.0)


def test_dtw_metric_uses_options():
    a = _qts([0.0, 0.0, 0.5, 1.0])
    b = _qts([0.0, 0.5, 1.0, 1.0])
    assert dissimilarity(a, b, "dtw") == pytest.approx(0.0, abs=1e-12)

    c = _qts([1.0, 1.0, 1.0, 1.0])
    raw = dissimilarity(a, c, "dtw", DissimilarityOptions(normalize=False))
    normalized = dissimilarity(a, c, "dtw")
    assert normalized == pytest.approx(raw / 8.0)

    sym1 = dissimilarity(a, c, "dtw", DissimilarityOptions(step_pattern="symmetric1", normalize=False))
    assert sym1 <= raw


def test_dtw_bounded_by_l2():
    rng = np.random.default_rng(3)
    for _ in range(5):
        a = _qts(rng.uniform(-1.0, 1.0, size=6), axis=2)
        b = _qts(rng.uniform(-1.0, 1.0, size=6), axis=2)
        assert dissimilarity(a, b, "dtw") <= dissimilarity(a, b, "normalized_l2") + 1e-12
        assert dissimilarity(a, b, "normalized_l2") <= dissimilarity(a, b, "l2") + 1e-12


def test_dtw_equals_l2_when_series_differ_only_by_sign():
    values = np.column_stack(
        [np.cos([0.0, 0.1, 0.2, 0.3]), np.zeros(4), np.sin([0.0, 0.1, 0.2, 0.3]), np.zeros(4)]
    )
    flipped = values.copy()
    flipped[1] *= -1.0
    a = QTS(time=np.arange(4.0), values=values)
    b = QTS(time=np.arange(4.0), values=flipped)
    assert dissimilarity(a, b, "dtw") == pytest.approx(dissimilarity(a, b, "l2"), abs=1e-12)
    assert dissimilarity(a, b, "l2") == pytest.approx(0.0, abs=1e-12)


def test_options_validation():
    with pytest.raises(InvalidConfigurationError):
        DissimilarityOptions(normalize="yes")
    with pytest.raises(InvalidConfigurationError):
        DissimilarityOptions(step_pattern=" ")
