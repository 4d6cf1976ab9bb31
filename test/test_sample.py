import numpy as np
import pytest

from qtsstat.core import (
    QTS,
    QTSSample,
    InvalidSample,
    GridMismatchError,
    QTSNotFound,
)


def _qts(angles, time=None, name=None):
    angles = np.asarray(angles, dtype=float)
    time = np.arange(angles.size, dtype=float) if time is None else time
    values = np.column_stack(
        [np.cos(angles / 2), np.zeros_like(angles), np.sin(angles / 2), np.zeros_like(angles)]
    )
    return QTS(time=time, values=values, name=name)


@pytest.fixture
def sample():
    return QTSSample(
        series=[_qts([0.0, 0.1, 0.2], name="a"), _qts([0.1, 0.2, 0.3], name="b"), _qts([0.2, 0.3, 0.4], name="c")],
        labels=["a", "b", "c"],
    )


def test_default_labels_are_one_based_positions():
    s = QTSSample([_qts([0.0]), _qts([0.1])])
    assert s.labels == ("1", "2")


def test_single_qts_is_wrapped():
    s = QTSSample(_qts([0.0, 0.1]))
    assert len(s) == 1


def test_rejects_empty_and_non_qts():
    with pytest.raises(InvalidSample):
        QTSSample([])
    with pytest.raises(InvalidSample):
        QTSSample([_qts([0.0]), "not a qts"])
    with pytest.raises(InvalidSample):
        QTSSample([_qts([0.0])], labels=["a", "b"])


def test_integer_index_returns_qts(sample):
    assert isinstance(sample[1], QTS)
    assert sample[1].name == "b"
    assert sample[-1].name == "c"


def test_slice_and_list_index_return_sub_samples(sample):
    sub = sample[1:]
    assert isinstance(sub, QTSSample)
    assert sub.labels == ("b", "c")

    picked = sample[[2, 0]]
    assert picked.labels == ("c", "a")
    assert picked[0] is sample[2]

    with pytest.raises(InvalidSample):
        sample[5:]


def test_label_lookup(sample):
    assert "b" in sample
    assert sample.get("c") is sample[2]
    with pytest.raises(QTSNotFound):
        sample.get("zzz")
    with pytest.raises(KeyError):
        sample.get("zzz")


def test_append_qts_and_sample(sample):
    out = sample.append(_qts([0.0, 0.0, 0.0], name="d"))
    assert len(out) == 4
    assert out.labels[-1] == "4"
    assert len(sample) == 3

    both = sample.append(sample[:1])
    assert both.labels == ("a", "b", "c", "a")

    with pytest.raises(InvalidSample):
        sample.append("x")


def test_grid_returns_shared_time(sample):
    assert np.allclose(sample.grid(), [0.0, 1.0, 2.0])


def test_grid_mismatch_names_member():
    s = QTSSample([_qts([0.0, 0.1]), _qts([0.0, 0.1], time=[0.0, 2.0])], labels=["ok", "late"])
    with pytest.raises(GridMismatchError, match="late"):
        s.grid()
    s = QTSSample([_qts([0.0, 0.1]), _qts([0.0, 0.1, 0.2])])
    with pytest.raises(GridMismatchError):
        s.to_array()


def test_to_array_and_tangent_shapes(sample):
    assert sample.to_array().shape == (3, 3, 4)
    tangent = sample.to_tangent()
    assert tangent.shape == (3, 3, 3)
    # rotation about y by angle t has log (0, t/2, 0)
    assert np.allclose(tangent[1, 1], [0.05, 0.1, 0.15])
    assert sample.time_matrix().shape == (3, 3)


def test_from_tangent_round_trip(sample):
    back = QTSSample.from_tangent(sample.grid(), sample.to_tangent(), labels=sample.labels)
    assert back.labels == sample.labels
    assert np.allclose(back.to_array(), sample.to_array())


def test_from_tangent_rejects_bad_grid():
    with pytest.raises(GridMismatchError):
        QTSSample.from_tangent(np.zeros((2, 5)), np.zeros((3, 3, 4)))


def test_map_and_relabel(sample):
    out = sample.map(lambda q: q.inverse())
    assert np.allclose(out[0].values[:, 2], -sample[0].values[:, 2])
    assert sample.relabel(["x", "y", "z"]).labels == ("x", "y", "z")
