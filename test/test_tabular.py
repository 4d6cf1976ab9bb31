import numpy as np
import pandas as pd
import pytest

from qtsstat.core import QTS, QTSSample, InvalidQTS
from qtsstat.io.tabular import (
    qts_from_frame,
    qts_to_frame,
    sample_from_frames,
    sample_from_long_frame,
    sample_to_frame,
    tangent_frame,
)


def _frame(angles, t0=0.0):
    angles = np.asarray(angles, dtype=float)
    return pd.DataFrame(
        {
            "time": t0 + np.arange(angles.size, dtype=float),
            "w": np.cos(angles / 2),
            "x": np.sin(angles / 2),
            "y": 0.0,
            "z": 0.0,
        }
    )


def test_qts_from_frame_and_back():
    df = _frame([0.0, 0.2, 0.4])
    q = qts_from_frame(df, name="imu")
    assert isinstance(q, QTS)
    assert q.name == "imu"
    assert np.allclose(q.time, [0.0, 1.0, 2.0])
    out = qts_to_frame(q)
    assert list(out.columns) == ["time", "w", "x", "y", "z"]
    pd.testing.assert_frame_equal(out, df, check_dtype=False)


def test_qts_from_frame_normalizes_rows():
    df = pd.DataFrame({"time": [0.0, 1.0], "w": [2.0, 0.0], "x": [0.0, 3.0], "y": 0.0, "z": 0.0})
    q = qts_from_frame(df)
    assert np.allclose(q.values, [[1.0, 0.0, 0.0, 0.0], [0.0, 1.0, 0.0, 0.0]])


def test_qts_from_frame_with_custom_columns():
    df = _frame([0.0, 0.1]).rename(columns={"time": "t", "w": "qw", "x": "qx", "y": "qy", "z": "qz"})
    q = qts_from_frame(df, time="t", columns=("qw", "qx", "qy", "qz"))
    assert q.n == 2


def test_qts_from_frame_errors():
    with pytest.raises(InvalidQTS):
        qts_from_frame(_frame([0.0]).drop(columns=["z"]))
    with pytest.raises(InvalidQTS):
        qts_from_frame(np.zeros((2, 5)))
    with pytest.raises(InvalidQTS):
        qts_from_frame(_frame([0.0]), columns=("w", "x", "y"))


def test_sample_from_frames_default_labels():
    s = sample_from_frames([_frame([0.0, 0.1]), _frame([0.2, 0.3])])
    assert isinstance(s, QTSSample)
    assert s.labels == ("1", "2")


def test_long_frame_round_trip_keeps_member_order():
    long = pd.concat(
        [
            _frame([0.0, 0.1, 0.2]).assign(id="b"),
            _frame([0.3, 0.4]).assign(id="a"),
        ],
        ignore_index=True,
    )
    s = sample_from_long_frame(long)
    assert s.labels == ("b", "a")
    assert s.get("a").n == 2
    assert s.get("b").name == "b"

    back = sample_to_frame(s)
    assert list(back.columns) == ["id", "time", "w", "x", "y", "z"]
    assert back["id"].tolist() == ["b", "b", "b", "a", "a"]
    assert np.allclose(back[["w", "x", "y", "z"]].to_numpy(), long[["w", "x", "y", "z"]].to_numpy())


def test_long_frame_requires_id_column():
    with pytest.raises(InvalidQTS):
        sample_from_long_frame(_frame([0.0]), id_column="subject")


def test_tangent_frame():
    q = qts_from_frame(_frame([0.0, 0.2, 0.4]))
    tf = tangent_frame(q)
    assert list(tf.columns) == ["time", "x", "y", "z"]
    assert np.allclose(tf["x"], [0.0, 0.1, 0.2])
    assert np.allclose(tf[["y", "z"]].to_numpy(), 0.0)
