# qtsstat/io/tabular.py
from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from qtsstat.core import QTS, QTSSample, InvalidQTS

QUATERNION_COLUMNS = ("w", "x", "y", "z")


def qts_from_frame(
    df: pd.DataFrame,
    time: str = "time",
    columns: Sequence[str] = QUATERNION_COLUMNS,
    name: str | None = None,
) -> QTS:
    """Build a QTS from a frame with a time column and four quaternion columns."""
    if not isinstance(df, pd.DataFrame):
        raise InvalidQTS("qts_from_frame() expects a pandas DataFrame.")
    if len(columns) != 4:
        raise InvalidQTS(f"expected 4 quaternion columns (w, x, y, z), got {len(columns)}.")
    missing = [c for c in (time, *columns) if c not in df.columns]
    if missing:
        raise InvalidQTS(f"missing column(s): {missing}")

    return QTS(
        time=df[time].to_numpy(dtype=float),
        values=df[list(columns)].to_numpy(dtype=float),
        name=name,
    )


def qts_to_frame(qts: QTS) -> pd.DataFrame:
    t, v = qts.to_numpy(copy=True)
    out = pd.DataFrame(v, columns=list(QUATERNION_COLUMNS))
    out.insert(0, "time", t)
    return out


def sample_from_frames(
    frames: Iterable[pd.DataFrame],
    labels: Sequence[str] | None = None,
    **kwargs,
) -> QTSSample:
    """One QTS per frame; extra keyword arguments go to qts_from_frame()."""
    series = [qts_from_frame(df, **kwargs) for df in frames]
    return QTSSample(series=series, labels=labels)


def sample_from_long_frame(df: pd.DataFrame, id_column: str = "id", **kwargs) -> QTSSample:
    """Split a long-format frame on `id_column` (first-appearance order)."""
    if id_column not in df.columns:
        raise InvalidQTS(f"missing column: {id_column!r}")
    groups = [(str(key), g) for key, g in df.groupby(id_column, sort=False)]
    return QTSSample(
        series=[qts_from_frame(g, name=key, **kwargs) for key, g in groups],
        labels=[key for key, _ in groups],
    )


def sample_to_frame(sample: QTSSample, id_column: str = "id") -> pd.DataFrame:
    """Long-format frame: one row per (member, time point), members tagged by label."""
    parts = []
    for label, qts in zip(sample.labels, sample):
        part = qts_to_frame(qts)
        part.insert(0, id_column, label)
        parts.append(part)
    return pd.concat(parts, ignore_index=True)


def tangent_frame(qts: QTS) -> pd.DataFrame:
    """Log representation of a QTS as a frame with columns time, x, y, z."""
    log = qts.log()
    return pd.DataFrame(
        {"time": np.asarray(qts.time), "x": log[:, 0], "y": log[:, 1], "z": log[:, 2]}
    )
