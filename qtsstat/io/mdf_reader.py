from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

import re

from asammdf import MDF  # pivotal dependency for MDF file handling
import numpy as np

from qtsstat.core import QTS, QTSSample, GridMismatchError, QTSNotFound


@dataclass
class RawComponentInfo:
    """
    One quaternion component channel inside an MDF file.

    Examples of channel names and their (prefix, component):
    - "imu1.qw"   -> ("imu1", "w")
    - "head_x"    -> ("head", "x")
    - "qz"        -> ("", "z")
    """

    channel_name: str
    prefix: str
    component: str             # one of "w", "x", "y", "z"
    unit: str | None
    group_index: int           # group id inside the MDF
    channel_index: int         # channel id inside the group

    # Lazy loader: when called, reads ONLY this channel
    loader: Callable[[], tuple["np.ndarray", "np.ndarray"]]
    # -> (time, values)


@dataclass
class RawQuaternionInfo:
    """Complete (w, x, y, z) channel set sharing one prefix."""

    prefix: str
    components: dict[str, RawComponentInfo]

    def load(self) -> tuple[np.ndarray, np.ndarray]:
        """Load the four channels; returns (time, (M, 4) values)."""
        time = None
        columns = []
        for comp in "wxyz":
            t, v = self.components[comp].loader()
            t = np.asarray(t, dtype=float)
            if time is None:
                time = t
            elif t.shape != time.shape or not np.allclose(t, time):
                raise GridMismatchError(
                    f"quaternion '{self.prefix}': channel "
                    f"'{self.components[comp].channel_name}' is not sampled on the "
                    f"time base of '{self.components['w'].channel_name}'."
                )
            columns.append(np.asarray(v, dtype=float))
        return time, np.column_stack(columns)


_COMPONENT_RE = re.compile(r"^(?:(?P<prefix>.+?)[._])?q?_?(?P<comp>[wxyzWXYZ])$")


def _parse_component(channel_name: str) -> tuple[str, str] | None:
    """Parse a channel name into (prefix, component), or None if it is no quaternion component.

    Examples
    --------
    "imu1.qw" -> ("imu1", "w")
    "head_X"  -> ("head", "x")
    "speed"   -> None
    """
    m = _COMPONENT_RE.match(channel_name)
    if not m:
        return None
    return m.group("prefix") or "", m.group("comp").lower()


class QuaternionMdfReader:
    """Index quaternion channels of an MDF file (asammdf.MDF) and load them as QTS.

    Channels are grouped by the prefix left once the component suffix is
    stripped; only prefixes with all four components are exposed.
    """

    def __init__(self, path: str | Path):
        self.path = str(path)
        self._mdf = MDF(self.path)
        # prefix -> RawQuaternionInfo
        self._quaternions: dict[str, RawQuaternionInfo] = {}
        self._build_index()

    def __enter__(self) -> "QuaternionMdfReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._mdf.close()

    # ------------------------------------------------------------------
    # Index construction
    # ------------------------------------------------------------------
    def _build_index(self) -> None:
        partial: dict[str, dict[str, RawComponentInfo]] = {}

        for group_index, group in enumerate(self._mdf.groups):
            for channel_index, channel in enumerate(group.channels):
                parsed = _parse_component(channel.name)
                if parsed is None:
                    continue
                prefix, comp = parsed

                def make_loader(g_i: int = group_index, c_i: int = channel_index):
                    def _loader() -> tuple[np.ndarray, np.ndarray]:
                        sig = self._mdf.get(group=g_i, index=c_i)
                        return sig.timestamps, sig.samples

                    return _loader

                # first occurrence wins when a name is repeated across groups
                partial.setdefault(prefix, {}).setdefault(
                    comp,
                    RawComponentInfo(
                        channel_name=channel.name,
                        prefix=prefix,
                        component=comp,
                        unit=getattr(channel, "unit", None),
                        group_index=group_index,
                        channel_index=channel_index,
                        loader=make_loader(),
                    ),
                )

        for prefix, comps in partial.items():
            if set(comps) == {"w", "x", "y", "z"}:
                self._quaternions[prefix] = RawQuaternionInfo(prefix=prefix, components=comps)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def list_quaternions(self) -> list[str]:
        """Prefixes of the complete quaternion channel sets, in file order."""
        return list(self._quaternions)

    def read_qts(
        self,
        prefix: str,
        start_time: float | None = None,
        end_time: float | None = None,
    ) -> QTS:
        """Load one quaternion channel set as a QTS, optionally restricted to a time window."""
        if prefix not in self._quaternions:
            raise QTSNotFound(prefix)

        t, v = self._quaternions[prefix].load()
        if start_time is not None or end_time is not None:
            mask = np.ones_like(t, dtype=bool)
            if start_time is not None:
                mask &= t >= start_time
            if end_time is not None:
                mask &= t <= end_time
            t = t[mask]
            v = v[mask]

        return QTS(
            time=t,
            values=v,
            name=prefix or Path(self.path).stem,
            attrs={"source": f"MDF:{self.path}"},
        )


def load_mdf_sample(path: str | Path, prefixes: Iterable[str] | None = None) -> QTSSample:
    """Read every (or the selected) quaternion channel set of an MDF file into a sample."""
    with QuaternionMdfReader(path) as reader:
        names = reader.list_quaternions() if prefixes is None else list(prefixes)
        series = [reader.read_qts(name) for name in names]
    return QTSSample(series=series, labels=[q.name for q in series])
