# qtsstat/core/quaternion.py
"""
Manifold primitives for unit quaternions.

Coordinate order is (w, x, y, z) throughout. Every function accepts a single
quaternion of shape (4,) or a stack of shape (..., 4) and returns a new array.

The log/exp pair used here is the quaternion one:

    log(q) = arccos(w) * v / |v|          (tangent vector at the identity)
    exp(u) = (cos|u|, sin|u| * u / |u|)

so that exp(log(q)) == q for every unit q and log(exp(u)) == u for |u| < pi.
Note that |log(q)| is half the rotation angle of q.
"""

from __future__ import annotations

import numpy as np

from .exceptions import DegenerateQuaternionError

EPS = 1e-12
IDENTITY = np.array([1.0, 0.0, 0.0, 0.0])


def _as_quat(q) -> np.ndarray:
    arr = np.asarray(q, dtype=float)
    if arr.ndim == 0 or arr.shape[-1] != 4:
        raise ValueError(f"quaternions must have a trailing axis of size 4, got shape {arr.shape}")
    return arr


def _as_vec3(v) -> np.ndarray:
    arr = np.asarray(v, dtype=float)
    if arr.ndim == 0 or arr.shape[-1] != 3:
        raise ValueError(f"tangent vectors must have a trailing axis of size 3, got shape {arr.shape}")
    return arr


def _dot(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    return np.sum(q1 * q2, axis=-1)


def norm(q) -> np.ndarray | float:
    n = np.linalg.norm(_as_quat(q), axis=-1)
    return float(n) if n.ndim == 0 else n


def normalize(q, eps: float = EPS) -> np.ndarray:
    """Rescale quaternion(s) to unit norm.

    Raises DegenerateQuaternionError when a norm is below `eps`.
    """
    arr = _as_quat(q)
    n = np.linalg.norm(arr, axis=-1, keepdims=True)
    bad = n[..., 0] < eps
    if np.any(bad):
        if arr.ndim == 1:
            raise DegenerateQuaternionError(
                f"cannot normalize quaternion {arr.tolist()} (norm {float(n[0]):.3e})."
            )
        idx = tuple(int(i) for i in np.argwhere(bad)[0])
        raise DegenerateQuaternionError(
            f"cannot normalize quaternion at index {idx if len(idx) > 1 else idx[0]} "
            f"(norm {float(n[idx][0]):.3e})."
        )
    return arr / n


def multiply(q1, q2) -> np.ndarray:
    """Hamilton product q1 * q2 (broadcasts over leading axes)."""
    a = _as_quat(q1)
    b = _as_quat(q2)
    w1, x1, y1, z1 = np.moveaxis(a, -1, 0)
    w2, x2, y2, z2 = np.moveaxis(b, -1, 0)
    return np.stack(
        [
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        ],
        axis=-1,
    )


def conjugate(q) -> np.ndarray:
    return _as_quat(q) * np.array([1.0, -1.0, -1.0, -1.0])


def inverse(q) -> np.ndarray:
    arr = _as_quat(q)
    return conjugate(arr) / _dot(arr, arr)[..., None]


def log(q, eps: float = EPS) -> np.ndarray:
    """Logarithm map at the identity: (..., 4) -> (..., 3).

    A vector part with norm below `eps` maps to the zero vector.
    """
    arr = _as_quat(q)
    theta = np.arccos(np.clip(arr[..., 0], -1.0, 1.0))
    v = arr[..., 1:]
    vn = np.linalg.norm(v, axis=-1)
    ok = vn >= eps
    scale = np.where(ok, theta / np.where(ok, vn, 1.0), 0.0)
    return v * scale[..., None]


def exp(v, eps: float = EPS) -> np.ndarray:
    """Exponential map at the identity: (..., 3) -> (..., 4)."""
    arr = _as_vec3(v)
    theta = np.linalg.norm(arr, axis=-1)
    ok = theta >= eps
    safe_theta = np.where(ok, theta, 1.0)
    scale = np.where(ok, np.sin(theta) / safe_theta, 0.0)
    w = np.where(ok, np.cos(theta), 1.0)
    return np.concatenate([w[..., None], arr * scale[..., None]], axis=-1)


def align_sign(q, reference) -> np.ndarray:
    """Flip `q` to `-q` wherever that brings it closer to `reference`."""
    arr = _as_quat(q)
    ref = _as_quat(reference)
    sign = np.where(_dot(arr, ref) < 0.0, -1.0, 1.0)
    return arr * sign[..., None]


def enforce_sign_continuity(qs) -> np.ndarray:
    """Make a (M, 4) sequence sign-continuous.

    The first quaternion is kept as given; each following one is flipped when
    its inner product with the (already processed) previous one is negative.
    """
    out = np.array(_as_quat(qs), dtype=float, copy=True)
    if out.ndim != 2:
        raise ValueError(f"expected a (M, 4) sequence, got shape {out.shape}")
    for i in range(1, out.shape[0]):
        if np.dot(out[i], out[i - 1]) < 0.0:
            out[i] = -out[i]
    return out


def relative_log(q, base, eps: float = EPS) -> np.ndarray:
    """Tangent vector of `q` at `base`: log(base^-1 * q), with q sign-aligned to base."""
    b = _as_quat(base)
    return log(multiply(inverse(b), align_sign(q, b)), eps=eps)


def geodesic_distance(q1, q2) -> np.ndarray | float:
    """Angular distance 2 * arccos(|<q1, q2>|), in [0, pi].

    Evaluated as 4 * atan2(|a - b|, |a + b|) with b sign-aligned to a, which
    is the same quantity but exact at zero distance.
    """
    a = normalize(q1)
    b = align_sign(normalize(q2), a)
    d = 4.0 * np.arctan2(np.linalg.norm(a - b, axis=-1), np.linalg.norm(a + b, axis=-1))
    d = np.clip(d, 0.0, np.pi)
    return float(d) if np.ndim(d) == 0 else d


def slerp(q1, q2, t: float) -> np.ndarray:
    """Spherical linear interpolation along the shortest arc, t in [0, 1]."""
    a = normalize(q1)
    b = align_sign(normalize(q2), a)
    cos_omega = float(np.clip(np.dot(a, b), -1.0, 1.0))
    omega = np.arccos(cos_omega)
    if omega < 1e-10:
        return normalize((1.0 - t) * a + t * b)
    s = np.sin(omega)
    return (np.sin((1.0 - t) * omega) * a + np.sin(t * omega) * b) / s
