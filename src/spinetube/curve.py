"""
Curve Sampler

Builds an open centripetal Catmull-Rom curve through the ghosted control
points and evaluates it at a fixed set of parameters.

Control layout: [ghost_head, head, p_0 ... p_{N-1}, ghost_tail]
"""

import logging
from typing import Optional

import numpy as np

from .config import DEGENERATE_EPS, FALLBACK_AXIS, GHOST_EPS, KNOT_EPS

logger = logging.getLogger(__name__)


def safe_direction(direction: np.ndarray, fallback: np.ndarray = FALLBACK_AXIS) -> np.ndarray:
    """Unit copy of ``direction``, or ``fallback`` if it has no length."""
    direction = np.asarray(direction, dtype=np.float64)
    length = float(np.linalg.norm(direction))
    if not np.isfinite(length) or length < DEGENERATE_EPS:
        return np.array(fallback, dtype=np.float64)
    return direction / length


def build_ghosted_points(
    points: np.ndarray,
    head: np.ndarray,
    head_direction: np.ndarray,
    out: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Write head, control points and the two reflected ghost points.

    ghost_head = head + (head - p_0)
    ghost_tail = last + (last - prev)

    where prev is p_{N-2}, or the head when only one point exists.
    Coincident boundary points get a ghost offset of GHOST_EPS along
    the head direction instead.

    Args:
        points: (N, 3) control points, N >= 0
        head: Leading anchor position
        head_direction: Swim direction of the head
        out: Optional (N + 3, 3) destination

    Returns:
        The ghosted (N + 3, 3) array
    """
    n = len(points)
    if out is None:
        out = np.empty((n + 3, 3), dtype=np.float64)

    out[1] = head
    if n:
        out[2:n + 2] = points

    first = out[2] if n else out[1]
    last = out[n + 1]
    prev = out[n] if n >= 2 else out[1]

    # Head ghost
    np.subtract(out[1], first, out=out[0])
    if np.linalg.norm(out[0]) < DEGENERATE_EPS:
        out[0] = safe_direction(head_direction) * GHOST_EPS
        logger.debug("Ghost head degenerate, offset along head direction")
    out[0] += out[1]

    # Tail ghost
    np.subtract(last, prev, out=out[n + 2])
    if np.linalg.norm(out[n + 2]) < DEGENERATE_EPS:
        out[n + 2] = safe_direction(head_direction) * -GHOST_EPS
        logger.debug("Ghost tail degenerate, offset against head direction")
    out[n + 2] += last

    return out


class CatmullRomSampler:
    """
    Open centripetal Catmull-Rom spline sampled at fixed parameters.

    Sample i sits at global parameter t = (i + 1) / (S + 1), so the S
    samples span the ghosted curve without touching its two ends. The
    parameter-to-segment lookup is fixed per (control count, S) and built
    once; per tick only the segment coefficients change.

    Args:
        n_controls: Number of ghosted control points (N + 3)
        sample_count: Number of dense samples S
    """

    def __init__(self, n_controls: int, sample_count: int):
        if n_controls < 2:
            raise ValueError(f"Need at least 2 control points, got {n_controls}")
        self.n_controls = n_controls
        self.sample_count = sample_count

        t = (np.arange(sample_count, dtype=np.float64) + 1.0) / (sample_count + 1.0)
        self.segment_index, self.segment_weight = self._locate(t)

        n_seg = n_controls - 1
        self._extended = np.zeros((n_controls + 2, 3))
        self._coeffs = np.zeros((4, n_seg, 3))
        self._dt = np.zeros((3, n_seg))
        self._dt_cols = self._dt[:, :, None]
        self._dt_sum = np.zeros((n_seg, 1))
        self._small = np.zeros(n_seg, dtype=bool)
        self._d0 = np.zeros((n_seg, 3))
        self._d1 = np.zeros((n_seg, 3))
        self._d2 = np.zeros((n_seg, 3))
        self._m2 = np.zeros((n_seg, 3))
        self._tmp = np.zeros((n_seg, 3))
        self._gather = np.zeros((sample_count, 3))

    def _locate(self, t: np.ndarray):
        """Map global parameters to (segment index, local weight)."""
        p = (self.n_controls - 1) * t
        index = np.floor(p).astype(np.intp)
        weight = p - index
        # t == 1 lands on the last point
        end = index >= self.n_controls - 1
        index[end] = self.n_controls - 2
        weight[end] = 1.0
        return index, weight

    def fit(self, controls: np.ndarray) -> None:
        """
        Compute cubic coefficients for every segment.

        Boundary neighbours are extrapolated by reflection
        (2 * P_0 - P_1 and 2 * P_{l-1} - P_{l-2}).
        """
        l = self.n_controls
        ext = self._extended
        ext[1:l + 1] = controls
        np.multiply(controls[0], 2.0, out=ext[0])
        ext[0] -= controls[1]
        np.multiply(controls[l - 1], 2.0, out=ext[l + 1])
        ext[l + 1] -= controls[l - 2]

        p0 = ext[0:l - 1]
        p1 = ext[1:l]
        p2 = ext[2:l + 1]
        p3 = ext[3:l + 2]
        d0, d1, d2 = self._d0, self._d1, self._d2

        np.subtract(p1, p0, out=d0)
        np.subtract(p2, p1, out=d1)
        np.subtract(p3, p2, out=d2)

        # Centripetal knot spacing: |d| ** 0.5
        dt0, dt1, dt2 = self._dt
        for d, dt in ((d0, dt0), (d1, dt1), (d2, dt2)):
            np.einsum('ij,ij->i', d, d, out=dt)
            np.sqrt(dt, out=dt)
            np.sqrt(dt, out=dt)

        small = self._small
        np.less(dt1, KNOT_EPS, out=small)
        np.copyto(dt1, 1.0, where=small)
        np.less(dt0, KNOT_EPS, out=small)
        np.copyto(dt0, dt1, where=small)
        np.less(dt2, KNOT_EPS, out=small)
        np.copyto(dt2, dt1, where=small)

        dt0c, dt1c, dt2c = self._dt_cols
        dt_sum = self._dt_sum
        tmp = self._tmp
        c0, c1, c2, c3 = self._coeffs

        # Hermite tangents for the non-uniform parameterisation, rescaled to [0, 1]
        # m1 = (d0 / dt0 - (p2 - p0) / (dt0 + dt1) + d1 / dt1) * dt1, built in c1
        m1 = c1
        np.divide(d0, dt0c, out=m1)
        np.subtract(p2, p0, out=tmp)
        np.add(dt0c, dt1c, out=dt_sum)
        tmp /= dt_sum
        m1 -= tmp
        np.divide(d1, dt1c, out=tmp)
        m1 += tmp
        m1 *= dt1c

        # m2 = (d1 / dt1 - (p3 - p1) / (dt1 + dt2) + d2 / dt2) * dt1
        m2 = self._m2
        np.divide(d1, dt1c, out=m2)
        np.subtract(p3, p1, out=tmp)
        np.add(dt1c, dt2c, out=dt_sum)
        tmp /= dt_sum
        m2 -= tmp
        np.divide(d2, dt2c, out=tmp)
        m2 += tmp
        m2 *= dt1c

        # c2 = 3 (p2 - p1) - 2 m1 - m2,  c3 = -2 (p2 - p1) + m1 + m2
        c0[:] = p1
        np.multiply(d1, 3.0, out=c2)
        np.multiply(m1, 2.0, out=tmp)
        c2 -= tmp
        c2 -= m2
        np.multiply(d1, -2.0, out=c3)
        c3 += m1
        c3 += m2

    def sample(self, controls: np.ndarray, out: np.ndarray) -> np.ndarray:
        """Fit ``controls`` and write the S dense positions into ``out``."""
        self.fit(controls)
        return self._evaluate(self.segment_index, self.segment_weight, out, self._gather)

    def evaluate(self, t: np.ndarray) -> np.ndarray:
        """Evaluate the last fitted curve at arbitrary global parameters."""
        t = np.atleast_1d(np.asarray(t, dtype=np.float64))
        index, weight = self._locate(t)
        out = np.empty((len(t), 3))
        return self._evaluate(index, weight, out, np.empty_like(out))

    def _evaluate(self, index, weight, out, scratch):
        w = weight[:, None]
        c0, c1, c2, c3 = self._coeffs
        # Horner: c0 + w * (c1 + w * (c2 + w * c3))
        np.take(c3, index, axis=0, out=out)
        out *= w
        np.take(c2, index, axis=0, out=scratch)
        out += scratch
        out *= w
        np.take(c1, index, axis=0, out=scratch)
        out += scratch
        out *= w
        np.take(c0, index, axis=0, out=scratch)
        out += scratch
        return out
