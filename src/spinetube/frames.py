"""
Frame Propagator

Computes a minimal-twist orthonormal frame (tangent, normal, binormal)
for every dense sample. The first normal is either carried over from
the previous tick or, with no history, taken from a reference axis;
every later normal is the previous one projected onto the current
normal plane, so the ring orientation only rotates as much as the
tangent forces it to.
"""

import logging
import math
from typing import Optional, Tuple

import numpy as np

from .config import (
    DEGENERATE_EPS,
    FALLBACK_AXIS,
    PRIMARY_UP,
    SECONDARY_UP,
    UP_BLEND_END,
    UP_BLEND_START,
)

logger = logging.getLogger(__name__)


def smoothstep(edge0: float, edge1: float, x):
    """Hermite smoothstep, clamped to [0, 1]."""
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def _orthogonalize(axis: np.ndarray, tangent: np.ndarray) -> Tuple[np.ndarray, float]:
    """Gram-Schmidt ``axis`` against ``tangent``; returns (vector, length)."""
    v = axis - tangent * float(np.dot(axis, tangent))
    return v, float(np.linalg.norm(v))


def _cross(a: np.ndarray, b: np.ndarray, out: np.ndarray) -> float:
    """``out = a x b`` for 3-vectors; returns |out|."""
    ax, ay, az = float(a[0]), float(a[1]), float(a[2])
    bx, by, bz = float(b[0]), float(b[1]), float(b[2])
    out[0] = ay * bz - az * by
    out[1] = az * bx - ax * bz
    out[2] = ax * by - ay * bx
    return math.sqrt(float(out[0]) ** 2 + float(out[1]) ** 2 + float(out[2]) ** 2)


def _cross_rows(a: np.ndarray, b: np.ndarray, out: np.ndarray, work: np.ndarray) -> None:
    """Row-wise ``out = a x b`` for (S, 3) arrays; ``work`` is (S,) scratch."""
    for i, j, k in ((0, 1, 2), (1, 2, 0), (2, 0, 1)):
        np.multiply(a[:, j], b[:, k], out=out[:, i])
        np.multiply(a[:, k], b[:, j], out=work)
        out[:, i] -= work


def compute_tangents(
    centers: np.ndarray,
    tangents: np.ndarray,
    spans: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Unit tangents from centred differences, one-sided at both ends.

    Args:
        centers: (S, 3) sample positions
        tangents: (S, 3) destination
        spans: Optional (S,) destination for the distance covered per
            sample step around each sample (|next - prev| / steps)

    Returns:
        ``tangents``
    """
    n = len(centers)
    if n < 2:
        tangents[:] = FALLBACK_AXIS
        if spans is not None:
            spans[:] = 0.0
        return tangents

    np.subtract(centers[2:], centers[:-2], out=tangents[1:-1])
    np.subtract(centers[1], centers[0], out=tangents[0])
    np.subtract(centers[-1], centers[-2], out=tangents[-1])

    lengths = spans if spans is not None else np.empty(n)
    np.einsum('ij,ij->i', tangents, tangents, out=lengths)
    np.sqrt(lengths, out=lengths)

    threshold = DEGENERATE_EPS * DEGENERATE_EPS
    if lengths.min() >= threshold:
        tangents /= lengths[:, None]
    else:
        degenerate = 0
        for i in range(n):
            if lengths[i] < threshold:
                tangents[i] = tangents[i - 1] if i > 0 else FALLBACK_AXIS
                degenerate += 1
            else:
                tangents[i] /= lengths[i]
        logger.debug(f"{degenerate} degenerate tangents, reusing neighbours")

    lengths[1:-1] *= 0.5
    return tangents


def reference_normal(tangent: np.ndarray) -> np.ndarray:
    """
    Normal for a frame with no history, from a blended reference axis.

    Far from the vertical the reference is PRIMARY_UP; as the tangent
    approaches it the reference slides to SECONDARY_UP with a smoothstep
    weight on |tangent . up|. Each candidate is orthogonalised against
    the tangent before blending.

    No single direction field is continuous over every tangent: for
    tangents in the PRIMARY/SECONDARY plane the two candidates are
    antiparallel on one side of the up axis and the blend switches
    sign there. Continuity between ticks comes from carrying the
    previous first normal into ``propagate_frames``; this function only
    seeds the first tick and degenerate transports.
    """
    weight = float(smoothstep(UP_BLEND_START, UP_BLEND_END, abs(float(np.dot(tangent, PRIMARY_UP)))))

    blended = np.zeros(3)
    if weight < 1.0:
        v, length = _orthogonalize(PRIMARY_UP, tangent)
        if length > DEGENERATE_EPS:
            blended += (1.0 - weight) * v / length
    if weight > 0.0:
        v, length = _orthogonalize(SECONDARY_UP, tangent)
        if length > DEGENERATE_EPS:
            blended += weight * v / length

    v, length = _orthogonalize(blended, tangent)
    if length < DEGENERATE_EPS:
        # Candidates cancelled out
        logger.debug("Reference axes cancelled, using fallback axis")
        v, length = _orthogonalize(SECONDARY_UP, tangent)
        if length < DEGENERATE_EPS:
            v, length = _orthogonalize(FALLBACK_AXIS, tangent)
    return v / length


def _transport(
    prev_normal: np.ndarray,
    prev_binormal: np.ndarray,
    tangent: np.ndarray,
    normal_out: np.ndarray,
    binormal_out: np.ndarray
) -> None:
    """One step of the fold: project the carried normal onto the new plane."""
    np.multiply(tangent, float(np.dot(prev_normal, tangent)), out=normal_out)
    np.subtract(prev_normal, normal_out, out=normal_out)
    length = math.sqrt(float(np.dot(normal_out, normal_out)))
    if length < DEGENERATE_EPS:
        length = _cross(prev_binormal, tangent, normal_out)
        if length < DEGENERATE_EPS:
            normal_out[:] = reference_normal(tangent)
            length = 1.0
    normal_out /= length
    length = _cross(tangent, normal_out, binormal_out)
    binormal_out /= length


def propagate_frames(
    tangents: np.ndarray,
    normals: np.ndarray,
    binormals: np.ndarray,
    initial_normal: Optional[np.ndarray] = None,
    initial_binormal: Optional[np.ndarray] = None
) -> None:
    """
    Fold over the samples carrying (prev_normal, prev_binormal).

    Args:
        tangents: (S, 3) unit tangents
        normals: (S, 3) destination
        binormals: (S, 3) destination
        initial_normal: Optional carried normal for the first frame (the
            previous tick's first normal); it is projected onto the first
            normal plane like any carried normal. Defaults to the blended
            reference axis.
        initial_binormal: Binormal paired with ``initial_normal``, used
            when the projection degenerates. Derived from the first
            tangent if omitted.
    """
    n = len(tangents)
    if n == 0:
        return

    t0 = tangents[0]
    if initial_normal is None:
        normals[0] = reference_normal(t0)
        length = _cross(t0, normals[0], binormals[0])
        binormals[0] /= length
    else:
        if initial_binormal is None:
            initial_binormal = np.cross(t0, initial_normal)
        _transport(initial_normal, initial_binormal, t0, normals[0], binormals[0])

    for i in range(1, n):
        _transport(normals[i - 1], binormals[i - 1], tangents[i], normals[i], binormals[i])


def reorthonormalize(
    tangents: np.ndarray,
    normals: np.ndarray,
    binormals: np.ndarray,
    work: Optional[np.ndarray] = None,
    dots: Optional[np.ndarray] = None
) -> None:
    """
    Restore exact orthonormality after normals were blended.

    Normals are projected back onto each tangent's normal plane and the
    binormals rebuilt as tangent x normal. Rows whose normal collapsed are
    rebuilt from their binormal instead.

    Args:
        tangents, normals, binormals: (S, 3) frames, normals and
            binormals updated in place
        work: Optional (S, 3) scratch
        dots: Optional (S,) scratch
    """
    if work is None:
        work = np.empty_like(normals)
    if dots is None:
        dots = np.empty(len(normals))

    np.einsum('ij,ij->i', normals, tangents, out=dots)
    np.multiply(tangents, dots[:, None], out=work)
    normals -= work
    np.einsum('ij,ij->i', normals, normals, out=dots)
    np.sqrt(dots, out=dots)

    if dots.min() < DEGENERATE_EPS:
        for i in np.flatnonzero(dots < DEGENERATE_EPS):
            length = _cross(binormals[i], tangents[i], normals[i])
            if length > DEGENERATE_EPS:
                normals[i] /= length
            else:
                normals[i] = reference_normal(tangents[i])
            dots[i] = 1.0
    normals /= dots[:, None]

    _cross_rows(tangents, normals, binormals, dots)
    np.einsum('ij,ij->i', binormals, binormals, out=dots)
    np.sqrt(dots, out=dots)
    binormals /= dots[:, None]


def check_orthonormal(tangents: np.ndarray, normals: np.ndarray, binormals: np.ndarray) -> dict:
    """
    Measure how far the frames are from orthonormal and right-handed.

    Returns:
        Dictionary with max |dot| between axes, max unit-length error and
        the minimum handedness triple product t . (n x b)
    """
    dots = np.stack([
        np.einsum('ij,ij->i', tangents, normals),
        np.einsum('ij,ij->i', tangents, binormals),
        np.einsum('ij,ij->i', normals, binormals),
    ])
    lengths = np.stack([
        np.linalg.norm(tangents, axis=1),
        np.linalg.norm(normals, axis=1),
        np.linalg.norm(binormals, axis=1),
    ])
    handedness = np.einsum('ij,ij->i', tangents, np.cross(normals, binormals))
    return {
        "max_dot": float(np.max(np.abs(dots))),
        "max_length_error": float(np.max(np.abs(lengths - 1.0))),
        "min_handedness": float(np.min(handedness)),
    }
