"""
Centerline store.

Holds the ordered control points of the spine and the target spacing
used by the follow-the-leader mover. The mesh kernel only reads
``points``; spacing never enters the curve math.
"""

import logging
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)


class CenterlineStore:
    """
    Ordered sequence of 3D control points trailing behind a head anchor.

    Args:
        points: (N, 3) control points, head end first
        spacing: Base (head) spacing between consecutive points
        falloff: Exponential decay of spacing toward the tail
    """

    def __init__(self, points: np.ndarray, spacing: float, falloff: float = 1.15):
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"points must be (N, 3), got {points.shape}")
        self.points = points.copy()
        self.spacing = float(spacing)
        self.falloff = float(falloff)

    @classmethod
    def create(cls, segments: int, spacing: float, falloff: float = 1.15) -> "CenterlineStore":
        """
        Create a straight spine hanging down -Y from the origin.

        Segments bunch toward the tail: spacing decays exponentially
        from the head value.
        """
        store = cls(np.zeros((segments, 3)), spacing, falloff)
        accumulated = 0.0
        for i in range(segments):
            store.points[i] = (0.0, -accumulated, 0.0)
            accumulated += store.segment_spacing(i)
        logger.debug(f"Created spine: {segments} points, length {accumulated:.3f}")
        return store

    @property
    def n_points(self) -> int:
        return len(self.points)

    def segment_spacing(self, index: int) -> float:
        """Spacing for the segment ending at ``index`` (head wide, tail dense)."""
        n = self.n_points
        if n <= 1:
            return self.spacing
        t = index / (n - 1)
        return self.spacing * float(np.exp(-self.falloff * t))

    def follow(
        self,
        head_position: np.ndarray,
        head_direction: np.ndarray,
        wave_offset: Optional[Callable[[int], float]] = None,
        lerp: float = 0.05
    ) -> None:
        """
        Advance the spine one tick behind a moving head.

        Each point eases toward the slot ``spacing`` behind its predecessor
        (plus a lateral wave offset), then is pulled back so it is never
        farther than ``spacing`` from the predecessor.

        Args:
            head_position: Current head anchor
            head_direction: Unit swim direction of the head
            wave_offset: Optional lateral offset per point index
            lerp: Easing factor toward the target slot
        """
        head_direction = np.asarray(head_direction, dtype=np.float64)
        prev = np.array(head_position, dtype=np.float64)
        perp = np.array([-head_direction[2], 0.0, head_direction[0]])

        for i in range(self.n_points):
            spacing = self.segment_spacing(i)
            target = prev - head_direction * spacing
            if wave_offset is not None:
                target += perp * wave_offset(i)

            cur = self.points[i]
            cur += (target - cur) * lerp

            offset = cur - prev
            dist = float(np.linalg.norm(offset))
            if dist > spacing:
                cur[:] = prev + offset * (spacing / dist)

            prev[:] = cur
