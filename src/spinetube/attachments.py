"""
Attachment Exporter

Copies every k-th dense frame (position, axes, radius, spine fraction)
into one of two identical buffers. The producer only ever writes the
buffer that is not currently published, then publishes it, so a consumer
holding the published buffer never sees a half-written tick.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class AttachmentFrames:
    """Sparse frame snapshot for attaching secondary geometry (fins)."""
    positions: np.ndarray   # (K, 3)
    normals: np.ndarray     # (K, 3)
    binormals: np.ndarray   # (K, 3)
    tangents: np.ndarray    # (K, 3)
    radii: np.ndarray       # (K,)
    spine_t: np.ndarray     # (K,) normalized spine position of each frame

    @classmethod
    def allocate(cls, length: int) -> "AttachmentFrames":
        return cls(
            positions=np.zeros((length, 3)),
            normals=np.zeros((length, 3)),
            binormals=np.zeros((length, 3)),
            tangents=np.zeros((length, 3)),
            radii=np.zeros(length),
            spine_t=np.zeros(length),
        )

    def __len__(self) -> int:
        return len(self.radii)


class AttachmentExporter:
    """
    Double-buffered sparse frame export.

    Args:
        sample_count: Number of dense samples S
        step: Export every ``step``-th sample, starting at 0
    """

    def __init__(self, sample_count: int, step: int = 4):
        if step < 1:
            raise ValueError(f"step must be >= 1, got {step}")
        self.sample_count = sample_count
        self.step = step
        self.length = math.ceil(sample_count / step)

        self.sample_indices = np.arange(0, sample_count, step)
        self.buffers = (AttachmentFrames.allocate(self.length), AttachmentFrames.allocate(self.length))
        self._published_index: Optional[int] = None

        spine_t = self.sample_indices / max(1, sample_count - 1)
        for buf in self.buffers:
            buf.spine_t[:] = spine_t

    @property
    def published(self) -> Optional[AttachmentFrames]:
        """Most recently published buffer, or None before the first publish."""
        if self._published_index is None:
            return None
        return self.buffers[self._published_index]

    @property
    def write_index(self) -> int:
        """Index of the buffer the next publish will write."""
        if self._published_index is None:
            return 0
        return 1 - self._published_index

    def publish(
        self,
        centers: np.ndarray,
        normals: np.ndarray,
        binormals: np.ndarray,
        tangents: np.ndarray,
        radii: np.ndarray
    ) -> AttachmentFrames:
        """Write the sparse frames into the free buffer and publish it."""
        index = self.write_index
        buf = self.buffers[index]
        idx = self.sample_indices

        np.take(centers, idx, axis=0, out=buf.positions)
        np.take(normals, idx, axis=0, out=buf.normals)
        np.take(binormals, idx, axis=0, out=buf.binormals)
        np.take(tangents, idx, axis=0, out=buf.tangents)
        np.take(radii, idx, out=buf.radii)

        self._published_index = index
        return buf
