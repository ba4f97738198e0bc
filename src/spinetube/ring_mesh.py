"""
Ring Mesh Builder

Sweeps a ring of R + 1 vertices around every dense sample and writes
positions, corrected normals and UVs into flat pre-allocated arrays.
The index buffer (ring-to-ring quads, no caps) depends only on (S, R)
and is built once.
"""

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


def build_ring_indices(sample_count: int, ring_segments: int) -> np.ndarray:
    """
    Triangle indices for S rings of R + 1 vertices.

    Each quad (a, a+1, b, b+1), with b = a + R + 1 on the next ring,
    becomes triangles (a, b, a+1) and (b, b+1, a+1).

    Returns:
        Flat uint32 array of 6 * R * (S - 1) indices
    """
    stride = ring_segments + 1
    y = np.arange(sample_count - 1, dtype=np.uint32)[:, None]
    x = np.arange(ring_segments, dtype=np.uint32)[None, :]
    a = (y * stride + x).ravel()
    b = a + stride

    indices = np.empty((len(a), 6), dtype=np.uint32)
    indices[:, 0] = a
    indices[:, 1] = b
    indices[:, 2] = a + 1
    indices[:, 3] = b
    indices[:, 4] = b + 1
    indices[:, 5] = a + 1
    return indices.ravel()


@dataclass
class MeshBuffers:
    """
    Flat vertex attribute arrays plus the static index array.

    positions: (3V,) float32
    normals:   (3V,) float32
    uvs:       (2V,) float32, (ring angle fraction, spine fraction)
    indices:   (6 R (S - 1),) uint32
    """
    sample_count: int
    ring_segments: int
    positions: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray

    @classmethod
    def allocate(cls, sample_count: int, ring_segments: int) -> "MeshBuffers":
        """Allocate buffers for (S, R) and fill the (S, R)-only data."""
        n_vertices = sample_count * (ring_segments + 1)
        buffers = cls(
            sample_count=sample_count,
            ring_segments=ring_segments,
            positions=np.zeros(n_vertices * 3, dtype=np.float32),
            normals=np.zeros(n_vertices * 3, dtype=np.float32),
            uvs=np.zeros(n_vertices * 2, dtype=np.float32),
            indices=build_ring_indices(sample_count, ring_segments),
        )

        uv = buffers.uv_grid
        uv[:, :, 0] = (np.arange(ring_segments + 1) / ring_segments)[None, :]
        uv[:, :, 1] = (np.arange(sample_count) / max(1, sample_count - 1))[:, None]

        logger.info(f"Allocated mesh buffers: {n_vertices} vertices, {buffers.n_triangles} triangles")
        return buffers

    @property
    def n_vertices(self) -> int:
        return len(self.positions) // 3

    @property
    def n_triangles(self) -> int:
        return len(self.indices) // 3

    @property
    def position_grid(self) -> np.ndarray:
        """(S, R + 1, 3) view of ``positions``."""
        return self.positions.reshape(self.sample_count, self.ring_segments + 1, 3)

    @property
    def normal_grid(self) -> np.ndarray:
        """(S, R + 1, 3) view of ``normals``."""
        return self.normals.reshape(self.sample_count, self.ring_segments + 1, 3)

    @property
    def uv_grid(self) -> np.ndarray:
        """(S, R + 1, 2) view of ``uvs``."""
        return self.uvs.reshape(self.sample_count, self.ring_segments + 1, 2)

    @property
    def faces(self) -> np.ndarray:
        """(F, 3) view of ``indices``."""
        return self.indices.reshape(-1, 3)


class RingMeshBuilder:
    """
    Writes ring vertices for one tick into a MeshBuffers instance.

    All scratch is sized at construction; ``write`` only fills existing
    arrays.

    Args:
        sample_count: Number of dense samples S
        ring_segments: Number of ring segments R
    """

    def __init__(self, sample_count: int, ring_segments: int):
        self.sample_count = sample_count
        self.ring_segments = ring_segments

        angles = np.arange(ring_segments + 1) / ring_segments * 2.0 * np.pi
        self.ring_cos = np.cos(angles)
        self.ring_sin = np.sin(angles)
        # Close the seam exactly
        self.ring_cos[-1] = self.ring_cos[0]
        self.ring_sin[-1] = self.ring_sin[0]

        shape = (sample_count, ring_segments + 1, 3)
        self._radial = np.zeros(shape)
        self._work = np.zeros(shape)
        self._lengths = np.zeros(shape[:2])

    def write(
        self,
        buffers: MeshBuffers,
        centers: np.ndarray,
        tangents: np.ndarray,
        normals: np.ndarray,
        binormals: np.ndarray,
        radii: np.ndarray,
        slopes: np.ndarray
    ) -> None:
        """
        Fill positions and normals for every ring.

        position = c + r * (N cos(a) + B sin(a))
        normal   = normalize(radial - T * dr/dl)

        The tangential term tilts the normal by the taper of the radius.

        Args:
            buffers: Destination buffers sized for (S, R)
            centers, tangents, normals, binormals: (S, 3) frame data
            radii: (S,) ring radii
            slopes: (S,) radius change per unit length along the tangent
        """
        radial = self._radial
        work = self._work

        np.multiply(normals[:, None, :], self.ring_cos[None, :, None], out=radial)
        np.multiply(binormals[:, None, :], self.ring_sin[None, :, None], out=work)
        radial += work

        # Positions
        np.multiply(radial, radii[:, None, None], out=work)
        work += centers[:, None, :]
        buffers.position_grid[...] = work

        # Slope-corrected normals; radial is a unit vector orthogonal to T,
        # so the corrected vector is never shorter than 1
        np.multiply(tangents[:, None, :], slopes[:, None, None], out=work)
        np.subtract(radial, work, out=work)
        np.einsum('ijk,ijk->ij', work, work, out=self._lengths)
        np.sqrt(self._lengths, out=self._lengths)
        work /= self._lengths[:, :, None]
        buffers.normal_grid[...] = work
