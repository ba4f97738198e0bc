"""
Mesh operation utilities.

In-process trimesh view of the tube buffers and mesh statistics for
hosts and diagnostics.
"""

from typing import Dict, Any
import logging

import numpy as np
import trimesh

from .ring_mesh import MeshBuffers

logger = logging.getLogger(__name__)


def to_trimesh(buffers: MeshBuffers) -> trimesh.Trimesh:
    """
    Wrap the current buffers as a trimesh mesh.

    Vertices are copied; ``process=False`` keeps the duplicated seam
    vertices and the vertex order identical to the buffers.

    Args:
        buffers: Tube mesh buffers

    Returns:
        Unprocessed trimesh mesh with vertex normals attached
    """
    return trimesh.Trimesh(
        vertices=buffers.positions.reshape(-1, 3).astype(np.float64),
        faces=buffers.faces.astype(np.int64),
        vertex_normals=buffers.normals.reshape(-1, 3).astype(np.float64),
        process=False
    )


def compute_mesh_stats(buffers: MeshBuffers) -> Dict[str, Any]:
    """
    Compute mesh statistics for the current tick.

    Args:
        buffers: Tube mesh buffers

    Returns:
        Dictionary of mesh statistics
    """
    mesh = to_trimesh(buffers)
    bounds = mesh.bounds
    extents = mesh.extents

    normal_lengths = np.linalg.norm(buffers.normals.reshape(-1, 3), axis=1)
    uvs = buffers.uvs.reshape(-1, 2)

    return {
        "n_vertices": len(mesh.vertices),
        "n_faces": len(mesh.faces),
        "n_rings": buffers.sample_count,
        "ring_segments": buffers.ring_segments,
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "surface_area": float(mesh.area),
        "is_watertight": mesh.is_watertight,
        "max_normal_error": float(np.max(np.abs(normal_lengths - 1.0))),
        "uv_range": [float(uvs.min()), float(uvs.max())],
        "all_finite": bool(np.isfinite(buffers.positions).all() and np.isfinite(buffers.normals).all())
    }
