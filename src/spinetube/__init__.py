"""
Spine Tube - procedural tube mesh around a moving centerline.

Turns a sparse, continuously moving sequence of 3D control points into a
smooth tapered tube, regenerated in place every tick:

- Curve Sampler: centripetal Catmull-Rom through ghosted control points
- Frame Propagator: minimal-twist frames with a blended reference axis
- Radius Profile: teardrop radius with analytic derivative
- Ring Mesh Builder: rings with slope-corrected normals, static indices
- Attachment Exporter: double-buffered sparse frames for fins

Usage:
    generator = TubeGenerator(TubeConfig())
    buffers = generator.update(points, head_position, head_direction)
"""

__version__ = "1.0.0"

from .config import TubeConfig, DEFAULT_CONFIG
from .centerline import CenterlineStore
from .curve import CatmullRomSampler, build_ghosted_points
from .frames import compute_tangents, propagate_frames, reference_normal, check_orthonormal
from .profile import RadiusProfile
from .ring_mesh import MeshBuffers, RingMeshBuilder, build_ring_indices
from .attachments import AttachmentExporter, AttachmentFrames
from .generator import TubeGenerator, TubeWorkspace, DenseSamples
from .mesh_ops import to_trimesh, compute_mesh_stats

__all__ = [
    'TubeConfig', 'DEFAULT_CONFIG',
    'CenterlineStore',
    'CatmullRomSampler', 'build_ghosted_points',
    'compute_tangents', 'propagate_frames', 'reference_normal', 'check_orthonormal',
    'RadiusProfile',
    'MeshBuffers', 'RingMeshBuilder', 'build_ring_indices',
    'AttachmentExporter', 'AttachmentFrames',
    'TubeGenerator', 'TubeWorkspace', 'DenseSamples',
    'to_trimesh', 'compute_mesh_stats',
]
