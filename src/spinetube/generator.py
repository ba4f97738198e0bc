"""
Tube Generator

High-level per-tick API: control points in, mesh buffers out.

    ghost points -> dense curve samples -> minimal-twist frames
    -> radius slopes -> ring vertices -> attachment export

All scratch lives in a TubeWorkspace sized once per (N, S, R). A change
in the number of control points re-sizes the workspace exactly once;
every other tick only writes into existing arrays. The radius profile
depends only on the fixed sample parameters and is evaluated when the
workspace is sized. The first frame of each tick is transported from
the previous tick, so the ring orientation does not jump when the
spine turns through the up axis.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .attachments import AttachmentExporter, AttachmentFrames
from .config import DEGENERATE_EPS, TubeConfig
from .curve import CatmullRomSampler, build_ghosted_points
from .frames import compute_tangents, propagate_frames, reorthonormalize
from .profile import RadiusProfile
from .ring_mesh import MeshBuffers, RingMeshBuilder

logger = logging.getLogger(__name__)


@dataclass
class DenseSamples:
    """Read-only view of the per-sample data of the last tick."""
    positions: np.ndarray           # (S, 3)
    tangents: np.ndarray            # (S, 3)
    normals: np.ndarray             # (S, 3)
    binormals: np.ndarray           # (S, 3)
    radii: np.ndarray               # (S,)
    radius_derivatives: np.ndarray  # (S,) dr/ds
    spine_t: np.ndarray             # (S,) normalized position s

    def __len__(self) -> int:
        return len(self.radii)


class TubeWorkspace:
    """
    Every array the kernel touches during a tick, sized for one
    (control point count, S, R) combination.
    """

    def __init__(self, n_points: int, config: TubeConfig, export_attachments: bool = False):
        self.n_points = n_points
        self.sample_count = config.sample_count(n_points)
        self.ring_segments = config.ring_segment_count
        S = self.sample_count

        self.ghosted = np.zeros((n_points + 3, 3))
        self.centers = np.zeros((S, 3))
        self.tangents = np.zeros((S, 3))
        self.normals = np.zeros((S, 3))
        self.binormals = np.zeros((S, 3))
        self.spans = np.zeros(S)
        self.arc_rate = np.zeros(S)
        self.radii = np.zeros(S)
        self.radius_derivatives = np.zeros(S)
        self.slopes = np.zeros(S)
        self.spine_t = np.arange(S) / max(1, S - 1)
        self.frame_work = np.zeros((S, 3))
        self.frame_dots = np.zeros(S)

        # First frame of the previous tick, transported into the next one
        self.seed_normal = np.zeros(3)
        self.seed_binormal = np.zeros(3)
        self.has_seed = False

        # Temporal smoothing history
        self.prev_centers = np.zeros((S, 3))
        self.prev_normals = np.zeros((S, 3))
        self.prev_binormals = np.zeros((S, 3))
        self.has_history = False

        self.sampler = CatmullRomSampler(n_points + 3, S)
        self.builder = RingMeshBuilder(S, self.ring_segments)
        self.buffers = MeshBuffers.allocate(S, self.ring_segments)
        self.exporter = (
            AttachmentExporter(S, config.attachment_step) if export_attachments else None
        )

    def samples(self) -> DenseSamples:
        return DenseSamples(
            positions=self.centers,
            tangents=self.tangents,
            normals=self.normals,
            binormals=self.binormals,
            radii=self.radii,
            radius_derivatives=self.radius_derivatives,
            spine_t=self.spine_t,
        )


class TubeGenerator:
    """
    Regenerates a tapered tube around a moving centerline every tick.

    Args:
        config: Topology and profile configuration (validated here)
        export_attachments: Whether to publish sparse attachment frames
    """

    def __init__(self, config: Optional[TubeConfig] = None, export_attachments: bool = False):
        self.config = config or TubeConfig()
        self.config.validate()
        self.export_attachments = export_attachments
        self.profile = RadiusProfile.from_config(self.config)
        self.workspace: Optional[TubeWorkspace] = None
        self.ticks = 0

    @property
    def buffers(self) -> Optional[MeshBuffers]:
        return self.workspace.buffers if self.workspace else None

    @property
    def samples(self) -> Optional[DenseSamples]:
        return self.workspace.samples() if self.workspace else None

    @property
    def attachments(self) -> Optional[AttachmentFrames]:
        """Currently published attachment frames (None if disabled or before the first tick)."""
        if self.workspace is None or self.workspace.exporter is None:
            return None
        return self.workspace.exporter.published

    def reset(self) -> None:
        """Forget temporal smoothing history and the carried first frame."""
        if self.workspace is not None:
            self.workspace.has_history = False
            self.workspace.has_seed = False

    def _ensure_workspace(self, n_points: int) -> TubeWorkspace:
        ws = self.workspace
        if ws is not None and ws.n_points == n_points:
            return ws

        if ws is None:
            logger.info(f"Sizing workspace for {n_points} control points")
        else:
            logger.info(f"Control point count changed {ws.n_points} -> {n_points}, re-allocating workspace")
        ws = TubeWorkspace(n_points, self.config, self.export_attachments)
        # The radius only depends on spine_t, which is fixed per workspace
        self.profile.evaluate(ws.spine_t, ws.radii, ws.radius_derivatives)
        self.workspace = ws
        return ws

    def update(
        self,
        control_points: Sequence,
        head_position: Sequence[float],
        head_direction: Sequence[float]
    ) -> MeshBuffers:
        """
        Run one tick.

        Args:
            control_points: (N, 3) spine points behind the head, N >= 0
            head_position: Leading anchor, not part of ``control_points``
            head_direction: Swim direction of the head

        Returns:
            MeshBuffers valid until the next call
        """
        points = np.asarray(control_points, dtype=np.float64)
        if points.size == 0:
            points = points.reshape(0, 3)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"control_points must be (N, 3), got {points.shape}")
        head = np.asarray(head_position, dtype=np.float64)
        direction = np.asarray(head_direction, dtype=np.float64)
        if head.shape != (3,) or direction.shape != (3,):
            raise ValueError(
                f"head_position and head_direction must be 3-vectors, got {head.shape} and {direction.shape}"
            )

        ws = self._ensure_workspace(len(points))
        alpha = self.config.temporal_smoothing
        smoothing = alpha is not None and ws.has_history

        # Curve
        build_ghosted_points(points, head, direction, out=ws.ghosted)
        ws.sampler.sample(ws.ghosted, ws.centers)
        if smoothing:
            ws.centers -= ws.prev_centers
            ws.centers *= alpha
            ws.centers += ws.prev_centers

        # Frames
        compute_tangents(ws.centers, ws.tangents, ws.spans)
        if ws.has_seed:
            propagate_frames(
                ws.tangents, ws.normals, ws.binormals,
                initial_normal=ws.seed_normal,
                initial_binormal=ws.seed_binormal,
            )
        else:
            propagate_frames(ws.tangents, ws.normals, ws.binormals)
        if smoothing:
            for cur, prev in ((ws.normals, ws.prev_normals), (ws.binormals, ws.prev_binormals)):
                cur -= prev
                cur *= alpha
                cur += prev
            reorthonormalize(ws.tangents, ws.normals, ws.binormals, ws.frame_work, ws.frame_dots)

        # dr/dl = (dr/ds) / (dl/ds)
        np.multiply(ws.spans, ws.sample_count - 1, out=ws.arc_rate)
        np.maximum(ws.arc_rate, DEGENERATE_EPS, out=ws.arc_rate)
        np.divide(ws.radius_derivatives, ws.arc_rate, out=ws.slopes)

        # Rings
        ws.builder.write(
            ws.buffers,
            ws.centers,
            ws.tangents,
            ws.normals,
            ws.binormals,
            ws.radii,
            ws.slopes,
        )

        if ws.exporter is not None:
            ws.exporter.publish(ws.centers, ws.normals, ws.binormals, ws.tangents, ws.radii)

        ws.seed_normal[...] = ws.normals[0]
        ws.seed_binormal[...] = ws.binormals[0]
        ws.has_seed = True

        if alpha is not None:
            ws.prev_centers[...] = ws.centers
            ws.prev_normals[...] = ws.normals
            ws.prev_binormals[...] = ws.binormals
            ws.has_history = True

        self.ticks += 1
        return ws.buffers


if __name__ == "__main__":
    from .centerline import CenterlineStore
    from .mesh_ops import compute_mesh_stats

    logging.basicConfig(level=logging.INFO)

    spine = CenterlineStore.create(segments=12, spacing=0.08)
    generator = TubeGenerator(export_attachments=True)

    head = np.zeros(3)
    for tick in range(240):
        angle = tick * 0.02
        direction = np.array([np.cos(angle), 0.2 * np.sin(3 * angle), np.sin(angle)])
        direction /= np.linalg.norm(direction)
        head += direction * 0.01
        spine.follow(head, direction, wave_offset=lambda i: 0.02 * np.sin(tick * 0.2 - i * 0.6))
        generator.update(spine.points, head, direction)

    print(f"Ticks: {generator.ticks}")
    print(f"Mesh stats: {compute_mesh_stats(generator.buffers)}")
    print(f"Attachment frames: {len(generator.attachments)}")
