"""
Configuration and constants for tube mesh generation.

Topology Model:
- Ring/segment counts are configuration, not runtime, parameters
- S = sample_count_per_segment * (N + 1) + 1 dense samples per tick
- V = S * (R + 1) vertices (seam vertex duplicated for UVs)
- 2 * R * (S - 1) triangles, ring-to-ring quads only, no caps
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any
import json
from pathlib import Path

import numpy as np


# Frame reference axes
PRIMARY_UP = np.array([0.0, 1.0, 0.0])
SECONDARY_UP = np.array([1.0, 0.0, 0.0])
FALLBACK_AXIS = np.array([0.0, 0.0, 1.0])

# Band on |tangent . PRIMARY_UP| over which the reference axis blends
UP_BLEND_START = 0.7
UP_BLEND_END = 0.98

# Below this length a vector is treated as degenerate
DEGENERATE_EPS = 1e-5

# Offset used for ghost points when the boundary points coincide
GHOST_EPS = 1e-3

# Power-term bases in the radius derivative are kept inside [eps, 1 - eps]
DERIVATIVE_CLAMP = 1e-4

# Centripetal Catmull-Rom knot distances below this fall back to a neighbour
KNOT_EPS = 1e-4


@dataclass
class TubeConfig:
    """
    Configuration for the spine tube kernel.

    Counts fix the buffer sizes; the remaining fields shape the
    teardrop radius profile:

        r(s) = max_radius * s^p * (1 - s)^q * (1 + belly_amount * sin(pi * s * belly_frequency))

    with p = head_roundness (lower = rounder head) and
    q = tail_sharpness (higher = sharper tail).
    """

    sample_count_per_segment: int = 8
    ring_segment_count: int = 32

    max_radius: float = 0.35
    head_roundness: float = 0.6
    tail_sharpness: float = 2.1
    belly_amount: float = 0.08
    belly_frequency: float = 0.8
    radius_floor: float = 0.001

    # Every k-th dense sample is exported for attachments (fins)
    attachment_step: int = 4

    # Blend factor toward the current tick (None disables smoothing)
    temporal_smoothing: Optional[float] = None

    def validate(self) -> None:
        """Raise ValueError if the configuration cannot size a mesh."""
        if self.sample_count_per_segment < 1:
            raise ValueError(f"sample_count_per_segment must be >= 1, got {self.sample_count_per_segment}")
        if self.ring_segment_count < 3:
            raise ValueError(f"ring_segment_count must be >= 3, got {self.ring_segment_count}")
        if self.max_radius <= 0:
            raise ValueError(f"max_radius must be positive, got {self.max_radius}")
        if self.radius_floor <= 0:
            raise ValueError(f"radius_floor must be positive, got {self.radius_floor}")
        if self.head_roundness < 0 or self.tail_sharpness < 0:
            raise ValueError(
                f"profile exponents must be non-negative, got p={self.head_roundness}, q={self.tail_sharpness}"
            )
        if self.attachment_step < 1:
            raise ValueError(f"attachment_step must be >= 1, got {self.attachment_step}")
        if self.temporal_smoothing is not None and not (0.0 < self.temporal_smoothing <= 1.0):
            raise ValueError(f"temporal_smoothing must be in (0, 1], got {self.temporal_smoothing}")

    def sample_count(self, n_points: int) -> int:
        """Dense sample count S for N control points."""
        effective_segments = max(1, n_points + 1)
        return max(2, effective_segments * self.sample_count_per_segment + 1)

    def vertex_count(self, n_points: int) -> int:
        return self.sample_count(n_points) * (self.ring_segment_count + 1)

    def triangle_count(self, n_points: int) -> int:
        return 2 * self.ring_segment_count * (self.sample_count(n_points) - 1)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TubeConfig":
        return cls(**data)

    @classmethod
    def from_json(cls, path: Path) -> "TubeConfig":
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        config = cls.from_dict(data)
        config.validate()
        return config

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = TubeConfig()
