"""
Radius Profile

Teardrop cross-section radius along the normalized spine position
s in [0, 1] (0 = head, 1 = tail):

    r(s)  = R * s^p * (1 - s)^q * belly(s)
    belly = 1 + A * sin(pi * f * s)

The derivative is analytic (product rule). Near the ends s^(p-1) and
(1 - s)^(q-1) diverge for exponents below one, so their bases are
clamped away from 0 and 1 in the derivative only.
"""

from typing import Tuple

import numpy as np

from .config import DERIVATIVE_CLAMP, TubeConfig


class RadiusProfile:
    """
    Teardrop radius with a periodic belly modulation.

    Args:
        max_radius: Peak scale R
        head_roundness: p, lower gives a rounder head
        tail_sharpness: q, higher gives a sharper tail
        belly_amount: A
        belly_frequency: f
        radius_floor: Lower bound on the returned radius
    """

    def __init__(
        self,
        max_radius: float = 0.35,
        head_roundness: float = 0.6,
        tail_sharpness: float = 2.1,
        belly_amount: float = 0.08,
        belly_frequency: float = 0.8,
        radius_floor: float = 0.001
    ):
        self.max_radius = max_radius
        self.p = head_roundness
        self.q = tail_sharpness
        self.belly_amount = belly_amount
        self.belly_frequency = belly_frequency
        self.radius_floor = radius_floor

    @classmethod
    def from_config(cls, config: TubeConfig) -> "RadiusProfile":
        return cls(
            max_radius=config.max_radius,
            head_roundness=config.head_roundness,
            tail_sharpness=config.tail_sharpness,
            belly_amount=config.belly_amount,
            belly_frequency=config.belly_frequency,
            radius_floor=config.radius_floor,
        )

    def peak_position(self) -> float:
        """Analytic maximum of s^p (1 - s)^q, ignoring the belly term."""
        if self.p + self.q == 0:
            return 0.5
        return self.p / (self.p + self.q)

    def evaluate(self, s: np.ndarray, radius_out: np.ndarray, deriv_out: np.ndarray) -> None:
        """
        Vectorised radius and dr/ds.

        Args:
            s: (S,) positions in [0, 1]
            radius_out: (S,) destination for r(s), floored
            deriv_out: (S,) destination for dr/ds (0 where the floor is active)
        """
        s = np.clip(s, 0.0, 1.0)
        u = 1.0 - s
        phase = np.pi * self.belly_frequency
        belly = 1.0 + self.belly_amount * np.sin(phase * s)
        d_belly = self.belly_amount * phase * np.cos(phase * s)

        head = s ** self.p
        tail = u ** self.q
        np.multiply(head * tail, belly, out=radius_out)
        radius_out *= self.max_radius

        # Clamped bases keep s^(p-1) and (1-s)^(q-1) finite
        sc = np.clip(s, DERIVATIVE_CLAMP, 1.0 - DERIVATIVE_CLAMP)
        uc = 1.0 - sc
        d_head = self.p * sc ** (self.p - 1.0)
        d_tail = -self.q * uc ** (self.q - 1.0)

        deriv_out[:] = d_head * tail * belly
        deriv_out += head * d_tail * belly
        deriv_out += head * tail * d_belly
        deriv_out *= self.max_radius

        floored = radius_out < self.radius_floor
        radius_out[floored] = self.radius_floor
        deriv_out[floored] = 0.0

    def radius(self, s: float) -> Tuple[float, float]:
        """Scalar ``(r, dr/ds)`` at a single position."""
        r = np.empty(1)
        d = np.empty(1)
        self.evaluate(np.array([s], dtype=np.float64), r, d)
        return float(r[0]), float(d[0])

    def __call__(self, s: float) -> Tuple[float, float]:
        return self.radius(s)
