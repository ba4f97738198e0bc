"""
Tests for the teardrop radius profile.

Tests cover:
- Boundary behaviour at head and tail
- Radius floor
- Analytic derivative against finite differences
- Derivative stability for head_roundness < 1
- Peak position
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from spinetube.config import TubeConfig
from spinetube.profile import RadiusProfile


# ============== Fixtures ==============

@pytest.fixture
def profile():
    """Profile with the default fish body parameters."""
    return RadiusProfile.from_config(TubeConfig())


@pytest.fixture
def s_grid():
    return np.linspace(0.0, 1.0, 201)


# ============== Boundary Tests ==============

class TestBoundaries:
    """Radius collapses to the floor at both ends."""

    def test_head_is_floor(self, profile):
        r, _ = profile.radius(0.0)
        assert r == pytest.approx(profile.radius_floor)

    def test_tail_is_floor(self, profile):
        r, _ = profile.radius(1.0)
        assert r == pytest.approx(profile.radius_floor)

    def test_grows_away_from_head(self, profile):
        """Radius rises quickly near the head for p < 1."""
        r1, _ = profile.radius(0.01)
        r2, _ = profile.radius(0.05)
        assert profile.radius_floor < r1 < r2

    def test_sharper_tail_is_thinner(self):
        """Higher tail_sharpness gives a thinner tail."""
        soft = RadiusProfile(tail_sharpness=1.5)
        sharp = RadiusProfile(tail_sharpness=3.0)
        assert sharp.radius(0.85)[0] < soft.radius(0.85)[0]

    def test_rounder_head_is_wider(self):
        """Lower head_roundness gives a wider head."""
        round_head = RadiusProfile(head_roundness=0.4)
        pointed = RadiusProfile(head_roundness=1.2)
        assert round_head.radius(0.05)[0] > pointed.radius(0.05)[0]


# ============== Floor Tests ==============

class TestFloor:
    """Radius never drops below the configured floor."""

    def test_never_below_floor(self, profile, s_grid):
        r = np.empty_like(s_grid)
        d = np.empty_like(s_grid)
        profile.evaluate(s_grid, r, d)
        assert np.all(r >= profile.radius_floor)

    def test_floor_zeroes_derivative(self, profile):
        _, d0 = profile.radius(0.0)
        _, d1 = profile.radius(1.0)
        assert d0 == 0.0
        assert d1 == 0.0

    def test_large_floor_dominates(self):
        profile = RadiusProfile(max_radius=0.1, radius_floor=1.0)
        r, d = profile.radius(0.3)
        assert r == 1.0
        assert d == 0.0


# ============== Derivative Tests ==============

class TestDerivative:
    """Analytic derivative matches the shape function."""

    @pytest.mark.parametrize("s", [0.05, 0.2, 0.35, 0.5, 0.7, 0.9, 0.97])
    def test_matches_finite_difference(self, profile, s):
        h = 1e-6
        r_plus, _ = profile.radius(s + h)
        r_minus, _ = profile.radius(s - h)
        _, d = profile.radius(s)
        numeric = (r_plus - r_minus) / (2 * h)
        assert d == pytest.approx(numeric, rel=1e-4, abs=1e-6)

    def test_finite_near_head_for_small_p(self):
        """s^(p-1) is clamped so p < 1 stays finite next to the head."""
        profile = RadiusProfile(head_roundness=0.3, radius_floor=1e-9)
        s = np.array([0.0, 1e-12, 1e-6, 1e-3])
        r = np.empty_like(s)
        d = np.empty_like(s)
        profile.evaluate(s, r, d)
        assert np.all(np.isfinite(r))
        assert np.all(np.isfinite(d))

    def test_finite_near_tail_for_small_q(self):
        profile = RadiusProfile(tail_sharpness=0.5, radius_floor=1e-9)
        s = np.array([0.999, 1.0 - 1e-9, 1.0])
        r = np.empty_like(s)
        d = np.empty_like(s)
        profile.evaluate(s, r, d)
        assert np.all(np.isfinite(d))

    def test_sign_follows_taper(self, profile):
        """Positive before the peak, negative after."""
        assert profile.radius(0.1)[1] > 0
        assert profile.radius(0.8)[1] < 0


# ============== Peak Tests ==============

class TestPeak:
    """Maximum radius sits near p / (p + q)."""

    def test_peak_without_belly(self, s_grid):
        profile = RadiusProfile(belly_amount=0.0)
        r = np.empty_like(s_grid)
        d = np.empty_like(s_grid)
        profile.evaluate(s_grid, r, d)
        peak = s_grid[np.argmax(r)]
        assert peak == pytest.approx(profile.peak_position(), abs=0.005)

    def test_peak_with_belly_is_close(self, profile, s_grid):
        r = np.empty_like(s_grid)
        d = np.empty_like(s_grid)
        profile.evaluate(s_grid, r, d)
        peak = s_grid[np.argmax(r)]
        assert peak == pytest.approx(profile.peak_position(), abs=0.03)

    def test_peak_position_value(self, profile):
        assert profile.peak_position() == pytest.approx(0.6 / 2.7)

    def test_callable(self, profile):
        assert profile(0.3) == profile.radius(0.3)
