"""
Tests for tube configuration.
"""

import json

import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from spinetube.config import DEFAULT_CONFIG, TubeConfig


class TestDefaults:

    def test_default_values(self):
        config = TubeConfig()
        assert config.sample_count_per_segment == 8
        assert config.ring_segment_count == 32
        assert config.temporal_smoothing is None
        config.validate()

    def test_module_default(self):
        assert DEFAULT_CONFIG == TubeConfig()


class TestCounts:
    """Topology derived from the control point count."""

    @pytest.mark.parametrize("n_points,expected", [(0, 9), (1, 17), (10, 89)])
    def test_sample_count(self, n_points, expected):
        assert TubeConfig().sample_count(n_points) == expected

    def test_vertex_and_triangle_counts(self):
        config = TubeConfig(sample_count_per_segment=4, ring_segment_count=6)
        S = config.sample_count(3)
        assert S == 17
        assert config.vertex_count(3) == 17 * 7
        assert config.triangle_count(3) == 2 * 6 * 16


class TestValidate:

    @pytest.mark.parametrize("overrides", [
        {"sample_count_per_segment": 0},
        {"ring_segment_count": 2},
        {"max_radius": 0.0},
        {"radius_floor": 0.0},
        {"head_roundness": -0.1},
        {"tail_sharpness": -1.0},
        {"attachment_step": 0},
        {"temporal_smoothing": 0.0},
        {"temporal_smoothing": 1.5},
    ])
    def test_rejects(self, overrides):
        with pytest.raises(ValueError):
            TubeConfig(**overrides).validate()

    def test_accepts_smoothing(self):
        TubeConfig(temporal_smoothing=0.35).validate()


class TestSerialization:

    def test_round_trip(self, tmp_path):
        config = TubeConfig(ring_segment_count=12, belly_amount=0.0, temporal_smoothing=0.5)
        path = tmp_path / "nested" / "tube.json"
        config.save(path)

        assert TubeConfig.from_json(path) == config

    def test_from_json_validates(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"ring_segment_count": 1}))

        with pytest.raises(ValueError):
            TubeConfig.from_json(path)

    def test_to_dict(self):
        data = TubeConfig().to_dict()
        assert data["max_radius"] == 0.35
        assert TubeConfig.from_dict(data) == TubeConfig()
