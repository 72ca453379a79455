"""Tests for scene segmentation."""
import numpy as np
import pytest

from autoreel.pipeline.config import PipelineConfig
from autoreel.pipeline.scenes import (
    build_file_timelines,
    detect_scene_cuts,
    frame_difference,
    sample_timestamps,
    working_surface_size,
)


def solid(value, alpha=255, shape=(18, 32)):
    frame = np.zeros(shape + (4,), dtype=np.uint8)
    frame[..., :3] = value
    frame[..., 3] = alpha
    return frame


class TestWorkingSurface:

    def test_landscape(self):
        assert working_surface_size(1920, 1080) == (320, 180)

    def test_portrait(self):
        assert working_surface_size(1080, 1920) == (320, 569)

    def test_minimum_height(self):
        assert working_surface_size(640, 240) == (320, 180)

    def test_unknown_size(self):
        assert working_surface_size(0, 0) == (320, 180)


class TestSampleTimestamps:

    def test_short_file_one_second_step(self):
        assert sample_timestamps(10.0) == [float(t) for t in range(10)]

    def test_long_file_capped_near_max_samples(self):
        timestamps = sample_timestamps(600.0, 120)
        assert len(timestamps) == 120
        assert timestamps[1] - timestamps[0] == 5.0

    def test_zero_duration(self):
        assert sample_timestamps(0.0) == []


class TestFrameDifference:

    def test_identical_frames(self):
        assert frame_difference(solid(100), solid(100)) == 0.0

    def test_black_to_white(self):
        assert frame_difference(solid(255), solid(0)) == pytest.approx(1.0)

    def test_alpha_ignored(self):
        assert frame_difference(solid(50, alpha=0), solid(50, alpha=255)) == 0.0

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            frame_difference(solid(0, shape=(2, 2)), solid(0, shape=(4, 4)))


class TestDetectSceneCuts:

    def test_single_hard_cut(self):
        cuts = detect_scene_cuts(lambda t: solid(0 if t < 5 else 255), 10.0)
        assert cuts == [0.0, 5.0, 10.0]

    def test_static_video_has_only_endpoints(self):
        cuts = detect_scene_cuts(lambda t: solid(90), 30.0)
        assert cuts == [0.0, 30.0]

    def test_small_change_below_threshold(self):
        cuts = detect_scene_cuts(lambda t: solid(100 if t < 3 else 120), 6.0)
        assert cuts == [0.0, 6.0]

    def test_threshold_from_config(self):
        config = PipelineConfig(scene_threshold=0.05)
        cuts = detect_scene_cuts(lambda t: solid(100 if t < 3 else 120), 6.0, config)
        assert cuts == [0.0, 3.0, 6.0]

    def test_cuts_are_ascending(self):
        cuts = detect_scene_cuts(lambda t: solid(255 * (int(t) % 2)), 8.0)
        assert cuts == sorted(cuts)
        assert cuts[0] == 0.0 and cuts[-1] == 8.0

    def test_samples_at_most_max_samples(self):
        seen = []

        def sampler(t):
            seen.append(t)
            return solid(0)

        detect_scene_cuts(sampler, 3600.0)
        assert len(seen) <= 120


class TestFileTimelines:

    def test_cumulative_offsets(self):
        timelines = build_file_timelines([10.0, 15.0, 5.0], [[0, 10], [0, 15], [0, 5]])
        assert [t.global_offset_seconds for t in timelines] == [0.0, 10.0, 25.0]
        assert timelines[2].global_end_seconds == 30.0

    def test_contains_is_half_open(self):
        first, second = build_file_timelines([10.0, 15.0], [[0, 10], [0, 15]])
        assert first.contains(0.0)
        assert not first.contains(10.0)
        assert second.contains(10.0)
        assert not second.contains(25.0)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            build_file_timelines([10.0], [])
