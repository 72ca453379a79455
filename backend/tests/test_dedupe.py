"""Tests for clip deduplication."""
import numpy as np
import pytest

from autoreel.pipeline.dedupe import dedupe_clips, enforce_clip_bounds, merge_sorted_clips
from autoreel.pipeline.peaks import Clip


@pytest.fixture
def random_clips():
    rng = np.random.default_rng(42)
    clips = []
    for _ in range(40):
        file_index = int(rng.integers(0, 3))
        start = float(rng.uniform(-2, 55))
        clips.append(Clip(file_index, start, start + float(rng.uniform(0, 12))))
    return clips


class TestMerge:

    def test_overlapping_clips_merge(self):
        clips = [Clip(0, 1, 3), Clip(0, 2, 4), Clip(0, 6, 7)]
        assert dedupe_clips(clips, min_gap_seconds=1.0) == [Clip(0, 1, 4), Clip(0, 6, 7)]

    def test_gap_equal_to_minimum_is_kept_apart(self):
        clips = [Clip(0, 0, 2), Clip(0, 3, 5)]
        assert dedupe_clips(clips) == clips

    def test_near_adjacent_clips_merge(self):
        assert dedupe_clips([Clip(0, 0, 2), Clip(0, 2.9, 5)]) == [Clip(0, 0, 5)]

    def test_contained_clip_keeps_outer_end(self):
        assert dedupe_clips([Clip(0, 0, 10), Clip(0, 2, 3)]) == [Clip(0, 0, 10)]

    def test_different_files_never_merge(self):
        clips = [Clip(1, 1.5, 4), Clip(0, 1, 3)]
        assert dedupe_clips(clips) == [Clip(0, 1, 3), Clip(1, 1.5, 4)]

    def test_sorted_by_file_then_start(self, random_clips):
        result = dedupe_clips(random_clips)
        keys = [(c.file_index, c.start) for c in result]
        assert keys == sorted(keys)

    def test_input_not_mutated(self):
        clips = [Clip(0, 2, 4), Clip(0, 1, 3)]
        dedupe_clips(clips)
        assert clips == [Clip(0, 2, 4), Clip(0, 1, 3)]

    def test_merge_sorted_clips_empty(self):
        assert merge_sorted_clips([]) == []


class TestBounds:

    def test_negative_start_clamped(self):
        assert enforce_clip_bounds(Clip(0, -1, 2)) == Clip(0, 0, 2)

    def test_short_clip_extended(self):
        assert enforce_clip_bounds(Clip(0, 1, 1.2)) == Clip(0, 1, 1.5)

    def test_end_clamped_to_duration_and_start_pulled_back(self):
        assert enforce_clip_bounds(Clip(0, 9.8, 12), duration=10.0) == Clip(0, 9.5, 10.0)

    def test_file_shorter_than_minimum(self):
        assert enforce_clip_bounds(Clip(0, 0.1, 2), duration=0.3) == Clip(0, 0.0, 0.3)

    def test_every_clip_within_file(self, random_clips):
        durations = [30.0, 45.0, 60.0]
        for clip in dedupe_clips(random_clips, durations=durations):
            assert 0 <= clip.start < clip.end <= durations[clip.file_index]
            assert clip.end - clip.start >= 0.5


class TestIdempotence:

    def test_dedupe_twice_is_dedupe_once(self, random_clips):
        once = dedupe_clips(random_clips)
        assert dedupe_clips(once) == once

    def test_idempotent_with_durations(self, random_clips):
        durations = [30.0, 45.0, 60.0]
        once = dedupe_clips(random_clips, durations=durations)
        assert dedupe_clips(once, durations=durations) == once
