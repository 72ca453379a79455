"""Tests for the interest curve builder."""
import numpy as np
import pytest

from autoreel.pipeline.config import PipelineConfig
from autoreel.pipeline.interest import (
    AudioSamples,
    build_interest_curve,
    compute_rms,
    concatenate_curves,
    moving_average,
    resample_linear,
)


# =============================================================================
# Resampling
# =============================================================================

class TestResampleLinear:
    """Tests for linear resampling."""

    def test_same_rate_is_passthrough(self):
        samples = np.array([0.1, 0.2, 0.3], dtype=np.float32)
        assert np.array_equal(resample_linear(samples, 16000, 16000), samples)

    def test_downsample_length_and_values(self):
        """48k -> 16k keeps every third sample of a ramp."""
        samples = np.arange(6, dtype=np.float32)
        result = resample_linear(samples, 48000, 16000)
        assert np.allclose(result, [0.0, 3.0])

    def test_upsample_interpolates_and_holds_last(self):
        """The sample past the end equals the last sample."""
        result = resample_linear(np.array([0.0, 1.0]), 8000, 16000)
        assert np.allclose(result, [0.0, 0.5, 1.0, 1.0])

    def test_one_second_keeps_duration(self):
        samples = np.zeros(48000, dtype=np.float32)
        assert len(resample_linear(samples, 48000, 16000)) == 16000

    def test_empty_input(self):
        assert len(resample_linear(np.zeros(0), 44100, 16000)) == 0


# =============================================================================
# RMS
# =============================================================================

class TestComputeRms:
    """Tests for hop-wise RMS."""

    def test_constant_signal(self):
        rms = compute_rms(np.full(16000, 0.5), 1600, 1600)
        assert len(rms) == 10
        assert np.allclose(rms, 0.5)

    def test_trailing_partial_window_discarded(self):
        assert len(compute_rms(np.zeros(17599), 1600, 1600)) == 10
        assert len(compute_rms(np.zeros(17600), 1600, 1600)) == 11

    def test_shorter_than_window(self):
        assert len(compute_rms(np.zeros(100), 1600, 1600)) == 0

    def test_sign_does_not_matter(self):
        samples = np.tile([0.5, -0.5], 800)
        assert np.allclose(compute_rms(samples, 1600, 1600), [0.5])

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            compute_rms(np.zeros(10), 0, 1)


# =============================================================================
# Moving Average
# =============================================================================

class TestMovingAverage:
    """Tests for the trailing moving average."""

    def test_length_preserved(self):
        values = np.random.default_rng(0).random(37)
        assert len(moving_average(values, 5)) == len(values)

    def test_start_averages_samples_seen_so_far(self):
        """For i < k-1 the output is the mean of values[0..i]."""
        result = moving_average([1, 2, 3, 4, 5, 6], k=5)
        assert np.allclose(result, [1.0, 1.5, 2.0, 2.5, 3.0, 4.0])

    def test_matches_reference_definition(self):
        values = np.random.default_rng(1).random(50)
        k = 5
        expected = [np.mean(values[max(0, i - k + 1):i + 1]) for i in range(len(values))]
        assert np.allclose(moving_average(values, k), expected)

    def test_empty(self):
        assert len(moving_average([], 5)) == 0

    def test_window_one_is_identity(self):
        assert np.allclose(moving_average([3, 1, 2], 1), [3, 1, 2])


# =============================================================================
# Curve Building
# =============================================================================

class TestBuildInterestCurve:
    """Tests for per-file curves and concatenation."""

    def test_ten_points_per_second(self):
        audio = AudioSamples(samples=np.full(48000 * 2, 0.5, dtype=np.float32), sample_rate=48000)
        curve = build_interest_curve(audio)
        assert len(curve) == 20
        assert np.allclose(curve, 0.5, atol=1e-6)

    def test_burst_spreads_over_smoothing_window(self):
        samples = np.zeros(16000 * 2, dtype=np.float32)
        samples[16000:16000 + 1600] = 1.0
        curve = build_interest_curve(AudioSamples(samples=samples, sample_rate=16000))
        assert np.allclose(curve[10:15], 0.2)
        assert curve[9] == 0.0
        assert curve[15] == 0.0

    def test_custom_smoothing_window(self):
        samples = np.zeros(16000, dtype=np.float32)
        samples[:1600] = 1.0
        config = PipelineConfig(smoothing_window=1)
        curve = build_interest_curve(AudioSamples(samples=samples, sample_rate=16000), config)
        assert curve[0] == pytest.approx(1.0)
        assert curve[1] == 0.0

    def test_concatenate_records_offsets(self):
        curve = concatenate_curves([np.array([1.0, 2.0, 3.0]), np.array([4.0, 5.0])])
        assert len(curve) == 5
        assert curve.curve_offsets == [0, 3]
        assert curve.file_lengths == [3, 2]
        assert np.array_equal(curve.file_curve(1), [4.0, 5.0])
        assert curve.index_to_seconds(3) == pytest.approx(0.3)

    def test_concatenate_nothing(self):
        curve = concatenate_curves([])
        assert len(curve) == 0
        assert curve.to_dict()["values"] == []
