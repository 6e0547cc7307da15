"""
Detection Module Tests

Tests for the spike state machine and the analysis pipeline statuses.
"""

import numpy as np
import pytest

from excitement import detection, synthetic
from excitement.params import DEFAULT_CONFIG, DetectorConfig, ThresholdParams, get_preset

# Baseline 1.0 and ratio 2.0 give a threshold of 2.0 for hand-built sequences
STEP = 0.5
BASELINE = 1.0
RATIO = 2.0


def detect(values, min_duration=1.0, track_duration=None, peak_tracking=True):
    values = np.asarray(values, dtype=np.float64)
    if track_duration is None:
        track_duration = (len(values) + 1) * STEP
    return detection.detect_candidates(
        values, BASELINE, RATIO, min_duration, STEP, track_duration,
        peak_tracking=peak_tracking,
    )


class TestDetectCandidates:
    """Tests for detect_candidates."""

    def test_single_span(self):
        """Test one span opens at the first loud window and closes at the first quiet one."""
        candidates = detect([1, 1, 3, 3, 3, 1, 1])
        assert len(candidates) == 1
        c = candidates[0]
        assert c['start_time'] == pytest.approx(1.0)
        assert c['end_time'] == pytest.approx(2.5)
        assert c['duration'] == pytest.approx(1.5)
        assert c['score'] == pytest.approx(3.0)
        assert (c['start_window'], c['end_window']) == (2, 5)

    def test_quiet_sequence(self):
        """Test no windows above threshold gives no candidates."""
        assert detect([1.0] * 20) == []

    def test_threshold_is_strict(self):
        """Test a window exactly at threshold does not trigger."""
        assert detect([1, 2, 2, 2, 2, 1]) == []

    def test_window_at_threshold_closes_span(self):
        """Test the first window at or below threshold ends the span."""
        candidates = detect([1, 3, 3, 3, 2, 3, 1], min_duration=0.0)
        assert [(c['start_time'], c['end_time']) for c in candidates] == [
            (pytest.approx(0.5), pytest.approx(2.0)),
            (pytest.approx(2.5), pytest.approx(3.0)),
        ]

    def test_peak_tracking(self):
        """Test score is the peak ratio inside the span."""
        candidates = detect([1, 2.5, 4.0, 2.1, 1, 1])
        assert candidates[0]['score'] == pytest.approx(4.0)

    def test_without_peak_tracking(self):
        """Test score falls back to the last window above threshold."""
        candidates = detect([1, 2.5, 4.0, 2.1, 1, 1], peak_tracking=False)
        assert candidates[0]['score'] == pytest.approx(2.1)

    def test_short_span_discarded(self):
        """Test spans shorter than the minimum duration are dropped silently."""
        assert detect([1, 3, 1, 1, 1]) == []

    def test_min_duration_inclusive(self):
        """Test a span of exactly the minimum duration is kept."""
        candidates = detect([1, 3, 3, 1, 1])
        assert len(candidates) == 1
        assert candidates[0]['duration'] == pytest.approx(1.0)

    def test_zero_min_duration_keeps_single_window(self):
        candidates = detect([1, 3, 1], min_duration=0.0)
        assert len(candidates) == 1
        assert candidates[0]['duration'] == pytest.approx(0.5)

    def test_span_running_to_end(self):
        """Test an open span closes at the track duration."""
        candidates = detect([1, 1, 1, 3, 3, 3], track_duration=3.2)
        assert len(candidates) == 1
        assert candidates[0]['start_time'] == pytest.approx(1.5)
        assert candidates[0]['end_time'] == pytest.approx(3.2)
        assert candidates[0]['end_window'] == 6

    def test_short_span_at_end_discarded(self):
        """Test the end-of-track span obeys the minimum duration."""
        assert detect([1, 1, 1, 1, 1, 3], track_duration=3.0) == []

    def test_multiple_spans_in_order(self):
        """Test candidates come out in start_time order and never overlap."""
        values = [1, 3, 3, 3, 1, 1, 4, 4, 4, 1, 1, 5, 5, 5, 1]
        candidates = detect(values)
        starts = [c['start_time'] for c in candidates]
        assert starts == sorted(starts)
        assert len(candidates) == 3
        for prev, nxt in zip(candidates, candidates[1:]):
            assert prev['end_time'] <= nxt['start_time']

    def test_all_candidates_valid(self):
        """Test every candidate has positive length and score."""
        rng = np.random.default_rng(3)
        values = rng.uniform(0.5, 4.0, 500)
        for c in detect(values, min_duration=0.5):
            assert c['end_time'] > c['start_time']
            assert c['score'] > 0
            assert c['duration'] >= 0.5

    def test_degenerate_baseline_rejected(self):
        with pytest.raises(ValueError):
            detection.detect_candidates(np.ones(20), 0.0, 2.0, 1.0, 0.5, 10.0)


class TestAnalyzeSamples:
    """Tests for analyze_samples statuses and result shape."""

    def test_insufficient_data(self):
        """Test fewer than ten windows is reported, not raised."""
        audio = synthetic.generate_square_tone(3.0, sr=44100)
        result = detection.analyze_samples(audio, 44100)
        assert result['status'] == detection.STATUS_INSUFFICIENT_DATA
        assert "insufficient audio data" in result['message']
        assert result['markers'] == []
        assert result['baseline'] is None
        assert len(result['loudness']) == 5

    def test_silent_track(self):
        """Test an all-zero track reports a degenerate baseline."""
        audio = synthetic.generate_silence(10.0, sr=44100)
        result = detection.analyze_samples(audio, 44100)
        assert result['status'] == detection.STATUS_SILENT
        assert result['markers'] == []
        assert result['baseline'] == 0.0
        assert result['threshold'] is None

    def test_steady_track_has_no_excitement(self):
        """Test a track with no spikes is a successful empty result."""
        audio = synthetic.generate_square_tone(15.0, sr=8000)
        result = detection.analyze_samples(audio, 8000)
        assert result['status'] == detection.STATUS_NO_EXCITEMENT
        assert result['markers'] == []
        assert result['threshold'] == pytest.approx(0.2)

    def test_spike_found(self):
        audio, _ = synthetic.generate_spike_track(duration=20.0, sr=8000)
        result = detection.analyze_samples(audio, 8000)
        assert result['status'] == detection.STATUS_OK
        assert len(result['markers']) == 1
        assert len(result['candidates']) == 1

    def test_window_follows_sample_rate(self):
        """Test the grid is resolved against the buffer's own sample rate."""
        audio = synthetic.generate_square_tone(12.0, sr=48000)
        result = detection.analyze_samples(audio, 48000)
        assert result['grid'].window_size == 48000
        assert result['grid'].step_size == 24000
        assert result['grid'].step_duration_sec == 0.5

    def test_window_times_match_loudness(self):
        audio = synthetic.generate_square_tone(12.0, sr=8000)
        result = detection.analyze_samples(audio, 8000)
        assert len(result['window_times']) == len(result['loudness'])
        assert result['window_times'][1] == pytest.approx(0.5)

    def test_duration(self):
        audio = synthetic.generate_square_tone(12.5, sr=8000)
        result = detection.analyze_samples(audio, 8000)
        assert result['duration'] == pytest.approx(12.5)

    def test_input_not_mutated(self):
        audio, _ = synthetic.generate_spike_track(duration=20.0, sr=8000)
        original = audio.copy()
        detection.analyze_samples(audio, 8000)
        np.testing.assert_array_equal(audio, original)

    def test_params_recorded(self):
        audio = synthetic.generate_square_tone(12.0, sr=8000)
        result = detection.analyze_samples(audio, 8000, get_preset('extended'))
        assert result['params']['extension_enabled'] is True

    def test_invalid_config_raises(self):
        """Test configuration errors are raised before analysis."""
        cfg = DetectorConfig(threshold=ThresholdParams(threshold_ratio=0.0))
        with pytest.raises(ValueError):
            detection.analyze_samples(np.zeros(1000), 1000, cfg)

    def test_invalid_sample_rate_raises(self):
        with pytest.raises(ValueError):
            detection.analyze_samples(np.zeros(1000), 0, DEFAULT_CONFIG)

    def test_empty_buffer(self):
        """Test an empty buffer is insufficient data, not a crash."""
        result = detection.analyze_samples(np.array([]), 44100)
        assert result['status'] == detection.STATUS_INSUFFICIENT_DATA
        assert len(result['loudness']) == 0
