"""
Synthetic Audio Test Suite

End-to-end tests using generated audio with known ground truth.
No external audio files required.
"""

import pytest
import numpy as np

from excitement import detection, synthetic
from excitement.params import DEFAULT_CONFIG, get_preset, with_overrides


def check_marker_invariants(result, min_duration_sec):
    """Properties every analysis result must satisfy."""
    markers = result['markers']
    for marker in markers:
        assert marker['end_time'] > marker['start_time']
        assert marker['score'] > 0
        assert marker['start_time'] >= 0
        assert marker['end_time'] <= result['duration'] + 1e-6
        assert marker['duration'] >= min_duration_sec - 1e-9
        assert marker['label'].startswith("Excitement (")

    for prev, nxt in zip(markers, markers[1:]):
        assert prev['start_time'] <= nxt['start_time']
        assert prev['end_time'] <= nxt['start_time']


# =============================================================================
# GENERATOR TESTS
# =============================================================================

def test_square_tone_rms():
    """Test the square tone has RMS equal to its amplitude."""
    audio = synthetic.generate_square_tone(1.0, sr=1000, amplitude=0.3)
    assert len(audio) == 1000
    assert np.sqrt(np.mean(audio ** 2)) == pytest.approx(0.3)


def test_spike_track_ground_truth():
    """Test the spike is placed where the ground truth says."""
    sr = 1000
    audio, (start, end, ratio) = synthetic.generate_spike_track(duration=20, sr=sr)
    assert (start, end, ratio) == (5.0, 8.0, 3.0)
    assert np.max(np.abs(audio[:int(start * sr)])) == pytest.approx(0.1)
    assert np.max(np.abs(audio[int(start * sr):int(end * sr)])) == pytest.approx(0.3)


def test_crowd_reactions_deterministic():
    """Test the same seed gives the same track."""
    a, _ = synthetic.generate_crowd_reactions(duration=30, sr=8000, reactions=((10.0, 14.0, 3.0),))
    b, _ = synthetic.generate_crowd_reactions(duration=30, sr=8000, reactions=((10.0, 14.0, 3.0),))
    np.testing.assert_array_equal(a, b)
    assert np.all(np.abs(a) <= 1.0)


# =============================================================================
# SCENARIO TESTS
# =============================================================================

def test_silent_track_no_markers():
    """Test 10 s of silence yields a silent status and no markers."""
    audio = synthetic.generate_silence(10.0, sr=44100)
    result = detection.analyze_samples(audio, 44100, DEFAULT_CONFIG)

    assert result['status'] == detection.STATUS_SILENT
    assert result['markers'] == []


def test_single_spike_detected():
    """Test a 3x spike between 5 s and 8 s in a 20 s tone yields one marker."""
    sr = 44100
    audio, (spike_start, spike_end, ratio) = synthetic.generate_spike_track(duration=20, sr=sr)

    result = detection.analyze_samples(audio, sr, DEFAULT_CONFIG)

    assert result['status'] == detection.STATUS_OK
    assert len(result['loudness']) == 39
    assert result['baseline'] == pytest.approx(0.1)

    markers = result['markers']
    assert len(markers) == 1
    marker = markers[0]

    # Half-covered windows at either edge still read above 2x
    assert marker['start_time'] == pytest.approx(spike_start, abs=0.5)
    assert marker['end_time'] == pytest.approx(spike_end, abs=0.5)
    assert marker['score'] == pytest.approx(ratio, abs=0.05)
    assert marker['label'] == "Excitement (3.0x)"

    check_marker_invariants(result, DEFAULT_CONFIG.threshold.min_duration_sec)


def test_spike_exact_edges():
    """Test the exact window edges of the 44.1 kHz spike scenario."""
    audio, _ = synthetic.generate_spike_track(duration=20, sr=44100)
    marker = detection.analyze_samples(audio, 44100)['markers'][0]

    assert marker['start_time'] == pytest.approx(4.5)
    assert marker['end_time'] == pytest.approx(8.0)


def test_spike_below_threshold_ignored():
    """Test a 1.5x spike does not cross the 2x threshold."""
    audio, _ = synthetic.generate_spike_track(duration=20, sr=8000, spike_ratio=1.5)
    result = detection.analyze_samples(audio, 8000)

    assert result['status'] == detection.STATUS_NO_EXCITEMENT
    assert result['markers'] == []


def test_lower_threshold_catches_smaller_spike():
    """Test threshold override changes what counts as excitement."""
    audio, _ = synthetic.generate_spike_track(duration=20, sr=8000, spike_ratio=1.5)
    cfg = with_overrides(DEFAULT_CONFIG, threshold_ratio=1.2)
    result = detection.analyze_samples(audio, 8000, cfg)

    assert len(result['markers']) == 1


def test_spike_running_to_end():
    """Test a spike that never ends closes at the track duration."""
    audio, _ = synthetic.generate_spike_track(duration=20, sr=8000, spike_start=15, spike_end=20)
    result = detection.analyze_samples(audio, 8000)

    assert len(result['markers']) == 1
    assert result['markers'][0]['end_time'] == pytest.approx(20.0)
    check_marker_invariants(result, DEFAULT_CONFIG.threshold.min_duration_sec)


def test_crowd_reactions_merged():
    """Test bursts 2 s apart merge while a distant burst stays separate."""
    sr = 22050
    audio, reactions = synthetic.generate_crowd_reactions(sr=sr)

    result = detection.analyze_samples(audio, sr, DEFAULT_CONFIG)
    markers = result['markers']

    print(f"\nCrowd reactions test:")
    print(f"  Baseline: {result['baseline']:.4f}")
    for marker in markers:
        print(f"  {marker['start_time']:.2f}-{marker['end_time']:.2f} {marker['label']}")

    assert result['status'] == detection.STATUS_OK
    assert len(result['candidates']) == 3
    assert len(markers) == 2

    first, second = markers
    assert first['start_time'] == pytest.approx(12.0, abs=1.0)
    assert first['end_time'] == pytest.approx(21.0, abs=1.0)
    assert second['start_time'] == pytest.approx(50.0, abs=1.0)
    assert second['end_time'] == pytest.approx(58.0, abs=1.0)

    # Merged marker carries the louder burst's score
    assert first['score'] == pytest.approx(3.5, abs=0.6)
    assert second['score'] == pytest.approx(4.0, abs=0.6)
    assert second['score'] > first['score']

    check_marker_invariants(result, DEFAULT_CONFIG.threshold.min_duration_sec)


def test_crowd_reactions_without_merge():
    """Test the basic preset keeps every burst as its own marker."""
    sr = 22050
    audio, reactions = synthetic.generate_crowd_reactions(sr=sr)

    result = detection.analyze_samples(audio, sr, get_preset('basic'))

    assert len(result['markers']) == len(reactions)
    check_marker_invariants(result, DEFAULT_CONFIG.threshold.min_duration_sec)


def test_crowd_reactions_extended():
    """Test the extended preset pushes markers forward without overlap."""
    sr = 22050
    audio, _ = synthetic.generate_crowd_reactions(sr=sr)

    plain = detection.analyze_samples(audio, sr, DEFAULT_CONFIG)['markers']
    extended_result = detection.analyze_samples(audio, sr, get_preset('extended'))
    extended = extended_result['markers']

    assert len(extended) == len(plain)
    for before, after in zip(plain, extended):
        assert after['start_time'] == before['start_time']
        assert after['end_time'] >= before['end_time']

    # Last marker is clamped to the end of the track
    assert extended[-1]['end_time'] <= extended_result['duration'] + 1e-6
    check_marker_invariants(extended_result, DEFAULT_CONFIG.threshold.min_duration_sec)


def test_fixed_grid_preset():
    """Test the non-overlapping grid still finds the spike."""
    audio, _ = synthetic.generate_spike_track(duration=30, sr=8000, spike_start=10, spike_end=16)
    result = detection.analyze_samples(audio, 8000, get_preset('fixed_grid'))

    assert result['grid'].step_size == result['grid'].window_size
    assert len(result['markers']) == 1
    assert result['markers'][0]['start_time'] == pytest.approx(10.0)
    assert result['markers'][0]['end_time'] == pytest.approx(16.0)


def test_short_track_insufficient():
    """Test a track under ten windows is reported as insufficient data."""
    audio = synthetic.generate_square_tone(4.0, sr=8000)
    result = detection.analyze_samples(audio, 8000)

    assert result['status'] == detection.STATUS_INSUFFICIENT_DATA
    assert result['markers'] == []


# =============================================================================
# PROPERTY TESTS
# =============================================================================

def test_random_tracks_satisfy_invariants():
    """Test marker invariants hold on random bursty tracks."""
    rng = np.random.default_rng(2024)
    sr = 4000

    for _ in range(10):
        duration = rng.uniform(20.0, 60.0)
        n_bursts = rng.integers(0, 5)
        reactions = []
        for _ in range(n_bursts):
            start = rng.uniform(0.0, duration - 2.0)
            end = min(duration, start + rng.uniform(0.5, 8.0))
            reactions.append((start, end, rng.uniform(1.0, 6.0)))

        audio, _ = synthetic.generate_crowd_reactions(
            duration=duration, sr=sr, reactions=tuple(reactions),
            seed=int(rng.integers(0, 1000))
        )

        for cfg in (DEFAULT_CONFIG, get_preset('basic'), get_preset('extended')):
            result = detection.analyze_samples(audio, sr, cfg)
            check_marker_invariants(result, cfg.threshold.min_duration_sec)


def test_determinism():
    """Test identical input gives identical markers."""
    audio, _ = synthetic.generate_crowd_reactions(duration=60, sr=8000)

    first = detection.analyze_samples(audio.copy(), 8000)
    second = detection.analyze_samples(audio.copy(), 8000)

    assert first['markers'] == second['markers']
    np.testing.assert_array_equal(first['loudness'], second['loudness'])
