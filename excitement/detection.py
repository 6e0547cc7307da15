"""
Detection Module

Spike state machine over the loudness sequence, and the analysis pipeline
that runs windowing, baseline estimation, detection and post-processing on
an in-memory sample buffer.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from excitement import baseline as baseline_mod
from excitement import loudness as loudness_mod
from excitement import segments, timebase
from excitement.params import DEFAULT_CONFIG, DetectorConfig, validate_config

logger = logging.getLogger(__name__)

# Analysis statuses
STATUS_OK = 'ok'
STATUS_NO_EXCITEMENT = 'no_excitement'
STATUS_INSUFFICIENT_DATA = 'insufficient_data'
STATUS_SILENT = 'silent'


def _make_candidate(
    start_idx: int,
    end_idx: int,
    start_time: float,
    end_time: float,
    score: float
) -> Dict:
    return {
        'start_time': float(start_time),
        'end_time': float(end_time),
        'duration': float(end_time - start_time),
        'score': float(score),
        'start_window': int(start_idx),
        'end_window': int(end_idx),
    }


def detect_candidates(
    loudness: np.ndarray,
    baseline: float,
    threshold_ratio: float,
    min_duration_sec: float,
    step_duration_sec: float,
    track_duration_sec: float,
    peak_tracking: bool = True
) -> List[Dict]:
    """
    Walk the loudness sequence and emit candidate excitement segments.

    Two states, quiet (initial) and excited. A window louder than
    baseline * threshold_ratio moves quiet -> excited and fixes the start
    time at that window. While excited, every window updates the running
    peak ratio, above threshold or not. The first window at or below the
    threshold closes the candidate at that window's time; candidates shorter
    than min_duration_sec are dropped. A candidate still open when the
    sequence ends is closed at track_duration_sec under the same filter.

    Parameters:
        loudness: Per-window loudness values
        baseline: Baseline loudness (must not be degenerate)
        threshold_ratio: Multiplier applied to the baseline
        min_duration_sec: Shortest candidate kept
        step_duration_sec: Seconds between consecutive window starts
        track_duration_sec: Total track duration in seconds
        peak_tracking: Score by the peak ratio of the span; when False, by
            the ratio of the last window above threshold

    Returns:
        List of candidate dicts, in non-decreasing start_time order, with:
            - 'start_time', 'end_time', 'duration': seconds
            - 'score': loudness / baseline ratio
            - 'start_window', 'end_window': window indices
    """
    threshold = baseline_mod.compute_threshold(baseline, threshold_ratio)
    logger.debug("Baseline volume: %.6f, Threshold: %.6f", baseline, threshold)

    candidates = []
    in_excitement = False
    start_idx = 0
    start_time = 0.0
    peak = 0.0
    last_excited_ratio = 0.0

    for i, volume in enumerate(loudness):
        current_time = timebase.window_index_to_time(i, step_duration_sec)
        ratio = volume / baseline

        if not in_excitement:
            if volume > threshold:
                in_excitement = True
                start_idx = i
                start_time = current_time
                peak = ratio
                last_excited_ratio = ratio
                logger.debug("Excitement start at %.2fs (volume: %.6f)", start_time, volume)
            continue

        peak = max(peak, ratio)
        if volume > threshold:
            last_excited_ratio = ratio
            continue

        # First window at or below threshold closes the span
        in_excitement = False
        duration = current_time - start_time
        if duration < min_duration_sec:
            logger.debug("Excitement too short: %.2fs", duration)
            continue

        score = peak if peak_tracking else last_excited_ratio
        candidates.append(_make_candidate(start_idx, i, start_time, current_time, score))
        logger.debug(
            "Excitement end at %.2fs (duration: %.2fs, score: %.1fx)",
            current_time, duration, score
        )

    # Excitement running into the end of the track
    if in_excitement:
        end_time = float(track_duration_sec)
        duration = end_time - start_time
        if duration >= min_duration_sec and end_time > start_time:
            score = peak if peak_tracking else last_excited_ratio
            candidates.append(_make_candidate(start_idx, len(loudness), start_time, end_time, score))
            logger.debug(
                "Excitement runs to end of track at %.2fs (duration: %.2fs, score: %.1fx)",
                end_time, duration, score
            )
        else:
            logger.debug("Excitement too short at end of track: %.2fs", duration)

    return candidates


def _build_result(
    status: str,
    message: str,
    grid: loudness_mod.AnalysisGrid,
    loudness: np.ndarray,
    duration: float,
    config: DetectorConfig,
    baseline: Optional[float] = None,
    threshold: Optional[float] = None,
    candidates: Optional[List[Dict]] = None,
    markers: Optional[List[Dict]] = None
) -> Dict:
    return {
        'status': status,
        'message': message,
        'markers': markers or [],
        'candidates': candidates or [],
        'loudness': loudness,
        'window_times': timebase.compute_window_times(len(loudness), grid.step_duration_sec),
        'baseline': baseline,
        'threshold': threshold,
        'duration': duration,
        'grid': grid,
        'params': config.to_dict(),
    }


def analyze_samples(
    samples: np.ndarray,
    sample_rate: int,
    config: DetectorConfig = DEFAULT_CONFIG
) -> Dict:
    """
    Run the full excitement detection pipeline on a decoded buffer.

    Pipeline: loudness windows -> baseline -> candidates -> merge/extend.

    Boring, short and silent audio are not errors: they come back with a
    status other than 'ok' and an empty marker list.

    Parameters:
        samples: Mono audio array normalized to [-1.0, 1.0]
        sample_rate: Sample rate of the buffer (Hz)
        config: Detector configuration

    Returns:
        Dictionary containing:
            - 'status': 'ok', 'no_excitement', 'insufficient_data' or 'silent'
            - 'message': human-readable outcome
            - 'markers': final segments from segments.finalize_segments
            - 'candidates': raw candidates from detect_candidates
            - 'loudness': per-window loudness array
            - 'window_times': per-window start times (seconds)
            - 'baseline', 'threshold': floats, None when not computed
            - 'duration': track duration in seconds
            - 'grid': AnalysisGrid used
            - 'params': flat config dict

    Raises:
        ValueError: If the configuration or sample rate is invalid
    """
    validate_config(config)
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")

    samples = np.asarray(samples, dtype=np.float64)
    duration = len(samples) / sample_rate

    logger.debug(
        "Audio info: %d samples, %.1f Hz, %.2f seconds", len(samples), sample_rate, duration
    )

    grid = loudness_mod.resolve_analysis_grid(config.window, sample_rate, len(samples))
    loudness = loudness_mod.measure_loudness(samples, grid)

    min_windows = config.threshold.min_windows
    if len(loudness) < min_windows:
        message = (
            f"insufficient audio data: {len(loudness)} windows "
            f"(minimum {min_windows})"
        )
        logger.warning("Not enough audio data for analysis: %s", message)
        return _build_result(STATUS_INSUFFICIENT_DATA, message, grid, loudness, duration, config)

    baseline = baseline_mod.compute_baseline(loudness)
    if baseline_mod.is_degenerate_baseline(baseline, config.threshold.silence_epsilon):
        message = f"audio is silent (baseline {baseline:.3g}), no markers"
        logger.warning("Baseline is degenerate: %s", message)
        return _build_result(
            STATUS_SILENT, message, grid, loudness, duration, config, baseline=baseline
        )

    threshold = baseline_mod.compute_threshold(
        baseline, config.threshold.threshold_ratio, config.threshold.silence_epsilon
    )

    candidates = detect_candidates(
        loudness,
        baseline,
        config.threshold.threshold_ratio,
        config.threshold.min_duration_sec,
        grid.step_duration_sec,
        duration,
        peak_tracking=config.scoring.peak_tracking,
    )
    markers = segments.finalize_segments(candidates, config, duration)

    if markers:
        status = STATUS_OK
        message = f"found {len(markers)} excitement markers"
    else:
        status = STATUS_NO_EXCITEMENT
        message = "no excitement found"

    return _build_result(
        status, message, grid, loudness, duration, config,
        baseline=baseline,
        threshold=threshold,
        candidates=candidates,
        markers=markers,
    )
