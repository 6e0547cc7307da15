"""
Timebase Module - Window Time Axis

Maps loudness window indices to seconds and keeps segment boundaries inside
the track.

DESIGN CONSTRAINTS:
- Track duration (samples / sample_rate) is the source of truth
- Window i starts at i * step_duration_sec
- Deterministic: same inputs -> same outputs
- No config imports (explicit parameters)
"""

from typing import Dict, List, Optional, Tuple

import numpy as np


# =============================================================================
# CONSTANTS
# =============================================================================

# Boundaries this close past the track end are left alone
EPSILON_SEC: float = 1e-6


# =============================================================================
# WINDOW TIMES
# =============================================================================

def compute_step_duration(step_size: int, sample_rate: int) -> float:
    """
    Seconds between consecutive window starts.

    Parameters:
        step_size: Hop between windows (samples)
        sample_rate: Sample rate (Hz)

    Raises:
        ValueError: If sample_rate is not positive
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    return step_size / sample_rate


def window_index_to_time(
    window_idx: int,
    step_duration_sec: float,
    offset_sec: float = 0.0,
    duration_sec: Optional[float] = None
) -> float:
    """
    Start time of one window, optionally capped at the track duration.

    Parameters:
        window_idx: Window index (0-based)
        step_duration_sec: Seconds between window starts
        offset_sec: Time of window 0
        duration_sec: Cap for the returned time (None = no cap)

    Returns:
        Window start time in seconds
    """
    seconds = offset_sec + window_idx * step_duration_sec
    if duration_sec is not None and seconds > duration_sec:
        seconds = duration_sec
    return float(seconds)


def compute_window_times(
    n_windows: int,
    step_duration_sec: float,
    offset_sec: float = 0.0
) -> np.ndarray:
    """
    Start time of every window, the x-axis for loudness plots.

    Agrees element-wise with window_index_to_time.

    Returns:
        float64 array of length max(n_windows, 0)
    """
    if n_windows <= 0:
        return np.empty(0, dtype=np.float64)
    return offset_sec + step_duration_sec * np.arange(n_windows, dtype=np.float64)


# =============================================================================
# SEGMENT BOUNDARIES
# =============================================================================

def clamp_to_track(
    start_time: float,
    end_time: float,
    duration_sec: float,
    epsilon: float = EPSILON_SEC
) -> Tuple[float, float]:
    """
    Pull a (start, end) pair back inside [0, duration_sec].

    An end overshooting the duration by no more than epsilon is kept as is.
    """
    start = max(0.0, start_time)
    end = end_time
    if end > duration_sec + epsilon:
        end = duration_sec
    return float(start), float(end)


def is_segment_valid(
    start_time: float,
    end_time: float,
    min_duration_sec: float = 0.0
) -> bool:
    """True when end_time > start_time and the span lasts at least min_duration_sec."""
    return end_time > start_time and (end_time - start_time) >= min_duration_sec


def clamp_segments(
    segments: List[Dict],
    duration_sec: float,
    min_duration_sec: float = 0.0,
    epsilon: float = EPSILON_SEC
) -> List[Dict]:
    """
    Clamp every segment to the track and drop the ones left without length.

    Each segment is copied; 'start_time', 'end_time' and 'duration' are
    rewritten on the copy. Segments that end at or before their start after
    clamping, or that are shorter than min_duration_sec, are dropped.

    Parameters:
        segments: Segment dicts with 'start_time' and 'end_time'
        duration_sec: Track duration in seconds
        min_duration_sec: Shortest segment kept
        epsilon: Overshoot tolerated at the track end

    Returns:
        List of clamped segment dicts, input order preserved
    """
    kept = []
    for segment in segments:
        start, end = clamp_to_track(
            segment['start_time'], segment['end_time'], duration_sec, epsilon
        )
        if not is_segment_valid(start, end, min_duration_sec):
            continue

        clamped = dict(segment)
        clamped['start_time'] = start
        clamped['end_time'] = end
        clamped['duration'] = end - start
        kept.append(clamped)

    return kept
