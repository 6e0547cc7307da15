"""
Baseline Module

Estimate the "quiet" reference level of a track and derive the spike
threshold from it. The median tracks the quiet majority of windows, so
the spikes being detected leave the reference level where it is.
"""

import numpy as np

from excitement.params import ThresholdParams

DEFAULT_SILENCE_EPSILON: float = ThresholdParams.silence_epsilon


def compute_baseline(loudness: np.ndarray) -> float:
    """
    Median of the loudness sequence.

    Even-length sequences average the two central values. The result does
    not depend on the order of the input.

    Parameters:
        loudness: Per-window loudness values (length >= 1)

    Returns:
        Baseline loudness

    Raises:
        ValueError: If the sequence is empty
    """
    values = np.asarray(loudness, dtype=np.float64)
    if len(values) == 0:
        raise ValueError("Cannot compute a baseline from an empty loudness sequence")

    return float(np.median(values))


def is_degenerate_baseline(baseline: float, epsilon: float = DEFAULT_SILENCE_EPSILON) -> bool:
    """True when the baseline is zero or close enough to zero to be silence."""
    return not np.isfinite(baseline) or baseline <= epsilon


def compute_threshold(
    baseline: float,
    threshold_ratio: float,
    epsilon: float = DEFAULT_SILENCE_EPSILON
) -> float:
    """
    Loudness above which a window counts as excited.

    Parameters:
        baseline: Baseline loudness
        threshold_ratio: Multiplier applied to the baseline
        epsilon: Baselines at or below this are rejected

    Returns:
        baseline * threshold_ratio

    Raises:
        ValueError: If the ratio is not positive or the baseline is degenerate
    """
    if threshold_ratio <= 0:
        raise ValueError(f"threshold_ratio must be positive, got {threshold_ratio}")
    if is_degenerate_baseline(baseline, epsilon):
        raise ValueError(
            f"Baseline {baseline!r} is too close to zero to derive a threshold"
        )

    return baseline * threshold_ratio
