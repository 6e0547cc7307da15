"""
Loudness Module

Slice a sample buffer into fixed-size windows and measure per-window RMS
loudness. Windows overlap by 50% unless the fixed-grid preset turns overlap
off. The trailing partial window is dropped, never padded.
"""

import logging
from dataclasses import dataclass

import numpy as np

from excitement import timebase
from excitement.params import WindowParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisGrid:
    """
    Window geometry resolved against the decoded audio.

    Built once the true sample rate is known and passed read-only through
    the rest of the pipeline.

    Attributes:
        sample_rate: Sample rate of the analysed buffer (Hz)
        window_size: Window length in samples (clamped to the buffer length)
        step_size: Samples between consecutive window starts
    """
    sample_rate: int
    window_size: int
    step_size: int

    @property
    def step_duration_sec(self) -> float:
        """Seconds between consecutive window starts."""
        return timebase.compute_step_duration(self.step_size, self.sample_rate)

    @property
    def window_duration_sec(self) -> float:
        """Seconds covered by one window."""
        return self.window_size / self.sample_rate


def compute_window_size(window_duration_ms: int, sample_rate: int) -> int:
    """
    Convert a window duration to samples at the actual sample rate.

    Parameters:
        window_duration_ms: Window length in milliseconds
        sample_rate: Sample rate of the decoded audio (Hz)

    Returns:
        Window length in samples (at least 1)

    Raises:
        ValueError: If either argument is not positive
    """
    if window_duration_ms <= 0:
        raise ValueError(f"window_duration_ms must be positive, got {window_duration_ms}")
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")

    return max(1, int(round(window_duration_ms * sample_rate / 1000.0)))


def resolve_analysis_grid(
    window_params: WindowParams,
    sample_rate: int,
    n_samples: int
) -> AnalysisGrid:
    """
    Build the analysis grid for a buffer of known length and sample rate.

    A window longer than the buffer is clamped to the buffer length, which
    yields at most one window.

    Parameters:
        window_params: Window parameters from the detector config
        sample_rate: Sample rate of the decoded audio (Hz)
        n_samples: Number of samples in the buffer

    Returns:
        AnalysisGrid
    """
    window_size = compute_window_size(window_params.window_duration_ms, sample_rate)

    if n_samples > 0 and window_size > n_samples:
        logger.debug("Window of %d samples clamped to buffer length %d", window_size, n_samples)
        window_size = n_samples

    if window_params.overlap:
        step_size = max(1, window_size // 2)
    else:
        step_size = window_size

    return AnalysisGrid(sample_rate=sample_rate, window_size=window_size, step_size=step_size)


def expected_window_count(n_samples: int, window_size: int, step_size: int) -> int:
    """
    Number of complete windows that fit in a buffer.

    CONTRACT:
    - n_samples == 0 -> 0
    - window_size >= n_samples -> 1 (the window is clamped to the buffer)
    - otherwise floor((n_samples - window_size) / step_size) + 1
    """
    if n_samples <= 0:
        return 0
    if window_size >= n_samples:
        return 1
    return (n_samples - window_size) // step_size + 1


def compute_loudness(
    samples: np.ndarray,
    window_size: int,
    step_size: int
) -> np.ndarray:
    """
    Compute RMS loudness per window.

    CONTRACT:
    - Input: samples (1D, normalized to [-1.0, 1.0])
    - Output: (n_windows,) float64 array, values >= 0
    - n_windows = expected_window_count(len(samples), window_size, step_size)
    - Deterministic: same input -> same output

    Parameters:
        samples: Audio array (1D)
        window_size: Window size in samples
        step_size: Step between window starts in samples

    Returns:
        Array of RMS values (length n_windows)
    """
    if window_size <= 0 or step_size <= 0:
        raise ValueError("window_size and step_size must be positive")

    samples = np.asarray(samples, dtype=np.float64)
    n_samples = len(samples)
    window_size = min(window_size, n_samples)

    num_windows = expected_window_count(n_samples, window_size, step_size)
    loudness = np.zeros(num_windows, dtype=np.float64)

    for i in range(num_windows):
        start = i * step_size
        window = samples[start:start + window_size]
        loudness[i] = np.sqrt(np.mean(window ** 2))

    return loudness


def measure_loudness(samples: np.ndarray, grid: AnalysisGrid) -> np.ndarray:
    """Compute the loudness sequence for a buffer on a resolved grid."""
    loudness = compute_loudness(samples, grid.window_size, grid.step_size)
    logger.debug(
        "Measured %d windows (window %d samples, step %d samples, %.3fs per step)",
        len(loudness), grid.window_size, grid.step_size, grid.step_duration_sec
    )
    return loudness
