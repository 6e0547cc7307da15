"""
Synthetic Audio Generators

Tracks with known ground truth for demo mode and tests. No external audio
files required; every generator is deterministic.
"""

from typing import List, Tuple

import numpy as np


def generate_square_tone(duration: float, sr: int = 44100, amplitude: float = 0.1) -> np.ndarray:
    """
    Alternating +amplitude / -amplitude samples.

    The RMS of any window of this signal is exactly `amplitude`, which makes
    loudness ratios in tests exact.

    Parameters:
        duration: Duration in seconds
        sr: Sample rate

    Returns:
        Audio array (float64)
    """
    samples = int(duration * sr)
    signs = np.where(np.arange(samples) % 2 == 0, 1.0, -1.0)
    return amplitude * signs


def generate_silence(duration: float, sr: int = 44100) -> np.ndarray:
    """All-zero buffer."""
    return np.zeros(int(duration * sr), dtype=np.float64)


def generate_spike_track(
    duration: float = 20.0,
    sr: int = 44100,
    spike_start: float = 5.0,
    spike_end: float = 8.0,
    base_amplitude: float = 0.1,
    spike_ratio: float = 3.0
) -> Tuple[np.ndarray, Tuple[float, float, float]]:
    """
    Quiet square tone with a single louder span.

    Parameters:
        duration: Total duration in seconds
        sr: Sample rate
        spike_start, spike_end: Loud span in seconds
        base_amplitude: Amplitude of the quiet background
        spike_ratio: Loud span amplitude as a multiple of the background

    Returns:
        Tuple of (audio, (expected_start, expected_end, expected_score))
    """
    audio = generate_square_tone(duration, sr, base_amplitude)
    start = int(spike_start * sr)
    end = int(spike_end * sr)
    audio[start:end] *= spike_ratio

    return audio, (spike_start, spike_end, spike_ratio)


def generate_crowd_reactions(
    duration: float = 90.0,
    sr: int = 22050,
    reactions: Tuple[Tuple[float, float, float], ...] = (
        (12.0, 16.0, 2.5),
        (18.0, 21.0, 3.5),
        (50.0, 58.0, 4.0),
    ),
    base_amplitude: float = 0.05,
    seed: int = 7
) -> Tuple[np.ndarray, List[Tuple[float, float, float]]]:
    """
    Commentary-like background with bursts of crowd noise.

    Background: low 220 Hz tone with a slow amplitude wobble plus a little
    noise. Each reaction is broadband noise ramped in over 0.25 s, scaled to
    `ratio` times the background RMS.

    Parameters:
        duration: Total duration in seconds
        sr: Sample rate
        reactions: (start_sec, end_sec, ratio) per burst
        base_amplitude: RMS of the background
        seed: Random seed for the noise

    Returns:
        Tuple of (audio, reactions as a list)
    """
    rng = np.random.default_rng(seed)
    samples = int(duration * sr)
    t = np.arange(samples) / sr

    wobble = 1.0 + 0.2 * np.sin(2 * np.pi * 0.1 * t)
    background = np.sqrt(2.0) * base_amplitude * np.sin(2 * np.pi * 220 * t) * wobble
    background += 0.1 * base_amplitude * rng.standard_normal(samples)
    audio = background

    ramp_samples = int(0.25 * sr)
    for start_sec, end_sec, ratio in reactions:
        start = int(start_sec * sr)
        end = min(int(end_sec * sr), samples)
        burst = rng.standard_normal(end - start) * base_amplitude * ratio
        envelope = np.ones(end - start)
        ramp = min(ramp_samples, (end - start) // 2)
        if ramp > 0:
            envelope[:ramp] = np.linspace(0.0, 1.0, ramp)
            envelope[-ramp:] = np.linspace(1.0, 0.0, ramp)
        audio[start:end] = burst * envelope

    audio = np.clip(audio, -1.0, 1.0)

    return audio, list(reactions)
