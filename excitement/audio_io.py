"""
Audio I/O Module

Handles audio extraction from video containers, decoding and mono
conversion. Produces the normalized sample buffer the detector consumes.
"""

import logging
import os
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Optional, Tuple

import librosa
import numpy as np
from scipy.io import wavfile

import config

logger = logging.getLogger(__name__)


def check_dependency(cmd_name: str) -> None:
    """
    Ensure a required external command exists.

    Raises:
        RuntimeError: If the command is not on PATH
    """
    if shutil.which(cmd_name) is None:
        raise RuntimeError(f"missing dependency: {cmd_name}")


def make_temp_wav() -> str:
    """Create a temporary wav filename."""
    temp_handle, temp_path = tempfile.mkstemp(prefix="excitement-", suffix=".wav")
    os.close(temp_handle)
    return temp_path


def build_extract_command(
    input_path: str,
    wav_path: str,
    sample_rate: int = config.EXTRACT_SAMPLE_RATE
) -> list:
    """ffmpeg command that writes a mono 16-bit PCM WAV of the input's audio."""
    return [
        config.FFMPEG_BINARY,
        "-y",
        "-hide_banner", "-loglevel", "error",
        "-i", input_path,
        "-vn",
        "-acodec", config.EXTRACT_CODEC,
        "-ar", str(sample_rate),
        "-ac", str(config.EXTRACT_CHANNELS),
        wav_path,
    ]


def extract_audio(
    input_path: str,
    wav_path: Optional[str] = None,
    sample_rate: int = config.EXTRACT_SAMPLE_RATE
) -> str:
    """
    Extract the audio track of a media file to WAV using ffmpeg.

    Parameters:
        input_path: Video (or any ffmpeg-readable) file path
        wav_path: Output WAV path (None = new temporary file)
        sample_rate: Requested output sample rate (Hz)

    Returns:
        Path of the written WAV file

    Raises:
        FileNotFoundError: If the input file doesn't exist
        RuntimeError: If ffmpeg is missing or fails
    """
    if not os.path.isfile(input_path):
        raise FileNotFoundError(f"Input file not found: {input_path}")

    check_dependency(config.FFMPEG_BINARY)

    made_temp = wav_path is None
    if made_temp:
        wav_path = make_temp_wav()

    cmd = build_extract_command(input_path, wav_path, sample_rate)
    logger.debug("CMD: '%s'", shlex.join(cmd))

    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
        if proc.returncode != 0:
            raise RuntimeError(
                f"ffmpeg error (exit {proc.returncode}): {shlex.join(cmd)}\n"
                f"Output: {proc.stderr.strip()}"
            )
        # mkstemp already created the file, so an empty one means no output
        if not os.path.isfile(wav_path) or os.path.getsize(wav_path) == 0:
            raise RuntimeError("audio extraction failed: ffmpeg produced no output file")
    except Exception:
        if made_temp and os.path.exists(wav_path):
            os.remove(wav_path)
        raise

    logger.debug("Audio extracted to: %s", wav_path)
    return wav_path


def convert_to_mono(audio: np.ndarray) -> np.ndarray:
    """
    Average a (samples, channels) array down to mono.

    Parameters:
        audio: Audio array, 1D mono or 2D (samples, channels) as scipy returns it

    Returns:
        Mono audio array (1D)

    Raises:
        ValueError: If the audio shape is unexpected
    """
    if audio.ndim == 1:
        return audio

    if audio.ndim != 2:
        raise ValueError(f"Unexpected audio shape: {audio.shape}")

    return np.mean(audio, axis=1)


def pcm_to_float(audio: np.ndarray) -> Tuple[np.ndarray, int]:
    """
    Convert decoded PCM to float64 in [-1.0, 1.0].

    Integer formats are divided by 2^(bit_depth - 1); unsigned 8-bit is
    re-centred first.

    Parameters:
        audio: Array as returned by scipy.io.wavfile.read

    Returns:
        Tuple of (float_audio, bit_depth)

    Raises:
        ValueError: If the sample format is unsupported
    """
    if audio.dtype == np.uint8:
        return (audio.astype(np.float64) - 128.0) / 128.0, 8
    if audio.dtype == np.int16:
        return audio.astype(np.float64) / 32768.0, 16
    if audio.dtype == np.int32:
        return audio.astype(np.float64) / 2147483648.0, 32
    if audio.dtype == np.float32:
        return audio.astype(np.float64), 32
    if audio.dtype == np.float64:
        return audio.astype(np.float64), 64

    raise ValueError(f"Unsupported audio dtype: {audio.dtype}")


def load_wav(file_path: str) -> Tuple[np.ndarray, int, int]:
    """
    Decode a WAV file into a mono float buffer.

    Parameters:
        file_path: Path to WAV file

    Returns:
        Tuple of (audio, sample_rate, bit_depth)
        audio: mono float64 array in range [-1.0, 1.0]

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the WAV is invalid or its sample format unsupported
    """
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"WAV file not found: {file_path}")

    sr, audio = wavfile.read(file_path)
    audio, bit_depth = pcm_to_float(audio)
    audio = convert_to_mono(audio)

    return audio, int(sr), bit_depth


def load_audio(file_path: str, keep_wav: bool = False) -> Dict:
    """
    Load any supported media file as a normalized mono buffer.

    WAV files are decoded with scipy, other audio formats with librosa at
    their native rate, and video containers are run through ffmpeg first.

    Parameters:
        file_path: Path to audio or video file
        keep_wav: Keep the intermediate WAV extracted from a video

    Returns:
        Dictionary containing:
            - 'audio': mono float64 array in [-1.0, 1.0]
            - 'sample_rate': sample rate (Hz)
            - 'bit_depth': PCM bit depth (None when decoded by librosa)
            - 'duration': duration in seconds
            - 'source': path the samples were decoded from (the input
              itself unless an extracted WAV was kept)

    Raises:
        FileNotFoundError: If file doesn't exist
        RuntimeError: If extraction fails
        ValueError: If the format is unsupported
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    name = path.name
    if name.lower().endswith('.wav'):
        audio, sr, bit_depth = load_wav(str(path))
        source = str(path)

    elif config.is_audio_file(name):
        audio, sr = librosa.load(str(path), sr=None, mono=True)
        audio = audio.astype(np.float64)
        sr = int(sr)
        bit_depth = None
        source = str(path)

    elif config.is_video_file(name):
        wav_path = extract_audio(str(path))
        try:
            audio, sr, bit_depth = load_wav(wav_path)
        finally:
            if not keep_wav:
                os.remove(wav_path)
        source = wav_path if keep_wav else str(path)

    else:
        raise ValueError(f"Unsupported file type: {path.suffix or name}")

    logger.debug(
        "Audio info: %d samples, %.1f Hz, %.2f seconds",
        len(audio), sr, len(audio) / sr if sr else 0.0
    )

    return {
        'audio': audio,
        'sample_rate': sr,
        'bit_depth': bit_depth,
        'duration': len(audio) / sr,
        'source': source,
    }


def validate_audio(audio: np.ndarray, sr: int, max_duration: Optional[float] = None) -> None:
    """
    Validate audio array for processing.

    Short and empty audio are not rejected here; the detector reports
    them as insufficient data.

    Parameters:
        audio: Audio array to validate
        sr: Sample rate (Hz)
        max_duration: Maximum allowed duration in seconds (None = use config)

    Raises:
        ValueError: If audio is invalid
    """
    if max_duration is None:
        max_duration = config.MAX_TRACK_DURATION_SEC

    if sr <= 0:
        raise ValueError(f"Invalid sample rate: {sr}")

    if not np.isfinite(audio).all():
        raise ValueError("Audio contains NaN or infinite values")

    duration = len(audio) / sr
    if duration > max_duration:
        raise ValueError(
            f"Audio duration ({duration:.1f}s) exceeds maximum "
            f"({max_duration:.1f}s)"
        )
