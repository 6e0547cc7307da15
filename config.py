"""
excitement-markers - Configuration

I/O, output and plotting constants with documentation.
Every default value includes rationale.

Detector knobs (thresholds, window, merge/extension) live in
excitement/params.py as frozen dataclasses.
"""

from typing import List

# =============================================================================
# AUDIO EXTRACTION PARAMETERS
# =============================================================================

# Sample rate requested from ffmpeg when extracting audio (Hz)
# Why: 44100 Hz is the rate most source material is already at, so the
#      extraction rarely resamples. The detector recomputes its window size
#      against whatever rate the decoded file actually reports.
EXTRACT_SAMPLE_RATE: int = 44100

# Number of channels requested from ffmpeg
# Why: The detector scores a single loudness curve; ffmpeg's downmix is
#      cheaper than decoding every channel and averaging in Python.
EXTRACT_CHANNELS: int = 1

# PCM codec requested from ffmpeg
# Why: 16-bit signed little-endian PCM is readable by scipy.io.wavfile
#      without extra dependencies and is plenty for loudness analysis.
EXTRACT_CODEC: str = 'pcm_s16le'

# Name of the ffmpeg binary
# Why: Resolved from PATH so packaged and system builds both work.
FFMPEG_BINARY: str = 'ffmpeg'

# Audio file extensions decoded without ffmpeg extraction
# Why: WAV goes through scipy directly, the rest through librosa
AUDIO_EXTENSIONS: List[str] = ['.wav', '.mp3', '.flac', '.ogg', '.m4a']

# Video container extensions that require ffmpeg extraction
# Why: Covers the containers screen recorders and cameras typically produce
VIDEO_EXTENSIONS: List[str] = ['.mp4', '.mkv', '.mov', '.avi', '.webm', '.ts', '.flv']

# =============================================================================
# ANALYSIS GUARDS
# =============================================================================

# Maximum track duration to process (seconds)
# Why: 6 hours covers long streams and full matches. The decoded buffer is
#      held in memory as float64, and 6 hours at 44.1 kHz is already ~7.6 GB.
MAX_TRACK_DURATION_SEC: float = 6 * 60 * 60.0

# =============================================================================
# OUTPUT PARAMETERS
# =============================================================================

# JSON schema version for summary output
# Why: Versioning allows future format changes while maintaining compatibility
SCHEMA_VERSION: str = "1.0.0"

# LosslessCut project document version
# Why: Version 1 is the project format LosslessCut reads for cut segments
PROJECT_VERSION: int = 1

# CSV header for segment export
# Why: LosslessCut's "CSV segments" importer expects exactly these columns
CSV_HEADER: List[str] = ['start_time', 'end_time', 'label']

# Decimal digits for exported times
# Why: Centisecond precision is finer than one analysis step and keeps the
#      CSV readable
TIME_DECIMALS: int = 2

# Suffix appended to the input stem for exported files
# Why: Keeps markers next to the media without overwriting anything
OUTPUT_SUFFIX: str = '_markers'

# Suffix of the LosslessCut project file
# Why: LosslessCut looks for "<media stem>-proj.llc" next to the media file
PROJECT_SUFFIX: str = '-proj.llc'

# Export formats written when none are requested
# Why: CSV is what the LosslessCut importer takes directly
DEFAULT_FORMATS: List[str] = ['csv']

# All supported export formats
SUPPORTED_FORMATS: List[str] = ['csv', 'llc', 'json']

# =============================================================================
# PLOTTING PARAMETERS
# =============================================================================

# Plot resolution (dots per inch)
# Why: 150 DPI is good balance of quality and file size for screen viewing
PLOT_DPI: int = 150

# Plot figure size (width, height in inches)
# Why: Wide aspect ratio suits a timeline; one row is enough for one curve
PLOT_FIGSIZE: tuple = (14, 5)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def format_time(seconds: float) -> str:
    """
    Format a time in seconds as fixed-point text.

    Parameters:
        seconds: Time in seconds

    Returns:
        String with TIME_DECIMALS digits after the decimal point
    """
    return f"{seconds:.{TIME_DECIMALS}f}"


def is_video_file(file_name: str) -> bool:
    """Return True if the file extension is a known video container."""
    return any(file_name.lower().endswith(ext) for ext in VIDEO_EXTENSIONS)


def is_audio_file(file_name: str) -> bool:
    """Return True if the file extension is a directly decodable audio format."""
    return any(file_name.lower().endswith(ext) for ext in AUDIO_EXTENSIONS)


def validate_config() -> bool:
    """
    Validate configuration parameters for consistency.

    Returns:
        True if config is valid

    Raises:
        ValueError: If configuration is invalid
    """
    if EXTRACT_SAMPLE_RATE <= 0:
        raise ValueError("EXTRACT_SAMPLE_RATE must be positive")

    if EXTRACT_CHANNELS != 1:
        raise ValueError("EXTRACT_CHANNELS must be 1 (mono analysis)")

    if MAX_TRACK_DURATION_SEC <= 0:
        raise ValueError("MAX_TRACK_DURATION_SEC must be positive")

    if TIME_DECIMALS < 0:
        raise ValueError("TIME_DECIMALS must be non-negative")

    for fmt in DEFAULT_FORMATS:
        if fmt not in SUPPORTED_FORMATS:
            raise ValueError(f"Unknown default export format: {fmt}")

    overlap = set(AUDIO_EXTENSIONS) & set(VIDEO_EXTENSIONS)
    if overlap:
        raise ValueError(f"Extensions listed as both audio and video: {sorted(overlap)}")

    return True


# Validate on import
validate_config()
