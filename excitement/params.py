"""
Detector Parameters Module - All Tunable Detector Constants

Every parameter group is a frozen dataclass. A DetectorConfig is built once
(from defaults, a preset or CLI overrides), validated, and then passed
read-only through the pipeline. Nothing downstream mutates it; values that
depend on the decoded audio (window size in samples) are resolved into a
separate AnalysisGrid by loudness.resolve_analysis_grid().

USAGE:
    from excitement.params import DetectorConfig, DEFAULT_CONFIG, get_preset

    # Use default config
    cfg = DEFAULT_CONFIG

    # Start from a preset and override a single value
    cfg = with_overrides(get_preset('extended'), threshold_ratio=2.5)
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional


@dataclass(frozen=True)
class WindowParams:
    """
    Loudness window parameters.

    Attributes:
        window_duration_ms: Analysis window length in milliseconds (default 1000)
        overlap: Step by half a window (True) or a full window (False, fixed grid)
    """
    window_duration_ms: int = 1000
    overlap: bool = True


@dataclass(frozen=True)
class ThresholdParams:
    """
    Spike threshold parameters.

    Attributes:
        threshold_ratio: Multiplier applied to the baseline (default 2.0)
        min_duration_sec: Shortest spike reported as a segment (default 1.0)
        min_windows: Fewest loudness windows worth analysing (default 10)
        silence_epsilon: Baselines at or below this are treated as silence (default 1e-9)
    """
    threshold_ratio: float = 2.0
    min_duration_sec: float = 1.0
    min_windows: int = 10
    silence_epsilon: float = 1e-9


@dataclass(frozen=True)
class ScoringParams:
    """
    Segment scoring parameters.

    Attributes:
        peak_tracking: Score by the loudest window of the span (True) or by
            the last window above threshold (False)
    """
    peak_tracking: bool = True


@dataclass(frozen=True)
class MergeParams:
    """
    Segment merge parameters.

    The two thresholds are applied in a fixed order: an overlap larger than
    significant_overlap_sec merges first, then segments starting within
    gap_tolerance_sec of the current end merge.

    Attributes:
        enabled: Run the merge step (default True)
        gap_tolerance_sec: Largest gap bridged between segments (default 5.0)
        significant_overlap_sec: Overlap that always merges (default 10.0)
    """
    enabled: bool = True
    gap_tolerance_sec: float = 5.0
    significant_overlap_sec: float = 10.0


@dataclass(frozen=True)
class ExtensionParams:
    """
    Segment extension parameters.

    Attributes:
        enabled: Run the extension step (default False)
        extension_sec: Seconds added after each qualifying segment (default 60.0)
        score_cutoff: Only segments scoring above this are extended (default 1.0)
    """
    enabled: bool = False
    extension_sec: float = 60.0
    score_cutoff: float = 1.0


@dataclass(frozen=True)
class DetectorConfig:
    """
    Complete detector configuration aggregating all parameter groups.

    Example usage:
        cfg = DetectorConfig()  # All defaults
        cfg = DetectorConfig(merge=MergeParams(enabled=False))  # Override one group
    """
    window: WindowParams = field(default_factory=WindowParams)
    threshold: ThresholdParams = field(default_factory=ThresholdParams)
    scoring: ScoringParams = field(default_factory=ScoringParams)
    merge: MergeParams = field(default_factory=MergeParams)
    extension: ExtensionParams = field(default_factory=ExtensionParams)

    def to_dict(self) -> Dict:
        """
        Export all parameters as a flat dictionary for JSON serialization.

        Returns:
            Dictionary with all parameter values
        """
        return {
            # Window params
            'window_duration_ms': self.window.window_duration_ms,
            'window_overlap': self.window.overlap,

            # Threshold params
            'threshold_ratio': self.threshold.threshold_ratio,
            'min_duration_sec': self.threshold.min_duration_sec,
            'min_windows': self.threshold.min_windows,
            'silence_epsilon': self.threshold.silence_epsilon,

            # Scoring params
            'peak_tracking': self.scoring.peak_tracking,

            # Merge params
            'merge_enabled': self.merge.enabled,
            'merge_gap_tolerance_sec': self.merge.gap_tolerance_sec,
            'merge_significant_overlap_sec': self.merge.significant_overlap_sec,

            # Extension params
            'extension_enabled': self.extension.enabled,
            'extension_sec': self.extension.extension_sec,
            'extension_score_cutoff': self.extension.score_cutoff,
        }


# Default configuration instance
DEFAULT_CONFIG = DetectorConfig()


# Earlier detector generations, kept reachable as presets:
# - fixed_grid: back-to-back windows, no peak tracking, no merge
# - basic: overlapping windows, no peak tracking, no merge
# - default: overlapping windows with peak tracking and merge
# - extended: default plus forward extension of scoring segments
PRESETS: Dict[str, DetectorConfig] = {
    'fixed_grid': DetectorConfig(
        window=WindowParams(overlap=False),
        scoring=ScoringParams(peak_tracking=False),
        merge=MergeParams(enabled=False),
    ),
    'basic': DetectorConfig(
        scoring=ScoringParams(peak_tracking=False),
        merge=MergeParams(enabled=False),
    ),
    'default': DEFAULT_CONFIG,
    'extended': DetectorConfig(
        extension=ExtensionParams(enabled=True),
    ),
}


def get_preset(name: str) -> DetectorConfig:
    """
    Look up a named preset.

    Raises:
        ValueError: If the preset name is unknown
    """
    if name not in PRESETS:
        raise ValueError(f"Unknown preset: {name} (choose from {', '.join(sorted(PRESETS))})")
    return PRESETS[name]


def with_overrides(
    config: DetectorConfig,
    window_duration_ms: Optional[int] = None,
    threshold_ratio: Optional[float] = None,
    min_duration_sec: Optional[float] = None,
    merge_enabled: Optional[bool] = None,
    extension_sec: Optional[float] = None
) -> DetectorConfig:
    """
    Return a validated copy of config with the given values replaced.

    None leaves a value unchanged. Passing extension_sec also enables the
    extension step.

    Parameters:
        config: Base configuration
        window_duration_ms: Analysis window length in milliseconds
        threshold_ratio: Baseline multiplier for the spike threshold
        min_duration_sec: Shortest reported segment
        merge_enabled: Turn the merge step on or off
        extension_sec: Extension added after scoring segments

    Returns:
        New DetectorConfig

    Raises:
        ValueError: If the resulting configuration is invalid
    """
    window = config.window
    if window_duration_ms is not None:
        window = replace(window, window_duration_ms=window_duration_ms)

    threshold = config.threshold
    if threshold_ratio is not None:
        threshold = replace(threshold, threshold_ratio=threshold_ratio)
    if min_duration_sec is not None:
        threshold = replace(threshold, min_duration_sec=min_duration_sec)

    merge = config.merge
    if merge_enabled is not None:
        merge = replace(merge, enabled=merge_enabled)

    extension = config.extension
    if extension_sec is not None:
        extension = replace(extension, enabled=True, extension_sec=extension_sec)

    result = replace(
        config,
        window=window,
        threshold=threshold,
        merge=merge,
        extension=extension,
    )
    validate_config(result)
    return result


def validate_config(config: DetectorConfig) -> bool:
    """
    Validate configuration parameters for consistency.

    Parameters:
        config: DetectorConfig instance to validate

    Returns:
        True if config is valid

    Raises:
        ValueError: If configuration is invalid
    """
    # Check positive values
    if config.window.window_duration_ms <= 0:
        raise ValueError("window_duration_ms must be positive")
    if config.threshold.threshold_ratio <= 0:
        raise ValueError("threshold_ratio must be positive")
    if config.threshold.min_windows < 1:
        raise ValueError("min_windows must be at least 1")

    # Check non-negative values
    if config.threshold.min_duration_sec < 0:
        raise ValueError("min_duration_sec must be non-negative")
    if config.threshold.silence_epsilon < 0:
        raise ValueError("silence_epsilon must be non-negative")
    if config.merge.gap_tolerance_sec < 0:
        raise ValueError("merge_gap_tolerance_sec must be non-negative")
    if config.merge.significant_overlap_sec < 0:
        raise ValueError("merge_significant_overlap_sec must be non-negative")
    if config.extension.extension_sec < 0:
        raise ValueError("extension_sec must be non-negative")

    return True


# Validate default config and presets on import
for _preset in PRESETS.values():
    validate_config(_preset)
