"""
excitement-markers - Source Modules

This package contains the modules for excitement detection in recorded audio:
- params: Detector parameters, presets and validation
- timebase: Window index to time conversion and segment clamping
- loudness: Windowed RMS loudness measurement
- baseline: Median baseline and threshold derivation
- detection: Spike state machine and the analysis pipeline
- segments: Segment merging, extension and labelling
- audio_io: Audio extraction and decoding
- export: CSV, LosslessCut project, JSON and plot generation
- synthetic: Deterministic synthetic tracks for demo mode and tests
"""

__version__ = "1.0.0"
