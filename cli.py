#!/usr/bin/env python3
"""
excitement-markers - Command Line Interface

Main entry point for finding excitement markers in recordings and exporting
them as LosslessCut segments.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import config
from excitement import audio_io, detection, export, synthetic
from excitement.params import DEFAULT_CONFIG, PRESETS, DetectorConfig, get_preset, with_overrides


def process_single_track(
    file_path: Path,
    output_dir: Path,
    detector_config: DetectorConfig,
    formats: List[str],
    generate_plots: bool = False,
    keep_wav: bool = False,
    verbose: bool = False
) -> bool:
    """
    Process a single media file through the full pipeline.

    Parameters:
        file_path: Path to audio or video file
        output_dir: Output directory for results
        detector_config: Detector configuration
        formats: Export formats to write
        generate_plots: Write a loudness plot
        keep_wav: Keep the WAV extracted from a video
        verbose: Print verbose progress messages

    Returns:
        True if successful, False otherwise
    """
    track_name = file_path.stem

    try:
        if verbose:
            print(f"\nProcessing: {file_path.name}")
            print("-" * 60)

        # Step 1: Load audio (extracting from video if needed)
        if verbose:
            print("1. Loading audio...")

        audio_data = audio_io.load_audio(str(file_path), keep_wav=keep_wav)
        audio = audio_data['audio']
        sr = audio_data['sample_rate']

        if verbose:
            print(f"   Duration: {audio_data['duration']:.2f}s, Sample rate: {sr} Hz")

        audio_io.validate_audio(audio, sr)

        # Step 2: Detect excitement
        if verbose:
            print("2. Detecting excitement...")

        result = detection.analyze_samples(audio, sr, detector_config)

        if verbose:
            print(f"   {result['message']}")

        # Step 3: Export results
        if verbose:
            print("3. Exporting results...")

        created_files = export.export_all_outputs(
            result,
            output_dir,
            track_name,
            formats=formats,
            media_file_name=file_path.name,
            generate_plots=generate_plots
        )

        print(f"Found {len(result['markers'])} excitement markers in {file_path.name}")
        for path in created_files:
            print(f"Markers exported to: {path}")
        if 'csv' in formats:
            print("Import this CSV file into LosslessCut: File -> Import project -> CSV segments")

        if verbose:
            export.print_analysis_summary(result, track_name)

        return True

    except Exception as e:
        print(f"ERROR processing {file_path.name}: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return False


def find_media_files(input_dir: Path) -> List[Path]:
    """All audio and video files directly inside a directory, sorted."""
    return sorted(
        path for path in input_dir.iterdir()
        if path.is_file() and (config.is_audio_file(path.name) or config.is_video_file(path.name))
    )


def process_directory(
    input_dir: Path,
    output_dir: Path,
    detector_config: DetectorConfig,
    formats: List[str],
    generate_plots: bool = False,
    keep_wav: bool = False,
    verbose: bool = False
) -> dict:
    """
    Process all media files in a directory.

    Returns:
        Dict with success/failure counts
    """
    media_files = find_media_files(input_dir)

    if not media_files:
        print(f"No audio or video files found in {input_dir}")
        return {'success': 0, 'failed': 0}

    print(f"Found {len(media_files)} media files")

    success_count = 0
    failed_count = 0

    for media_file in media_files:
        success = process_single_track(
            media_file, output_dir, detector_config, formats,
            generate_plots=generate_plots, keep_wav=keep_wav, verbose=verbose
        )

        if success:
            success_count += 1
        else:
            failed_count += 1

    print(f"\nProcessing complete: {success_count} successful, {failed_count} failed")

    return {'success': success_count, 'failed': failed_count}


def run_demo_mode(
    output_dir: Path,
    detector_config: DetectorConfig,
    formats: List[str],
    generate_plots: bool = True,
    verbose: bool = False
) -> bool:
    """
    Run demo mode using synthetic tracks.

    Returns:
        True if successful
    """
    print("Running demo mode with synthetic audio...")

    sr = 22050
    test_tracks = [
        {
            'name': 'demo_single_spike',
            'audio': synthetic.generate_spike_track(duration=20, sr=sr)[0],
            'description': 'Quiet tone with one 3x spike at 5-8s'
        },
        {
            'name': 'demo_crowd_reactions',
            'audio': synthetic.generate_crowd_reactions(sr=sr)[0],
            'description': 'Commentary with three crowd bursts'
        },
        {
            'name': 'demo_silence',
            'audio': synthetic.generate_silence(10, sr=sr),
            'description': 'Silent track (no markers expected)'
        },
    ]

    print(f"Generated {len(test_tracks)} synthetic tracks")

    for track_info in test_tracks:
        print(f"\nProcessing: {track_info['name']} ({track_info['description']})")
        print("-" * 60)

        try:
            result = detection.analyze_samples(track_info['audio'], sr, detector_config)

            track_output_dir = output_dir / track_info['name']
            created_files = export.export_all_outputs(
                result,
                track_output_dir,
                track_info['name'],
                formats=formats,
                media_file_name=f"{track_info['name']}.wav",
                generate_plots=generate_plots
            )

            print(f"Created {len(created_files)} output files in {track_output_dir}")
            export.print_analysis_summary(result, track_info['name'])

        except Exception as e:
            print(f"ERROR: {e}", file=sys.stderr)
            if verbose:
                import traceback
                traceback.print_exc()
            return False

    print(f"\nDemo complete! Results saved to {output_dir}")
    return True


def build_detector_config(args: argparse.Namespace) -> DetectorConfig:
    """
    Build the detector configuration from parsed arguments.

    Raises:
        ValueError: If a preset is unknown or a value is invalid
    """
    base = get_preset(args.preset)
    return with_overrides(
        base,
        window_duration_ms=args.window,
        threshold_ratio=args.threshold,
        min_duration_sec=args.min_duration,
        merge_enabled=False if args.no_merge else None,
        extension_sec=args.extend,
    )


def configure_logging(verbose: bool) -> None:
    """Send library diagnostics to stderr, at DEBUG level when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='excitement-markers - Find loud, exciting moments in recordings',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze a video, write match_markers.csv to the current directory
  %(prog)s match.mp4

  # Analyze a directory, write CSV and LosslessCut projects
  %(prog)s recordings/ --output markers/ --format csv llc

  # Extend every marker by 30 seconds
  %(prog)s match.mp4 --extend 30

  # Run demo mode
  %(prog)s --demo --output demo_results/
        """
    )

    parser.add_argument(
        'input',
        nargs='?',
        type=str,
        help='Input audio/video file or directory (not needed for --demo)'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        default='.',
        help='Output directory for results (default: current directory)'
    )

    parser.add_argument(
        '--format', '-f',
        nargs='+',
        choices=config.SUPPORTED_FORMATS,
        default=config.DEFAULT_FORMATS,
        help=f"Export formats (default: {' '.join(config.DEFAULT_FORMATS)})"
    )

    parser.add_argument(
        '--demo',
        action='store_true',
        help='Run demo mode with synthetic tracks (no input file needed)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Print verbose progress messages'
    )

    parser.add_argument(
        '--plot',
        action='store_true',
        help='Write a loudness plot per track'
    )

    parser.add_argument(
        '--keep-wav',
        action='store_true',
        help='Keep the WAV file extracted from videos'
    )

    # Detector overrides
    parser.add_argument(
        '--preset',
        choices=sorted(PRESETS),
        default='default',
        help='Detector preset (default: default)'
    )

    parser.add_argument(
        '--threshold',
        type=float,
        help=f'Volume spike threshold multiplier (default: {DEFAULT_CONFIG.threshold.threshold_ratio})'
    )

    parser.add_argument(
        '--min-duration',
        type=float,
        help=f'Minimum excitement duration in seconds (default: {DEFAULT_CONFIG.threshold.min_duration_sec})'
    )

    parser.add_argument(
        '--window',
        type=int,
        help=f'Analysis window size in milliseconds (default: {DEFAULT_CONFIG.window.window_duration_ms})'
    )

    parser.add_argument(
        '--no-merge',
        action='store_true',
        help='Do not merge nearby markers'
    )

    parser.add_argument(
        '--extend',
        type=float,
        help='Extend markers scoring above 1.0 by this many seconds'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate arguments
    if not args.demo and not args.input:
        parser.error("Either provide an input file/directory or use --demo")

    configure_logging(args.verbose)

    try:
        detector_config = build_detector_config(args)
    except ValueError as e:
        parser.error(str(e))

    output_dir = Path(args.output)

    # Run appropriate mode
    if args.demo:
        success = run_demo_mode(
            output_dir, detector_config, args.format,
            generate_plots=True, verbose=args.verbose
        )
        return 0 if success else 1

    input_path = Path(args.input)

    if not input_path.exists():
        print(f"ERROR: Input path does not exist: {input_path}", file=sys.stderr)
        return 1

    if input_path.is_file():
        success = process_single_track(
            input_path, output_dir, detector_config, args.format,
            generate_plots=args.plot, keep_wav=args.keep_wav, verbose=args.verbose
        )
        return 0 if success else 1

    if input_path.is_dir():
        results = process_directory(
            input_path, output_dir, detector_config, args.format,
            generate_plots=args.plot, keep_wav=args.keep_wav, verbose=args.verbose
        )
        return 0 if results['failed'] == 0 else 1

    print(f"ERROR: Invalid input path: {input_path}", file=sys.stderr)
    return 1


if __name__ == '__main__':
    sys.exit(main())
