"""
Export Module

Write detected markers as a LosslessCut CSV segment list, a LosslessCut
project document, a JSON summary, and an optional loudness plot.
"""

import csv
import json
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt
import numpy as np

import config


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.bool_):
            return bool(obj)
        return super().default(obj)


def create_markers_csv(markers: List[Dict], output_path: Path) -> None:
    """
    Write markers as CSV segments.

    Format: header start_time,end_time,label then one row per marker, times
    as fixed-point seconds.

    Parameters:
        markers: Marker dicts with 'start_time', 'end_time', 'label'
        output_path: Path to output file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(config.CSV_HEADER)
        for marker in markers:
            writer.writerow([
                config.format_time(marker['start_time']),
                config.format_time(marker['end_time']),
                marker['label'],
            ])


def create_project_json(markers: List[Dict], media_file_name: str) -> Dict:
    """
    Build a LosslessCut project document.

    Parameters:
        markers: Marker dicts
        media_file_name: File name of the media the markers refer to

    Returns:
        Project dict with 'version', 'mediaFileName' and 'cutSegments'
    """
    return {
        'version': config.PROJECT_VERSION,
        'mediaFileName': media_file_name,
        'cutSegments': [
            {
                'start': float(marker['start_time']),
                'end': float(marker['end_time']),
                'name': marker['label'],
            }
            for marker in markers
        ],
    }


def create_summary_json(analysis_result: Dict, track_name: str) -> Dict:
    """
    Create summary JSON with key statistics and the marker list.

    Parameters:
        analysis_result: Dict from detection.analyze_samples
        track_name: Name of track

    Returns:
        Summary dict
    """
    grid = analysis_result['grid']
    markers = analysis_result['markers']

    if markers:
        top_marker = max(markers, key=lambda m: m['score'])
        top = {
            'start_time': top_marker['start_time'],
            'end_time': top_marker['end_time'],
            'score': top_marker['score'],
        }
    else:
        top = None

    return {
        'schema_version': config.SCHEMA_VERSION,
        'track_name': track_name,
        'status': analysis_result['status'],
        'message': analysis_result['message'],
        'duration_sec': analysis_result['duration'],
        'analysis': {
            'sample_rate': grid.sample_rate,
            'window_size': grid.window_size,
            'step_size': grid.step_size,
            'step_duration_sec': grid.step_duration_sec,
            'n_windows': len(analysis_result['loudness']),
            'baseline': analysis_result['baseline'],
            'threshold': analysis_result['threshold'],
        },
        'params': analysis_result['params'],
        'num_candidates': len(analysis_result['candidates']),
        'num_markers': len(markers),
        'top_marker': top,
        'total_marked_sec': float(sum(m['duration'] for m in markers)),
        'markers': markers,
    }


def save_json(data: Dict, output_path: Path) -> None:
    """
    Save data as JSON with pretty printing.

    Parameters:
        data: Dictionary to save
        output_path: Path to output file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(data, f, indent=2, cls=NumpyEncoder)


def save_project(markers: List[Dict], media_file_name: str, output_path: Path) -> None:
    """Write a LosslessCut project file for the markers."""
    save_json(create_project_json(markers, media_file_name), output_path)


def plot_loudness_and_markers(
    analysis_result: Dict,
    output_path: Path,
    title: str = "Excitement Analysis"
) -> None:
    """
    Plot the loudness curve with baseline, threshold and shaded markers.

    Parameters:
        analysis_result: Dict from detection.analyze_samples
        output_path: Path to save plot
        title: Plot title
    """
    fig, ax = plt.subplots(figsize=config.PLOT_FIGSIZE)

    window_times = analysis_result['window_times']
    loudness = analysis_result['loudness']
    ax.plot(window_times, loudness, label='Loudness (RMS)', color='steelblue', linewidth=1)

    if analysis_result['baseline'] is not None:
        ax.axhline(analysis_result['baseline'], color='gray', linestyle=':',
                   linewidth=1, label='Baseline')
    if analysis_result['threshold'] is not None:
        ax.axhline(analysis_result['threshold'], color='red', linestyle='--',
                   linewidth=1, label='Threshold')

    for marker in analysis_result['markers']:
        ax.axvspan(marker['start_time'], marker['end_time'],
                   alpha=0.2, color='orange', label='_nolegend_')

    ax.set_xlabel('Time (seconds)', fontsize=10)
    ax.set_ylabel('RMS', fontsize=10)
    ax.set_title(title, fontsize=12, fontweight='bold')
    ax.set_xlim(0, max(analysis_result['duration'], 1e-3))
    ax.legend(loc='upper right', fontsize=8)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=config.PLOT_DPI, bbox_inches='tight')
    plt.close(fig)


def export_all_outputs(
    analysis_result: Dict,
    output_dir: Path,
    track_name: str,
    formats: Optional[List[str]] = None,
    media_file_name: Optional[str] = None,
    generate_plots: bool = False
) -> List[Path]:
    """
    Export the requested outputs for one track.

    Parameters:
        analysis_result: Dict from detection.analyze_samples
        output_dir: Output directory path
        track_name: Name of track (for filenames)
        formats: Any of 'csv', 'llc', 'json' (None = config.DEFAULT_FORMATS)
        media_file_name: Media file name written into the project document
            (None = track_name)
        generate_plots: Whether to generate the loudness plot

    Returns:
        List of paths to created files

    Raises:
        ValueError: If an unknown format is requested
    """
    if formats is None:
        formats = config.DEFAULT_FORMATS

    unknown = [fmt for fmt in formats if fmt not in config.SUPPORTED_FORMATS]
    if unknown:
        raise ValueError(f"Unknown export format(s): {', '.join(unknown)}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    markers = analysis_result['markers']
    created_files = []

    if 'csv' in formats:
        csv_path = output_dir / f"{track_name}{config.OUTPUT_SUFFIX}.csv"
        create_markers_csv(markers, csv_path)
        created_files.append(csv_path)

    if 'llc' in formats:
        project_path = output_dir / f"{track_name}{config.PROJECT_SUFFIX}"
        save_project(markers, media_file_name or track_name, project_path)
        created_files.append(project_path)

    if 'json' in formats:
        summary_path = output_dir / f"{track_name}_summary.json"
        save_json(create_summary_json(analysis_result, track_name), summary_path)
        created_files.append(summary_path)

    if generate_plots:
        plot_path = output_dir / f"{track_name}_loudness.png"
        plot_loudness_and_markers(
            analysis_result,
            plot_path,
            title=f"Excitement Analysis: {track_name}"
        )
        created_files.append(plot_path)

    return created_files


def print_analysis_summary(analysis_result: Dict, track_name: str) -> None:
    """
    Print concise analysis summary to console.

    Parameters:
        analysis_result: Dict from detection.analyze_samples
        track_name: Track name
    """
    print(f"\n{'='*60}")
    print(f"Analysis Summary: {track_name}")
    print(f"{'='*60}")
    print(f"Duration: {analysis_result['duration']:.2f} seconds")
    print(f"Status: {analysis_result['status']} ({analysis_result['message']})")

    if analysis_result['baseline'] is not None:
        print(f"Baseline: {analysis_result['baseline']:.6f}")
    if analysis_result['threshold'] is not None:
        print(f"Threshold: {analysis_result['threshold']:.6f}")

    markers = analysis_result['markers']
    print(f"Excitement markers: {len(markers)}")
    for i, marker in enumerate(markers, 1):
        print(f"  {i}. {config.format_time(marker['start_time'])}s - "
              f"{config.format_time(marker['end_time'])}s  {marker['label']}")

    print(f"{'='*60}\n")
