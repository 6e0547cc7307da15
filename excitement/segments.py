"""
Segment Post-Processing Module

Turn raw candidates into the final marker list: merge neighbours, extend
high-scoring segments forward, render labels. Every function returns new
dicts and leaves its input untouched.
"""

import logging
from typing import Dict, List

from excitement import timebase
from excitement.params import DetectorConfig

logger = logging.getLogger(__name__)

LABEL_TEMPLATE = "Excitement ({score:.1f}x)"


def format_label(score: float) -> str:
    """Human-readable label for a segment score, e.g. 'Excitement (2.3x)'."""
    return LABEL_TEMPLATE.format(score=score)


def _absorb(current: Dict, nxt: Dict) -> None:
    """Fold nxt into the current accumulator in place."""
    current['end_time'] = max(current['end_time'], nxt['end_time'])
    current['duration'] = current['end_time'] - current['start_time']
    if 'end_window' in current and 'end_window' in nxt:
        current['end_window'] = max(current['end_window'], nxt['end_window'])

    if nxt['score'] > current['score']:
        current['score'] = nxt['score']
        if 'label' in nxt:
            current['label'] = nxt['label']


def merge_segments(
    segments: List[Dict],
    gap_tolerance_sec: float,
    significant_overlap_sec: float
) -> List[Dict]:
    """
    Merge overlapping or nearly adjacent segments.

    Segments are sorted by start time and folded left to right. With
    overlap = current.end - next.start, next is merged into current when
    (a) overlap > significant_overlap_sec, or
    (b) next starts no more than gap_tolerance_sec after current ends
        (a negative gap, i.e. any true overlap, always qualifies).
    The rules are checked in that order. A merge keeps the later end and
    the higher score (with its label). Running the merge again on its own
    output returns the same list.

    Parameters:
        segments: Segment dicts with 'start_time', 'end_time', 'score'
        gap_tolerance_sec: Largest gap bridged between segments
        significant_overlap_sec: Overlap that always merges

    Returns:
        List of merged segment dicts sorted by start_time
    """
    if len(segments) == 0:
        return []

    sorted_segments = sorted(segments, key=lambda item: item['start_time'])
    merged = []
    current = dict(sorted_segments[0])

    for segment in sorted_segments[1:]:
        overlap = current['end_time'] - segment['start_time']
        gap = -overlap

        if overlap > significant_overlap_sec:
            logger.debug(
                "Merging %.2fs-%.2fs into %.2fs-%.2fs (overlap %.2fs)",
                segment['start_time'], segment['end_time'],
                current['start_time'], current['end_time'], overlap
            )
            _absorb(current, segment)
        elif gap <= gap_tolerance_sec:
            logger.debug(
                "Merging %.2fs-%.2fs into %.2fs-%.2fs (gap %.2fs)",
                segment['start_time'], segment['end_time'],
                current['start_time'], current['end_time'], gap
            )
            _absorb(current, segment)
        else:
            merged.append(current)
            current = dict(segment)

    merged.append(current)
    return merged


def extend_segments(
    segments: List[Dict],
    extension_sec: float,
    track_duration_sec: float,
    score_cutoff: float = 1.0
) -> List[Dict]:
    """
    Extend segments scoring above score_cutoff forward by extension_sec.

    The new end is clamped to the track duration and to the start of the
    following segment, so extended output stays non-overlapping. An end is
    never moved backwards.

    Parameters:
        segments: Merged segment dicts
        extension_sec: Seconds added after each qualifying segment
        track_duration_sec: Total track duration in seconds
        score_cutoff: Only segments with score > score_cutoff are extended

    Returns:
        List of segment dicts sorted by start_time
    """
    sorted_segments = sorted(segments, key=lambda item: item['start_time'])
    extended = []

    for i, segment in enumerate(sorted_segments):
        seg_copy = dict(segment)

        if seg_copy['score'] > score_cutoff:
            limit = track_duration_sec
            if i + 1 < len(sorted_segments):
                limit = min(limit, sorted_segments[i + 1]['start_time'])

            new_end = max(seg_copy['end_time'], min(seg_copy['end_time'] + extension_sec, limit))
            if new_end != seg_copy['end_time']:
                logger.debug(
                    "Extending %.2fs-%.2fs to %.2fs", seg_copy['start_time'], seg_copy['end_time'], new_end
                )
            seg_copy['end_time'] = new_end
            seg_copy['duration'] = new_end - seg_copy['start_time']

        extended.append(seg_copy)

    return extended


def finalize_segments(
    candidates: List[Dict],
    config: DetectorConfig,
    track_duration_sec: float
) -> List[Dict]:
    """
    Produce the exported marker list from raw candidates.

    Pipeline: merge (if enabled) -> extend (if enabled) -> label -> clamp to
    track duration, dropping any segment with end_time <= start_time.

    Parameters:
        candidates: Candidate dicts from detection.detect_candidates
        config: Detector configuration
        track_duration_sec: Total track duration in seconds

    Returns:
        List of marker dicts sorted by start_time with:
            - 'start_time', 'end_time', 'duration': seconds
            - 'label': rendered score
            - 'score': peak loudness / baseline ratio
    """
    segments = sorted((dict(c) for c in candidates), key=lambda item: item['start_time'])

    if config.merge.enabled:
        segments = merge_segments(
            segments,
            config.merge.gap_tolerance_sec,
            config.merge.significant_overlap_sec,
        )

    if config.extension.enabled:
        segments = extend_segments(
            segments,
            config.extension.extension_sec,
            track_duration_sec,
            config.extension.score_cutoff,
        )

    segments = timebase.clamp_segments(segments, track_duration_sec)

    markers = []
    for segment in segments:
        if segment['score'] <= 0:
            continue
        markers.append({
            'start_time': float(segment['start_time']),
            'end_time': float(segment['end_time']),
            'duration': float(segment['end_time'] - segment['start_time']),
            'label': format_label(segment['score']),
            'score': float(segment['score']),
        })

    return markers
