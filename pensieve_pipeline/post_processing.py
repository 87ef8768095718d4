"""Post-processing pipeline for diarized transcription segments.

Turns raw speaker-labelled segments into a clean transcript: drops
micro-segments, bridges short same-speaker gaps, removes empty text and
collapses consecutive turns of one speaker. Also formats timestamps and
resolves engine speaker labels into display names.

The filter order matters and every backend goes through normalize_segments
so downstream readers always see the same shape.
"""

import math
import logging
from dataclasses import replace
from typing import List, Optional

from pensieve_pipeline.domain.models import RawSegment, CleanSegment

logger = logging.getLogger(__name__)

NO_SPEAKER = "NO_SPEAKER"


def drop_tiny_segments(segments: List[RawSegment], min_segment_ms: float) -> List[RawSegment]:
    """Remove segments shorter than min_segment_ms.

    Diarization engines emit spurious micro-segments at speaker changes.
    """
    kept = [s for s in segments if (s.end - s.start) * 1000 >= min_segment_ms]
    dropped = len(segments) - len(kept)
    if dropped:
        logger.info(f"Tiny segment filter: dropped {dropped} segments below {min_segment_ms}ms")
    return kept


def merge_short_gaps(segments: List[RawSegment], merge_gap_ms: Optional[float]) -> List[RawSegment]:
    """Bridge short silences between segments of the same speaker.

    The earlier segment is extended to the later one's end. The later
    segment's text is NOT carried over; only merge_adjacent_same_speaker
    concatenates text. NO_SPEAKER segments are never bridged.

    Args:
        segments: Segments ordered by start time.
        merge_gap_ms: Largest gap (ms) that is bridged. None disables the filter.

    Returns:
        New list; input segments are not modified.
    """
    if not segments or merge_gap_ms is None:
        return list(segments)

    out = [segments[0]]
    for cur in segments[1:]:
        prev = out[-1]
        gap = (cur.start - prev.end) * 1000
        if gap <= merge_gap_ms and prev.label == cur.label and cur.label != NO_SPEAKER:
            out[-1] = replace(prev, end=cur.end)
        else:
            out.append(cur)
    return out


def filter_empty_segments(segments: List[RawSegment]) -> List[RawSegment]:
    return [s for s in segments if s.text and s.text.strip()]


def merge_adjacent_same_speaker(segments: List[RawSegment]) -> List[RawSegment]:
    """Merge consecutive segments sharing a label, regardless of gap size.

    Text is joined with a single space and trimmed. Unattributed segments
    (NO_SPEAKER) are never merged with each other.
    """
    if not segments:
        return []

    out = [segments[0]]
    for cur in segments[1:]:
        prev = out[-1]
        if prev.label == cur.label and cur.label != NO_SPEAKER:
            out[-1] = replace(prev, end=cur.end, text=f"{prev.text.strip()} {cur.text.strip()}".strip())
        else:
            out.append(cur)
    return out


def format_timestamp(seconds: float) -> str:
    """Format seconds as HH:MM:SS.mmm, truncating every component."""
    hours = math.floor(seconds / 3600)
    minutes = math.floor((seconds % 3600) / 60)
    secs = math.floor(seconds % 60)
    ms = math.floor((seconds % 1) * 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{ms:03d}"


def to_milliseconds(seconds: float) -> int:
    """Round to whole milliseconds, halves up."""
    return math.floor(seconds * 1000 + 0.5)


def convert_speaker_label(label: str) -> str:
    """Map an engine speaker label to the display name used by the UI.

    NO_SPEAKER -> "?", SPEAKER_3 -> "Speaker 3",
    SPEAKERS_1_AND_2 -> "Speakers 1 & 2"; anything else is returned as is.
    """
    if label == NO_SPEAKER:
        return "?"

    if label.startswith("SPEAKER_"):
        return f"Speaker {label[len('SPEAKER_'):]}"

    if label.startswith("SPEAKERS_") and "_AND_" in label:
        parts = label[len("SPEAKERS_"):].split("_AND_")
        return f"Speakers {parts[0]} & {parts[1]}"

    return label


def to_clean_segment(segment: RawSegment) -> CleanSegment:
    return CleanSegment(
        start=segment.start,
        end=segment.end,
        text=segment.text,
        speaker=convert_speaker_label(segment.label),
        time_from=format_timestamp(segment.start),
        time_to=format_timestamp(segment.end),
        offset_from=to_milliseconds(segment.start),
        offset_to=to_milliseconds(segment.end),
    )


def normalize_segments(
    segments: List[RawSegment],
    min_segment_ms: float = 0,
    merge_gap_ms: Optional[float] = None,
    merge_same_speaker: bool = True,
) -> List[CleanSegment]:
    """Run the four cleanup filters in order and format the result.

    Args:
        segments: Raw backend segments, in any order; they are sorted by
            start time first.
        min_segment_ms: Segments shorter than this are dropped first.
        merge_gap_ms: Same-speaker gaps up to this size are bridged. None
            skips gap bridging.
        merge_same_speaker: Collapse consecutive turns of one speaker.
            False keeps every backend segment.

    Returns:
        Clean segments ready to be written as a transcript.
    """
    cleaned = sorted(segments, key=lambda s: s.start)
    cleaned = drop_tiny_segments(cleaned, min_segment_ms)
    cleaned = merge_short_gaps(cleaned, merge_gap_ms)
    cleaned = filter_empty_segments(cleaned)
    if merge_same_speaker:
        cleaned = merge_adjacent_same_speaker(cleaned)
    logger.info(f"Normalized {len(segments)} raw segments into {len(cleaned)} transcript segments")
    return [to_clean_segment(s) for s in cleaned]
