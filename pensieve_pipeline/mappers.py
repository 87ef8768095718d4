"""Domain <-> DTO mappers.

Converts between CleanSegment/Job (domain) and the pydantic DTOs used for
transcript.json and API responses. The on-disk schema stays unchanged.
"""

from typing import Any, Optional

from pensieve_pipeline.domain.models import CleanSegment, Job, RawSegment
from pensieve_pipeline.models import (
    JobView, OffsetRange, TimeRange, Transcript, TranscriptItem, TranscriptResult,
)
from pensieve_pipeline.post_processing import NO_SPEAKER


def segment_to_item(seg: CleanSegment) -> TranscriptItem:
    """Convert a domain CleanSegment to a TranscriptItem DTO."""
    return TranscriptItem(
        timestamps=TimeRange(from_=seg.time_from, to=seg.time_to),
        offsets=OffsetRange(from_=seg.offset_from, to=seg.offset_to),
        text=seg.text,
        speaker=seg.speaker,
    )


def segments_to_transcript(segments: list[CleanSegment], language: Optional[str] = None) -> Transcript:
    return Transcript(
        result=TranscriptResult(language=language or "unknown"),
        transcription=[segment_to_item(seg) for seg in segments],
    )


def whisper_json_to_segments(data: dict[str, Any]) -> list[RawSegment]:
    """Convert whisper.cpp JSON output (-oj) into raw segments.

    Offsets are milliseconds. The stereo diarization speaker ("0"/"1")
    becomes the label; "?" or a missing speaker means no speaker.
    """
    segments = []
    for i, item in enumerate(data.get("transcription", [])):
        offsets = item.get("offsets", {})
        speaker = item.get("speaker")
        label = NO_SPEAKER if speaker in (None, "", "?") else str(speaker)
        segments.append(RawSegment(
            id=i,
            start=offsets.get("from", 0) / 1000,
            end=offsets.get("to", 0) / 1000,
            label=label,
            text=item.get("text", ""),
        ))
    return segments


def job_to_view(job: Job) -> JobView:
    return JobView(
        recording_id=job.recording_id,
        steps=sorted(job.steps, key=lambda s: s.value) if job.steps is not None else None,
        state=job.state.value,
        error=job.error,
        aborted=job.aborted,
    )
