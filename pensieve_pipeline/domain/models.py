"""Framework-agnostic domain models for the post-processing pipeline.

Processing logic works on these dataclasses. Pydantic DTOs in models.py
stay at the boundary (transcript JSON, API responses), with mappers between.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class StepName(str, Enum):
    WAV = "wav"
    MP3 = "mp3"
    MODEL_DOWNLOAD = "modelDownload"
    TRANSCRIBE = "transcribe"
    SUMMARIZE = "summarize"
    RUN_HOOKS = "runHooks"
    INDEX_VECTORS = "indexVectors"


# Binary steps report None; fractional steps start at 0.
EMPTY_PROGRESS: dict[StepName, Optional[float]] = {
    StepName.MODEL_DOWNLOAD: 0.0,
    StepName.WAV: None,
    StepName.MP3: None,
    StepName.TRANSCRIBE: 0.0,
    StepName.SUMMARIZE: 0.0,
    StepName.RUN_HOOKS: None,
    StepName.INDEX_VECTORS: 0.0,
}

NOT_STARTED = "notstarted"


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"


@dataclass
class Job:
    """One recording's run through the pipeline."""
    recording_id: str
    steps: Optional[set[StepName]] = None
    state: JobState = JobState.PENDING
    error: Optional[str] = None
    aborted: bool = False

    def has_step(self, step: StepName) -> bool:
        return self.steps is None or step in self.steps

    @property
    def is_done(self) -> bool:
        return self.state == JobState.DONE

    @property
    def is_running(self) -> bool:
        return self.state == JobState.RUNNING


@dataclass(frozen=True)
class RawSegment:
    """A speaker-labelled span as emitted by a transcription backend."""
    start: float
    end: float
    label: str
    text: str
    confidence: float = 1.0
    id: int = 0


@dataclass
class CleanSegment:
    """A normalized transcript segment with resolved speaker name."""
    start: float
    end: float
    text: str
    speaker: str
    time_from: str
    time_to: str
    offset_from: int
    offset_to: int


@dataclass
class TranscriptionResult:
    """Backend output before normalization."""
    segments: list[RawSegment] = field(default_factory=list)
    language: str = "unknown"


class StepStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILURE = "failure"


@dataclass(frozen=True)
class StepOutcome:
    status: StepStatus
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "StepOutcome":
        return cls(StepStatus.SUCCESS)

    @classmethod
    def skipped(cls, reason: Optional[str] = None) -> "StepOutcome":
        return cls(StepStatus.SKIPPED, reason)

    @classmethod
    def failure(cls, reason: str) -> "StepOutcome":
        return cls(StepStatus.FAILURE, reason)


@dataclass(frozen=True)
class RecordingPaths:
    """Files belonging to one recording directory."""
    folder: Path
    mic: Path
    screen: Path
    wav: Path
    mp3: Path
    transcript: Path

    @classmethod
    def for_recording(cls, recordings_folder: Path, recording_id: str) -> "RecordingPaths":
        folder = Path(recordings_folder) / recording_id
        return cls(
            folder=folder,
            mic=folder / "mic.webm",
            screen=folder / "screen.webm",
            wav=folder / "whisper-input.wav",
            mp3=folder / "recording.mp3",
            transcript=folder / "transcript.json",
        )
