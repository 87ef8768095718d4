from typing import List, Optional, Dict, Literal
from pydantic import BaseModel, ConfigDict, Field

from pensieve_pipeline.domain.models import StepName


class TimeRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str


class OffsetRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: int = Field(alias="from")
    to: int


class TranscriptItem(BaseModel):
    """One transcript line as stored in transcript.json."""
    timestamps: TimeRange
    offsets: OffsetRange
    text: str
    speaker: Optional[str] = None


class TranscriptResult(BaseModel):
    language: str = "unknown"


class Transcript(BaseModel):
    """On-disk transcript: {result: {language}, transcription: [...]}"""
    result: TranscriptResult = Field(default_factory=TranscriptResult)
    transcription: List[TranscriptItem] = []

    def plain_text(self) -> str:
        """Speaker-prefixed text, one line per item."""
        lines = []
        for item in self.transcription:
            text = item.text.strip()
            if item.speaker:
                lines.append(f"{item.speaker}: {text}")
            else:
                lines.append(text)
        return "\n".join(lines)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class WhisperSettings(BaseModel):
    binary: str = "whisper-cli"
    model: str = "base.en"
    threads: int = 4
    processors: int = 1
    language: str = "auto"
    translate: bool = False
    # Stereo input: left channel (screen) and right channel (mic) become speakers.
    diarize: bool = True


class DiarizationSettings(BaseModel):
    device: Literal["cpu", "gpu"] = "cpu"
    min_segment_ms: int = 200
    merge_gap_ms: int = 300


class TranscriptionSettings(BaseModel):
    engine: Literal["whisper", "diarization"] = "whisper"
    whisper: WhisperSettings = Field(default_factory=WhisperSettings)
    diarization: DiarizationSettings = Field(default_factory=DiarizationSettings)


class LlmSettings(BaseModel):
    enabled: bool = False
    base_url: str = "http://localhost:11434"
    model: str = "llama3.1:8b"
    timeout: int = 300


class HooksSettings(BaseModel):
    enabled: bool = False
    commands: List[str] = []


class FfmpegSettings(BaseModel):
    remove_raw_recordings: bool = False


class PipelineSettings(BaseModel):
    """Options read by the pipeline steps on every run."""
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    llm: LlmSettings = Field(default_factory=LlmSettings)
    hooks: HooksSettings = Field(default_factory=HooksSettings)
    ffmpeg: FfmpegSettings = Field(default_factory=FfmpegSettings)


class JobView(BaseModel):
    recording_id: str
    steps: Optional[List[StepName]] = None
    state: str
    error: Optional[str] = None
    aborted: bool = False


class ProgressSnapshot(BaseModel):
    """Queue and progress state for display.

    Steps listed in estimated_steps report time-based guesses rather than
    measured progress.
    """
    current_step: str
    progress: Dict[str, Optional[float]]
    estimated_steps: List[str] = []
    active_job: Optional[JobView] = None
    queue: List[JobView] = []
    is_running: bool = False


class EnqueueRequest(BaseModel):
    recording_id: str
    steps: Optional[List[StepName]] = None
