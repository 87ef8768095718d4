"""TranscriptionPort: capability interface for transcription backends."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from pensieve_pipeline.cancellation import CancellationToken
from pensieve_pipeline.domain.models import TranscriptionResult

ProgressCallback = Callable[[float], None]


class TranscriptionPort(ABC):
    # Backends without a native progress signal get an estimated one.
    reports_progress: bool = True

    @abstractmethod
    def prepare(self, on_progress: ProgressCallback) -> None:
        """Fetch models or warm up before transcribe(); may report progress."""

    @abstractmethod
    def transcribe(
        self,
        audio_path: Path,
        on_progress: Optional[ProgressCallback],
        token: CancellationToken,
    ) -> TranscriptionResult:
        """Transcribe an audio file into raw speaker-labelled segments."""

    @abstractmethod
    def model_name(self) -> str:
        """Return the human-readable model name for logs and metadata."""
