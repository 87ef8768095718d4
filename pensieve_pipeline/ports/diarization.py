"""DiarizationPort: abstract interface for speaker diarization."""

from abc import ABC, abstractmethod
from typing import Optional

from pensieve_pipeline.domain.models import RawSegment


class DiarizationPort(ABC):
    @abstractmethod
    def load(self, **kwargs) -> None:
        """Load the diarization pipeline."""

    @abstractmethod
    def diarize(self, audio_path: str) -> list[tuple[float, float, str]]:
        """Return speaker turns as (start, end, label), ordered by start."""

    @abstractmethod
    def label_segments(
        self,
        turns: list[tuple[float, float, str]],
        segments: list[tuple[float, float, str]],
        confidence: Optional[float] = None,
    ) -> list[RawSegment]:
        """Attach a speaker label to each (start, end, text) ASR segment."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the diarization pipeline is loaded and ready."""
