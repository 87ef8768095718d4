"""RecordingStorePort: abstract interface for recording metadata."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from pensieve_pipeline.models import Transcript


class RecordingStorePort(ABC):
    @abstractmethod
    def recordings_folder(self) -> Path:
        """Root folder holding one directory per recording."""

    @abstractmethod
    def get_recording(self, recording_id: str) -> dict[str, Any]:
        """Return stored metadata for a recording (empty if none)."""

    @abstractmethod
    def update_recording(self, recording_id: str, **fields: Any) -> None:
        """Merge fields into the recording's metadata."""

    @abstractmethod
    def get_transcript(self, recording_id: str) -> Optional[Transcript]:
        """Return the persisted transcript, or None if not written yet."""

    @abstractmethod
    def save_transcript(self, recording_id: str, transcript: Transcript) -> None:
        """Persist the transcript for a recording."""
