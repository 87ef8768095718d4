"""SearchIndexPort: abstract interface for search and vector indexing."""

from abc import ABC, abstractmethod
from typing import Callable


class SearchIndexPort(ABC):
    @abstractmethod
    def add_recording_to_index(self, recording_id: str) -> None:
        """Add or refresh the recording in the full-text index."""

    @abstractmethod
    def add_transcript_to_vector_store(
        self, recording_id: str, on_progress: Callable[[float], None]
    ) -> None:
        """Embed the recording's transcript into the vector store."""
