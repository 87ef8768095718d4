"""SummarizerPort: abstract interface for transcript summarization."""

from abc import ABC, abstractmethod

from pensieve_pipeline.models import Transcript


class SummarizerPort(ABC):
    @abstractmethod
    def summarize(self, transcript: Transcript) -> str:
        """Return a summary of the transcript."""
