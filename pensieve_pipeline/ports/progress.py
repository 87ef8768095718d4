"""ProgressPort: abstract interface for notifying progress observers."""

from abc import ABC, abstractmethod

from pensieve_pipeline.models import ProgressSnapshot


class ProgressPort(ABC):
    @abstractmethod
    def notify(self, snapshot: ProgressSnapshot) -> None:
        """Tell observers that pipeline progress changed."""
