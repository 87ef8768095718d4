"""HookRunnerPort: extension point run after a recording is processed."""

from abc import ABC, abstractmethod

from pensieve_pipeline.domain.models import Job, RecordingPaths


class HookRunnerPort(ABC):
    @abstractmethod
    def run(self, job: Job, paths: RecordingPaths) -> None:
        """Run all configured hooks for the job. Raises on failure."""
