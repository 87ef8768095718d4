"""JobQueuePort: control surface of the post-processing queue."""

from abc import ABC, abstractmethod

from pensieve_pipeline.domain.models import Job
from pensieve_pipeline.models import ProgressSnapshot


class JobQueuePort(ABC):
    @abstractmethod
    def enqueue(self, job: Job) -> None:
        """Append a job. Does not start processing."""

    @abstractmethod
    def start(self) -> None:
        """Start processing pending jobs one at a time."""

    @abstractmethod
    def stop(self) -> None:
        """Abort the running job and stop the queue."""

    @abstractmethod
    def clear_list(self) -> None:
        """Forget all jobs regardless of state."""

    @abstractmethod
    def progress_snapshot(self) -> ProgressSnapshot:
        """Read-only view of queue and progress state."""

    @abstractmethod
    def has_aborted(self) -> bool:
        """Whether the current run was stopped."""
