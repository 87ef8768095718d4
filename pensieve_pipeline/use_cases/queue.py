"""PostProcessingQueue: single-flight queue of post-processing jobs.

Jobs run in insertion order on one worker thread. The worker picks the
first job that is not done, runs it through the pipeline and moves on until
nothing is left. stop() cancels the current run cooperatively: it signals
the token and kills running subprocesses, then the step returns on its own.
"""

import logging
import threading
from typing import Optional

from pensieve_pipeline.cancellation import CancellationToken
from pensieve_pipeline.domain.models import NOT_STARTED, Job, JobState, StepName
from pensieve_pipeline.mappers import job_to_view
from pensieve_pipeline.models import ProgressSnapshot
from pensieve_pipeline.ports.job_queue import JobQueuePort
from pensieve_pipeline.ports.progress import ProgressPort
from pensieve_pipeline.progress import NOTIFY_INTERVAL_SECONDS, ProgressTracker, ThrottledNotifier
from pensieve_pipeline.runner import ProcessRunner
from pensieve_pipeline.use_cases.postprocess import PostProcessRecordingUseCase

logger = logging.getLogger(__name__)


class PostProcessingQueue(JobQueuePort):
    def __init__(
        self,
        pipeline: PostProcessRecordingUseCase,
        runner: ProcessRunner,
        progress_port: ProgressPort,
        notify_interval: float = NOTIFY_INTERVAL_SECONDS,
    ):
        self._pipeline = pipeline
        self._runner = runner
        self._progress_port = progress_port
        self._jobs: list[Job] = []
        self._lock = threading.RLock()
        # Held while a job runs; a worker started after stop() waits here.
        self._run_lock = threading.Lock()
        self._is_running = False
        self._token = CancellationToken()
        self._worker: Optional[threading.Thread] = None
        self._notifier = ThrottledNotifier(self._publish, interval=notify_interval)
        self.progress = ProgressTracker(on_change=self._notifier.trigger)

    def _publish(self) -> None:
        self._progress_port.notify(self.progress_snapshot())

    @property
    def is_running(self) -> bool:
        return self._is_running

    def jobs(self) -> list[Job]:
        with self._lock:
            return list(self._jobs)

    def current_job(self) -> Optional[Job]:
        with self._lock:
            if not self._is_running:
                return None
            return next((job for job in self._jobs if job.is_running), None)

    def enqueue(self, job: Job) -> None:
        with self._lock:
            self._jobs.append(job)
        logger.info(f"Queued recording {job.recording_id}")
        self.progress.notify()

    def start(self) -> None:
        with self._lock:
            if self._is_running:
                return
            self._token = CancellationToken()
            self._is_running = True
            self._worker = threading.Thread(
                target=self._work, args=(self._token,), name="postprocess-queue", daemon=True,
            )
            self._worker.start()

    def _work(self, token: CancellationToken) -> None:
        with self._run_lock:
            while not token.cancelled:
                with self._lock:
                    job = next((j for j in self._jobs if not j.is_done), None)
                    if job is None:
                        if self._token is token:
                            self._is_running = False
                        break
                    job.state = JobState.RUNNING

                self.progress.reset()
                self.progress.set_active_job(job.recording_id)
                if not self._run_job(job, token):
                    break
            self.progress.set_active_job(None)

    def _run_job(self, job: Job, token: CancellationToken) -> bool:
        """Run one job. Returns False when the run was aborted."""
        try:
            result = self._pipeline.execute(job, token, self.progress)
        except Exception as e:
            if token.cancelled:
                result = None
            else:
                logger.error(f"Failed to process recording {job.recording_id}: {e}", exc_info=True)
                job.error = str(e)
                job.state = JobState.DONE
                return True

        if result is None or result.aborted:
            logger.info(f"Recording {job.recording_id} was stopped before completion")
            job.aborted = True
            job.state = JobState.PENDING
            return False

        job.aborted = False
        job.state = JobState.DONE
        logger.info(f"Post-processed recording {job.recording_id}")
        return True

    def stop(self) -> None:
        with self._lock:
            self._token.cancel()
            self._is_running = False
        killed = self._runner.abort_all()
        if killed:
            logger.info(f"Stopped {killed} running commands")
        self.progress.reset()
        self.progress.set_step(NOT_STARTED)

    def clear_list(self) -> None:
        with self._lock:
            self._jobs = []
        self.progress.notify()

    def reset_job(self, recording_id: str) -> bool:
        """Make a stopped or failed job eligible again with a clean state."""
        with self._lock:
            for job in self._jobs:
                if job.recording_id == recording_id and not job.is_running:
                    job.state = JobState.PENDING
                    job.error = None
                    job.aborted = False
                    self.progress.notify()
                    return True
        return False

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread. Returns True if it has finished."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def has_aborted(self) -> bool:
        return self._token.cancelled

    def progress_snapshot(self) -> ProgressSnapshot:
        with self._lock:
            jobs = list(self._jobs)
            is_running = self._is_running

        step = self.progress.current_step
        active_id = self.progress.active_job
        active = next((j for j in jobs if j.recording_id == active_id), None) if is_running else None
        return ProgressSnapshot(
            current_step=step.value if isinstance(step, StepName) else step,
            progress={k.value: v for k, v in self.progress.progress().items()},
            estimated_steps=sorted(s.value for s in self.progress.estimated_steps),
            active_job=job_to_view(active) if active else None,
            queue=[job_to_view(j) for j in jobs],
            is_running=is_running,
        )
