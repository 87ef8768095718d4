"""Progress tracking for the running job.

ProgressTracker holds the current step and per-step progress. Each step
only writes its own keys and every write replaces the whole value, so
readers never need a lock. Observers are told about changes through a
ThrottledNotifier: at most one call per interval, plus a trailing call so
the final state always goes out.
"""

import logging
import threading
import time
from typing import Callable, Optional, Union

from pensieve_pipeline.domain.models import EMPTY_PROGRESS, NOT_STARTED, StepName

logger = logging.getLogger(__name__)

NOTIFY_INTERVAL_SECONDS = 0.1

# Measured: ~46s of processing for 610s of audio.
DIARIZATION_TIME_RATIO = 0.075
DIARIZATION_MIN_SECONDS = 15.0
ESTIMATE_CAP = 0.95


class ThrottledNotifier:
    def __init__(
        self,
        callback: Callable[[], None],
        interval: float = NOTIFY_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self._callback = callback
        self._interval = interval
        self._clock = clock
        self._timer_factory = timer_factory
        self._last = float("-inf")
        self._lock = threading.Lock()

    def trigger(self) -> None:
        with self._lock:
            now = self._clock()
            if now < self._last:
                # A trailing notification is already scheduled.
                return
            if now - self._last > self._interval:
                self._last = now
                fire_now = True
            else:
                self._last = now + self._interval
                timer = self._timer_factory(self._interval, self._callback)
                timer.daemon = True
                timer.start()
                fire_now = False
        if fire_now:
            self._callback()


class ProgressTracker:
    def __init__(self, on_change: Optional[Callable[[], None]] = None):
        self._on_change = on_change or (lambda: None)
        self._progress: dict[StepName, Optional[float]] = dict(EMPTY_PROGRESS)
        self._current_step: Union[StepName, str] = NOT_STARTED
        self._active_job: Optional[str] = None
        self._estimated_steps: frozenset[StepName] = frozenset()

    @property
    def current_step(self) -> Union[StepName, str]:
        return self._current_step

    @property
    def active_job(self) -> Optional[str]:
        return self._active_job

    @property
    def estimated_steps(self) -> frozenset[StepName]:
        """Steps whose progress is a time-based guess, not a measurement."""
        return self._estimated_steps

    def set_step(self, step: Union[StepName, str]) -> None:
        self._current_step = step
        self.notify()

    def get_progress(self, step: StepName) -> Optional[float]:
        return self._progress[step]

    def set_progress(self, step: StepName, value: Optional[float]) -> None:
        self._progress[step] = value
        self.notify()

    def mark_estimated(self, step: StepName) -> None:
        self._estimated_steps = self._estimated_steps | {step}

    def set_active_job(self, recording_id: Optional[str]) -> None:
        self._active_job = recording_id
        self.notify()

    def progress(self) -> dict[StepName, Optional[float]]:
        return dict(self._progress)

    def reset(self) -> None:
        self._progress = dict(EMPTY_PROGRESS)
        self._estimated_steps = frozenset()

    def notify(self) -> None:
        self._on_change()


class HeuristicProgressEstimator:
    """Time-based progress for backends that report none.

    Progress is elapsed / max(audio_seconds * ratio, min_seconds), capped
    until the call returns. It is an estimate only.
    """

    def __init__(
        self,
        ratio: float = DIARIZATION_TIME_RATIO,
        min_seconds: float = DIARIZATION_MIN_SECONDS,
        cap: float = ESTIMATE_CAP,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ratio = ratio
        self.min_seconds = min_seconds
        self.cap = cap
        self._clock = clock
        self._started: Optional[float] = None
        self._estimated_seconds = min_seconds

    def estimated_seconds(self, audio_seconds: float) -> float:
        return max(audio_seconds * self.ratio, self.min_seconds)

    def begin(self, audio_seconds: float) -> None:
        self._estimated_seconds = self.estimated_seconds(audio_seconds)
        self._started = self._clock()
        logger.info(f"Estimated processing time: {self._estimated_seconds:.1f}s")

    def current(self) -> float:
        if self._started is None:
            return 0.0
        elapsed = self._clock() - self._started
        return min(elapsed / self._estimated_seconds, self.cap)


class EstimatedProgressTicker:
    """Pushes the estimator's value into the tracker every interval seconds."""

    def __init__(
        self,
        estimator: HeuristicProgressEstimator,
        tracker: ProgressTracker,
        step: StepName,
        interval: float = 1.0,
    ):
        self._estimator = estimator
        self._tracker = tracker
        self._step = step
        self._interval = interval
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, audio_seconds: float) -> None:
        self._estimator.begin(audio_seconds)
        self._tracker.mark_estimated(self._step)
        self._thread = threading.Thread(target=self._loop, name="progress-ticker", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self._stopped.wait(self._interval):
            self._tracker.set_progress(self._step, self._estimator.current())

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join()
