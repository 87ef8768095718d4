"""PostProcessRecordingUseCase: drives one job through the pipeline steps.

Steps run strictly in order: wav, mp3, transcribe, summarize, runHooks,
indexVectors, then finalize. The cancellation token is checked before every
step. A step that raises stops the run and the error reaches the queue,
unless the run was stopped meanwhile, which counts as a clean abort.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from pensieve_pipeline.cancellation import CancellationToken
from pensieve_pipeline.domain.models import Job, RecordingPaths, StepName, StepOutcome
from pensieve_pipeline.models import PipelineSettings
from pensieve_pipeline.ports.recordings import RecordingStorePort
from pensieve_pipeline.ports.search import SearchIndexPort
from pensieve_pipeline.progress import ProgressTracker
from pensieve_pipeline.use_cases.steps import PipelineStep, StepContext

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    recording_id: str
    outcomes: dict[StepName, StepOutcome] = field(default_factory=dict)
    aborted: bool = False
    finalized: bool = False


class PostProcessRecordingUseCase:
    def __init__(
        self,
        steps: Sequence[PipelineStep],
        store: RecordingStorePort,
        search: SearchIndexPort,
        settings_provider: Callable[[], PipelineSettings],
    ):
        self._steps = list(steps)
        self._store = store
        self._search = search
        self._settings_provider = settings_provider

    @property
    def step_names(self) -> list[StepName]:
        return [step.name for step in self._steps]

    def execute(self, job: Job, token: CancellationToken, progress: ProgressTracker) -> PipelineResult:
        paths = RecordingPaths.for_recording(self._store.recordings_folder(), job.recording_id)
        ctx = StepContext(
            job=job,
            paths=paths,
            settings=self._settings_provider(),
            token=token,
            progress=progress,
        )
        result = PipelineResult(recording_id=job.recording_id)

        try:
            for step in self._steps:
                if token.cancelled:
                    result.aborted = True
                    return result
                # Settings may change between steps.
                ctx.settings = self._settings_provider()
                outcome = step.run(ctx)
                result.outcomes[step.name] = outcome
                logger.info(f"[{job.recording_id}] {step.name.value}: {outcome.status.value}")

            if token.cancelled:
                result.aborted = True
                return result

            self._finalize(ctx)
            result.finalized = True
        except Exception:
            if token.cancelled:
                logger.info(f"Processing of {job.recording_id} stopped")
                result.aborted = True
                return result
            raise

        return result

    def _finalize(self, ctx: StepContext) -> None:
        recording_id = ctx.job.recording_id
        p = ctx.paths

        if ctx.settings.ffmpeg.remove_raw_recordings:
            if p.mp3.exists():
                for raw in (p.mic, p.screen):
                    if raw.exists():
                        raw.unlink()
                self._store.update_recording(recording_id, hasRawRecording=False)
                logger.info(f"Removed raw recordings of {recording_id}")
            else:
                logger.warning(f"Keeping raw recordings of {recording_id}: no MP3 archive")

        fields = {"isPostProcessed": True}
        transcript = self._store.get_transcript(recording_id)
        if transcript:
            fields["language"] = transcript.result.language
        self._store.update_recording(recording_id, **fields)

        try:
            self._search.add_recording_to_index(recording_id)
        except Exception as e:
            logger.error(f"Search indexing failed for {recording_id}: {e}", exc_info=True)

        ctx.progress.notify()
