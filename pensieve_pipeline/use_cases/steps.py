"""Step executors of the post-processing pipeline.

Every step follows the same contract: it does nothing when the run was
stopped or the job did not select it, it skips expensive work whose output
already exists, and it only touches its own output file and progress keys.
Errors propagate to the orchestrator, except for vector indexing which is
reported as a failure outcome instead.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from pensieve_pipeline.cancellation import CancellationToken
from pensieve_pipeline.domain.errors import MissingAudioError
from pensieve_pipeline.domain.models import Job, RecordingPaths, StepName, StepOutcome
from pensieve_pipeline.mappers import segments_to_transcript
from pensieve_pipeline.models import PipelineSettings, TranscriptionSettings
from pensieve_pipeline.post_processing import normalize_segments
from pensieve_pipeline.ports.audio import AudioConversionPort
from pensieve_pipeline.ports.hooks import HookRunnerPort
from pensieve_pipeline.ports.recordings import RecordingStorePort
from pensieve_pipeline.ports.search import SearchIndexPort
from pensieve_pipeline.ports.summarizer import SummarizerPort
from pensieve_pipeline.ports.transcription import TranscriptionPort
from pensieve_pipeline.progress import (
    EstimatedProgressTicker, HeuristicProgressEstimator, ProgressTracker,
)

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """Everything a step may read or write while running one job."""
    job: Job
    paths: RecordingPaths
    settings: PipelineSettings
    token: CancellationToken
    progress: ProgressTracker


class PipelineStep(ABC):
    name: StepName

    def run(self, ctx: StepContext) -> StepOutcome:
        if ctx.token.cancelled:
            return StepOutcome.skipped("aborted")
        if not ctx.job.has_step(self.name):
            return StepOutcome.skipped("not selected")
        return self.execute(ctx)

    @abstractmethod
    def execute(self, ctx: StepContext) -> StepOutcome:
        """Do the step's work; called only when the step should run."""


class WavStep(PipelineStep):
    """Prepare the transcription input: stereo WAV when both tracks exist."""

    name = StepName.WAV

    def __init__(self, audio: AudioConversionPort):
        self._audio = audio

    def execute(self, ctx: StepContext) -> StepOutcome:
        ctx.progress.set_step(self.name)
        p = ctx.paths

        if p.wav.exists():
            logger.info(f"WAV file already exists, skipping creation: {p.wav}")
            return StepOutcome.success()

        # Left channel is the other side of the call, right channel is the user.
        if p.mic.exists() and p.screen.exists():
            self._audio.to_stereo_wav(p.screen, p.mic, p.wav)
        elif p.mic.exists():
            self._audio.to_wav(p.mic, p.wav)
        elif p.screen.exists():
            self._audio.to_wav(p.screen, p.wav)
        else:
            return StepOutcome.skipped("no raw recording")
        return StepOutcome.success()


class Mp3Step(PipelineStep):
    """Archive the raw tracks as one MP3."""

    name = StepName.MP3

    def __init__(self, audio: AudioConversionPort):
        self._audio = audio

    def execute(self, ctx: StepContext) -> StepOutcome:
        ctx.progress.set_step(self.name)
        p = ctx.paths

        if p.mp3.exists():
            logger.info(f"MP3 file already exists, skipping creation: {p.mp3}")
            return StepOutcome.success()

        if p.mic.exists() and p.screen.exists():
            self._audio.to_joined_archive(p.mic, p.screen, p.mp3)
        elif p.mic.exists():
            self._audio.to_joined_archive(p.mic, None, p.mp3)
        elif p.screen.exists():
            self._audio.to_joined_archive(p.screen, None, p.mp3)
        else:
            return StepOutcome.skipped("no raw recording")
        return StepOutcome.success()


def normalize_options(settings: TranscriptionSettings) -> tuple[float, Optional[float], bool]:
    """(min_segment_ms, merge_gap_ms, merge_same_speaker) for the configured engine.

    whisper.cpp has no speaker labels and its segments abut each other, so
    gap bridging (which drops the later text) and the same-speaker merge are
    both disabled for it.
    """
    if settings.engine == "diarization":
        return settings.diarization.min_segment_ms, settings.diarization.merge_gap_ms, True
    return 0, None, False


class TranscribeStep(PipelineStep):
    name = StepName.TRANSCRIBE

    def __init__(
        self,
        audio: AudioConversionPort,
        store: RecordingStorePort,
        transcriber_factory: Callable[[PipelineSettings], TranscriptionPort],
        estimator_factory: Callable[[], HeuristicProgressEstimator] = HeuristicProgressEstimator,
        tick_interval: float = 1.0,
    ):
        self._audio = audio
        self._store = store
        self._transcriber_factory = transcriber_factory
        self._estimator_factory = estimator_factory
        self._tick_interval = tick_interval

    def execute(self, ctx: StepContext) -> StepOutcome:
        p = ctx.paths
        recording_id = ctx.job.recording_id

        if p.transcript.exists():
            logger.info(f"Transcript already exists, skipping transcription: {p.transcript}")
            return StepOutcome.success()

        # The WAV may have been removed after an earlier run; fall back to the MP3.
        audio_input = p.wav if p.wav.exists() else p.mp3
        if not audio_input.exists():
            logger.error(f"No audio file found for processing. Expected WAV: {p.wav} or MP3: {p.mp3}")
            raise MissingAudioError(recording_id, wav=str(p.wav), mp3=str(p.mp3))

        transcriber = self._transcriber_factory(ctx.settings)

        ctx.progress.set_step(StepName.MODEL_DOWNLOAD)
        transcriber.prepare(lambda v: ctx.progress.set_progress(StepName.MODEL_DOWNLOAD, v))
        if ctx.token.cancelled:
            return StepOutcome.skipped("aborted")

        ctx.progress.set_step(StepName.TRANSCRIBE)
        ctx.progress.set_progress(StepName.TRANSCRIBE, 0.0)
        logger.info(f"Transcribing {audio_input} with {transcriber.model_name()}")

        if transcriber.reports_progress:
            result = transcriber.transcribe(
                audio_input,
                lambda v: ctx.progress.set_progress(StepName.TRANSCRIBE, v),
                ctx.token,
            )
        else:
            audio_seconds = self._audio.duration_ms(audio_input) / 1000
            logger.info(f"Audio duration: {audio_seconds:.1f} seconds")
            ticker = EstimatedProgressTicker(
                self._estimator_factory(), ctx.progress, StepName.TRANSCRIBE, self._tick_interval,
            )
            ticker.start(audio_seconds)
            try:
                result = transcriber.transcribe(audio_input, None, ctx.token)
            finally:
                ticker.stop()

        if ctx.token.cancelled:
            logger.info(f"Transcription of {recording_id} stopped, no transcript written")
            return StepOutcome.skipped("aborted")
        ctx.progress.set_progress(StepName.TRANSCRIBE, 1.0)

        min_segment_ms, merge_gap_ms, merge_same_speaker = normalize_options(ctx.settings.transcription)
        segments = normalize_segments(result.segments, min_segment_ms, merge_gap_ms, merge_same_speaker)
        self._store.save_transcript(recording_id, segments_to_transcript(segments, result.language))
        logger.info(f"Wrote transcript for {recording_id} ({len(segments)} segments)")

        if audio_input == p.wav and p.wav.exists():
            p.wav.unlink()
        return StepOutcome.success()


class SummarizeStep(PipelineStep):
    name = StepName.SUMMARIZE

    def __init__(
        self,
        store: RecordingStorePort,
        summarizer_factory: Callable[[PipelineSettings], SummarizerPort],
    ):
        self._store = store
        self._summarizer_factory = summarizer_factory

    def execute(self, ctx: StepContext) -> StepOutcome:
        if not ctx.settings.llm.enabled:
            return StepOutcome.skipped("summaries disabled")
        transcript = self._store.get_transcript(ctx.job.recording_id)
        if not transcript:
            return StepOutcome.skipped("no transcript")

        ctx.progress.set_step(self.name)
        ctx.progress.set_progress(self.name, 0.0)
        summary = self._summarizer_factory(ctx.settings).summarize(transcript)
        if ctx.token.cancelled:
            return StepOutcome.skipped("aborted")

        self._store.update_recording(ctx.job.recording_id, summary=summary)
        ctx.progress.set_progress(self.name, 1.0)
        return StepOutcome.success()


class HooksStep(PipelineStep):
    name = StepName.RUN_HOOKS

    def __init__(self, hook_runner_factory: Callable[[PipelineSettings], HookRunnerPort]):
        self._hook_runner_factory = hook_runner_factory

    def execute(self, ctx: StepContext) -> StepOutcome:
        if not ctx.settings.hooks.enabled:
            return StepOutcome.skipped("hooks disabled")
        ctx.progress.set_step(self.name)
        self._hook_runner_factory(ctx.settings).run(ctx.job, ctx.paths)
        return StepOutcome.success()


class IndexVectorsStep(PipelineStep):
    """Embed the transcript for semantic search. Never fails the job."""

    name = StepName.INDEX_VECTORS

    def __init__(self, search: SearchIndexPort):
        self._search = search

    def execute(self, ctx: StepContext) -> StepOutcome:
        ctx.progress.set_step(self.name)
        ctx.progress.set_progress(self.name, 0.0)

        try:
            self._search.add_transcript_to_vector_store(
                ctx.job.recording_id,
                lambda v: ctx.progress.set_progress(self.name, v),
            )
        except Exception as e:
            logger.error(f"Vector search indexing failed for {ctx.job.recording_id}: {e}", exc_info=True)
            return StepOutcome.failure(str(e))
        return StepOutcome.success()
