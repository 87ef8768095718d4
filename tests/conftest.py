"""Shared fixtures: in-memory fakes for every pipeline port."""

from pathlib import Path
from typing import Callable, Optional

import pytest

from pensieve_pipeline.adapters.local.json_recordings import JsonRecordingStore
from pensieve_pipeline.cancellation import CancellationToken
from pensieve_pipeline.domain.models import Job, RawSegment, RecordingPaths, TranscriptionResult
from pensieve_pipeline.models import PipelineSettings, ProgressSnapshot
from pensieve_pipeline.ports.audio import AudioConversionPort
from pensieve_pipeline.ports.hooks import HookRunnerPort
from pensieve_pipeline.ports.progress import ProgressPort
from pensieve_pipeline.ports.search import SearchIndexPort
from pensieve_pipeline.ports.summarizer import SummarizerPort
from pensieve_pipeline.ports.transcription import TranscriptionPort
from pensieve_pipeline.progress import ProgressTracker
from pensieve_pipeline.runner import ProcessRunner
from pensieve_pipeline.use_cases.postprocess import PostProcessRecordingUseCase
from pensieve_pipeline.use_cases.steps import (
    HooksStep, IndexVectorsStep, Mp3Step, StepContext, SummarizeStep, TranscribeStep, WavStep,
)


class FakeAudio(AudioConversionPort):
    def __init__(self, duration_ms: float = 60_000):
        self.calls: list[tuple] = []
        self._duration_ms = duration_ms

    def duration_ms(self, path):
        return self._duration_ms

    def to_stereo_wav(self, left, right, output):
        self.calls.append(("stereo_wav", Path(left).name, Path(right).name))
        Path(output).write_bytes(b"RIFF")

    def to_wav(self, source, output):
        self.calls.append(("wav", Path(source).name))
        Path(output).write_bytes(b"RIFF")

    def to_joined_archive(self, first, second, output):
        self.calls.append(("mp3", Path(first).name, Path(second).name if second else None))
        Path(output).write_bytes(b"ID3")


class FakeTranscriber(TranscriptionPort):
    def __init__(
        self,
        segments: Optional[list[RawSegment]] = None,
        language: str = "en",
        reports_progress: bool = True,
        during: Optional[Callable[[], None]] = None,
        error: Optional[Exception] = None,
    ):
        self.segments = segments if segments is not None else [
            RawSegment(start=0.0, end=1.5, label="SPEAKER_1", text="Hello there."),
            RawSegment(start=1.6, end=3.0, label="SPEAKER_2", text="Hi!"),
        ]
        self.language = language
        self.reports_progress = reports_progress
        self.during = during
        self.error = error
        self.prepared = False
        self.inputs: list[Path] = []

    def prepare(self, on_progress):
        self.prepared = True
        on_progress(1.0)

    def transcribe(self, audio_path, on_progress, token):
        self.inputs.append(Path(audio_path))
        if on_progress:
            on_progress(0.5)
        if self.during:
            self.during()
        if self.error:
            raise self.error
        return TranscriptionResult(segments=list(self.segments), language=self.language)

    def model_name(self):
        return "fake"


class FakeSummarizer(SummarizerPort):
    def __init__(self, summary: str = "A short summary.", error: Optional[Exception] = None):
        self.summary = summary
        self.error = error
        self.seen = []

    def summarize(self, transcript):
        self.seen.append(transcript)
        if self.error:
            raise self.error
        return self.summary


class FakeHooks(HookRunnerPort):
    def __init__(self, error: Optional[Exception] = None):
        self.jobs: list[str] = []
        self.error = error

    def run(self, job, paths):
        self.jobs.append(job.recording_id)
        if self.error:
            raise self.error


class FakeSearch(SearchIndexPort):
    def __init__(self, vector_error: Optional[Exception] = None, index_error: Optional[Exception] = None):
        self.vector_error = vector_error
        self.index_error = index_error
        self.indexed: list[str] = []
        self.embedded: list[str] = []

    def add_recording_to_index(self, recording_id):
        if self.index_error:
            raise self.index_error
        self.indexed.append(recording_id)

    def add_transcript_to_vector_store(self, recording_id, on_progress):
        on_progress(0.5)
        if self.vector_error:
            raise self.vector_error
        self.embedded.append(recording_id)
        on_progress(1.0)


class CollectingProgress(ProgressPort):
    def __init__(self):
        self.snapshots: list[ProgressSnapshot] = []

    def notify(self, snapshot):
        self.snapshots.append(snapshot)


class Fakes:
    """Bundle of fakes plus the settings handed to the pipeline."""

    def __init__(self, store: JsonRecordingStore):
        self.store = store
        self.audio = FakeAudio()
        self.transcriber = FakeTranscriber()
        self.summarizer = FakeSummarizer()
        self.hooks = FakeHooks()
        self.search = FakeSearch()
        self.settings = PipelineSettings()

    def build_steps(self, **transcribe_kwargs):
        return [
            WavStep(self.audio),
            Mp3Step(self.audio),
            TranscribeStep(self.audio, self.store, lambda s: self.transcriber, **transcribe_kwargs),
            SummarizeStep(self.store, lambda s: self.summarizer),
            HooksStep(lambda s: self.hooks),
            IndexVectorsStep(self.search),
        ]

    def build_pipeline(self, **transcribe_kwargs) -> PostProcessRecordingUseCase:
        return PostProcessRecordingUseCase(
            self.build_steps(**transcribe_kwargs), self.store, self.search, lambda: self.settings,
        )


@pytest.fixture
def store(tmp_path) -> JsonRecordingStore:
    return JsonRecordingStore(str(tmp_path / "recordings"))


@pytest.fixture
def fakes(store) -> Fakes:
    return Fakes(store)


@pytest.fixture
def make_recording(store):
    """Create a recording folder with the given raw tracks."""

    def _make(recording_id: str = "rec-1", mic: bool = True, screen: bool = True) -> RecordingPaths:
        paths = RecordingPaths.for_recording(store.recordings_folder(), recording_id)
        paths.folder.mkdir(parents=True, exist_ok=True)
        if mic:
            paths.mic.write_bytes(b"webm-mic")
        if screen:
            paths.screen.write_bytes(b"webm-screen")
        return paths

    return _make


@pytest.fixture
def make_context(store, fakes):
    def _make(job: Optional[Job] = None, token: Optional[CancellationToken] = None) -> StepContext:
        job = job or Job(recording_id="rec-1")
        return StepContext(
            job=job,
            paths=RecordingPaths.for_recording(store.recordings_folder(), job.recording_id),
            settings=fakes.settings,
            token=token or CancellationToken(),
            progress=ProgressTracker(),
        )

    return _make


@pytest.fixture
def runner() -> ProcessRunner:
    return ProcessRunner()
