"""Tests for PostProcessRecordingUseCase: step order, errors and finalize."""

import pytest

from pensieve_pipeline.cancellation import CancellationToken
from pensieve_pipeline.domain.errors import MissingAudioError
from pensieve_pipeline.domain.models import Job, StepName, StepStatus
from pensieve_pipeline.models import FfmpegSettings
from pensieve_pipeline.progress import ProgressTracker

from conftest import FakeSearch, FakeTranscriber


def run(pipeline, job=None, token=None):
    return pipeline.execute(job or Job(recording_id="rec-1"), token or CancellationToken(), ProgressTracker())


class TestPipelineOrder:
    def test_step_order(self, fakes):
        assert fakes.build_pipeline().step_names == [
            StepName.WAV,
            StepName.MP3,
            StepName.TRANSCRIBE,
            StepName.SUMMARIZE,
            StepName.RUN_HOOKS,
            StepName.INDEX_VECTORS,
        ]

    def test_full_run_finalizes(self, fakes, make_recording):
        paths = make_recording()

        result = run(fakes.build_pipeline())

        assert result.finalized
        assert not result.aborted
        assert result.outcomes[StepName.WAV].status == StepStatus.SUCCESS
        assert result.outcomes[StepName.SUMMARIZE].status == StepStatus.SKIPPED
        assert paths.transcript.exists()
        assert paths.mp3.exists()
        meta = fakes.store.get_recording("rec-1")
        assert meta["isPostProcessed"] is True
        assert meta["language"] == "en"
        assert fakes.search.indexed == ["rec-1"]
        assert fakes.search.embedded == ["rec-1"]

    def test_selected_steps_only(self, fakes, make_recording):
        paths = make_recording()
        job = Job(recording_id="rec-1", steps={StepName.MP3})

        result = run(fakes.build_pipeline(), job)

        assert paths.mp3.exists()
        assert not paths.wav.exists()
        assert not paths.transcript.exists()
        assert result.outcomes[StepName.TRANSCRIBE].reason == "not selected"
        assert result.finalized


class TestPipelineErrors:
    def test_step_error_halts_run(self, fakes, make_recording):
        make_recording(mic=False, screen=False)

        with pytest.raises(MissingAudioError):
            run(fakes.build_pipeline())

        assert fakes.search.embedded == []
        assert fakes.store.get_recording("rec-1") == {}

    def test_vector_index_failure_is_not_fatal(self, fakes, make_recording):
        make_recording()
        fakes.search = FakeSearch(vector_error=RuntimeError("no embeddings"))

        result = run(fakes.build_pipeline())

        assert result.finalized
        assert result.outcomes[StepName.INDEX_VECTORS].status == StepStatus.FAILURE
        assert fakes.store.get_recording("rec-1")["isPostProcessed"] is True

    def test_search_index_failure_is_not_fatal(self, fakes, make_recording):
        make_recording()
        fakes.search = FakeSearch(index_error=RuntimeError("index locked"))

        result = run(fakes.build_pipeline())

        assert result.finalized

    def test_error_after_stop_counts_as_abort(self, fakes, make_recording):
        make_recording()
        token = CancellationToken()

        def cancel_and_fail():
            token.cancel()
            raise RuntimeError("killed")

        fakes.transcriber = FakeTranscriber(during=cancel_and_fail)

        result = run(fakes.build_pipeline(), token=token)

        assert result.aborted
        assert not result.finalized


class TestPipelineAbort:
    def test_cancelled_before_start(self, fakes, make_recording):
        make_recording()
        token = CancellationToken()
        token.cancel()

        result = run(fakes.build_pipeline(), token=token)

        assert result.aborted
        assert result.outcomes == {}
        assert fakes.audio.calls == []

    def test_cancel_mid_transcription_skips_rest(self, fakes, make_recording):
        paths = make_recording()
        token = CancellationToken()
        fakes.transcriber = FakeTranscriber(during=token.cancel)

        result = run(fakes.build_pipeline(), token=token)

        assert result.aborted
        assert not result.finalized
        assert not paths.transcript.exists()
        assert StepName.SUMMARIZE not in result.outcomes
        assert fakes.store.get_recording("rec-1") == {}


class TestFinalize:
    def test_removes_raw_tracks_when_archived(self, fakes, make_recording):
        paths = make_recording()
        fakes.settings.ffmpeg = FfmpegSettings(remove_raw_recordings=True)

        run(fakes.build_pipeline())

        assert not paths.mic.exists()
        assert not paths.screen.exists()
        assert paths.mp3.exists()
        assert fakes.store.get_recording("rec-1")["hasRawRecording"] is False

    def test_keeps_raw_tracks_without_archive(self, fakes, make_recording):
        paths = make_recording()
        fakes.settings.ffmpeg = FfmpegSettings(remove_raw_recordings=True)
        job = Job(recording_id="rec-1", steps={StepName.WAV})

        run(fakes.build_pipeline(), job)

        assert paths.mic.exists()
        assert paths.screen.exists()
        assert "hasRawRecording" not in fakes.store.get_recording("rec-1")

    def test_keeps_raw_tracks_by_default(self, fakes, make_recording):
        paths = make_recording()

        run(fakes.build_pipeline())

        assert paths.mic.exists()
        assert paths.screen.exists()

    def test_language_left_out_without_transcript(self, fakes, make_recording):
        make_recording()
        job = Job(recording_id="rec-1", steps={StepName.MP3})

        run(fakes.build_pipeline(), job)

        meta = fakes.store.get_recording("rec-1")
        assert meta["isPostProcessed"] is True
        assert "language" not in meta

    def test_language_keeps_earlier_value_without_transcript(self, fakes, make_recording):
        make_recording()
        fakes.store.update_recording("rec-1", language="de")
        job = Job(recording_id="rec-1", steps={StepName.MP3})

        run(fakes.build_pipeline(), job)

        assert fakes.store.get_recording("rec-1")["language"] == "de"
