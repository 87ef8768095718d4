"""Tests for environment configuration and backend selection."""

import pytest

from pensieve_pipeline import config as config_module
from pensieve_pipeline.config import Config, TranscriberFactory, create_queue
from pensieve_pipeline.runner import ProcessRunner

ENV_VARS = [
    "ENGINE", "RECORDINGS_DIR", "CHROMA_DIR", "MIN_SEGMENT_MS", "MERGE_GAP_MS", "LLM_ENABLED",
    "HOOKS_ENABLED", "HOOK_COMMANDS", "REMOVE_RAW_RECORDINGS", "DIARIZATION_DEVICE", "PORT",
]


@pytest.fixture
def env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RECORDINGS_DIR", str(tmp_path / "recordings"))
    monkeypatch.setenv("CHROMA_DIR", str(tmp_path / "chroma"))
    monkeypatch.setattr(Config, "_instance", None)
    return monkeypatch


class TestConfig:
    def test_defaults(self, env, tmp_path):
        cfg = Config()

        assert cfg.engine == "whisper"
        assert cfg.min_segment_ms == 200
        assert cfg.merge_gap_ms == 300
        assert cfg.llm_enabled is False
        assert (tmp_path / "recordings").is_dir()

    def test_singleton(self, env):
        assert Config() is config_module.get_config()

    def test_settings_from_env(self, env):
        env.setenv("ENGINE", "diarization")
        env.setenv("MERGE_GAP_MS", "450")
        env.setenv("LLM_ENABLED", "true")
        env.setenv("HOOKS_ENABLED", "1")
        env.setenv("HOOK_COMMANDS", "notify-send done; ./sync.sh")
        env.setenv("REMOVE_RAW_RECORDINGS", "yes")
        env.setenv("DIARIZATION_DEVICE", "GPU")

        settings = Config().settings()

        assert settings.transcription.engine == "diarization"
        assert settings.transcription.diarization.merge_gap_ms == 450
        assert settings.transcription.diarization.device == "gpu"
        assert settings.llm.enabled is True
        assert settings.hooks.commands == ["notify-send done", "./sync.sh"]
        assert settings.ffmpeg.remove_raw_recordings is True

    def test_unknown_engine(self, env):
        env.setenv("ENGINE", "magic")
        with pytest.raises(ValueError, match="Unknown ENGINE"):
            Config()

    def test_as_dict_hides_token(self, env):
        env.setenv("HF_TOKEN", "secret")
        values = Config().as_dict()
        assert values["has_hf_token"] is True
        assert "secret" not in values.values()


class TestTranscriberFactory:
    def test_whisper_backend(self, env):
        from pensieve_pipeline.adapters.whisper_cpp import WhisperCppTranscriber

        cfg = Config()
        transcriber = TranscriberFactory(cfg, ProcessRunner())(cfg.settings())

        assert isinstance(transcriber, WhisperCppTranscriber)
        assert transcriber.reports_progress

    def test_diarization_backend_is_reused(self, env):
        from pensieve_pipeline.adapters.sherpa import SherpaDiarizationTranscriber

        env.setenv("ENGINE", "diarization")
        cfg = Config()
        factory = TranscriberFactory(cfg, ProcessRunner())
        settings = cfg.settings()

        first = factory(settings)
        assert isinstance(first, SherpaDiarizationTranscriber)
        assert factory(settings) is first

        settings.transcription.diarization.device = "gpu"
        assert factory(settings) is not first


class TestCreateQueue:
    def test_wires_all_steps(self, env):
        queue = create_queue()
        assert [s.value for s in queue._pipeline.step_names] == [
            "wav", "mp3", "transcribe", "summarize", "runHooks", "indexVectors",
        ]
        assert not queue.is_running
