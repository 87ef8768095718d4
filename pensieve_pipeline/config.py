import os
import logging
from typing import Dict, Optional, Any
from pathlib import Path

from dotenv import load_dotenv

from pensieve_pipeline.models import (
    DiarizationSettings, FfmpegSettings, HooksSettings, LlmSettings,
    PipelineSettings, TranscriptionSettings, WhisperSettings,
)

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8002
DEFAULT_RECORDINGS_DIR = "~/.pensieve/recordings"
DEFAULT_MODELS_DIR = "~/.pensieve/models"
DEFAULT_SHERPA_MODEL_DIR = "~/.pensieve/models/sherpa-onnx"
DEFAULT_CHROMA_DIR = "~/.pensieve/vector-store"


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self.host = os.environ.get("HOST", DEFAULT_HOST)
        self.port = int(os.environ.get("PORT", DEFAULT_PORT))
        self.debug = os.environ.get("DEBUG", "0") == "1"
        self.recordings_dir = os.path.expanduser(os.environ.get("RECORDINGS_DIR", DEFAULT_RECORDINGS_DIR))
        self.models_dir = os.path.expanduser(os.environ.get("MODELS_DIR", DEFAULT_MODELS_DIR))
        self.sherpa_model_dir = os.path.expanduser(os.environ.get("SHERPA_MODEL_DIR", DEFAULT_SHERPA_MODEL_DIR))
        self.chroma_dir = os.path.expanduser(os.environ.get("CHROMA_DIR", DEFAULT_CHROMA_DIR))
        self.hf_token = os.environ.get("HF_TOKEN") or os.environ.get("HUGGINGFACE_ACCESS_TOKEN")
        self.engine = os.environ.get("ENGINE", "whisper").lower()
        self.whisper_bin = os.environ.get("WHISPER_BIN", "whisper-cli")
        self.whisper_model = os.environ.get("WHISPER_MODEL", "base.en")
        self.whisper_threads = int(os.environ.get("WHISPER_THREADS", "4"))
        self.whisper_language = os.environ.get("WHISPER_LANGUAGE", "auto")
        self.diarization_device = os.environ.get("DIARIZATION_DEVICE", "cpu").lower()
        self.min_segment_ms = int(os.environ.get("MIN_SEGMENT_MS", "200"))
        self.merge_gap_ms = int(os.environ.get("MERGE_GAP_MS", "300"))
        self.llm_enabled = _flag("LLM_ENABLED", "false")
        self.ollama_url = os.environ.get("OLLAMA_URL", "http://localhost:11434")
        self.ollama_model = os.environ.get("OLLAMA_MODEL", "llama3.1:8b")
        self.hooks_enabled = _flag("HOOKS_ENABLED", "false")
        self.hook_commands = [c.strip() for c in os.environ.get("HOOK_COMMANDS", "").split(";") if c.strip()]
        self.remove_raw_recordings = _flag("REMOVE_RAW_RECORDINGS", "false")

        if self.engine not in ("whisper", "diarization"):
            raise ValueError(f"Unknown ENGINE: {self.engine!r}. Valid options: whisper, diarization")
        Path(self.recordings_dir).mkdir(parents=True, exist_ok=True)

    def settings(self) -> PipelineSettings:
        """Build the step settings from the current configuration."""
        return PipelineSettings(
            transcription=TranscriptionSettings(
                engine=self.engine,
                whisper=WhisperSettings(
                    binary=self.whisper_bin,
                    model=self.whisper_model,
                    threads=self.whisper_threads,
                    language=self.whisper_language,
                ),
                diarization=DiarizationSettings(
                    device=self.diarization_device,
                    min_segment_ms=self.min_segment_ms,
                    merge_gap_ms=self.merge_gap_ms,
                ),
            ),
            llm=LlmSettings(enabled=self.llm_enabled, base_url=self.ollama_url, model=self.ollama_model),
            hooks=HooksSettings(enabled=self.hooks_enabled, commands=self.hook_commands),
            ffmpeg=FfmpegSettings(remove_raw_recordings=self.remove_raw_recordings),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "recordings_dir": self.recordings_dir,
            "engine": self.engine,
            "whisper_model": self.whisper_model,
            "diarization_device": self.diarization_device,
            "min_segment_ms": self.min_segment_ms,
            "merge_gap_ms": self.merge_gap_ms,
            "llm_enabled": self.llm_enabled,
            "hooks_enabled": self.hooks_enabled,
            "remove_raw_recordings": self.remove_raw_recordings,
            "has_hf_token": self.hf_token is not None,
        }


def get_config() -> Config:
    return Config()


class TranscriberFactory:
    """Pick the transcription backend from settings.ENGINE.

    Uses lazy imports so unused frameworks are never loaded. The diarization
    backend keeps its loaded models between jobs.
    """

    def __init__(self, cfg: Config, runner):
        self._cfg = cfg
        self._runner = runner
        self._diarization = None
        self._diarization_device: Optional[str] = None

    def __call__(self, settings: PipelineSettings):
        engine = settings.transcription.engine

        if engine == "whisper":
            from pensieve_pipeline.adapters.whisper_cpp import HuggingFaceModelStore, WhisperCppTranscriber
            return WhisperCppTranscriber(
                settings.transcription.whisper,
                HuggingFaceModelStore(self._cfg.models_dir),
                self._runner,
            )
        if engine == "diarization":
            diar = settings.transcription.diarization
            if self._diarization is None or self._diarization_device != diar.device:
                from pensieve_pipeline.adapters.pyannote import PyannoteDiarizationAdapter
                from pensieve_pipeline.adapters.sherpa import SherpaDiarizationTranscriber
                self._diarization = SherpaDiarizationTranscriber(
                    diar, PyannoteDiarizationAdapter(), self._cfg.sherpa_model_dir, self._cfg.hf_token,
                )
                self._diarization_device = diar.device
                logger.info(f"Transcription backend: sherpa-onnx + pyannote on {diar.device}")
            return self._diarization

        raise ValueError(f"Unknown transcription engine: {engine!r}. Valid options: whisper, diarization")


def create_audio_adapter(runner):
    """Create the audio conversion adapter (always FFmpeg)."""
    from pensieve_pipeline.adapters.ffmpeg import FFmpegAudioAdapter
    return FFmpegAudioAdapter(runner)


def create_summarizer(settings: PipelineSettings):
    from pensieve_pipeline.adapters.ollama import OllamaSummarizer
    return OllamaSummarizer(settings.llm)


def create_queue(cfg: Optional[Config] = None):
    """Wire every adapter into a ready-to-start PostProcessingQueue."""
    from pensieve_pipeline.adapters.chroma import ChromaSearchIndex
    from pensieve_pipeline.adapters.local.json_recordings import JsonRecordingStore
    from pensieve_pipeline.adapters.local.log_progress import LogProgressAdapter
    from pensieve_pipeline.adapters.local.shell_hooks import ShellHookRunner
    from pensieve_pipeline.runner import ProcessRunner
    from pensieve_pipeline.use_cases.postprocess import PostProcessRecordingUseCase
    from pensieve_pipeline.use_cases.queue import PostProcessingQueue
    from pensieve_pipeline.use_cases.steps import (
        HooksStep, IndexVectorsStep, Mp3Step, SummarizeStep, TranscribeStep, WavStep,
    )

    cfg = cfg or get_config()
    runner = ProcessRunner()
    audio = create_audio_adapter(runner)
    store = JsonRecordingStore(cfg.recordings_dir)
    search = ChromaSearchIndex(cfg.chroma_dir, store)

    steps = [
        WavStep(audio),
        Mp3Step(audio),
        TranscribeStep(audio, store, TranscriberFactory(cfg, runner)),
        SummarizeStep(store, create_summarizer),
        HooksStep(lambda settings: ShellHookRunner(settings.hooks.commands, runner)),
        IndexVectorsStep(search),
    ]
    pipeline = PostProcessRecordingUseCase(steps, store, search, cfg.settings)
    logger.info(f"Pipeline: {', '.join(s.value for s in pipeline.step_names)} (engine={cfg.engine})")
    return PostProcessingQueue(pipeline, runner, LogProgressAdapter())
