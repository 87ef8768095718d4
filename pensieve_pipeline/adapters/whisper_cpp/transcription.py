"""WhisperCppTranscriber: batch transcription with the whisper.cpp CLI.

The CLI runs through the shared ProcessRunner so stopping the queue kills
it. Progress comes from the "progress = N%" lines printed with
--print-progress; the transcript is read back from the -oj JSON file and
handed over as raw segments for normalization.
"""

import json
import re
import shutil
import logging
import tempfile
from pathlib import Path
from typing import Optional

from pensieve_pipeline.cancellation import CancellationToken
from pensieve_pipeline.domain.models import TranscriptionResult
from pensieve_pipeline.mappers import whisper_json_to_segments
from pensieve_pipeline.models import WhisperSettings
from pensieve_pipeline.ports.model_store import ModelStorePort
from pensieve_pipeline.ports.transcription import ProgressCallback, TranscriptionPort
from pensieve_pipeline.runner import ProcessRunner

logger = logging.getLogger(__name__)

_PROGRESS_LINE = re.compile(r"progress\s*=\s*(\d+)%")


def parse_progress_line(line: str) -> Optional[float]:
    match = _PROGRESS_LINE.search(line)
    if not match:
        return None
    return min(int(match.group(1)), 100) / 100


class WhisperCppTranscriber(TranscriptionPort):
    reports_progress = True

    def __init__(self, settings: WhisperSettings, model_store: ModelStorePort, runner: ProcessRunner):
        self._settings = settings
        self._model_store = model_store
        self._runner = runner
        self._model_path: Optional[Path] = None

    def prepare(self, on_progress: ProgressCallback) -> None:
        self._model_path = self._model_store.prepare(self._settings.model, on_progress)

    def transcribe(
        self,
        audio_path: Path,
        on_progress: Optional[ProgressCallback],
        token: CancellationToken,
    ) -> TranscriptionResult:
        if self._model_path is None:
            raise RuntimeError("Whisper model not prepared")

        work_dir = tempfile.mkdtemp(prefix="whisper-")
        output_prefix = Path(work_dir) / "transcript"
        cmd = self._build_command(audio_path, output_prefix)

        def _on_line(line: str) -> None:
            value = parse_progress_line(line)
            if value is not None and on_progress:
                on_progress(value)

        try:
            logger.info(f"Running whisper.cpp on {audio_path} (model={self._settings.model})")
            self._runner.run(cmd, on_line=_on_line)
            with open(output_prefix.with_suffix(".json"), encoding="utf-8", errors="replace") as f:
                data = json.load(f)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        segments = whisper_json_to_segments(data)
        language = data.get("result", {}).get("language") or "unknown"
        logger.info(f"whisper.cpp produced {len(segments)} segments (language={language})")
        return TranscriptionResult(segments=segments, language=language)

    def _build_command(self, audio_path: Path, output_prefix: Path) -> list[str]:
        s = self._settings
        cmd = [
            s.binary,
            "-m", str(self._model_path),
            "-f", str(audio_path),
            "-t", str(s.threads),
            "-p", str(s.processors),
            "-l", s.language,
            "-oj",
            "-of", str(output_prefix),
            "--print-progress",
        ]
        if s.translate:
            cmd.append("-tr")
        if s.diarize:
            cmd.append("-di")
        return cmd

    def model_name(self) -> str:
        return f"whisper.cpp/{self._settings.model}"
