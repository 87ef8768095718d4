"""FFmpegAudioAdapter: audio conversion via ffmpeg (shared by all steps)."""

import os
import logging
from pathlib import Path
from typing import Optional

import soundfile

from pensieve_pipeline.ports.audio import AudioConversionPort
from pensieve_pipeline.runner import ProcessRunner

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
MP3_QUALITY = "4"


class FFmpegAudioAdapter(AudioConversionPort):
    def __init__(self, runner: ProcessRunner, ffmpeg_bin: str = "ffmpeg", ffprobe_bin: str = "ffprobe"):
        self._runner = runner
        self._ffmpeg = ffmpeg_bin
        self._ffprobe = ffprobe_bin

    def duration_ms(self, path: Path) -> float:
        try:
            info = soundfile.info(str(path))
            return info.duration * 1000
        except RuntimeError as e:
            # libsndfile can't read every container; ask ffprobe instead.
            logger.debug(f"soundfile could not read {path}: {e}")

        result = self._runner.run([
            self._ffprobe, "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(path),
        ])
        return float(result.output.strip().splitlines()[-1]) * 1000

    def to_stereo_wav(self, left: Path, right: Path, output: Path) -> None:
        self._convert([
            "-i", str(left),
            "-i", str(right),
            "-filter_complex",
            "[0:a]aformat=channel_layouts=mono[l];"
            "[1:a]aformat=channel_layouts=mono[r];"
            "[l][r]amerge=inputs=2[a]",
            "-map", "[a]",
            "-c:a", "pcm_s16le",
            "-ar", str(SAMPLE_RATE),
        ], output)

    def to_wav(self, source: Path, output: Path) -> None:
        self._convert([
            "-i", str(source),
            "-c:a", "pcm_s16le",
            "-ar", str(SAMPLE_RATE),
            "-ac", "1",
        ], output)

    def to_joined_archive(self, first: Path, second: Optional[Path], output: Path) -> None:
        if second is None:
            args = ["-i", str(first)]
        else:
            args = [
                "-i", str(first),
                "-i", str(second),
                "-filter_complex", "[0:a][1:a]amix=inputs=2:duration=longest[a]",
                "-map", "[a]",
            ]
        self._convert(args + ["-c:a", "libmp3lame", "-q:a", MP3_QUALITY], output)

    def _convert(self, args: list[str], output: Path) -> None:
        cmd = [self._ffmpeg, "-y", "-hide_banner"] + args + [str(output)]
        logger.info(f"Converting audio to {output}")
        try:
            self._runner.run(cmd)
        except Exception:
            if os.path.exists(output):
                os.unlink(output)
            raise
