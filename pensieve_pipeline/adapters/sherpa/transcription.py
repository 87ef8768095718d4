"""SherpaDiarizationTranscriber: local ASR plus speaker diarization.

Splits audio into sub-chunks that fit the encoder's attention window (~100s max),
creates a stream per sub-chunk, then batch-decodes all streams in one call.
Token timestamps from each sub-chunk are offset-corrected and merged, then grouped
into sentence-like segments based on silence gaps. Speaker labels come from the
injected DiarizationPort, aligned by time overlap.

The inference call exposes no progress, so the transcribe step estimates it
from elapsed time.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import numpy as np
import soundfile

from pensieve_pipeline.cancellation import CancellationToken
from pensieve_pipeline.domain.models import TranscriptionResult
from pensieve_pipeline.models import DiarizationSettings
from pensieve_pipeline.ports.diarization import DiarizationPort
from pensieve_pipeline.ports.transcription import ProgressCallback, TranscriptionPort

logger = logging.getLogger(__name__)

REQUIRED_FILES = ["encoder.int8.onnx", "decoder.int8.onnx", "joiner.int8.onnx", "tokens.txt"]

SAMPLE_RATE = 16000

# Parakeet TDT's self-attention supports ~100s per stream; 80s leaves a margin.
MAX_CHUNK_SECONDS = 80

# Token gap (seconds) that starts a new segment.
SEGMENT_SILENCE_THRESHOLD = 0.25

# Long segments span speaker turns and get the wrong label.
MAX_SEGMENT_DURATION = 6.0


def group_tokens(
    tokens: list[str],
    timestamps: list[float],
    audio_duration: float,
) -> list[tuple[float, float, str]]:
    """Group tokens into (start, end, text) segments at silence gaps."""
    if not tokens:
        return []

    segments: list[tuple[float, float, str]] = []
    current_tokens: list[str] = [tokens[0]]
    current_start: float = timestamps[0]
    prev_timestamp: float = timestamps[0]

    for token, ts in zip(tokens[1:], timestamps[1:]):
        if ts - prev_timestamp > SEGMENT_SILENCE_THRESHOLD or ts - current_start > MAX_SEGMENT_DURATION:
            text = "".join(current_tokens).strip()
            if text:
                segments.append((current_start, prev_timestamp + 0.1, text))
            current_tokens = [token]
            current_start = ts
        else:
            current_tokens.append(token)
        prev_timestamp = ts

    text = "".join(current_tokens).strip()
    if text:
        segments.append((current_start, min(prev_timestamp + 0.1, audio_duration), text))

    return segments


class SherpaDiarizationTranscriber(TranscriptionPort):
    reports_progress = False

    def __init__(
        self,
        settings: DiarizationSettings,
        diarizer: DiarizationPort,
        model_dir: str,
        hf_token: Optional[str] = None,
    ):
        self._settings = settings
        self._diarizer = diarizer
        self._model_dir = model_dir
        self._hf_token = hf_token
        self._recognizer = None

    @property
    def provider(self) -> str:
        return "cuda" if self._settings.device == "gpu" else "cpu"

    def prepare(self, on_progress: ProgressCallback) -> None:
        if self._recognizer is not None:
            on_progress(1.0)
            return

        import sherpa_onnx

        self._ensure_models()
        logger.info(f"Loading Sherpa-ONNX ASR model (provider={self.provider})...")
        self._recognizer = sherpa_onnx.OfflineRecognizer.from_transducer(
            encoder=os.path.join(self._model_dir, "encoder.int8.onnx"),
            decoder=os.path.join(self._model_dir, "decoder.int8.onnx"),
            joiner=os.path.join(self._model_dir, "joiner.int8.onnx"),
            tokens=os.path.join(self._model_dir, "tokens.txt"),
            model_type="nemo_transducer",
            provider=self.provider,
            num_threads=4,
        )
        on_progress(0.5)

        if not self._diarizer.is_loaded():
            self._diarizer.load(access_token=self._hf_token, device=self.provider)
        on_progress(1.0)
        logger.info(f"Sherpa transcriber ready: {self._model_dir}")

    def transcribe(
        self,
        audio_path: Path,
        on_progress: Optional[ProgressCallback],
        token: CancellationToken,
    ) -> TranscriptionResult:
        if self._recognizer is None:
            raise RuntimeError("Sherpa recognizer not prepared")

        audio, sample_rate = soundfile.read(str(audio_path), dtype="float32")
        if len(audio.shape) > 1:
            audio = audio.mean(axis=1)

        if sample_rate != SAMPLE_RATE:
            logger.warning(f"Audio is {sample_rate}Hz, resampling to {SAMPLE_RATE}Hz")
            target_len = int(len(audio) * SAMPLE_RATE / sample_rate)
            indices = np.linspace(0, len(audio) - 1, target_len)
            audio = np.interp(indices, np.arange(len(audio)), audio).astype(np.float32)
            sample_rate = SAMPLE_RATE

        duration = len(audio) / sample_rate
        logger.info(f"Audio loaded: {duration:.2f}s @ {sample_rate}Hz")

        chunk_samples = MAX_CHUNK_SECONDS * sample_rate
        num_chunks = max(1, int(np.ceil(len(audio) / chunk_samples)))
        streams = []
        offsets = []
        for i in range(num_chunks):
            start_sample = i * chunk_samples
            stream = self._recognizer.create_stream()
            stream.accept_waveform(sample_rate, audio[start_sample:start_sample + chunk_samples])
            streams.append(stream)
            offsets.append(start_sample / sample_rate)

        if token.cancelled:
            return TranscriptionResult()

        logger.info(f"Decoding {num_chunks} streams ({MAX_CHUNK_SECONDS}s sub-chunks)")
        self._recognizer.decode_streams(streams)

        all_tokens: list[str] = []
        all_timestamps: list[float] = []
        for stream, offset in zip(streams, offsets):
            result = stream.result
            if result.tokens:
                all_tokens.extend(result.tokens)
                all_timestamps.extend(t + offset for t in result.timestamps)

        asr_segments = group_tokens(all_tokens, all_timestamps, duration)
        if not asr_segments:
            logger.warning("No speech detected")
            return TranscriptionResult()

        if token.cancelled:
            return TranscriptionResult()

        turns = self._diarizer.diarize(str(audio_path))
        segments = self._diarizer.label_segments(turns, asr_segments)
        logger.info(f"Labelled {len(segments)} segments from {len(all_tokens)} tokens")
        return TranscriptionResult(segments=segments)

    def model_name(self) -> str:
        return "parakeet-tdt-0.6b-v2-int8+pyannote-3.1"

    def _ensure_models(self):
        missing = []
        for f in REQUIRED_FILES:
            path = os.path.join(self._model_dir, f)
            if os.path.exists(path):
                size_mb = os.path.getsize(path) / (1024 * 1024)
                logger.info(f"  asr: {f} ({size_mb:.1f} MB)")
            else:
                missing.append(f)
                logger.error(f"  asr: {f} MISSING")

        if missing:
            raise FileNotFoundError(f"Missing model files in {self._model_dir}: {missing}")
