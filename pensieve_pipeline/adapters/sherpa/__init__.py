"""Sherpa-ONNX adapter for local transcription with speaker labels."""

from .transcription import SherpaDiarizationTranscriber

__all__ = ["SherpaDiarizationTranscriber"]
