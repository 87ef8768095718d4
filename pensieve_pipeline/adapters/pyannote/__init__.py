"""Pyannote adapter for speaker diarization."""

from .diarization import PyannoteDiarizationAdapter

__all__ = ["PyannoteDiarizationAdapter"]
