"""whisper.cpp CLI adapter for batch transcription."""

from .models import HuggingFaceModelStore
from .transcription import WhisperCppTranscriber

__all__ = ["HuggingFaceModelStore", "WhisperCppTranscriber"]
