"""FFmpeg adapter for audio conversion."""

from .audio import FFmpegAudioAdapter

__all__ = ["FFmpegAudioAdapter"]
