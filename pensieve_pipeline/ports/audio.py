"""AudioConversionPort: abstract interface for audio conversion primitives."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


class AudioConversionPort(ABC):
    @abstractmethod
    def duration_ms(self, path: Path) -> float:
        """Return the duration of an audio file in milliseconds."""

    @abstractmethod
    def to_stereo_wav(self, left: Path, right: Path, output: Path) -> None:
        """Combine two tracks into one 16kHz stereo WAV (left, right)."""

    @abstractmethod
    def to_wav(self, source: Path, output: Path) -> None:
        """Convert one track to a 16kHz WAV."""

    @abstractmethod
    def to_joined_archive(self, first: Path, second: Optional[Path], output: Path) -> None:
        """Mix one or two tracks into a compressed archive file (MP3)."""
