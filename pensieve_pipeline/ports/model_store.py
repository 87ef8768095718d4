"""ModelStorePort: abstract interface for locating and downloading models."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable


class ModelStorePort(ABC):
    @abstractmethod
    def prepare(self, name: str, on_progress: Callable[[float], None]) -> Path:
        """Ensure the model is available locally. Returns its path."""
