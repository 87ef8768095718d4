"""HuggingFaceModelStore: downloads ggml whisper models on first use."""

import os
import logging
from pathlib import Path
from typing import Callable

import requests

from pensieve_pipeline.domain.errors import ModelDownloadError
from pensieve_pipeline.ports.model_store import ModelStorePort

logger = logging.getLogger(__name__)

MODEL_URL = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main/ggml-{name}.bin"
CHUNK_SIZE = 1024 * 1024


class HuggingFaceModelStore(ModelStorePort):
    def __init__(self, models_dir: str, url_template: str = MODEL_URL, timeout: int = 30):
        self._models_dir = Path(models_dir)
        self._url_template = url_template
        self._timeout = timeout

    def model_path(self, name: str) -> Path:
        return self._models_dir / f"ggml-{name}.bin"

    def prepare(self, name: str, on_progress: Callable[[float], None]) -> Path:
        path = self.model_path(name)
        if path.exists():
            on_progress(1.0)
            return path

        self._models_dir.mkdir(parents=True, exist_ok=True)
        url = self._url_template.format(name=name)
        partial = path.with_suffix(".part")
        logger.info(f"Downloading whisper model {name} from {url}")

        try:
            with requests.get(url, stream=True, timeout=self._timeout) as resp:
                resp.raise_for_status()
                total = int(resp.headers.get("content-length", 0))
                received = 0
                with open(partial, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
                        received += len(chunk)
                        if total:
                            on_progress(min(received / total, 1.0))
            os.replace(partial, path)
        except requests.RequestException as e:
            if partial.exists():
                partial.unlink()
            raise ModelDownloadError(f"Failed to download model {name}: {e}", url=url) from e

        size_mb = path.stat().st_size / (1024 * 1024)
        logger.info(f"Model {name} ready ({size_mb:.1f} MB)")
        on_progress(1.0)
        return path
