"""JsonRecordingStore: recording metadata and transcripts as JSON files."""

import json
import os
import logging
import threading
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from pensieve_pipeline.domain.models import RecordingPaths
from pensieve_pipeline.models import Transcript
from pensieve_pipeline.ports.recordings import RecordingStorePort

logger = logging.getLogger(__name__)

METADATA_FILE = "meta.json"


class JsonRecordingStore(RecordingStorePort):
    def __init__(self, recordings_folder: str):
        self._folder = Path(recordings_folder)
        self._lock = threading.Lock()

    def recordings_folder(self) -> Path:
        return self._folder

    def _meta_path(self, recording_id: str) -> Path:
        return self._folder / recording_id / METADATA_FILE

    def _load(self, recording_id: str) -> dict[str, Any]:
        try:
            with open(self._meta_path(recording_id)) as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            logger.debug(f"Could not load metadata for {recording_id}: {e}")
            return {}

    def get_recording(self, recording_id: str) -> dict[str, Any]:
        return self._load(recording_id)

    def update_recording(self, recording_id: str, **fields: Any) -> None:
        with self._lock:
            data = self._load(recording_id)
            data.update(fields)
            path = self._meta_path(recording_id)
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            with open(tmp, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, path)

    def get_transcript(self, recording_id: str) -> Optional[Transcript]:
        path = RecordingPaths.for_recording(self._folder, recording_id).transcript
        try:
            with open(path, encoding="utf-8") as f:
                return Transcript.model_validate_json(f.read())
        except FileNotFoundError:
            return None
        except ValidationError as e:
            logger.warning(f"Invalid transcript for {recording_id}: {e}")
            return None

    def save_transcript(self, recording_id: str, transcript: Transcript) -> None:
        path = RecordingPaths.for_recording(self._folder, recording_id).transcript
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(transcript.to_json())
        os.replace(tmp, path)
