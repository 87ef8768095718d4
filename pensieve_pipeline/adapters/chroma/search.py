"""ChromaSearchIndex: recording and transcript indexing in ChromaDB.

chromadb is imported lazily so the pipeline runs without the vector extra
installed; indexing failures are non-fatal to a job anyway.
"""

import logging
from typing import Callable

from pensieve_pipeline.ports.recordings import RecordingStorePort
from pensieve_pipeline.ports.search import SearchIndexPort

logger = logging.getLogger(__name__)

RECORDINGS_COLLECTION = "recordings"
TRANSCRIPTS_COLLECTION = "transcript_segments"
BATCH_SIZE = 32


class ChromaSearchIndex(SearchIndexPort):
    def __init__(self, persist_dir: str, store: RecordingStorePort, batch_size: int = BATCH_SIZE):
        self._persist_dir = persist_dir
        self._store = store
        self._batch_size = batch_size
        self._client = None

    def _collection(self, name: str):
        if self._client is None:
            import chromadb

            self._client = chromadb.PersistentClient(path=self._persist_dir)
        return self._client.get_or_create_collection(name)

    def add_recording_to_index(self, recording_id: str) -> None:
        recording = self._store.get_recording(recording_id)
        transcript = self._store.get_transcript(recording_id)
        parts = [recording.get("name", ""), recording.get("summary", "")]
        if transcript:
            parts.append(transcript.plain_text())
        document = "\n\n".join(p for p in parts if p)

        self._collection(RECORDINGS_COLLECTION).upsert(
            ids=[recording_id],
            documents=[document or recording_id],
            metadatas=[{"recording_id": recording_id}],
        )
        logger.info(f"Indexed recording {recording_id}")

    def add_transcript_to_vector_store(
        self, recording_id: str, on_progress: Callable[[float], None]
    ) -> None:
        transcript = self._store.get_transcript(recording_id)
        if not transcript or not transcript.transcription:
            logger.info(f"No transcript for {recording_id}, nothing to embed")
            on_progress(1.0)
            return

        collection = self._collection(TRANSCRIPTS_COLLECTION)
        collection.delete(where={"recording_id": recording_id})

        items = transcript.transcription
        for start in range(0, len(items), self._batch_size):
            batch = items[start:start + self._batch_size]
            collection.add(
                ids=[f"{recording_id}-{start + i}" for i in range(len(batch))],
                documents=[item.text for item in batch],
                metadatas=[
                    {
                        "recording_id": recording_id,
                        "speaker": item.speaker or "",
                        "from": item.offsets.from_,
                        "to": item.offsets.to,
                    }
                    for item in batch
                ],
            )
            on_progress(min((start + len(batch)) / len(items), 1.0))

        logger.info(f"Embedded {len(items)} transcript segments for {recording_id}")
