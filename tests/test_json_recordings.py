"""Tests for JsonRecordingStore and the transcript DTOs."""

import json

from pensieve_pipeline.domain.models import CleanSegment
from pensieve_pipeline.mappers import segments_to_transcript


def clean(text="hello", speaker="Speaker 1"):
    return CleanSegment(
        start=0.5, end=1.25, text=text, speaker=speaker,
        time_from="00:00:00.500", time_to="00:00:01.250", offset_from=500, offset_to=1250,
    )


class TestRecordingMetadata:
    def test_missing_recording_is_empty(self, store):
        assert store.get_recording("nope") == {}

    def test_update_merges_fields(self, store):
        store.update_recording("rec-1", name="Standup")
        store.update_recording("rec-1", isPostProcessed=True)

        assert store.get_recording("rec-1") == {"name": "Standup", "isPostProcessed": True}
        assert not (store.recordings_folder() / "rec-1" / "meta.tmp").exists()

    def test_corrupt_metadata_is_empty(self, store):
        folder = store.recordings_folder() / "rec-1"
        folder.mkdir(parents=True)
        (folder / "meta.json").write_text("{not json")

        assert store.get_recording("rec-1") == {}


class TestTranscripts:
    def test_save_writes_on_disk_schema(self, store):
        store.save_transcript("rec-1", segments_to_transcript([clean()], "en"))

        data = json.loads((store.recordings_folder() / "rec-1" / "transcript.json").read_text())
        assert data == {
            "result": {"language": "en"},
            "transcription": [{
                "timestamps": {"from": "00:00:00.500", "to": "00:00:01.250"},
                "offsets": {"from": 500, "to": 1250},
                "text": "hello",
                "speaker": "Speaker 1",
            }],
        }

    def test_save_then_load(self, store):
        store.save_transcript("rec-1", segments_to_transcript([clean("a"), clean("b", "?")], None))

        transcript = store.get_transcript("rec-1")

        assert transcript.result.language == "unknown"
        assert [i.text for i in transcript.transcription] == ["a", "b"]
        assert transcript.transcription[0].offsets.from_ == 500
        assert transcript.plain_text() == "Speaker 1: a\n?: b"

    def test_missing_transcript(self, store):
        assert store.get_transcript("rec-1") is None

    def test_invalid_transcript(self, store):
        folder = store.recordings_folder() / "rec-1"
        folder.mkdir(parents=True)
        (folder / "transcript.json").write_text('{"transcription": [{"text": 1}]}')

        assert store.get_transcript("rec-1") is None
