"""PyannoteDiarizationAdapter: wraps Pyannote 3.1 for speaker diarization."""

import os
import logging
from typing import Optional

from pensieve_pipeline.domain.models import RawSegment
from pensieve_pipeline.ports.diarization import DiarizationPort

logger = logging.getLogger(__name__)

PIPELINE_ID = "pyannote/speaker-diarization-3.1"

# A second speaker covering at least this share of a segment makes it a
# shared "SPEAKERS_a_AND_b" segment.
SHARED_SEGMENT_RATIO = 0.3


def _speaker_number(label: str) -> int:
    """pyannote's "SPEAKER_00" becomes 1, "SPEAKER_01" becomes 2, ..."""
    try:
        return int(str(label).rsplit("_", 1)[-1]) + 1
    except ValueError:
        return 0


def _label_number(label: str) -> str:
    return label.rsplit("_", 1)[-1]


class PyannoteDiarizationAdapter(DiarizationPort):
    def __init__(self):
        self._pipeline = None

    def load(self, access_token: Optional[str] = None, device: str = "cuda", **kwargs) -> None:
        import torch

        try:
            from pyannote.audio import Pipeline

            token = access_token or os.environ.get("HF_TOKEN") or os.environ.get("HUGGINGFACE_ACCESS_TOKEN")
            if not token:
                logger.error("No HuggingFace token available. Speaker labels disabled.")
                return

            self._pipeline = Pipeline.from_pretrained(PIPELINE_ID, use_auth_token=token)
            actual_device = device if device == "cuda" and torch.cuda.is_available() else "cpu"
            self._pipeline.to(torch.device(actual_device))
            logger.info(f"Diarization pipeline initialized on {actual_device}")

        except ImportError:
            logger.error("pyannote.audio not installed")

    def diarize(self, audio_path: str) -> list[tuple[float, float, str]]:
        if self._pipeline is None:
            return []

        diarization = self._pipeline(audio_path)
        turns = [
            (turn.start, turn.end, f"SPEAKER_{_speaker_number(speaker)}")
            for turn, _, speaker in diarization.itertracks(yield_label=True)
        ]
        turns.sort(key=lambda t: t[0])
        logger.info(f"Found {len({t[2] for t in turns})} speakers in {len(turns)} turns")
        return turns

    def label_segments(
        self,
        turns: list[tuple[float, float, str]],
        segments: list[tuple[float, float, str]],
        confidence: Optional[float] = None,
    ) -> list[RawSegment]:
        labelled: list[RawSegment] = []

        for i, (start, end, text) in enumerate(segments):
            overlap_by_speaker: dict[str, float] = {}
            for turn_start, turn_end, speaker in turns:
                overlap = min(end, turn_end) - max(start, turn_start)
                if overlap > 0:
                    overlap_by_speaker[speaker] = overlap_by_speaker.get(speaker, 0.0) + overlap

            ranked = sorted(overlap_by_speaker.items(), key=lambda x: x[1], reverse=True)
            duration = max(end - start, 1e-6)
            if not ranked:
                label = "NO_SPEAKER"
            elif len(ranked) > 1 and ranked[1][1] / duration >= SHARED_SEGMENT_RATIO:
                a, b = sorted((_label_number(s) for s, _ in ranked[:2]), key=lambda n: (len(n), n))
                label = f"SPEAKERS_{a}_AND_{b}"
            else:
                label = ranked[0][0]

            labelled.append(RawSegment(
                id=i,
                start=start,
                end=end,
                label=label,
                text=text,
                confidence=confidence if confidence is not None else 1.0,
            ))

        return labelled

    def is_loaded(self) -> bool:
        return self._pipeline is not None
