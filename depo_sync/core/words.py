"""Transcription-response ingest and multi-video word-stream merge.

WHY: The recognizer returns loosely typed JSON. A missing "start" or a
string where a number belongs would otherwise surface deep inside the
aligner as a TypeError. Validating at the boundary turns it into one
FormatError naming the bad field.

HOW: Pydantic models describe the response ({"text", "words": [...]}).
words_from_response() validates and converts to Word objects, scaling
0-1 confidences to the IR's 0-100 scale. merge_word_streams() joins the
per-video streams of a deposition recorded in several files into one
timeline.

RULES:
- Confidence <= 1 is treated as a 0-1 probability and multiplied by 100;
  larger values are assumed to be on the 0-100 scale already
- Each merged stream is shifted by the latest end time of the streams
  before it (cumulative), so stream order is playback order
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from depo_sync.core.errors import FormatError
from depo_sync.core.ir import Word


class WordPayload(BaseModel):
    """One recognized word as sent by the transcription service."""

    text: str = Field(description="Word text, punctuation attached.")
    start: float = Field(ge=0, description="Start time in milliseconds.")
    end: float = Field(ge=0, description="End time in milliseconds.")
    confidence: float = Field(
        default=0.0,
        ge=0,
        description="Recognition confidence, 0-1 or 0-100.",
    )


class TranscriptionResponse(BaseModel):
    """Full transcription service response.

    RULES:
    - text is also accepted under the key "fullText"
    - words may be empty; emptiness is rejected later by the mappers
    """

    text: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("text", "fullText"),
        description="Full recognized text.",
    )
    words: List[WordPayload] = Field(
        default_factory=list,
        description="Recognized words in playback order.",
    )


def _scale_confidence(value: float) -> float:
    return value * 100.0 if value <= 1.0 else value


def parse_response(data: Dict[str, Any]) -> TranscriptionResponse:
    """Validate a raw response dict; raises FormatError on a bad shape."""
    try:
        return TranscriptionResponse.model_validate(data)
    except ValidationError as exc:
        raise FormatError("Invalid transcription response: {}".format(exc)) from exc


def words_from_response(data: Dict[str, Any]) -> List[Word]:
    """Convert a raw transcription response into IR words (0-100 confidence)."""
    response = parse_response(data)
    return [
        Word(
            text=w.text,
            start_ms=w.start,
            end_ms=w.end,
            confidence=_scale_confidence(w.confidence),
        )
        for w in response.words
    ]


def merge_word_streams(streams: Sequence[Sequence[Word]]) -> List[Word]:
    """Concatenate per-video word lists into one continuous timeline."""
    merged: List[Word] = []
    offset = 0.0

    for stream in streams:
        last_end = 0.0
        for word in stream:
            merged.append(Word(
                text=word.text,
                start_ms=word.start_ms + offset,
                end_ms=word.end_ms + offset,
                confidence=word.confidence,
            ))
            last_end = max(last_end, word.end_ms)
        offset += last_end

    return merged
