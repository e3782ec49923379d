"""Shared test fixtures for the depo_sync test suite.

WHY: Most test modules need the same small deposition: a transcript with
margin line numbers, speaker labels, a wrapped line, and a word stream
that says exactly what the transcript says. Centralizing it here keeps
the expected timings consistent across the mapper, pipeline and CLI
tests.

HOW: SAMPLE_TRANSCRIPT has six logical lines (line 5 wraps onto an
unnumbered continuation row). SAMPLE_WORDS holds one recognized word per
spoken transcript word: word k starts at 1000 + 400k ms, lasts 300 ms,
confidence 75.

RULES:
- Line timings expected by the tests (start, end):
    line 1 (5 words)  1000-2900    line 4 (4 words)  5400-6900
    line 2 (4 words)  3000-4500    line 5 (5 words)  7000-8900
    line 3 (2 words)  4600-5300    line 6 (1 word)   9000-9300
- Every fixture returns a fresh copy; tests may mutate what they get
"""

from typing import Any, Dict, List

import pytest

from depo_sync.core.ir import Alignment, SentenceResult, Word


SAMPLE_TRANSCRIPT = (
    "1          THE VIDEOGRAPHER: We are on the record.\n"
    "2     Q.   Please state your name.\n"
    "3     A.   John Smith.\n"
    "4     Q.   Where do you live?\n"
    "5     A.   I live in Springfield,\n"
    "           Illinois.\n"
    "\n"
    "6          MR. JONES: Objection.\n"
)

SPOKEN_WORDS: List[str] = [
    "We", "are", "on", "the", "record.",
    "Please", "state", "your", "name.",
    "John", "Smith.",
    "Where", "do", "you", "live?",
    "I", "live", "in", "Springfield,", "Illinois.",
    "Objection.",
]


def make_words(texts: List[str], start_ms: float = 1000.0, confidence: float = 75.0) -> List[Word]:
    """Evenly paced words: 400 ms apart, 300 ms long."""
    return [
        Word(
            text=text,
            start_ms=start_ms + 400.0 * k,
            end_ms=start_ms + 400.0 * k + 300.0,
            confidence=confidence,
        )
        for k, text in enumerate(texts)
    ]


def make_alignment(
    word: str,
    start_ms: float,
    end_ms: float,
    confidence: float,
    human_index: int,
    matched: bool = True,
) -> Alignment:
    return Alignment(
        word=word,
        start_ms=start_ms,
        end_ms=end_ms,
        confidence=confidence,
        is_matched=matched,
        human_index=human_index,
        ai_index=human_index if matched else -1,
    )


@pytest.fixture
def sample_transcript() -> str:
    """The six-line sample deposition transcript."""
    return SAMPLE_TRANSCRIPT


@pytest.fixture
def sample_words() -> List[Word]:
    """One recognized word per spoken word of the sample transcript."""
    return make_words(SPOKEN_WORDS)


@pytest.fixture
def sample_response() -> Dict[str, Any]:
    """The sample word stream as a transcription service response (0-1 confidence)."""
    return {
        "text": " ".join(SPOKEN_WORDS),
        "words": [
            {"text": w.text, "start": w.start_ms, "end": w.end_ms, "confidence": 0.75}
            for w in make_words(SPOKEN_WORDS)
        ],
    }


@pytest.fixture
def line_units() -> List[SentenceResult]:
    """Three timed line-mode units on page 1 plus one blank line."""
    return [
        SentenceResult(
            display_text="1     Q.   Please state your name.",
            clean_text="Q.   Please state your name.",
            start_ms=1000.0,
            end_ms=2500.0,
            confidence=90.0,
            page_number=1,
            line_number=1,
        ),
        SentenceResult(
            display_text="2     A.   John Smith.",
            clean_text="A.   John Smith.",
            start_ms=2600.0,
            end_ms=3300.0,
            confidence=85.5,
            page_number=1,
            line_number=2,
        ),
        SentenceResult(
            display_text="",
            clean_text="",
            start_ms=0.0,
            end_ms=0.0,
            confidence=0.0,
            page_number=1,
            line_number=3,
        ),
        SentenceResult(
            display_text="4          MR. JONES: Objection.",
            clean_text="MR. JONES: Objection.",
            start_ms=4000.0,
            end_ms=4300.0,
            confidence=60.0,
            page_number=1,
            line_number=4,
        ),
    ]
