"""Sentence-mode and line-preserving mapping: transcript + words → timed units.

WHY: Two consumers want different units. Subtitle review wants free
sentences; legal review wants the reporter's exact page/line grid, one
unit per line, so a timestamp can be cited as "page 12, line 4".

HOW:
  extract_spoken_text — turn a numbered transcript into free spoken text
                        from start_line on, for sentence mode
  map_to_sentences — split free text into sentences, strip speaker and
                     Q/A prefixes, align the words, regroup into
                     sentences, repair untimed gaps
  map_to_lines     — parse the page/line grid, sanitize each line, align
                     all spoken words at or after start_line in one
                     (chunked) pass, then give every line the span of its
                     matched words, and repair untimed gaps
Two helpers operate on finished units:
  renumber_pages           — recompute page/line numbers after editing
  enrich_with_line_numbers — copy page/line numbers from a previously
                             exported interchange or checkpoint file

RULES:
- Both mapping functions raise InputError on an empty transcript or an
  empty word list before doing any alignment work
- map_to_lines returns exactly one unit per logical transcript line,
  blank lines included (zero timing, confidence 0)
- Lines before start_line keep zero timing and are not gap-repaired
- map_to_lines aligns cached sanitized rows when their count matches the
  transcript from start_line on, and sanitizes again otherwise
- Line timing uses matched words only; interpolated words only count
  through gap repair
- Line confidence averages matched words above LINE_CONFIDENCE_THRESHOLD
  (all matched words when none are), boosted by 20% and capped at 100
- enrich_with_line_numbers never replaces known page/line numbers with 0
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from depo_sync.config import CHUNK_SIZE, MAX_LINES_PER_PAGE, OVERLAP_SIZE
from depo_sync.core.aggregator import aggregate, fix_sentence_timestamps
from depo_sync.core.aligner import ProgressCallback, align_chunked
from depo_sync.core.errors import InputError
from depo_sync.core.ir import LineInfo, SentenceResult, Word
from depo_sync.core.parser import merge_continuations, parse_transcript
from depo_sync.core.sanitizer import (
    build_word_index,
    extract_words,
    first_indexed_line,
    index_sanitized_rows,
)
from depo_sync.core.text import normalize_lookup_text, split_into_sentences, strip_speaker_prefixes

logger = logging.getLogger(__name__)

LINE_CONFIDENCE_THRESHOLD = 40.0
"""Matched words at or below this confidence are ignored when a line has better ones."""

LINE_CONFIDENCE_BOOST = 1.2
MAX_CONFIDENCE = 100.0

_PAGE_HEADER_RE = re.compile(r"^\s*(\d{1,4})\s*$")

# A page header is accepted when it is 1 or within this many pages ahead.
PAGE_HEADER_WINDOW = 10


def _require_words(ai_words: Sequence[Word]) -> None:
    if not ai_words:
        raise InputError("AI transcript word list is empty.")


def extract_spoken_text(transcript_text: str, start_line: int = 0) -> str:
    """Spoken words of a numbered transcript from ``start_line`` on, as free text.

    Margin numbers, page headers, speaker labels and Q./A. markers are
    dropped, so the result can go straight into map_to_sentences().
    """
    lines = merge_continuations(parse_transcript(transcript_text))
    return build_word_index(lines, start_line).spoken_text


def map_to_sentences(
    human_text: str,
    ai_words: Sequence[Word],
    chunk_size: int = CHUNK_SIZE,
    overlap_size: int = OVERLAP_SIZE,
    on_progress: Optional[ProgressCallback] = None,
) -> List[SentenceResult]:
    """Align free transcript text and regroup it into timed sentences.

    Args:
        human_text: The human transcript as plain text.
        ai_words: Recognized words with timing.
        chunk_size: Chunked-alignment window (see align_chunked).
        overlap_size: Chunked-alignment overlap (see align_chunked).
        on_progress: Optional (chunk_number, chunk_total) callback.

    Returns:
        Timed sentences in transcript order, without page/line numbers.

    Raises:
        InputError: If the transcript or the word list is empty.
    """
    if not human_text or not human_text.strip():
        raise InputError("Human transcript is empty.")
    _require_words(ai_words)

    sentences = strip_speaker_prefixes(split_into_sentences(human_text))
    human_words = extract_words(sentences)
    logger.info(
        "Sentence mapping: %d human words vs %d AI words", len(human_words), len(ai_words),
    )

    alignments = align_chunked(
        human_words, ai_words, chunk_size, overlap_size, on_progress=on_progress,
    )
    return fix_sentence_timestamps(aggregate(alignments))


def _line_confidence(confidences: List[float]) -> float:
    strong = [c for c in confidences if c > LINE_CONFIDENCE_THRESHOLD]
    used = strong or confidences
    average = sum(used) / len(used)
    return min(MAX_CONFIDENCE, average * LINE_CONFIDENCE_BOOST)


def map_to_lines(
    transcript_text: str,
    ai_words: Sequence[Word],
    start_line: int = 0,
    chunk_size: int = CHUNK_SIZE,
    overlap_size: int = OVERLAP_SIZE,
    on_progress: Optional[ProgressCallback] = None,
    sanitized_rows: Optional[Sequence[str]] = None,
) -> List[SentenceResult]:
    """Time every line of a page/line numbered transcript.

    Args:
        transcript_text: Raw transcript file content.
        ai_words: Recognized words with timing.
        start_line: Absolute line index where the video begins; earlier
            lines are returned untimed.
        chunk_size: Chunked-alignment window (see align_chunked).
        overlap_size: Chunked-alignment overlap (see align_chunked).
        on_progress: Optional (chunk_number, chunk_total) callback.
        sanitized_rows: Cached output of an earlier sanitization, one row
            per line from start_line on. Used instead of sanitizing again
            when the row count matches the transcript.

    Returns:
        One SentenceResult per logical line. display_text is the printed
        row (margin number included), clean_text the line content.

    Raises:
        InputError: If the transcript or the word list is empty, if
            start_line is negative, or if no spoken words remain at or
            after start_line.
    """
    if not transcript_text or not transcript_text.strip():
        raise InputError("Human transcript is empty.")
    _require_words(ai_words)
    if start_line < 0:
        raise InputError("start_line must be zero or positive, got {}".format(start_line))

    lines = merge_continuations(parse_transcript(transcript_text))
    start_index = first_indexed_line(lines, start_line)
    if sanitized_rows is not None and len(sanitized_rows) == len(lines) - start_index:
        index = index_sanitized_rows(sanitized_rows, start_index)
    else:
        if sanitized_rows is not None:
            logger.warning(
                "Cached sanitized text has %d rows but the transcript has %d lines "
                "from line %d; sanitizing again",
                len(sanitized_rows), len(lines) - start_index, start_line,
            )
        index = build_word_index(lines, start_line)
    if not index.words:
        raise InputError("No spoken words found at or after line {}.".format(start_line))

    logger.info(
        "Line mapping (start line %d): %d human words vs %d AI words",
        start_line, len(index.words), len(ai_words),
    )

    alignments = align_chunked(
        index.words, ai_words, chunk_size, overlap_size, on_progress=on_progress,
    )

    units = [
        SentenceResult(
            display_text=line.original_text,
            clean_text=line.text,
            start_ms=0.0,
            end_ms=0.0,
            confidence=0.0,
            page_number=line.page_number,
            line_number=line.line_number,
        )
        for line in lines
    ]

    for span in index.spans:
        matched = [a for a in alignments[span.word_start:span.word_end] if a.is_matched]
        if not matched:
            continue
        unit = units[span.line_index]
        unit.start_ms = matched[0].start_ms
        unit.end_ms = matched[-1].end_ms
        unit.confidence = _line_confidence([a.confidence for a in matched])

    return fix_sentence_timestamps(units, start_index)


def renumber_pages(
    units: List[SentenceResult],
    max_lines: int = MAX_LINES_PER_PAGE,
) -> List[SentenceResult]:
    """Recompute page and line numbers for an edited unit list, in place.

    A unit whose text is a bare 1-4 digit number is a page header: it is
    accepted when it is 1 or within PAGE_HEADER_WINDOW pages ahead of the
    current page, and gets line number 0. Every other unit takes the next
    line number; passing max_lines rolls over to a new page.

    The header branch serves units decoded from subtitle files. Line
    mode output never holds header units: the parser drops bare page
    numbers before mapping.
    """
    page = 1
    line = 0

    for unit in units:
        header = _PAGE_HEADER_RE.match(unit.clean_text)
        if header is not None:
            candidate = int(header.group(1))
            if candidate == 1 or page <= candidate < page + PAGE_HEADER_WINDOW:
                page = candidate
                line = 0
            unit.page_number = page
            unit.line_number = 0
            continue

        line += 1
        if line > max_lines:
            page += 1
            line = 1
        unit.page_number = page
        unit.line_number = line

    return units


def enrich_with_line_numbers(
    units: List[SentenceResult],
    text_lookup: Dict[str, LineInfo],
    time_lookup: Optional[Dict[float, LineInfo]] = None,
) -> List[SentenceResult]:
    """Copy page/line numbers from a decoded interchange or checkpoint file.

    Matches each unit by start time first (when it has one and a time
    lookup is given), then by normalized text. Modifies ``units`` in place
    and returns it.
    """
    matched = 0
    for unit in units:
        info: Optional[LineInfo] = None
        if time_lookup is not None and unit.start_ms > 0:
            info = time_lookup.get(unit.start_ms)
        if info is None:
            info = text_lookup.get(normalize_lookup_text(unit.clean_text))
        if info is None:
            continue

        matched += 1
        if info.page_no:
            unit.page_number = info.page_no
        if info.line_no:
            unit.line_number = info.line_no

    logger.info("Enriched %d of %d units with page/line numbers", matched, len(units))
    return units
