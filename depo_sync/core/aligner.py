"""DTW word alignment between the human transcript and recognized words.

WHY: The recognizer's word stream is the only source of time, but its
words differ from the reporter's: misspellings, dropped fillers, split
numbers, whole missed phrases. A fuzzy, order-preserving alignment pairs
each human word with the recognized word most likely to be the same
utterance, so its timing can be borrowed.

HOW: Classic edit-distance dynamic programming over an (m+1)x(n+1) grid.
Cell cost is word_distance() (100 minus a rapidfuzz similarity ratio on
normalized words). build_cost_matrix() fills the grid once; backtrack()
is a separate pure walk from (m, n) back to the origin choosing the
cheapest predecessor:
  diagonal — match: emits a matched Alignment with the AI word's timing
  left     — skip an AI word: emits nothing
  up       — skip a human word: emits an unmatched Alignment
Ties prefer diagonal, then left, then up. The result is reversed to
forward order and handed to the interpolator.

align_chunked() bounds the O(m·n) cost for long depositions: it walks
windows of chunk_size + overlap_size human words, estimates the matching
AI window from transcript progress (assuming roughly even speech density,
with a 20% size buffer), aligns each window, rebases its indices to
global positions, and drops the leading overlap of every window after the
first because the previous window already covered those words.

RULES:
- word_distance(w, w) == 0 after normalization
- word_distance with an empty side after normalization == 100
- align() returns exactly one Alignment per human word, ordered by
  human_index 0..m-1
- align_chunked() on inputs within 2 x chunk_size is identical to align()
- The chunk window estimate is an approximation, not an exact search;
  seams in transcripts with very uneven pace may align less accurately
"""

from __future__ import annotations

import logging
import math
from array import array
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz

from depo_sync.config import CHUNK_SIZE, OVERLAP_SIZE
from depo_sync.core.errors import InputError
from depo_sync.core.interpolator import interpolate
from depo_sync.core.ir import Alignment, Word
from depo_sync.core.text import normalize_word

logger = logging.getLogger(__name__)

MAX_DISTANCE = 100.0

# AI window size multiplier for chunked alignment.
AI_WINDOW_BUFFER = 1.2

ProgressCallback = Callable[[int, int], None]
CostMatrix = List[array]


def word_distance(human_word: str, ai_word: str) -> float:
    """Distance between two words: 0 = same word, 100 = certain non-match."""
    human_norm = normalize_word(human_word)
    ai_norm = normalize_word(ai_word)

    if not human_norm or not ai_norm:
        return MAX_DISTANCE
    if human_norm == ai_norm:
        return 0.0
    return MAX_DISTANCE - fuzz.ratio(human_norm, ai_norm)


def build_cost_matrix(human_words: Sequence[str], ai_words: Sequence[Word]) -> CostMatrix:
    """Fill the cumulative DTW cost grid.

    dtw[0][0] = 0, every other border cell is +inf, and
    dtw[i][j] = cost(i, j) + min(dtw[i-1][j], dtw[i][j-1], dtw[i-1][j-1]).

    Distances are cached per (human, ai) text pair: depositions repeat
    the same short words thousands of times.
    """
    m = len(human_words)
    n = len(ai_words)
    inf = math.inf

    dtw: CostMatrix = [array("d", [inf]) * (n + 1) for _ in range(m + 1)]
    dtw[0][0] = 0.0

    ai_texts = [w.text for w in ai_words]
    cache: Dict[Tuple[str, str], float] = {}

    for i in range(1, m + 1):
        human = human_words[i - 1]
        prev_row = dtw[i - 1]
        row = dtw[i]
        for j in range(1, n + 1):
            key = (human, ai_texts[j - 1])
            cost = cache.get(key)
            if cost is None:
                cost = word_distance(human, ai_texts[j - 1])
                cache[key] = cost
            row[j] = cost + min(prev_row[j], row[j - 1], prev_row[j - 1])

    return dtw


def _unmatched(word: str, human_index: int) -> Alignment:
    return Alignment(
        word=word,
        start_ms=-1.0,
        end_ms=-1.0,
        confidence=0.0,
        is_matched=False,
        human_index=human_index,
        ai_index=-1,
    )


def backtrack(
    dtw: CostMatrix,
    human_words: Sequence[str],
    ai_words: Sequence[Word],
) -> List[Alignment]:
    """Walk the cost grid from (m, n) to the origin; returns forward order."""
    alignments: List[Alignment] = []
    i = len(human_words)
    j = len(ai_words)

    while i > 0 and j > 0:
        diagonal = dtw[i - 1][j - 1]
        left = dtw[i][j - 1]
        up = dtw[i - 1][j]

        if diagonal <= left and diagonal <= up:
            ai_word = ai_words[j - 1]
            alignments.append(Alignment(
                word=human_words[i - 1],
                start_ms=ai_word.start_ms,
                end_ms=ai_word.end_ms,
                confidence=ai_word.confidence,
                is_matched=True,
                human_index=i - 1,
                ai_index=j - 1,
            ))
            i -= 1
            j -= 1
        elif left <= up:
            j -= 1
        else:
            alignments.append(_unmatched(human_words[i - 1], i - 1))
            i -= 1

    while i > 0:
        alignments.append(_unmatched(human_words[i - 1], i - 1))
        i -= 1

    alignments.reverse()
    return alignments


def _align_window(human_words: Sequence[str], ai_words: Sequence[Word]) -> List[Alignment]:
    dtw = build_cost_matrix(human_words, ai_words)
    alignments = backtrack(dtw, human_words, ai_words)
    interpolate(alignments)
    return alignments


def _require_input(human_words: Sequence[str], ai_words: Sequence[Word]) -> None:
    if not human_words:
        raise InputError("Human transcript has no words to align.")
    if not ai_words:
        raise InputError("AI transcript word list is empty.")


def align(human_words: Sequence[str], ai_words: Sequence[Word]) -> List[Alignment]:
    """Align human words to recognized words and interpolate the gaps.

    Args:
        human_words: Sanitized human transcript words, in order.
        ai_words: Recognized words with timing, in order.

    Returns:
        One Alignment per human word, ordered by human_index.

    Raises:
        InputError: If either sequence is empty.
    """
    _require_input(human_words, ai_words)
    return _align_window(human_words, ai_words)


def align_chunked(
    human_words: Sequence[str],
    ai_words: Sequence[Word],
    chunk_size: int = CHUNK_SIZE,
    overlap_size: int = OVERLAP_SIZE,
    on_progress: Optional[ProgressCallback] = None,
) -> List[Alignment]:
    """Windowed alignment for transcripts too large for one DTW grid.

    Args:
        human_words: Sanitized human transcript words, in order.
        ai_words: Recognized words with timing, in order.
        chunk_size: Human words advanced per window.
        overlap_size: Extra human words of context at the end of each
            window; re-aligned and discarded by the next window.
        on_progress: Optional callback receiving (chunk_number, chunk_total).

    Returns:
        One Alignment per human word, ordered by global human_index.

    Raises:
        InputError: If either sequence is empty or the window sizes are
            unusable (chunk_size < 1, overlap_size < 0 or >= chunk_size).
    """
    _require_input(human_words, ai_words)
    if chunk_size < 1:
        raise InputError("chunk_size must be at least 1, got {}".format(chunk_size))
    if overlap_size < 0 or overlap_size >= chunk_size:
        raise InputError(
            "overlap_size must be in [0, chunk_size), got {} with chunk_size {}".format(
                overlap_size, chunk_size,
            )
        )

    total_human = len(human_words)
    total_ai = len(ai_words)

    if total_human <= chunk_size * 2 and total_ai <= chunk_size * 2:
        return _align_window(human_words, ai_words)

    logger.info("Using chunked DTW: %d human words, %d AI words", total_human, total_ai)

    results: List[Alignment] = []
    estimated_chunks = math.ceil(total_human / chunk_size)
    human_start = 0
    chunk_index = 0

    while human_start < total_human:
        human_end = min(human_start + chunk_size + overlap_size, total_human)
        human_chunk = human_words[human_start:human_end]

        ai_start = math.floor(human_start / total_human * total_ai)
        ai_window = math.floor(len(human_chunk) / total_human * total_ai * AI_WINDOW_BUFFER)
        ai_end = min(ai_start + ai_window + overlap_size, total_ai)
        ai_chunk = ai_words[ai_start:ai_end]

        logger.info(
            "Processing chunk %d/%d: human[%d:%d], AI[%d:%d]",
            chunk_index + 1, estimated_chunks, human_start, human_end, ai_start, ai_end,
        )
        if on_progress is not None:
            on_progress(chunk_index + 1, estimated_chunks)

        if ai_chunk:
            chunk_alignments = _align_window(human_chunk, ai_chunk)
        else:
            chunk_alignments = [_unmatched(w, k) for k, w in enumerate(human_chunk)]
            interpolate(chunk_alignments)

        for alignment in chunk_alignments:
            alignment.human_index += human_start
            if alignment.ai_index >= 0:
                alignment.ai_index += ai_start

        if chunk_index == 0:
            results.extend(chunk_alignments)
        else:
            results.extend(chunk_alignments[min(overlap_size, len(chunk_alignments)):])

        human_start += chunk_size
        chunk_index += 1

    logger.info("Chunked DTW complete: %d alignments", len(results))
    return results
