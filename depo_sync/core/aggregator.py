"""Sentence aggregation and zero-timestamp gap repair.

WHY: Review tools show testimony sentence by sentence (or line by line),
not word by word. Aligned words have to be regrouped into display units
that carry one start, one end and one confidence each.

HOW: aggregate() first folds runs of three "." tokens into one "..."
token, then walks the words and closes a sentence after any word ending
in ".", "!" or "?". The split is suppressed after an honorific ("Mr.",
"Dr.", "Judge") when the next word is capitalized. Sentence timing comes
only from member words with timing; words without timing still
contribute their text.

fix_sentence_timestamps() is the repair pass shared by both mapping
modes: it finds runs of units with start == end == 0 that sit between
timed units and spreads the neighbours' gap evenly across the run.

RULES:
- Sentence start/end are min/max over members with start >= 0 and
  end >= 0; confidence is their mean, rounded to 2 decimals
- A sentence with no timed members gets start = end = 0
- Gap repair only fills runs bounded by timed units on both sides and
  only when the next unit starts after the previous one ends
- Repaired confidence is 70% of the neighbours' mean
- Units with blank text are skipped by gap repair and never bound a run
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from depo_sync.core.ir import Alignment, SentenceResult
from depo_sync.core.text import is_salutation

_TERMINAL_RE = re.compile(r"[.!?]$")

GAP_REPAIR_CONFIDENCE_FACTOR = 0.7


def merge_ellipsis(alignments: Sequence[Alignment]) -> List[Alignment]:
    """Fold every run of three "." tokens into a single "..." token.

    The merged token spans the first dot's start to the third dot's end,
    averages the three confidences and is matched only if all three are.
    """
    merged: List[Alignment] = []
    i = 0
    while i < len(alignments):
        window = alignments[i:i + 3]
        if len(window) == 3 and all(a.word == "." for a in window):
            first, _, third = window
            merged.append(Alignment(
                word="...",
                start_ms=first.start_ms,
                end_ms=third.end_ms,
                confidence=sum(a.confidence for a in window) / 3,
                is_matched=all(a.is_matched for a in window),
                human_index=first.human_index,
                ai_index=first.ai_index,
            ))
            i += 3
        else:
            merged.append(alignments[i])
            i += 1
    return merged


def create_sentence_result(words: Sequence[Alignment]) -> SentenceResult:
    """Collapse a group of aligned words into one timed output unit."""
    text = " ".join(a.word for a in words)
    timed = [a for a in words if a.start_ms >= 0 and a.end_ms >= 0]

    if timed:
        start = min(a.start_ms for a in timed)
        end = max(a.end_ms for a in timed)
        confidence = round(sum(a.confidence for a in timed) / len(timed), 2)
    else:
        start = end = 0.0
        confidence = 0.0

    return SentenceResult(
        display_text=text,
        clean_text=text,
        start_ms=start,
        end_ms=end,
        confidence=confidence,
    )


def _suppresses_split(words: Sequence[Alignment], index: int) -> bool:
    # "Mr." as one token, or "Mr" "." as two.
    word = words[index].word
    honorific = is_salutation(word) or (
        word == "." and index > 0 and is_salutation(words[index - 1].word)
    )
    if not honorific or index + 1 >= len(words):
        return False
    following = words[index + 1].word
    return bool(following) and following[0].isupper()


def aggregate(alignments: Sequence[Alignment]) -> List[SentenceResult]:
    """Group aligned words into sentences.

    Args:
        alignments: Interpolated alignments in human word order.

    Returns:
        One SentenceResult per sentence, in order. A trailing fragment
        without terminal punctuation becomes its own sentence.
    """
    words = merge_ellipsis(alignments)
    sentences: List[SentenceResult] = []
    current: List[Alignment] = []

    for i, alignment in enumerate(words):
        current.append(alignment)
        if _TERMINAL_RE.search(alignment.word) and not _suppresses_split(words, i):
            sentences.append(create_sentence_result(current))
            current = []

    if current:
        sentences.append(create_sentence_result(current))

    return sentences


def _is_untimed(unit: SentenceResult) -> bool:
    return unit.start_ms == 0 and unit.end_ms == 0


def _is_blank(unit: SentenceResult) -> bool:
    return not unit.clean_text.strip()


def _neighbour(units: Sequence[SentenceResult], positions: Sequence[int], at: int) -> Optional[int]:
    if 0 <= at < len(positions) and units[positions[at]].has_timing:
        return positions[at]
    return None


def fix_sentence_timestamps(
    units: List[SentenceResult],
    start_index: int = 0,
) -> List[SentenceResult]:
    """Spread time over runs of untimed units between two timed units.

    Modifies ``units`` in place and returns it. Units before
    ``start_index`` are neither repaired nor used as neighbours.
    """
    positions = [
        i for i in range(max(start_index, 0), len(units))
        if not _is_blank(units[i])
    ]

    k = 0
    while k < len(positions):
        if not _is_untimed(units[positions[k]]):
            k += 1
            continue

        run_start = k
        while k < len(positions) and _is_untimed(units[positions[k]]):
            k += 1
        run = positions[run_start:k]

        prev_idx = _neighbour(units, positions, run_start - 1)
        next_idx = _neighbour(units, positions, k)
        if prev_idx is None or next_idx is None:
            continue

        prev_unit = units[prev_idx]
        next_unit = units[next_idx]
        start_time = prev_unit.end_ms
        end_time = next_unit.start_ms
        if end_time <= start_time:
            continue

        time_per_unit = (end_time - start_time) / len(run)
        confidence = (prev_unit.confidence + next_unit.confidence) / 2 * GAP_REPAIR_CONFIDENCE_FACTOR
        for offset, idx in enumerate(run):
            units[idx].start_ms = start_time + time_per_unit * offset
            units[idx].end_ms = start_time + time_per_unit * (offset + 1)
            units[idx].confidence = confidence

    return units
