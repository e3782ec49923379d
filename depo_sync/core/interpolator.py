"""Timestamp interpolation for human words the aligner could not match.

WHY: Court reporters transcribe words the recognizer misses (mumbles,
crosstalk, spellings), so every alignment has holes. Output units must
still carry a usable time and an honest confidence, so holes are filled
from the nearest matched neighbours instead of being left empty.

HOW: For each alignment without timing, scan left and right for the
nearest matched neighbour, then:
  both neighbours  — spread the gap between them linearly; confidence is
                     the neighbours' mean scaled by a gap-size penalty and
                     a pace penalty (interpolated_confidence)
  one neighbour    — a fixed 300 ms slot beside it at 40% of its
                     confidence (never below 20)
  no neighbours    — synthetic 300 ms slots from 0 at confidence 10

RULES:
- Runs in place; matched alignments are never modified
- is_matched stays False on interpolated entries
- Every entry has 0 <= start_ms <= end_ms afterwards
- Neighbours whose times touch or overlap give a zero-length slot at
  the previous neighbour's end
"""

from __future__ import annotations

from typing import List, Optional

from depo_sync.core.ir import Alignment

FALLBACK_SLOT_MS = 300.0
"""Slot length used when only one neighbour (or none) exists."""

EXPECTED_MS_PER_WORD = 400.0
"""Typical speaking pace used to judge whether a gap is suspiciously long."""

SINGLE_NEIGHBOUR_FACTOR = 0.4
SINGLE_NEIGHBOUR_FLOOR = 20.0
NO_NEIGHBOUR_CONFIDENCE = 10.0

MIN_INTERPOLATED_CONFIDENCE = 30.0
MAX_INTERPOLATED_CONFIDENCE = 95.0


def _gap_penalty(gap_count: int) -> float:
    if gap_count <= 2:
        return 0.9
    if gap_count <= 5:
        return 0.7
    if gap_count <= 10:
        return 0.5
    return 0.3


def _time_penalty(gap_count: int, time_gap_ms: float) -> float:
    expected = gap_count * EXPECTED_MS_PER_WORD
    if time_gap_ms > expected * 2:
        return 0.7
    if time_gap_ms > expected * 1.5:
        return 0.85
    return 1.0


def interpolated_confidence(
    gap_count: int,
    prev_confidence: float,
    next_confidence: float,
    time_gap_ms: float,
) -> float:
    """Confidence for a word placed between two matched neighbours.

    Mean of the neighbours, times a step penalty on the gap size
    (≤2: 0.9, ≤5: 0.7, ≤10: 0.5, else 0.3), times a pace penalty when the
    gap is longer than 1.5x/2x the expected 400 ms per word. Clamped to
    30-95.
    """
    average = (prev_confidence + next_confidence) / 2
    score = average * _gap_penalty(gap_count) * _time_penalty(gap_count, time_gap_ms)
    return max(MIN_INTERPOLATED_CONFIDENCE, min(MAX_INTERPOLATED_CONFIDENCE, score))


def _is_anchor(alignment: Alignment) -> bool:
    return alignment.is_matched and alignment.start_ms >= 0


def _find_prev_anchor(alignments: List[Alignment], index: int) -> Optional[int]:
    for j in range(index - 1, -1, -1):
        if _is_anchor(alignments[j]):
            return j
    return None


def _find_next_anchor(alignments: List[Alignment], index: int) -> Optional[int]:
    for j in range(index + 1, len(alignments)):
        if _is_anchor(alignments[j]):
            return j
    return None


def interpolate(alignments: List[Alignment]) -> None:
    """Fill in timing and confidence for every unmatched alignment, in place."""
    for i, alignment in enumerate(alignments):
        if alignment.is_matched and alignment.start_ms >= 0:
            continue

        prev_idx = _find_prev_anchor(alignments, i)
        next_idx = _find_next_anchor(alignments, i)

        if prev_idx is not None and next_idx is not None:
            prev = alignments[prev_idx]
            nxt = alignments[next_idx]
            gap_count = next_idx - prev_idx
            time_gap = nxt.start_ms - prev.end_ms
            if time_gap > 0:
                time_per_word = time_gap / gap_count
                alignment.start_ms = prev.end_ms + time_per_word * (i - prev_idx)
                alignment.end_ms = alignment.start_ms + time_per_word
            else:
                alignment.start_ms = prev.end_ms
                alignment.end_ms = prev.end_ms
            alignment.confidence = interpolated_confidence(
                gap_count, prev.confidence, nxt.confidence, max(time_gap, 0.0),
            )
        elif prev_idx is not None:
            prev = alignments[prev_idx]
            alignment.start_ms = prev.end_ms
            alignment.end_ms = alignment.start_ms + FALLBACK_SLOT_MS
            alignment.confidence = max(
                SINGLE_NEIGHBOUR_FLOOR, prev.confidence * SINGLE_NEIGHBOUR_FACTOR,
            )
        elif next_idx is not None:
            nxt = alignments[next_idx]
            alignment.end_ms = nxt.start_ms
            alignment.start_ms = max(0.0, alignment.end_ms - FALLBACK_SLOT_MS)
            alignment.confidence = max(
                SINGLE_NEIGHBOUR_FLOOR, nxt.confidence * SINGLE_NEIGHBOUR_FACTOR,
            )
        else:
            alignment.start_ms = i * FALLBACK_SLOT_MS
            alignment.end_ms = (i + 1) * FALLBACK_SLOT_MS
            alignment.confidence = NO_NEIGHBOUR_CONFIDENCE
