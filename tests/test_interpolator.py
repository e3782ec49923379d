"""Unit tests for timestamp interpolation of unmatched words."""

import pytest

from depo_sync.core.interpolator import (
    FALLBACK_SLOT_MS,
    MAX_INTERPOLATED_CONFIDENCE,
    MIN_INTERPOLATED_CONFIDENCE,
    interpolate,
    interpolated_confidence,
)

from conftest import make_alignment


def _gap(index):
    return make_alignment("x", -1.0, -1.0, 0.0, index, matched=False)


class TestBetweenNeighbours:
    """A gap bounded by matched words on both sides."""

    def test_linear_spread(self):
        alignments = [
            make_alignment("a", 0.0, 300.0, 90.0, 0),
            _gap(1),
            make_alignment("c", 900.0, 1200.0, 80.0, 2),
        ]
        interpolate(alignments)
        middle = alignments[1]

        assert middle.start_ms == pytest.approx(600.0)
        assert middle.end_ms == pytest.approx(900.0)
        assert middle.confidence == pytest.approx(76.5)
        assert not middle.is_matched

    def test_overlapping_neighbours_give_zero_length_slot(self):
        alignments = [
            make_alignment("a", 0.0, 500.0, 90.0, 0),
            _gap(1),
            make_alignment("c", 500.0, 800.0, 90.0, 2),
        ]
        interpolate(alignments)

        assert alignments[1].start_ms == 500.0
        assert alignments[1].end_ms == 500.0

    def test_matched_entries_untouched(self):
        first = make_alignment("a", 0.0, 300.0, 90.0, 0)
        alignments = [first, _gap(1), make_alignment("c", 900.0, 1200.0, 80.0, 2)]
        interpolate(alignments)
        assert (first.start_ms, first.end_ms, first.confidence) == (0.0, 300.0, 90.0)


class TestOneNeighbour:
    """Gaps at the start or the end of the sequence."""

    def test_after_last_match(self):
        alignments = [make_alignment("a", 100.0, 400.0, 90.0, 0), _gap(1)]
        interpolate(alignments)

        assert alignments[1].start_ms == 400.0
        assert alignments[1].end_ms == 400.0 + FALLBACK_SLOT_MS
        assert alignments[1].confidence == pytest.approx(36.0)

    def test_before_first_match(self):
        alignments = [_gap(0), make_alignment("b", 1000.0, 1300.0, 80.0, 1)]
        interpolate(alignments)

        assert alignments[0].end_ms == 1000.0
        assert alignments[0].start_ms == 700.0
        assert alignments[0].confidence == pytest.approx(32.0)

    def test_start_never_negative(self):
        alignments = [_gap(0), make_alignment("b", 100.0, 300.0, 30.0, 1)]
        interpolate(alignments)

        assert alignments[0].start_ms == 0.0
        assert alignments[0].confidence == 20.0


class TestNoNeighbours:
    """Fully unmatched input still gets ordered timing."""

    def test_synthetic_slots(self):
        alignments = [_gap(k) for k in range(3)]
        interpolate(alignments)

        assert [(a.start_ms, a.end_ms) for a in alignments] == [
            (0.0, 300.0), (300.0, 600.0), (600.0, 900.0),
        ]
        assert all(a.confidence == 10.0 for a in alignments)


class TestConfidence:
    """interpolated_confidence penalties and clamping."""

    def test_small_gap(self):
        assert interpolated_confidence(2, 90.0, 80.0, 600.0) == pytest.approx(76.5)

    def test_slow_gap_is_penalized(self):
        normal = interpolated_confidence(4, 90.0, 90.0, 1600.0)
        slow = interpolated_confidence(4, 90.0, 90.0, 4000.0)
        assert slow < normal

    def test_clamped_to_minimum(self):
        assert interpolated_confidence(20, 50.0, 50.0, 100000.0) == MIN_INTERPOLATED_CONFIDENCE

    def test_clamped_to_maximum(self):
        assert interpolated_confidence(1, 200.0, 200.0, 0.0) == MAX_INTERPOLATED_CONFIDENCE
