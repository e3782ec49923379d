"""Unit tests for the transcript structure parser.

WHY: Every timestamp in the exports is addressed by page and line. A
parser that drops a row, misses a page wrap or treats dialogue as a line
number shifts every citation after it.

HOW: Small hand-written transcripts exercise each layout rule: bare and
compound margin numbers, continuation rows, page wraps, page headers,
form-feed pages and unnumbered cover pages.
"""

from depo_sync.core.parser import (
    find_absolute_index,
    merge_continuations,
    parse_transcript,
    summarize_transcript,
)


def _numbered_page(count, first_word="Line"):
    return "".join("{} {} {}.\n".format(n, first_word, n) for n in range(1, count + 1))


class TestExplicitLines:
    """Rows that start with a margin line number."""

    def test_two_numbered_lines(self):
        lines = parse_transcript("1 Q. Are you ready?\n2 A. Yes.\n")

        assert len(lines) == 2
        assert [l.page_number for l in lines] == [1, 1]
        assert [l.line_number for l in lines] == [1, 2]
        assert [l.absolute_index for l in lines] == [1, 2]
        assert not any(l.is_continuation for l in lines)

    def test_text_drops_margin_number(self):
        lines = parse_transcript("1     Q.   Are you ready?\n")
        assert lines[0].text == "Q.   Are you ready?"
        assert lines[0].original_text == "1     Q.   Are you ready?"

    def test_leading_zero_line_number(self):
        lines = parse_transcript("01 Q. Hi.\n02 A. Hello.\n")
        assert [l.line_number for l in lines] == [1, 2]

    def test_number_above_25_is_not_a_line_number(self):
        lines = parse_transcript("26 dollars\n1 Q. Hi.\n")
        assert len(lines) == 1
        assert lines[0].text == "Q. Hi."

    def test_compound_page_line_token(self):
        lines = parse_transcript("00012:04 Q. Hi.\n00012:05 A. Hello.\n")
        assert [(l.page_number, l.line_number) for l in lines] == [(12, 4), (12, 5)]

    def test_nbsp_margin_is_normalized(self):
        lines = parse_transcript("1\u00a0Q. Hi.\n")
        assert lines[0].line_number == 1
        assert lines[0].text == "Q. Hi."


class TestContinuations:
    """Unnumbered rows extend the open numbered line."""

    def test_unnumbered_row_is_continuation(self):
        lines = parse_transcript("1 Q. Where do you\n     live?\n2 A. Here.\n")

        assert len(lines) == 3
        cont = lines[1]
        assert cont.is_continuation
        assert cont.line_number == 1
        assert cont.absolute_index == 1
        assert cont.text == "live?"
        assert lines[2].absolute_index == 2

    def test_blank_row_is_skipped(self):
        lines = parse_transcript("1 Q. Hi.\n\n2 A. Hello.\n")
        assert len(lines) == 2

    def test_merge_continuations_joins_with_newline(self):
        merged = merge_continuations(parse_transcript("1 Q. Where do you\n     live?\n2 A. Here.\n"))

        assert len(merged) == 2
        assert merged[0].text == "Q. Where do you\nlive?"
        assert merged[0].original_text == "1 Q. Where do you\n     live?"
        assert not merged[0].is_continuation

    def test_merge_does_not_mutate_input(self):
        lines = parse_transcript("1 Q. Where do you\n     live?\n")
        merge_continuations(lines)
        assert lines[0].text == "Q. Where do you"

    def test_small_number_early_on_page_is_dialogue(self):
        lines = parse_transcript("1 Q. How many?\n2 A. Two.\n1 more question\n")

        assert len(lines) == 3
        assert lines[2].is_continuation
        assert lines[2].text == "1 more question"
        assert lines[2].page_number == 1


class TestPages:
    """Page wraps, page headers and form-feed pages."""

    def test_wrap_after_line_25_starts_new_page(self):
        text = _numbered_page(25) + "1 Next page.\n"
        lines = parse_transcript(text)

        assert lines[-1].page_number == 2
        assert lines[-1].line_number == 1
        assert lines[-1].absolute_index == 26

    def test_page_header_row_is_skipped(self):
        lines = parse_transcript("   12\n1 Q. Hi.\n")
        assert len(lines) == 1
        assert lines[0].text == "Q. Hi."

    def test_form_feed_cover_page_keeps_every_row(self):
        text = "CAPTION\n\nDEPOSITION OF JOHN SMITH\f" + _numbered_page(5)
        lines = parse_transcript(text)

        cover = [l for l in lines if l.page_number == 1]
        assert [l.text for l in cover] == ["CAPTION", "", "DEPOSITION OF JOHN SMITH"]
        assert [l.line_number for l in cover] == [1, 2, 3]

        body = [l for l in lines if l.page_number == 2]
        assert len(body) == 5
        assert body[0].absolute_index == 4
        assert body[-1].absolute_index == 8

    def test_form_feed_page_with_few_numbers_is_unnumbered(self):
        text = "1 Caption line\nSome title\f" + _numbered_page(5)
        lines = parse_transcript(text)
        cover = [l for l in lines if l.page_number == 1]
        assert [l.text for l in cover] == ["1 Caption line", "Some title"]

    def test_absolute_index_is_continuous_across_pages(self):
        text = "TITLE\f" + _numbered_page(5) + "\f" + _numbered_page(5)
        lines = parse_transcript(text)
        assert [l.absolute_index for l in lines] == list(range(1, 12))
        assert lines[-1].page_number == 3


class TestHelpers:
    """find_absolute_index and summarize_transcript."""

    def test_find_absolute_index(self):
        lines = parse_transcript("TITLE\f" + _numbered_page(5))
        assert find_absolute_index(lines, 2, 3) == 4
        assert find_absolute_index(lines, 9, 1) is None

    def test_summarize(self):
        lines = parse_transcript("TITLE\n\f" + "1 Q. Where do you\n   live?\n2 A. Here.\n3 x\n4 y\n5 z\n")
        summary = summarize_transcript(lines)

        assert summary["total_pages"] == 2
        assert summary["first_page"] == 1
        assert summary["last_page"] == 2
        assert summary["continuation_lines"] == 1
        assert summary["blank_lines"] == 0
        assert summary["total_entries"] == len(lines)

    def test_summarize_empty(self):
        assert summarize_transcript([])["total_pages"] == 0

    def test_empty_text_parses_to_nothing(self):
        assert parse_transcript("") == []
