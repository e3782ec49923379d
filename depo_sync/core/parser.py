"""Transcript structure parser: raw court transcript text → TranscriptLine[].

WHY: Court transcripts are addressed by page and line ("page 12, line 4"),
but the numbering lives in the left margin of plain text files whose
layout varies by reporting firm: bare "  4" margins, compound
"00012:04" tokens, form-feed page breaks, double-spaced rows, and
unnumbered cover pages. Alignment needs every row tagged with its
coordinates before the numbers are stripped away.

HOW: The text is split into pages on form feeds (one page when there are
none). Each page is classified:
  explicit   — ≥5 numbered rows, or any numbered row when the file has no
               form feeds; parsed by a small state machine
  unnumbered — cover/title pages; every physical row becomes a line
The explicit-page state machine has three states:
  AWAITING_LINE_NUMBER — no logical line open yet on this page
  IN_CONTINUATION      — a numbered line is open; unnumbered rows extend it
  AT_PAGE_HEADER       — a standalone integer row was just skipped
A numbered row opens a new logical line. A wrap backward in line numbers
(25 → 1) or a compound "page:line" token with a new page moves the page.

RULES:
- Line-number pattern: optional "NNNNN:" page token, then 1-25 (leading
  zeros allowed), followed by whitespace or end of row
- A row holding only an integer (1-3 digits) is a page header and skipped
- Blank rows inside explicit pages are skipped, not continuations
- A backward wrap only starts a new page when the open page has already
  passed PAGE_WRAP_MIN_LINE; a small number seen earlier than that is
  dialogue ("1 more question") and is kept as continuation text
- Unnumbered pages keep every physical row (blank ones too); the row
  index becomes the line number after leading page-number headers
- absolute_index is 1-based and counts non-continuation rows only
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from depo_sync.core.ir import TranscriptLine

# Compound "00012:04" or bare "  4" line numbers in the margin (1-25 only).
_LINE_NUMBER_RE = re.compile(r"^\s*(?:(\d{1,5}):)?0*([1-9]|1[0-9]|2[0-5])(?=\s|$)")

# A row holding only a number is the printer's page header.
_PAGE_HEADER_RE = re.compile(r"^\s*(\d{1,3})\s*$")

# A page needs this many numbered rows to be treated as numbered when the
# file is split into pages by form feeds.
EXPLICIT_PAGE_MIN_NUMBERED = 5

# A backward line-number wrap only counts as a new page past this line.
PAGE_WRAP_MIN_LINE = 5


class ParserState(enum.Enum):
    """States of the explicit-page line parser."""

    AWAITING_LINE_NUMBER = "awaiting_line_number"
    IN_CONTINUATION = "in_continuation"
    AT_PAGE_HEADER = "at_page_header"


@dataclass
class _LineNumberMatch:
    page: Optional[int]
    line: int
    content: str
    row: str


def _normalize_row(row: str) -> str:
    return row.replace("\u00a0", " ")


def _match_line_number(row: str) -> Optional[_LineNumberMatch]:
    match = _LINE_NUMBER_RE.match(row)
    if match is None:
        return None
    page = int(match.group(1)) if match.group(1) else None
    return _LineNumberMatch(
        page=page,
        line=int(match.group(2)),
        content=row[match.end():],
        row=row,
    )


def _is_page_header(row: str) -> bool:
    return _PAGE_HEADER_RE.match(row) is not None


def _split_rows(page_text: str) -> List[str]:
    return [_normalize_row(row) for row in page_text.splitlines()]


def _count_numbered_rows(rows: List[str]) -> int:
    return sum(
        1 for row in rows
        if not _is_page_header(row) and _match_line_number(row) is not None
    )


class _ExplicitPageParser:
    """State machine for pages with margin line numbers.

    Holds the running page/line/absolute counters across pages so a file
    without form feeds parses as one continuous stream.
    """

    def __init__(self, first_page: int, absolute_index: int) -> None:
        self.page = first_page
        self.line = 0
        self.absolute_index = absolute_index
        self.state = ParserState.AWAITING_LINE_NUMBER
        self.entries: List[TranscriptLine] = []

    def feed(self, row: str) -> None:
        if _is_page_header(row):
            self.state = ParserState.AT_PAGE_HEADER
            return

        match = _match_line_number(row)
        if match is not None and self._starts_new_line(match):
            self._open_line(match)
            return

        if self.state == ParserState.AWAITING_LINE_NUMBER or not row.strip():
            # Text before the first numbered row, or a spacer row.
            return

        self._continue_line(row)

    def _starts_new_line(self, match: _LineNumberMatch) -> bool:
        if match.page is not None:
            return True
        if match.line >= self.line:
            return True
        # Backward jump: only a real page wrap once the page is well under way.
        return self.line > PAGE_WRAP_MIN_LINE

    def _open_line(self, match: _LineNumberMatch) -> None:
        if match.page is not None:
            self.page = match.page
        elif match.line < self.line:
            self.page += 1

        self.line = match.line
        self.absolute_index += 1
        self.state = ParserState.IN_CONTINUATION
        self.entries.append(TranscriptLine(
            page_number=self.page,
            line_number=self.line,
            absolute_index=self.absolute_index,
            text=match.content.strip(),
            is_continuation=False,
            original_text=match.row.rstrip(),
        ))

    def _continue_line(self, row: str) -> None:
        self.state = ParserState.IN_CONTINUATION
        self.entries.append(TranscriptLine(
            page_number=self.page,
            line_number=self.line,
            absolute_index=self.absolute_index,
            text=row.strip(),
            is_continuation=True,
            original_text=row.rstrip(),
        ))


def _parse_unnumbered_page(
    rows: List[str],
    page_number: int,
    absolute_index: int,
) -> List[TranscriptLine]:
    """Keep every physical row of a cover/title page as its own line."""
    entries: List[TranscriptLine] = []
    line_number = 0
    seen_content = False

    for row in rows:
        if not seen_content and _is_page_header(row):
            continue
        if row.strip():
            seen_content = True
        line_number += 1
        absolute_index += 1
        entries.append(TranscriptLine(
            page_number=page_number,
            line_number=line_number,
            absolute_index=absolute_index,
            text=row.strip(),
            is_continuation=False,
            original_text=row.rstrip(),
        ))

    return entries


def parse_transcript(text: str) -> List[TranscriptLine]:
    """Parse raw transcript text into ordered, page/line-tagged rows.

    Args:
        text: The full transcript file content.

    Returns:
        TranscriptLine entries in file order, continuation rows included.
    """
    has_form_feeds = "\f" in text
    raw_pages = text.split("\f") if has_form_feeds else [text]

    result: List[TranscriptLine] = []
    absolute_index = 0
    page_number = 1

    for page_index, raw_page in enumerate(raw_pages):
        rows = _split_rows(raw_page)
        if has_form_feeds:
            page_number = page_index + 1

        numbered = _count_numbered_rows(rows)
        is_explicit = numbered >= EXPLICIT_PAGE_MIN_NUMBERED or (
            not has_form_feeds and numbered > 0
        )

        if is_explicit:
            machine = _ExplicitPageParser(page_number, absolute_index)
            for row in rows:
                machine.feed(row)
            result.extend(machine.entries)
            absolute_index = machine.absolute_index
            page_number = machine.page
        else:
            entries = _parse_unnumbered_page(rows, page_number, absolute_index)
            result.extend(entries)
            absolute_index += len(entries)

    return result


def merge_continuations(lines: List[TranscriptLine]) -> List[TranscriptLine]:
    """Fold continuation rows into their logical line, newline-joined.

    Returns one TranscriptLine per absolute index; the input is untouched.
    """
    merged: List[TranscriptLine] = []
    for line in lines:
        if line.is_continuation and merged:
            head = merged[-1]
            merged[-1] = TranscriptLine(
                page_number=head.page_number,
                line_number=head.line_number,
                absolute_index=head.absolute_index,
                text=head.text + "\n" + line.text,
                is_continuation=False,
                original_text=head.original_text + "\n" + line.original_text,
            )
        else:
            merged.append(TranscriptLine(
                page_number=line.page_number,
                line_number=line.line_number,
                absolute_index=line.absolute_index,
                text=line.text,
                is_continuation=False,
                original_text=line.original_text,
            ))
    return merged


def find_absolute_index(lines: List[TranscriptLine], page: int, line: int) -> Optional[int]:
    """Return the absolute index of page:line, or None when it is not present."""
    for entry in lines:
        if entry.page_number == page and entry.line_number == line and not entry.is_continuation:
            return entry.absolute_index
    return None


def summarize_transcript(lines: List[TranscriptLine]) -> Dict[str, int]:
    """Count pages, content, blank and continuation rows of a parse result."""
    if not lines:
        return {
            "total_entries": 0,
            "total_pages": 0,
            "first_page": 0,
            "last_page": 0,
            "content_lines": 0,
            "blank_lines": 0,
            "continuation_lines": 0,
        }

    pages = {line.page_number for line in lines}
    return {
        "total_entries": len(lines),
        "total_pages": len(pages),
        "first_page": min(pages),
        "last_page": max(pages),
        "content_lines": sum(1 for line in lines if not line.is_blank),
        "blank_lines": sum(1 for line in lines if line.is_blank and not line.is_continuation),
        "continuation_lines": sum(1 for line in lines if line.is_continuation),
    }
