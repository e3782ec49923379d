"""Text sanitization: strip non-spoken artifacts before alignment.

WHY: A transcript line like "MR. SMITH: (Indicating.) Is that yours?"
contains words nobody said on camera. Feeding the speaker label and the
parenthetical into the aligner makes it hunt for words that are not in
the audio and drags neighbouring timestamps off. The original text is
still needed for display, so sanitization produces a parallel clean
version plus a map from clean word index back to the source row.

HOW: Leading speaker labels are removed pattern by pattern, then every
parenthetical span, then whitespace is collapsed. build_word_index()
runs that over parsed transcript rows and records, per row, where its
words start in the flat human word list and how many there are.

RULES:
- Order: (a) leading speaker labels, (b) parentheticals anywhere,
  (c) whitespace collapse
- Speaker labels recognized: THE WITNESS/COURT/DEPONENT/VIDEOGRAPHER/
  COURT REPORTER, bare WITNESS/VIDEOGRAPHER/REPORTER, "MR. NAME:" style
  titles, Q./A., QUESTION:/ANSWER:
- A row that sanitizes to "" contributes zero words but keeps its place
- Rows before start_line are not indexed
- index_sanitized_rows() rebuilds the index from cached rows without
  sanitizing again
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence

from depo_sync.core.ir import TranscriptLine

# Applied in order; each only strips a label at the very start.
SPEAKER_PATTERNS = (
    re.compile(r"^THE\s+VIDEOGRAPHER:\s*", re.IGNORECASE),
    re.compile(r"^THE\s+WITNESS:\s*", re.IGNORECASE),
    re.compile(r"^THE\s+COURT\s+REPORTER:\s*", re.IGNORECASE),
    re.compile(r"^THE\s+COURT:\s*", re.IGNORECASE),
    re.compile(r"^THE\s+DEPONENT:\s*", re.IGNORECASE),
    re.compile(r"^VIDEOGRAPHER:\s*", re.IGNORECASE),
    re.compile(r"^WITNESS:\s*", re.IGNORECASE),
    re.compile(r"^REPORTER:\s*", re.IGNORECASE),
    re.compile(r"^(MR|MS|MRS|DR|MISS)\.\s+[A-Z][A-Za-z]+:\s*"),
    re.compile(r"^Q\.\s+", re.IGNORECASE),
    re.compile(r"^A\.\s+", re.IGNORECASE),
    re.compile(r"^QUESTION:\s*", re.IGNORECASE),
    re.compile(r"^ANSWER:\s*", re.IGNORECASE),
    re.compile(r"^\([^)]*\)\s*"),
)

_PARENTHETICAL_RE = re.compile(r"\([^)]*\)")
_WHITESPACE_RE = re.compile(r"\s+")
_TERMINAL_RE = re.compile(r"[.!?]$")


def sanitize_line(text: str) -> str:
    """Return only the spoken words of a transcript line.

    "MR. SMITH: (Indicating.) Is that yours?" → "Is that yours?"
    """
    if not text:
        return ""

    sanitized = text.strip()
    for pattern in SPEAKER_PATTERNS:
        sanitized = pattern.sub("", sanitized)

    sanitized = _PARENTHETICAL_RE.sub(" ", sanitized)
    return _WHITESPACE_RE.sub(" ", sanitized).strip()


def sanitize_lines(lines: Sequence[str]) -> str:
    """Sanitize several lines into one space-joined spoken-text stream."""
    return " ".join(s for s in (sanitize_line(line) for line in lines) if s)


def is_non_spoken_line(text: str) -> bool:
    """True for rows with nothing spoken: blanks, labels, parentheticals."""
    return not sanitize_line(text)


def is_speaker_label_only(text: str) -> bool:
    """True when the row is a bare speaker label such as "THE WITNESS:"."""
    if not text:
        return False
    trimmed = text.strip()
    for pattern in SPEAKER_PATTERNS:
        if pattern.match(trimmed) and not pattern.sub("", trimmed).strip():
            return True
    return False


def spoken_content_ratio(text: str) -> float:
    """Share of a row's characters that survive sanitization (0.0-1.0)."""
    if not text or not text.strip():
        return 0.0
    return len(sanitize_line(text)) / len(text.strip())


def reconstruct_sentences(lines: Sequence[str]) -> List[str]:
    """Join sanitized rows and cut them into sentences at terminal punctuation.

    Sentences that run across page boundaries come out whole.
    """
    sentences: List[str] = []
    current = ""
    for line in lines:
        sanitized = sanitize_line(line)
        if not sanitized:
            continue
        current = "{} {}".format(current, sanitized) if current else sanitized
        if _TERMINAL_RE.search(current.strip()):
            sentences.append(current.strip())
            current = ""
    if current.strip():
        sentences.append(current.strip())
    return sentences


def extract_words(texts: Sequence[str]) -> List[str]:
    """Split texts on whitespace into one flat word list."""
    words: List[str] = []
    for text in texts:
        words.extend(w for w in text.split() if w.strip())
    return words


@dataclass
class LineSpan:
    """Where one transcript row's words sit in the flat human word list."""

    line_index: int
    word_start: int
    word_count: int

    @property
    def word_end(self) -> int:
        return self.word_start + self.word_count


@dataclass
class WordIndex:
    """Flat human word list plus the row each word came from.

    RULES:
    - sanitized_rows holds one entry per row from the first indexed row
      on, "" for rows with nothing spoken
    - spans only lists rows that contributed at least one word
    - spans are ordered and non-overlapping; together they cover words
    """

    words: List[str] = field(default_factory=list)
    spans: List[LineSpan] = field(default_factory=list)
    sanitized_rows: List[str] = field(default_factory=list)

    @property
    def sanitized_text(self) -> str:
        return "\n".join(self.sanitized_rows)

    @property
    def spoken_text(self) -> str:
        """Every spoken word as one space-joined stream."""
        return " ".join(self.words)


def first_indexed_line(lines: Sequence[TranscriptLine], start_line: int = 0) -> int:
    """Position in ``lines`` of the first row at or after ``start_line``."""
    return next(
        (i for i, line in enumerate(lines) if line.absolute_index >= start_line),
        len(lines),
    )


def index_sanitized_rows(rows: Sequence[str], first_line_index: int = 0) -> WordIndex:
    """Index rows that are already sanitized.

    Args:
        rows: One sanitized row per transcript row, starting at
            ``first_line_index``.
        first_line_index: Position of rows[0] in the parsed row list.

    Returns:
        WordIndex whose span.line_index values index into the parsed rows.
    """
    index = WordIndex(sanitized_rows=list(rows))
    for offset, row in enumerate(rows):
        words = extract_words([row])
        if not words:
            continue
        index.spans.append(LineSpan(
            line_index=first_line_index + offset,
            word_start=len(index.words),
            word_count=len(words),
        ))
        index.words.extend(words)
    return index


def build_word_index(lines: Sequence[TranscriptLine], start_line: int = 0) -> WordIndex:
    """Sanitize parsed rows and index their words for alignment.

    Args:
        lines: Parsed transcript rows (continuations merged).
        start_line: Rows whose absolute index is below this are skipped.

    Returns:
        WordIndex whose span.line_index values index into ``lines``.
    """
    first = first_indexed_line(lines, start_line)
    return index_sanitized_rows([sanitize_line(line.text) for line in lines[first:]], first)
