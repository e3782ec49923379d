"""Word normalization and sentence-mode text helpers.

WHY: Sentence mode works on free text rather than the page/line grid. It
needs a rough sentence splitter that does not break after "Mr." and a
word normalizer shared with the aligner's distance function.

HOW: Plain regex helpers. The honorific list is shared between the
splitter (re-merging "Mr." with the following part) and the sentence
aggregator (suppressing a split after a title).

RULES:
- normalize_word strips every non-word character and lowercases
- normalize_lookup_text keeps case and punctuation; it only evens out spacing
- is_salutation ignores case and trailing terminal punctuation
- split_into_sentences splits after ".", "!" or "?" followed by whitespace
"""

from __future__ import annotations

import re
from typing import List

_NON_WORD_RE = re.compile(r"[^\w\s]")
_TRAILING_TERMINAL_RE = re.compile(r"[.!?]+$")
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
_HONORIFIC_PART_RE = re.compile(r"^(Mr|Ms|Mrs|Dr|Prof|Hon|Judge|Justice|Sr|Jr|Esq)\.$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

# Sentence-level prefixes: "MR. JONES:" style speaker tags and Q./A. markers.
_SPEAKER_PREFIX_RE = re.compile(r"^[A-Z][A-Z.\s]+:\s*")
_QA_PREFIX_RE = re.compile(r"^(Q|A)\.\s*", re.IGNORECASE)

SALUTATIONS = frozenset({
    "mr", "mrs", "ms", "miss", "dr", "prof", "professor",
    "hon", "honorable", "judge", "justice", "sen", "senator",
    "rep", "representative", "gov", "governor", "pres", "president",
    "sr", "jr", "esq", "rev", "reverend", "fr", "father",
    "st", "saint", "col", "colonel", "gen", "general",
    "maj", "major", "capt", "captain", "lt", "lieutenant",
    "sgt", "sergeant", "cpl", "corporal", "pvt", "private",
})


def normalize_word(word: str) -> str:
    """Lowercase ``word`` and drop punctuation ("Smith," → "smith")."""
    return _NON_WORD_RE.sub("", word).lower().strip()


def normalize_lookup_text(text: str) -> str:
    """Key used to match a line across files: NBSPs as spaces, whitespace collapsed."""
    return _WHITESPACE_RE.sub(" ", text.replace("\u00a0", " ")).strip()


def is_salutation(word: str) -> bool:
    """True for titles such as "Mr.", "dr", "Judge"."""
    return _TRAILING_TERMINAL_RE.sub("", word).lower() in SALUTATIONS


def merge_honorific_sentences(parts: List[str]) -> List[str]:
    """Re-join parts that were split right after an honorific."""
    merged: List[str] = []
    i = 0
    while i < len(parts):
        current = parts[i].strip()
        if _HONORIFIC_PART_RE.match(current) and i + 1 < len(parts):
            merged.append("{} {}".format(current, parts[i + 1].strip()))
            i += 2
        else:
            merged.append(current)
            i += 1
    return merged


def split_into_sentences(text: str) -> List[str]:
    """Split free text after terminal punctuation, keeping honorifics intact."""
    rough = [part for part in _SENTENCE_BOUNDARY_RE.split(text) if part and part.strip()]
    return merge_honorific_sentences(rough)


def strip_speaker_prefixes(sentences: List[str]) -> List[str]:
    """Remove speaker tags and Q./A. markers; drop sentences left empty."""
    cleaned: List[str] = []
    for sentence in sentences:
        if not sentence or not sentence.strip():
            continue
        stripped = _SPEAKER_PREFIX_RE.sub("", sentence)
        stripped = _QA_PREFIX_RE.sub("", stripped).strip()
        if stripped:
            cleaned.append(stripped)
    return cleaned
