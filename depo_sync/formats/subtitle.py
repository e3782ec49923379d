"""SAMI (.smi) subtitle encoder and decoder.

WHY: Legal video players load synchronized transcripts as SAMI subtitles.
It is the simplest of the three export formats and the one users edit by
hand most often, so it is also read back in.

HOW: Encoding emits one "show" Sync directive at each unit's start and a
"clear" directive (a lone &nbsp;) at its end, after an initial clear at 0.
Decoding scans Sync rows line by line, drops clear rows and ends each cue
at the next directive of any kind.

RULES:
- Sync Start values are integer milliseconds (rounded)
- Text is HTML-escaped: & < > " ' (the apostrophe as &#39;)
- The shown text is display_text, so line mode keeps its margin numbers
- Lines are joined with CRLF; a multi-row unit is written with <br>
  between its rows and read back with newlines
- A decoded cue with no following directive lasts DEFAULT_CUE_MS
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import List, Sequence

from depo_sync.core.ir import SentenceResult

SAMI_CLASS = "ENCC"
LINE_ENDING = "\r\n"

DEFAULT_CUE_MS = 2000.0

_HEADER = (
    "<SAMI>",
    "<Head>",
    "<Title>Subtitle</Title>",
    '<Style type="text/css">',
    "<!--",
    "P { margin-left: 8pt; margin-right: 8pt; margin-bottom: 2pt; margin-top: 2pt;",
    "    text-align: center; font-size: 20pt; font-family: Arial, Sans-Serif;",
    "    font-weight: normal; color: white; }",
    ".ENCC { Name: English; lang: en-US; }",
    "-->",
    "</Style>",
    "</Head>",
    "<Body>",
)

_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
})

_SYNC_RE = re.compile(r"<Sync Start=(\d+)>", re.IGNORECASE)
_PARAGRAPH_RE = re.compile(r"<P[^>]*>(.*)", re.IGNORECASE)
_TAG_RE = re.compile(r"</?[^>]+(?:>|$)")
_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)


@dataclass
class SubtitleCue:
    """One shown subtitle read back from a SAMI file."""

    start_ms: float
    end_ms: float
    text: str


def escape_text(text: str) -> str:
    return text.translate(_ESCAPES)


def _sync_line(start_ms: float, body: str) -> str:
    return "<Sync Start={}><P Class={}>{}".format(int(round(start_ms)), SAMI_CLASS, body)


def encode_subtitle(units: Sequence[SentenceResult]) -> str:
    """Render timed units as a SAMI document."""
    lines: List[str] = list(_HEADER)
    lines.append(_sync_line(0, "&nbsp;"))

    for unit in units:
        lines.append(_sync_line(unit.start_ms, escape_text(unit.display_text).replace("\n", "<br>")))
        lines.append(_sync_line(unit.end_ms, "&nbsp;"))

    lines.append("</Body>")
    lines.append("</SAMI>")
    return LINE_ENDING.join(lines)


def decode_subtitle(content: str) -> List[SubtitleCue]:
    """Read the shown cues of a SAMI document, in file order."""
    # (start, text or None for a clear directive)
    directives = []
    for line in content.splitlines():
        sync = _SYNC_RE.search(line)
        if sync is None:
            continue
        paragraph = _PARAGRAPH_RE.search(line)
        if paragraph is None:
            continue
        raw = _TAG_RE.sub("", _BREAK_RE.sub("\n", paragraph.group(1))).strip()
        if not raw or raw == "&nbsp;":
            directives.append((float(sync.group(1)), None))
            continue
        text = html.unescape(raw).replace("\u00a0", " ")
        directives.append((float(sync.group(1)), text))

    cues: List[SubtitleCue] = []
    for i, (start, text) in enumerate(directives):
        if text is None:
            continue
        end = directives[i + 1][0] if i + 1 < len(directives) else start + DEFAULT_CUE_MS
        cues.append(SubtitleCue(start_ms=start, end_ms=end, text=text))
    return cues


def cues_to_units(cues: Sequence[SubtitleCue]) -> List[SentenceResult]:
    """Turn decoded cues into units (confidence 0) for re-export."""
    return [
        SentenceResult(
            display_text=cue.text,
            clean_text=cue.text,
            start_ms=cue.start_ms,
            end_ms=cue.end_ms,
            confidence=0.0,
        )
        for cue in cues
    ]
