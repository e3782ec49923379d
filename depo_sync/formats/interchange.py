"""OpenDVT (.dvt) legal video interchange encoder and decoder.

WHY: Deposition review platforms import synchronized transcripts as
OpenDVT XML: a fixed page/line grid where each line can carry the video
time at which it is spoken. Earlier exports are also read back so page
and line numbers survive a re-sync.

HOW: The encoder builds an ElementTree document (header block, one Line
element per grid slot, one video Stream) and serializes it with tab
indentation and CRLF line endings. Pages are padded so every line slot
from 1 to MaxLinesPerPage is present; unfilled slots are blank Line
elements. The decoder walks every Line element, skips the ones it cannot
use, and returns LineInfo records keyed by normalized text.

RULES:
- Only units with page and line numbers above 0 are placed on the grid
- Stream/TimeMs are written only when the unit starts after 0
- Text is omitted for blank lines; QA is "-" for them
- QA marker by prefix: "Q." / "QUESTION:" → Q, "A." / "ANSWER:" /
  "THE WITNESS" / "THE DEPONENT" → A, anything else "-"
- Characters outside ISO-8859-1 are written as character references
- Decoded TimeMs is milliseconds; decoded StartTime/EndTime are seconds
- A document that is not well formed or has no Lines element raises
  FormatError; a single malformed Line is logged and skipped
"""

from __future__ import annotations

import logging
import re
import uuid
import xml.etree.ElementTree as ET
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from depo_sync.config import APP_NAME, APP_VERSION, MAX_LINES_PER_PAGE
from depo_sync.core.errors import FormatError
from depo_sync.core.ir import LineInfo, SentenceResult
from depo_sync.core.text import normalize_lookup_text

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="ISO-8859-1"?>'
COPYRIGHT_COMMENT = "<!-- Copyright (C) 2003-2013 inData Corporation.  All rights reserved. -->"
OPENDVT_VERSION = "1.4"
LINE_ENDING = "\r\n"
INTERCHANGE_ENCODING = "iso-8859-1"

_QUESTION_RE = re.compile(r"^(?:Q\.\s|QUESTION:)", re.IGNORECASE)
_ANSWER_RE = re.compile(r"^(?:A\.\s|ANSWER:|THE\s+WITNESS|THE\s+DEPONENT)", re.IGNORECASE)


@dataclass
class InterchangeHeader:
    """Case and media details written into the OpenDVT header.

    short_id doubles as the stream VolumeID and VolumeLabel. first_page_no
    and last_page_no are only used when no unit carries a page number.
    document_id and origination_id are generated when left as None.
    """

    short_id: str = ""
    deponent_first_name: str = ""
    deponent_last_name: str = ""
    matter_number: str = ""
    taken_on: str = ""
    video_path: str = ""
    video_relative_path: str = ""
    duration_ms: float = 0.0
    file_size: int = 0
    file_date: str = ""
    first_page_no: int = 1
    last_page_no: int = 1
    max_lines_per_page: int = MAX_LINES_PER_PAGE
    volume: int = 1
    app_name: str = APP_NAME
    app_version: str = APP_VERSION
    document_id: Optional[str] = None
    origination_id: Optional[str] = None


def new_dvt_id() -> str:
    """Braced upper-case GUID, e.g. {1B4E28BA-2FA1-11D2-883F-0016D3CCA427}."""
    return "{" + str(uuid.uuid4()).upper() + "}"


def detect_qa(text: str) -> str:
    """Classify a transcript line as question (Q), answer (A) or neither (-)."""
    trimmed = text.strip()
    if _QUESTION_RE.match(trimmed):
        return "Q"
    if _ANSWER_RE.match(trimmed):
        return "A"
    return "-"


def _text_element(parent: ET.Element, tag: str, value: object) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = str(value)
    return element


def _line_text(unit: SentenceResult) -> str:
    # Logical lines merged from continuation rows are written as one row.
    return " ".join(unit.clean_text.split())


def _build_information(
    parent: ET.Element,
    header: InterchangeHeader,
    first_page: int,
    last_page: int,
) -> None:
    info = ET.SubElement(parent, "Information")

    origination = ET.SubElement(info, "Origination")
    _text_element(origination, "ID", header.origination_id or new_dvt_id())
    _text_element(origination, "AppName", header.app_name)
    _text_element(origination, "AppVersion", header.app_version)
    _text_element(origination, "VendorName", "")
    _text_element(origination, "VendorPhone", "")
    _text_element(origination, "VendorURL", "")

    case = ET.SubElement(info, "Case")
    _text_element(case, "MatterNumber", header.matter_number)

    deponent = ET.SubElement(info, "Deponent")
    _text_element(deponent, "FirstName", header.deponent_first_name)
    _text_element(deponent, "LastName", header.deponent_last_name)

    firm = ET.SubElement(info, "ReportingFirm")
    _text_element(firm, "Name", "")

    _text_element(info, "FirstPageNo", first_page)
    _text_element(info, "LastPageNo", last_page)
    _text_element(info, "MaxLinesPerPage", header.max_lines_per_page)
    _text_element(info, "Volume", header.volume)
    _text_element(info, "TakenOn", header.taken_on)


def _append_line(
    lines_el: ET.Element,
    line_id: int,
    page_no: int,
    line_no: int,
    unit: Optional[SentenceResult],
) -> None:
    line_el = ET.SubElement(lines_el, "Line", {"ID": str(line_id)})
    text = _line_text(unit) if unit is not None else ""

    if unit is not None and unit.start_ms > 0:
        _text_element(line_el, "Stream", 0)
        _text_element(line_el, "TimeMs", int(round(unit.start_ms)))

    _text_element(line_el, "PageNo", page_no)
    _text_element(line_el, "LineNo", line_no)
    _text_element(line_el, "QA", detect_qa(text) if text else "-")
    if text:
        _text_element(line_el, "Text", text)


def encode_interchange_xml(units: Sequence[SentenceResult], header: InterchangeHeader) -> str:
    """Render line-mode units as an OpenDVT document.

    Args:
        units: Timed units carrying page and line numbers (line mode).
        header: Case, deponent and video details.

    Returns:
        The XML document as a string, ready to be written as ISO-8859-1.
    """
    grid: Dict[int, Dict[int, List[SentenceResult]]] = defaultdict(lambda: defaultdict(list))
    for unit in units:
        if unit.page_number and unit.page_number > 0 and unit.line_number and unit.line_number > 0:
            grid[unit.page_number][unit.line_number].append(unit)

    if grid:
        first_page = min(grid)
        last_page = max(grid)
    else:
        first_page = header.first_page_no
        last_page = header.last_page_no

    root = ET.Element("OpenDVT", {
        "UUID": header.document_id or new_dvt_id(),
        "ShortID": header.short_id,
        "Type": "Deposition",
        "Version": OPENDVT_VERSION,
    })
    _build_information(root, header, first_page, last_page)

    lines_el = ET.SubElement(root, "Lines")
    line_id = 0
    for page_no in range(first_page, last_page + 1):
        page = grid.get(page_no, {})
        last_line = max([header.max_lines_per_page] + list(page))
        for line_no in range(1, last_line + 1):
            for unit in page.get(line_no) or [None]:
                _append_line(lines_el, line_id, page_no, line_no, unit)
                line_id += 1
    lines_el.set("Count", str(line_id))

    streams = ET.SubElement(root, "Streams", {"Count": "1"})
    stream = ET.SubElement(streams, "Stream", {"ID": "0"})
    _text_element(stream, "URI", header.video_path)
    _text_element(stream, "URIRelative", header.video_relative_path)
    _text_element(stream, "VolumeID", header.short_id)
    _text_element(stream, "FileSize", header.file_size)
    _text_element(stream, "FileDate", header.file_date)
    _text_element(stream, "DurationMs", int(round(header.duration_ms)))
    _text_element(stream, "VolumeLabel", header.short_id)

    ET.indent(root, space="\t")
    body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    document = LINE_ENDING.join([XML_DECLARATION, COPYRIGHT_COMMENT, body.replace("\n", LINE_ENDING)])
    return document.encode(INTERCHANGE_ENCODING, "xmlcharrefreplace").decode(INTERCHANGE_ENCODING)


def _child_text(element: ET.Element, tag: str) -> Optional[str]:
    child = element.find(tag)
    if child is None:
        return None
    return child.text or ""


def _optional_float(element: ET.Element, tag: str, scale: float = 1.0) -> Optional[float]:
    raw = _child_text(element, tag)
    if raw is None or not raw.strip():
        return None
    return float(raw) * scale


def _parse_line(element: ET.Element) -> Optional[LineInfo]:
    page_raw = _child_text(element, "PageNo")
    line_raw = _child_text(element, "LineNo")
    if page_raw is None or line_raw is None:
        raise ValueError("missing PageNo or LineNo")

    text = normalize_lookup_text(_child_text(element, "Text") or "")
    if not text:
        return None

    start_ms = _optional_float(element, "TimeMs")
    if start_ms is None:
        start_ms = _optional_float(element, "StartTime", 1000.0)

    return LineInfo(
        page_no=int(page_raw),
        line_no=int(line_raw),
        text=text,
        start_ms=start_ms,
        end_ms=_optional_float(element, "EndTime", 1000.0),
    )


def decode_interchange_lines(xml: str) -> List[LineInfo]:
    """Read every non-blank, well-formed Line of an OpenDVT document, in order.

    Raises:
        FormatError: If the document is not well-formed XML or has no
            Lines element.
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as exc:
        raise FormatError("Interchange XML is not well formed: {}".format(exc)) from exc

    lines_el = root.find("Lines")
    if lines_el is None:
        raise FormatError("Interchange XML has no Lines element.")

    result: List[LineInfo] = []
    for element in lines_el.iter("Line"):
        try:
            info = _parse_line(element)
        except ValueError as exc:
            logger.warning("Skipping malformed Line %s: %s", element.get("ID", "?"), exc)
            continue
        if info is not None:
            result.append(info)

    logger.info("Parsed %d lines from interchange XML", len(result))
    return result


def decode_interchange_xml(xml: str) -> Dict[str, LineInfo]:
    """Build a normalized-text → LineInfo lookup from an OpenDVT document.

    Later lines with the same text replace earlier ones.
    """
    return {info.text: info for info in decode_interchange_lines(xml)}


def interchange_time_lookup(xml: str) -> Dict[float, LineInfo]:
    """Build a start-time → LineInfo lookup from the timed lines of a document."""
    return {
        info.start_ms: info
        for info in decode_interchange_lines(xml)
        if info.start_ms is not None and info.start_ms > 0
    }
