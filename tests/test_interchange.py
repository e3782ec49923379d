"""Unit tests for the OpenDVT interchange encoder and decoder.

WHY: Review platforms reject an OpenDVT file whose grid has holes or
whose bytes are not valid ISO-8859-1, and a decoder that loses page/line
numbers makes re-syncs lose every citation.
"""

import xml.etree.ElementTree as ET

import pytest

from depo_sync.core.errors import FormatError
from depo_sync.core.ir import SentenceResult
from depo_sync.formats.interchange import (
    COPYRIGHT_COMMENT,
    XML_DECLARATION,
    InterchangeHeader,
    decode_interchange_lines,
    decode_interchange_xml,
    detect_qa,
    encode_interchange_xml,
    interchange_time_lookup,
    new_dvt_id,
)

DOC_ID = "{11111111-2222-3333-4444-555555555555}"
ORIG_ID = "{AAAAAAAA-BBBB-CCCC-DDDD-EEEEEEEEEEEE}"


@pytest.fixture
def header():
    return InterchangeHeader(
        short_id="SMITH-01",
        deponent_first_name="John",
        deponent_last_name="Smith",
        matter_number="2:23-cv-0042",
        taken_on="07/19/2023",
        video_path="C:\\media\\smith.mp4",
        duration_ms=9300.0,
        document_id=DOC_ID,
        origination_id=ORIG_ID,
    )


def _root(xml):
    return ET.fromstring(xml)


class TestEncode:
    """Document layout."""

    def test_prologue(self, line_units, header):
        xml = encode_interchange_xml(line_units, header)
        rows = xml.split("\r\n")

        assert rows[0] == XML_DECLARATION
        assert rows[1] == COPYRIGHT_COMMENT
        assert rows[2].startswith("<OpenDVT ")

    def test_root_attributes(self, line_units, header):
        root = _root(encode_interchange_xml(line_units, header))

        assert root.get("UUID") == DOC_ID
        assert root.get("ShortID") == "SMITH-01"
        assert root.get("Version") == "1.4"
        assert root.findtext("Information/Origination/ID") == ORIG_ID
        assert root.findtext("Information/Deponent/LastName") == "Smith"
        assert root.findtext("Information/MaxLinesPerPage") == "25"

    def test_grid_is_padded_to_full_page(self, line_units, header):
        root = _root(encode_interchange_xml(line_units, header))
        lines = root.findall("Lines/Line")

        assert len(lines) == 25
        assert root.find("Lines").get("Count") == "25"
        assert [l.findtext("LineNo") for l in lines[:3]] == ["1", "2", "3"]
        assert [l.get("ID") for l in lines[:3]] == ["0", "1", "2"]

    def test_timed_line_fields(self, line_units, header):
        first = _root(encode_interchange_xml(line_units, header)).find("Lines/Line")

        assert first.findtext("Stream") == "0"
        assert first.findtext("TimeMs") == "1000"
        assert first.findtext("PageNo") == "1"
        assert first.findtext("QA") == "Q"
        assert first.findtext("Text") == "Q. Please state your name."

    def test_blank_line_has_no_text_or_time(self, line_units, header):
        blank = _root(encode_interchange_xml(line_units, header)).findall("Lines/Line")[2]

        assert blank.find("Text") is None
        assert blank.find("TimeMs") is None
        assert blank.findtext("QA") == "-"

    def test_stream_block(self, line_units, header):
        stream = _root(encode_interchange_xml(line_units, header)).find("Streams/Stream")

        assert stream.findtext("URI") == "C:\\media\\smith.mp4"
        assert stream.findtext("DurationMs") == "9300"
        assert stream.findtext("VolumeLabel") == "SMITH-01"

    def test_non_latin1_written_as_char_reference(self, header):
        unit = SentenceResult("A. \u2713 café", "A. \u2713 café", 100.0, 200.0, 90.0, 1, 1)
        xml = encode_interchange_xml([unit], header)

        assert "&#10003;" in xml
        xml.encode("iso-8859-1")

    def test_page_longer_than_max_lines_is_kept(self, header):
        unit = SentenceResult("late", "late", 100.0, 200.0, 90.0, 1, 27)
        lines = _root(encode_interchange_xml([unit], header)).findall("Lines/Line")
        assert len(lines) == 27

    def test_without_page_numbers_uses_header_range(self, header):
        unit = SentenceResult("free", "free", 100.0, 200.0, 90.0)
        root = _root(encode_interchange_xml([unit], header))
        assert len(root.findall("Lines/Line")) == 25
        assert root.findtext("Information/FirstPageNo") == "1"


class TestDecode:
    """Reading lines back."""

    def test_round_trip_triples(self, line_units, header):
        infos = decode_interchange_lines(encode_interchange_xml(line_units, header))

        assert [(i.page_no, i.line_no, i.text) for i in infos] == [
            (1, 1, "Q. Please state your name."),
            (1, 2, "A. John Smith."),
            (1, 4, "MR. JONES: Objection."),
        ]
        assert infos[0].start_ms == 1000.0

    def test_lookup_by_text_and_time(self, line_units, header):
        xml = encode_interchange_xml(line_units, header)

        by_text = decode_interchange_xml(xml)
        by_time = interchange_time_lookup(xml)

        assert by_text["A. John Smith."].line_no == 2
        assert by_time[4000.0].line_no == 4

    def test_start_and_end_time_in_seconds(self):
        xml = (
            "<OpenDVT><Lines>"
            "<Line ID='0'><PageNo>3</PageNo><LineNo>7</LineNo><QA>A</QA>"
            "<StartTime>1.5</StartTime><EndTime>2.25</EndTime><Text>A. Yes.</Text></Line>"
            "</Lines></OpenDVT>"
        )
        info = decode_interchange_lines(xml)[0]
        assert (info.start_ms, info.end_ms) == (1500.0, 2250.0)

    def test_malformed_line_is_skipped(self):
        xml = (
            "<OpenDVT><Lines>"
            "<Line ID='0'><LineNo>1</LineNo><Text>No page.</Text></Line>"
            "<Line ID='1'><PageNo>x</PageNo><LineNo>2</LineNo><Text>Bad page.</Text></Line>"
            "<Line ID='2'><PageNo>1</PageNo><LineNo>3</LineNo><Text>Good.</Text></Line>"
            "</Lines></OpenDVT>"
        )
        infos = decode_interchange_lines(xml)
        assert [i.text for i in infos] == ["Good."]

    def test_not_well_formed_raises(self):
        with pytest.raises(FormatError):
            decode_interchange_lines("<OpenDVT><Lines>")

    def test_missing_lines_raises(self):
        with pytest.raises(FormatError):
            decode_interchange_lines("<OpenDVT></OpenDVT>")


class TestHelpers:

    @pytest.mark.parametrize("text, expected", [
        ("Q. Where were you?", "Q"),
        ("QUESTION: Where?", "Q"),
        ("A. Home.", "A"),
        ("THE WITNESS: Home.", "A"),
        ("MR. JONES: Objection.", "-"),
        ("Quite so.", "-"),
    ])
    def test_detect_qa(self, text, expected):
        assert detect_qa(text) == expected

    def test_new_dvt_id_format(self):
        value = new_dvt_id()
        assert value.startswith("{") and value.endswith("}")
        assert value == value.upper()
        assert len(value) == 38
