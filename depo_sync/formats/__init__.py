"""File format codecs: SAMI subtitles, OpenDVT interchange, SYN checkpoints.

WHY: The CLI and the pipeline export the same synchronized units in three
formats at once. build_outputs() is the single place that knows which
formats exist and how each is written.

HOW: Each codec module exposes pure encode/decode functions over the IR.
build_outputs() runs the three encoders and wraps the results in
FormatterOutput records.

RULES:
- Encoders never touch the filesystem; callers write FormatterOutput
- The interchange document is written as ISO-8859-1, the rest as UTF-8
"""

from __future__ import annotations

from typing import List

from depo_sync.config import CHECKPOINT_SUFFIX, INTERCHANGE_SUFFIX, SUBTITLE_SUFFIX
from depo_sync.core.ir import SyncDocument
from depo_sync.formats.base import FormatterOutput
from depo_sync.formats.checkpoint import encode_checkpoint
from depo_sync.formats.interchange import (
    INTERCHANGE_ENCODING,
    InterchangeHeader,
    encode_interchange_xml,
)
from depo_sync.formats.subtitle import encode_subtitle


def build_outputs(doc: SyncDocument, header: InterchangeHeader) -> List[FormatterOutput]:
    """Encode ``doc`` in every export format.

    The interchange file is only produced when the units carry page and
    line numbers (line mode).
    """
    outputs = [
        FormatterOutput(
            suffix=SUBTITLE_SUFFIX,
            content=encode_subtitle(doc.sentences),
            media_type="application/x-sami",
        ),
    ]
    if any(unit.page_number for unit in doc.sentences):
        outputs.append(FormatterOutput(
            suffix=INTERCHANGE_SUFFIX,
            content=encode_interchange_xml(doc.sentences, header),
            media_type="application/xml",
            encoding=INTERCHANGE_ENCODING,
        ))
    outputs.append(FormatterOutput(
        suffix=CHECKPOINT_SUFFIX,
        content=encode_checkpoint(doc),
        media_type="application/json",
    ))
    return outputs
