"""Output container shared by the exporters.

WHY: The CLI and the pipeline write several files per sync (subtitle,
interchange, checkpoint) that differ in suffix and text encoding. One
small record per file lets the writer stay generic.

RULES:
- suffix starts with a dot, e.g. ".smi"; the caller prepends the stem
- encoding is the codec the content must be written with
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FormatterOutput:
    """One output file produced by an exporter.

    Attributes:
        suffix: File suffix appended to the source stem, e.g. ``".dvt"``.
        content: The file content.
        media_type: MIME type for the content.
        encoding: Text encoding for writing ``content`` to disk.
    """

    suffix: str
    content: str
    media_type: str
    encoding: str = "utf-8"
