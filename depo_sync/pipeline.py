"""Resumable three-stage sync pipeline built on the SYN checkpoint.

WHY: A deposition sync runs for minutes: the transcription call alone
can take longer than the recording. If the process dies after the
service answered, the paid-for word stream must not be lost. Each stage
therefore writes the checkpoint as soon as it succeeds, and a new run
picks up from the first unfinished stage.

HOW: Three stages run in order, each guarded by its ProcessingStage flag:
  api          — call the injected transcriber, cache the words
  sanitization — parse and sanitize the transcript, cache one clean row
                 per line from start_line on
  mapping      — align the cached rows and build the timed units (line
                 or sentence mode)
After every completed stage the document is re-encoded and written to
checkpoint_path. run() on a document whose flags are already set skips
straight to the pending stage.

RULES:
- The transcriber is only called when no word cache exists
- Mapping reads the cached sanitized rows; sentence mode joins them into
  free text, so margin numbers, speaker labels and lines before
  start_line never reach the aligner
- Changing start_line on a resumed document invalidates sanitization and
  mapping, but keeps the cached words
- InputError from the core propagates; the checkpoint keeps every stage
  completed before the failure
- The pipeline never exports subtitle or interchange files; callers do
  that from the returned document
"""

from __future__ import annotations

import enum
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from depo_sync.config import CHUNK_SIZE, OVERLAP_SIZE
from depo_sync.core.aligner import ProgressCallback
from depo_sync.core.errors import InputError
from depo_sync.core.ir import ProcessingStage, SyncDocument, Word
from depo_sync.core.mapping import extract_spoken_text, map_to_lines, map_to_sentences
from depo_sync.core.parser import merge_continuations, parse_transcript
from depo_sync.core.sanitizer import build_word_index
from depo_sync.formats.checkpoint import decode_checkpoint, encode_checkpoint

logger = logging.getLogger(__name__)

Transcriber = Callable[[], List[Word]]
StatusCallback = Callable[[str], None]


class MappingMode(str, enum.Enum):
    """How recognized words are grouped into output units.

    RULES:
    - lines: one unit per transcript line, page/line numbers kept
    - sentences: free sentences, no page/line numbers
    """

    lines = "lines"
    sentences = "sentences"


class SyncPipeline:
    """Runs transcription, sanitization and mapping with checkpointing.

    Args:
        checkpoint_path: Where the SYN checkpoint is read from and written to.
        transcript_text: The human transcript file content.
        transcribe: Returns the recognized words for the recording. Only
            called when the checkpoint holds no word cache.
        mode: Line-preserving or sentence mapping.
        start_line: Absolute transcript line where the recording starts.
            None keeps the value stored in the checkpoint.
        chunk_size: Chunked-alignment window.
        overlap_size: Chunked-alignment overlap.
        on_status: Optional callback receiving human-readable progress.
        on_progress: Optional (chunk_number, chunk_total) callback.
    """

    def __init__(
        self,
        checkpoint_path: Path,
        transcript_text: str,
        transcribe: Optional[Transcriber] = None,
        mode: MappingMode = MappingMode.lines,
        start_line: Optional[int] = None,
        chunk_size: int = CHUNK_SIZE,
        overlap_size: int = OVERLAP_SIZE,
        on_status: Optional[StatusCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if start_line is not None and start_line < 0:
            raise InputError("start_line must be zero or positive, got {}".format(start_line))
        self.checkpoint_path = Path(checkpoint_path)
        self.transcript_text = transcript_text
        self.transcribe = transcribe
        self.mode = MappingMode(mode)
        self.start_line = start_line
        self.chunk_size = chunk_size
        self.overlap_size = overlap_size
        self.on_status = on_status
        self.on_progress = on_progress

    def _status(self, msg: str) -> None:
        logger.info(msg)
        if self.on_status:
            self.on_status(msg)

    def load(self) -> SyncDocument:
        """Decode the existing checkpoint, or start a fresh document."""
        if not self.checkpoint_path.is_file():
            return SyncDocument()
        doc = decode_checkpoint(self.checkpoint_path.read_text(encoding="utf-8"))
        self._status("Resuming from checkpoint (next stage: {})".format(
            doc.processing_stage.pending_stage or "none",
        ))
        return doc

    def save(self, doc: SyncDocument) -> None:
        """Write ``doc`` to the checkpoint path."""
        self.checkpoint_path.write_text(encode_checkpoint(doc), encoding="utf-8")

    def run(self, doc: Optional[SyncDocument] = None) -> SyncDocument:
        """Run every pending stage and return the finished document."""
        if doc is None:
            doc = self.load()
        self._apply_start_line(doc)

        if doc.processing_stage.is_complete("api"):
            self._status("Transcription: using {} cached words".format(len(doc.raw_words or [])))
        else:
            self._run_api(doc)
            self.save(doc)

        if doc.processing_stage.is_complete("sanitization"):
            self._status("Sanitization: using cached text")
        else:
            self._run_sanitization(doc)
            self.save(doc)

        if doc.processing_stage.is_complete("mapping"):
            self._status("Mapping: using {} cached units".format(len(doc.sentences)))
        else:
            self._run_mapping(doc)
            self.save(doc)

        return doc

    def _apply_start_line(self, doc: SyncDocument) -> None:
        if self.start_line is None or self.start_line == doc.start_line:
            return
        if doc.processing_stage.is_complete("sanitization"):
            self._status("Start line changed from {} to {}; remapping".format(
                doc.start_line, self.start_line,
            ))
            doc.processing_stage = ProcessingStage(api_complete=doc.processing_stage.api_complete)
            doc.sanitized_text = None
            doc.sentences = []
        doc.start_line = self.start_line

    def _run_api(self, doc: SyncDocument) -> None:
        if self.transcribe is None:
            raise InputError("No cached words in the checkpoint and no transcriber was given.")

        self._status("Transcribing...")
        started = time.monotonic()
        words = self.transcribe()
        doc.api_elapsed_ms = (time.monotonic() - started) * 1000.0
        if not words:
            raise InputError("AI transcript word list is empty.")

        doc.raw_words = list(words)
        doc.raw_text = " ".join(w.text for w in words)
        doc.processing_stage.complete("api")
        self._status("  Received {} words".format(len(words)))

    def _run_sanitization(self, doc: SyncDocument) -> None:
        self._status("Sanitizing transcript...")
        lines = merge_continuations(parse_transcript(self.transcript_text))
        index = build_word_index(lines, doc.start_line)
        doc.sanitized_text = index.sanitized_text
        doc.processing_stage.complete("sanitization")
        self._status("  {} lines, {} spoken words".format(len(lines), len(index.words)))

    def _run_mapping(self, doc: SyncDocument) -> None:
        self._status("Mapping ({} mode)...".format(self.mode.value))
        words = doc.raw_words or []
        rows = _cached_rows(doc)
        if self.mode == MappingMode.lines:
            units = map_to_lines(
                self.transcript_text,
                words,
                doc.start_line,
                self.chunk_size,
                self.overlap_size,
                on_progress=self.on_progress,
                sanitized_rows=rows,
            )
        else:
            if rows is not None:
                spoken = " ".join(row for row in rows if row)
            else:
                spoken = extract_spoken_text(self.transcript_text, doc.start_line)
            units = map_to_sentences(
                spoken,
                words,
                self.chunk_size,
                self.overlap_size,
                on_progress=self.on_progress,
            )
        doc.sentences = units
        doc.processing_stage.complete("mapping")
        timed = sum(1 for u in units if u.has_timing)
        self._status("  {} units, {} timed".format(len(units), timed))


def _cached_rows(doc: SyncDocument) -> Optional[List[str]]:
    """Sanitized rows stored by the sanitization stage, one per line."""
    if doc.sanitized_text is None:
        return None
    return doc.sanitized_text.split("\n") if doc.sanitized_text else []
