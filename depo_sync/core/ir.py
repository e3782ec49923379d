"""Intermediate representation dataclasses for transcript synchronization.

WHY: The parser, the aligner, the aggregators and the three file codecs
all exchange the same handful of structures. Typed dataclasses make the
hand-offs explicit and let the codecs round-trip them field by field.

HOW: The hierarchy, leaf to root:
  Word            — one recognized word with timing (external input)
  TranscriptLine  — one parsed row of the human transcript
  Alignment       — one human word paired (or not) with a recognized word
  SentenceResult  — one output unit: a sentence or an original line
  LineInfo        — page/line lookup entry decoded from an existing file
  FileRef         — filename/path reference stored in a checkpoint
  ProcessingStage — monotonic three-flag pipeline progress
  SyncDocument    — the checkpoint unit for crash recovery

RULES:
- All times are float milliseconds
- Confidence is on a 0-100 scale everywhere in the IR
- start_ms == end_ms == -1 marks an alignment without timing yet
- Later ProcessingStage flags imply the earlier ones
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Pipeline stages in execution order.
STAGES = ("api", "sanitization", "mapping")


@dataclass
class Word:
    """A single recognized word with timing.

    RULES:
    - start_ms is non-decreasing within one source stream
    - confidence is 0-100 (ingest scales 0-1 service values)
    """

    text: str
    start_ms: float
    end_ms: float
    confidence: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Word:
        """Build a Word from a checkpoint/word-cache dict (``start``/``end`` keys)."""
        return cls(
            text=data["text"],
            start_ms=float(data["start"]),
            end_ms=float(data["end"]),
            confidence=float(data.get("confidence", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "start": self.start_ms,
            "end": self.end_ms,
            "confidence": self.confidence,
        }


@dataclass
class TranscriptLine:
    """One parsed row of the human transcript.

    WHY: Legal review tools address testimony by page and line. Every row
    keeps its coordinates so timestamps can be reattached after alignment.

    RULES:
    - absolute_index increments only on non-continuation rows (1-based)
    - continuation rows repeat the page/line/absolute_index of the row
      they continue
    - text is the trimmed content with the margin number removed
    - original_text is the physical row as printed, margin number included
    """

    page_number: int
    line_number: int
    absolute_index: int
    text: str
    is_continuation: bool = False
    original_text: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass
class Alignment:
    """One human word and the recognized word it was matched to, if any.

    RULES:
    - human_index is strictly increasing across an alignment result
    - ai_index is -1 when the human word was not matched
    - start_ms/end_ms are -1 until matched or interpolated
    """

    word: str
    start_ms: float
    end_ms: float
    confidence: float
    is_matched: bool
    human_index: int
    ai_index: int = -1

    @property
    def has_timing(self) -> bool:
        return self.start_ms >= 0 and self.end_ms >= 0


@dataclass
class SentenceResult:
    """A time-anchored output unit: a free sentence or an original line.

    RULES:
    - display_text keeps the original formatting (line numbers, labels)
    - clean_text is what the interchange and checkpoint formats store
    - start_ms <= end_ms once interpolation/gap repair has run
    - page_number/line_number are None in sentence mode
    """

    display_text: str
    clean_text: str
    start_ms: float
    end_ms: float
    confidence: float
    page_number: Optional[int] = None
    line_number: Optional[int] = None

    @property
    def has_timing(self) -> bool:
        return self.start_ms > 0 or self.end_ms > 0


@dataclass
class LineInfo:
    """Page/line coordinates recovered from an interchange or checkpoint file."""

    page_no: int
    line_no: int
    text: str
    start_ms: Optional[float] = None
    end_ms: Optional[float] = None


@dataclass
class FileRef:
    """A file referenced by a checkpoint (video, subtitle or transcript)."""

    filename: str = ""
    path: str = ""
    duration_ms: Optional[float] = None


@dataclass
class ProcessingStage:
    """Monotonic pipeline progress: api → sanitization → mapping.

    WHY: The checkpoint is the crash-recovery unit. A resumed run reads
    these flags to skip stages that already finished.

    RULES:
    - A later flag set without an earlier one is inconsistent and raises
      ValueError at construction
    - complete(stage) also marks every earlier stage complete
    """

    api_complete: bool = False
    sanitization_complete: bool = False
    mapping_complete: bool = False

    def __post_init__(self) -> None:
        flags = self._flags()
        for earlier, later in zip(flags, flags[1:]):
            if later and not earlier:
                raise ValueError(
                    "Inconsistent processing state: {} (a later stage is "
                    "complete while an earlier one is not)".format(self)
                )

    def _flags(self) -> List[bool]:
        return [self.api_complete, self.sanitization_complete, self.mapping_complete]

    def complete(self, stage: str) -> None:
        """Mark ``stage`` and every stage before it as complete."""
        if stage not in STAGES:
            raise ValueError("Unknown stage '{}'. Stages: {}".format(stage, ", ".join(STAGES)))
        upto = STAGES.index(stage)
        self.api_complete = True
        if upto >= 1:
            self.sanitization_complete = True
        if upto >= 2:
            self.mapping_complete = True

    def is_complete(self, stage: str) -> bool:
        return self._flags()[STAGES.index(stage)]

    @property
    def pending_stage(self) -> Optional[str]:
        """The first stage that still has to run, or None when all are done."""
        for stage, done in zip(STAGES, self._flags()):
            if not done:
                return stage
        return None


@dataclass
class SyncDocument:
    """The checkpoint/export unit: references, caches, results and progress.

    WHY: Each expensive stage writes its output here as soon as it
    succeeds, so an interrupted run resumes instead of recomputing.

    RULES:
    - raw_words is None until the transcription stage has completed
    - sanitized_text is None until the sanitization stage has completed
    - sentences is empty until the mapping stage has completed
    - created_at is filled by the encoder when left as None
    """

    video: FileRef = field(default_factory=FileRef)
    subtitle: FileRef = field(default_factory=FileRef)
    transcript: FileRef = field(default_factory=FileRef)
    start_line: int = 0
    sentences: List[SentenceResult] = field(default_factory=list)
    raw_words: Optional[List[Word]] = None
    raw_text: Optional[str] = None
    sanitized_text: Optional[str] = None
    processing_stage: ProcessingStage = field(default_factory=ProcessingStage)
    api_elapsed_ms: float = 0.0
    created_at: Optional[str] = None
