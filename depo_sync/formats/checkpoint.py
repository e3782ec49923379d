"""SYN checkpoint (.syn) encoder and decoder.

WHY: Transcription is slow and paid for per minute. The checkpoint keeps
every expensive intermediate result (the raw word stream, the sanitized
transcript, the final units) next to the video so an interrupted run
resumes where it stopped, and so the review app can reopen a finished
sync without recomputing anything.

HOW: encode_checkpoint() writes a SyncDocument as indented JSON with
camelCase keys. decode_checkpoint() parses the JSON, validates it with
jsonschema against schemas/checkpoint.schema.json, and rebuilds the
SyncDocument. Two helpers turn a decoded checkpoint into page/line
lookups for enrich_with_line_numbers().

RULES:
- decode(encode(doc)) == doc for every populated field
- synchronization.sentences is mandatory; everything else is optional
- Sentence pageNumber/lineNumber keys are omitted when unknown
- A missing processingState is derived from what the file contains;
  an inconsistent one (later stage done, earlier not) is a FormatError
- Video duration is stored in milliseconds
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from depo_sync.config import APP_NAME
from depo_sync.core.errors import FormatError
from depo_sync.core.ir import (
    FileRef,
    LineInfo,
    ProcessingStage,
    SentenceResult,
    SyncDocument,
    Word,
)
from depo_sync.core.text import normalize_lookup_text

CHECKPOINT_VERSION = "1.0"
SUBTITLE_FORMAT = "SAMI"

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "checkpoint.schema.json"

_CACHED_SCHEMA: Optional[Dict[str, Any]] = None


def _get_schema() -> Dict[str, Any]:
    """Load and cache the checkpoint JSON schema."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _sentence_to_dict(unit: SentenceResult) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "displayText": unit.display_text,
        "text": unit.clean_text,
        "start": unit.start_ms,
        "end": unit.end_ms,
        "confidence": unit.confidence,
    }
    if unit.page_number is not None:
        entry["pageNumber"] = unit.page_number
    if unit.line_number is not None:
        entry["lineNumber"] = unit.line_number
    return entry


def checkpoint_to_dict(doc: SyncDocument) -> Dict[str, Any]:
    """Build the JSON-ready checkpoint structure for ``doc``."""
    raw_response = None
    if doc.raw_words is not None:
        raw_response = {
            "fullText": doc.raw_text,
            "words": [w.to_dict() for w in doc.raw_words],
        }

    stage = doc.processing_stage
    return {
        "version": CHECKPOINT_VERSION,
        "appSignature": APP_NAME,
        "createdAt": doc.created_at or _now_iso(),
        "video": {
            "filename": doc.video.filename,
            "path": doc.video.path,
            "duration": doc.video.duration_ms,
        },
        "subtitle": {
            "filename": doc.subtitle.filename,
            "path": doc.subtitle.path,
            "format": SUBTITLE_FORMAT,
        },
        "transcript": {
            "filename": doc.transcript.filename,
            "path": doc.transcript.path,
            "startLine": doc.start_line,
            "sanitizedText": doc.sanitized_text,
        },
        "rawResponse": raw_response,
        "stats": {
            "apiElapsedTime": doc.api_elapsed_ms,
        },
        "processingState": {
            "isApiComplete": stage.api_complete,
            "isSanitizationComplete": stage.sanitization_complete,
            "isMappingComplete": stage.mapping_complete,
        },
        "synchronization": {
            "totalSentences": len(doc.sentences),
            "sentences": [_sentence_to_dict(s) for s in doc.sentences],
        },
    }


def encode_checkpoint(doc: SyncDocument) -> str:
    """Serialize ``doc`` as checkpoint JSON (validated before returning).

    Raises:
        jsonschema.ValidationError: If the document does not conform to the
            checkpoint schema (a bug in the caller's data, e.g. a negative
            start line).
    """
    data = checkpoint_to_dict(doc)
    jsonschema.validate(instance=data, schema=_get_schema())
    return json.dumps(data, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _file_ref(data: Optional[Dict[str, Any]], with_duration: bool = False) -> FileRef:
    data = data or {}
    duration = data.get("duration") if with_duration else None
    return FileRef(
        filename=data.get("filename") or "",
        path=data.get("path") or "",
        duration_ms=float(duration) if duration is not None else None,
    )


def _sentence_from_dict(data: Dict[str, Any]) -> SentenceResult:
    # Older files only carry "sentence"; display and clean text may both be "".
    if "displayText" in data:
        display = data["displayText"]
    else:
        display = data.get("sentence") or data.get("text") or ""
    return SentenceResult(
        display_text=display,
        clean_text=data["text"] if "text" in data else display,
        start_ms=float(data["start"]),
        end_ms=float(data["end"]),
        confidence=float(data.get("confidence", 0.0)),
        page_number=data.get("pageNumber"),
        line_number=data.get("lineNumber"),
    )


def _processing_stage(
    data: Optional[Dict[str, Any]],
    raw_words: Optional[List[Word]],
    sanitized_text: Optional[str],
    sentences: List[SentenceResult],
) -> ProcessingStage:
    if data is None:
        mapping = bool(sentences)
        sanitization = mapping or sanitized_text is not None
        return ProcessingStage(
            api_complete=sanitization or raw_words is not None,
            sanitization_complete=sanitization,
            mapping_complete=mapping,
        )
    try:
        return ProcessingStage(
            api_complete=bool(data.get("isApiComplete", False)),
            sanitization_complete=bool(data.get("isSanitizationComplete", False)),
            mapping_complete=bool(data.get("isMappingComplete", False)),
        )
    except ValueError as exc:
        raise FormatError(str(exc)) from exc


def decode_checkpoint(text: str) -> SyncDocument:
    """Parse checkpoint JSON back into a SyncDocument.

    Raises:
        FormatError: If the text is not JSON, fails schema validation
            (e.g. synchronization.sentences is missing), or carries an
            inconsistent processing state.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FormatError("Checkpoint is not valid JSON: {}".format(exc)) from exc

    try:
        jsonschema.validate(instance=data, schema=_get_schema())
    except jsonschema.ValidationError as exc:
        raise FormatError("Invalid checkpoint: {}".format(exc.message)) from exc

    transcript = data.get("transcript") or {}
    raw = data.get("rawResponse")
    raw_words = [Word.from_dict(w) for w in raw["words"]] if raw else None
    sanitized_text = transcript.get("sanitizedText")
    sentences = [_sentence_from_dict(s) for s in data["synchronization"]["sentences"]]

    return SyncDocument(
        video=_file_ref(data.get("video"), with_duration=True),
        subtitle=_file_ref(data.get("subtitle")),
        transcript=_file_ref(transcript),
        start_line=int(transcript.get("startLine", 0)),
        sentences=sentences,
        raw_words=raw_words,
        raw_text=raw.get("fullText") if raw else None,
        sanitized_text=sanitized_text,
        processing_stage=_processing_stage(
            data.get("processingState"), raw_words, sanitized_text, sentences,
        ),
        api_elapsed_ms=float((data.get("stats") or {}).get("apiElapsedTime", 0.0)),
        created_at=data.get("createdAt"),
    )


# ---------------------------------------------------------------------------
# Page/line lookups
# ---------------------------------------------------------------------------


def _line_info(unit: SentenceResult) -> LineInfo:
    return LineInfo(
        page_no=unit.page_number or 0,
        line_no=unit.line_number or 0,
        text=normalize_lookup_text(unit.clean_text),
        start_ms=unit.start_ms,
        end_ms=unit.end_ms,
    )


def checkpoint_line_lookup(doc: SyncDocument) -> Dict[str, LineInfo]:
    """Normalized text → LineInfo for every non-blank checkpoint unit."""
    return {
        info.text: info
        for info in (_line_info(unit) for unit in doc.sentences)
        if info.text
    }


def checkpoint_time_lookup(doc: SyncDocument) -> Dict[float, LineInfo]:
    """Start time → LineInfo for every non-blank checkpoint unit."""
    return {
        unit.start_ms: _line_info(unit)
        for unit in doc.sentences
        if unit.clean_text.strip()
    }
