"""Command-line interface for deposition transcript synchronization.

WHY: Sync operators work from a folder of files: the reporter's
transcript, the recording, and the recognizer's word list. The CLI wires
the pipeline, the exporters and file saving behind a few commands so a
sync can be run, resumed after a crash, and inspected from the terminal.

HOW: argparse subcommands:
  lines      — line-preserving sync (page/line grid kept), writes .smi,
               .dvt and the .syn checkpoint
  sentences  — free sentence sync, writes .smi and .syn
  resume     — continue an interrupted sync from its .syn checkpoint
  inspect    — summarize a transcript, .smi, .dvt or .syn file
Word lists are the transcription service's JSON responses; several are
merged in playback order. Status messages go to stderr; inspect prints
its report to stdout.

RULES:
- The checkpoint is always {stem}.syn in the output directory; an
  existing one is resumed unless --fresh is given
- Exported .smi/.dvt use a numeric suffix on conflict ({stem}-2.smi)
- ValueError (InputError/FormatError included) → "Error: ..." and exit 1
- KeyboardInterrupt → exit 130; the checkpoint keeps finished stages
- Python 3.9 compatible: no match/case, no X | Y unions
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from depo_sync.config import (
    CHECKPOINT_SUFFIX,
    CHUNK_SIZE,
    INTERCHANGE_SUFFIX,
    LOG_LEVEL,
    MAX_LINES_PER_PAGE,
    OVERLAP_SIZE,
    SUBTITLE_SUFFIX,
)
from depo_sync.core.errors import InputError
from depo_sync.core.ir import FileRef, LineInfo, SyncDocument, Word
from depo_sync.core.mapping import enrich_with_line_numbers, renumber_pages
from depo_sync.core.parser import parse_transcript, summarize_transcript
from depo_sync.core.timecode import format_timecode
from depo_sync.core.words import merge_word_streams, words_from_response
from depo_sync.formats import build_outputs
from depo_sync.formats.base import FormatterOutput
from depo_sync.formats.checkpoint import (
    checkpoint_line_lookup,
    checkpoint_time_lookup,
    decode_checkpoint,
)
from depo_sync.formats.interchange import (
    INTERCHANGE_ENCODING,
    InterchangeHeader,
    decode_interchange_lines,
    decode_interchange_xml,
    interchange_time_lookup,
)
from depo_sync.formats.subtitle import cues_to_units, decode_subtitle
from depo_sync.pipeline import MappingMode, SyncPipeline


def _status(msg: str) -> None:
    """Print a status message to stderr.

    RULES:
    - All status messages go to stderr
    - Always flush after writing
    """
    print(msg, file=sys.stderr, flush=True)


def _progress(current: int, total: int) -> None:
    _status("  Aligning chunk {}/{}".format(current, total))


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding a numeric suffix on conflict.

    WHY: Re-running a sync must not overwrite subtitle or interchange
    files the operator may already have edited by hand.

    RULES:
    - First attempt: {stem}{suffix} (e.g. smith-depo.smi)
    - Conflict: counter inserted before the extension (smith-depo-2.smi)
    - Counter starts at 2 and increments
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = ""
        suffix_ext = suffix

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    """Write one exported file with conflict avoidance; returns its path."""
    path = _resolve_output_path(stem, output.suffix, output_dir)
    # newline="" keeps the CRLF line endings the formats require.
    with open(path, "w", encoding=output.encoding, newline="") as f:
        f.write(output.content)
    return path


def _read_text(path: Path, encoding: str = "utf-8") -> str:
    if not path.is_file():
        raise InputError("File not found: {}".format(path))
    return path.read_text(encoding=encoding, errors="replace")


def load_word_files(paths: List[Path]) -> List[Word]:
    """Load one or more transcription responses and merge them in order."""
    streams: List[List[Word]] = []
    for path in paths:
        try:
            data = json.loads(_read_text(path))
        except json.JSONDecodeError as exc:
            raise InputError("{} is not valid JSON: {}".format(path.name, exc)) from exc
        words = words_from_response(data)
        _status("  Words: {} ({} words)".format(path.name, len(words)))
        streams.append(words)
    return merge_word_streams(streams)


def _load_lookups(path: Path) -> Tuple[Dict[str, LineInfo], Dict[float, LineInfo]]:
    """Page/line lookups (by text, by start time) from a .dvt or .syn file."""
    if path.suffix.lower() == INTERCHANGE_SUFFIX:
        content = _read_text(path, INTERCHANGE_ENCODING)
        return decode_interchange_xml(content), interchange_time_lookup(content)
    doc = decode_checkpoint(_read_text(path))
    return checkpoint_line_lookup(doc), checkpoint_time_lookup(doc)


def _file_date(path: Path) -> str:
    if not path.is_file():
        return ""
    return datetime.fromtimestamp(path.stat().st_mtime).strftime("%m/%d/%Y %H:%M:%S")


def _build_header(args: argparse.Namespace, doc: SyncDocument, stem: str) -> InterchangeHeader:
    video = Path(doc.video.path) if doc.video.path else None
    return InterchangeHeader(
        short_id=args.short_id or stem,
        deponent_first_name=args.deponent_first or "",
        deponent_last_name=args.deponent_last or "",
        matter_number=args.matter or "",
        taken_on=args.taken_on or "",
        video_path=doc.video.path,
        video_relative_path="\\media\\{}".format(doc.video.filename) if doc.video.filename else "",
        duration_ms=doc.video.duration_ms or 0.0,
        file_size=video.stat().st_size if video is not None and video.is_file() else 0,
        file_date=_file_date(video) if video is not None else "",
        max_lines_per_page=args.max_lines,
    )


def _export(args: argparse.Namespace, doc: SyncDocument, stem: str, output_dir: Path) -> List[Path]:
    header = _build_header(args, doc, stem)
    saved: List[Path] = []
    for output in build_outputs(doc, header):
        if output.suffix == CHECKPOINT_SUFFIX:
            # The pipeline keeps the checkpoint itself.
            continue
        path = _save_output(output, stem, output_dir)
        saved.append(path)
        _status("  Saved: {}".format(path.name))
    return saved


def _output_dir(args: argparse.Namespace, default: Path) -> Path:
    output_dir = Path(args.output_dir).resolve() if args.output_dir else default
    if not output_dir.is_dir():
        raise InputError("Output directory does not exist: {}".format(output_dir))
    return output_dir


def _sync(args: argparse.Namespace, mode: MappingMode) -> None:
    transcript_path = Path(args.transcript).resolve()
    transcript_text = _read_text(transcript_path)
    word_paths = [Path(p).resolve() for p in args.words]
    output_dir = _output_dir(args, transcript_path.parent)
    stem = transcript_path.stem

    checkpoint_path = output_dir / "{}{}".format(stem, CHECKPOINT_SUFFIX)
    if args.fresh and checkpoint_path.exists():
        checkpoint_path.unlink()

    pipeline = SyncPipeline(
        checkpoint_path,
        transcript_text,
        transcribe=lambda: load_word_files(word_paths),
        mode=mode,
        start_line=args.start_line,
        chunk_size=args.chunk_size,
        overlap_size=args.overlap_size,
        on_status=_status,
        on_progress=_progress,
    )
    doc = pipeline.load()
    doc.transcript = FileRef(filename=transcript_path.name, path=str(transcript_path))
    if args.video:
        video_path = Path(args.video).resolve()
        doc.video = FileRef(filename=video_path.name, path=str(video_path))
    doc.subtitle = FileRef(
        filename="{}{}".format(stem, SUBTITLE_SUFFIX),
        path=str(output_dir / "{}{}".format(stem, SUBTITLE_SUFFIX)),
    )

    doc = pipeline.run(doc)
    _finish(args, doc, pipeline, stem, output_dir)


def _finish(
    args: argparse.Namespace,
    doc: SyncDocument,
    pipeline: SyncPipeline,
    stem: str,
    output_dir: Path,
) -> None:
    if doc.video.duration_ms is None and doc.raw_words:
        doc.video.duration_ms = max(w.end_ms for w in doc.raw_words)

    if getattr(args, "enrich", None):
        text_lookup, time_lookup = _load_lookups(Path(args.enrich).resolve())
        enrich_with_line_numbers(doc.sentences, text_lookup, time_lookup)

    pipeline.save(doc)
    _status("Exporting...")
    saved = _export(args, doc, stem, output_dir)

    _status("")
    _status("Done! {} units, checkpoint {}{}, {} exported file(s) in {}".format(
        len(doc.sentences), stem, CHECKPOINT_SUFFIX, len(saved), output_dir,
    ))


def _resume(args: argparse.Namespace) -> None:
    checkpoint_path = Path(args.checkpoint).resolve()
    doc = decode_checkpoint(_read_text(checkpoint_path))

    if args.transcript:
        transcript_path = Path(args.transcript).resolve()
    elif doc.transcript.path:
        transcript_path = Path(doc.transcript.path)
    else:
        raise InputError("Checkpoint has no transcript path; pass --transcript.")

    word_paths = [Path(p).resolve() for p in (args.words or [])]
    pipeline = SyncPipeline(
        checkpoint_path,
        _read_text(transcript_path),
        transcribe=(lambda: load_word_files(word_paths)) if word_paths else None,
        mode=MappingMode(args.mode),
        start_line=args.start_line,
        chunk_size=args.chunk_size,
        overlap_size=args.overlap_size,
        on_status=_status,
        on_progress=_progress,
    )
    _status("Resuming {} (next stage: {})".format(
        checkpoint_path.name, doc.processing_stage.pending_stage or "none",
    ))
    doc = pipeline.run(doc)
    output_dir = _output_dir(args, checkpoint_path.parent)
    _finish(args, doc, pipeline, checkpoint_path.stem, output_dir)


def _inspect_lines(infos: List[LineInfo]) -> None:
    for info in infos:
        start = format_timecode(info.start_ms) if info.start_ms is not None else "--:--:--.---"
        print("{:>5}:{:<2}  {}  {}".format(info.page_no, info.line_no, start, info.text))


def _inspect(args: argparse.Namespace) -> None:
    path = Path(args.file).resolve()
    suffix = path.suffix.lower()
    content = _read_text(path, INTERCHANGE_ENCODING if suffix == INTERCHANGE_SUFFIX else "utf-8")

    if suffix == CHECKPOINT_SUFFIX:
        doc = decode_checkpoint(content)
        stage = doc.processing_stage
        report: Dict[str, object] = {
            "video": doc.video.filename,
            "transcript": doc.transcript.filename,
            "start_line": doc.start_line,
            "words": len(doc.raw_words or []),
            "units": len(doc.sentences),
            "timed_units": sum(1 for u in doc.sentences if u.has_timing),
            "api_complete": stage.api_complete,
            "sanitization_complete": stage.sanitization_complete,
            "mapping_complete": stage.mapping_complete,
        }
        print(json.dumps(report, indent=2))
    elif suffix == INTERCHANGE_SUFFIX:
        _inspect_lines(decode_interchange_lines(content))
    elif suffix == SUBTITLE_SUFFIX:
        units = renumber_pages(cues_to_units(decode_subtitle(content)), args.max_lines)
        for unit in units:
            print("{:>5}:{:<2}  {}  {}".format(
                unit.page_number, unit.line_number, format_timecode(unit.start_ms), unit.display_text,
            ))
    else:
        print(json.dumps(summarize_transcript(parse_transcript(content)), indent=2))


def _add_sync_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--start-line",
        type=int,
        default=None,
        help="Absolute transcript line where the recording starts (default: 0, "
             "or the value stored in an existing checkpoint).",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for the checkpoint and exported files "
             "(default: next to the transcript).",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=CHUNK_SIZE,
        help="Human words per alignment chunk (default: %(default)s).",
    )
    parser.add_argument(
        "--overlap-size",
        type=int,
        default=OVERLAP_SIZE,
        help="Overlap between alignment chunks (default: %(default)s).",
    )
    parser.add_argument(
        "--max-lines",
        type=int,
        default=MAX_LINES_PER_PAGE,
        help="Lines per transcript page in the interchange file (default: %(default)s).",
    )
    parser.add_argument(
        "--enrich",
        default=None,
        help="A previous .dvt or .syn export to copy page/line numbers from.",
    )
    parser.add_argument("--short-id", default=None, help="Interchange ShortID (default: file stem).")
    parser.add_argument("--deponent-first", default=None, help="Deponent first name.")
    parser.add_argument("--deponent-last", default=None, help="Deponent last name.")
    parser.add_argument("--matter", default=None, help="Case/matter number.")
    parser.add_argument("--taken-on", default=None, help="Deposition date, e.g. 07/19/2023.")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable: tests can inspect the parser without running a sync.
    """
    parser = argparse.ArgumentParser(
        prog="depo-sync",
        description="Synchronize a deposition transcript to its video using "
                    "word timestamps from a speech-recognition service.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log alignment details to stderr.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("lines", "Line-preserving sync (keeps the page/line grid)."),
        ("sentences", "Sentence sync (free sentence boundaries)."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("transcript", help="Path to the transcript text file.")
        cmd.add_argument(
            "--words",
            nargs="+",
            required=True,
            help="Transcription response JSON file(s), in playback order.",
        )
        cmd.add_argument("--video", default=None, help="Path to the video file.")
        cmd.add_argument(
            "--fresh",
            action="store_true",
            help="Ignore an existing checkpoint and start over.",
        )
        _add_sync_options(cmd)

    resume = sub.add_parser("resume", help="Continue an interrupted sync from its checkpoint.")
    resume.add_argument("checkpoint", help="Path to the .syn checkpoint.")
    resume.add_argument(
        "--transcript",
        default=None,
        help="Transcript path (default: the path stored in the checkpoint).",
    )
    resume.add_argument(
        "--words",
        nargs="+",
        default=None,
        help="Transcription response JSON file(s), used if the checkpoint has no words.",
    )
    resume.add_argument(
        "--mode",
        choices=[m.value for m in MappingMode],
        default=MappingMode.lines.value,
        help="Mapping mode for a pending mapping stage (default: %(default)s).",
    )
    _add_sync_options(resume)

    inspect = sub.add_parser("inspect", help="Summarize a transcript, .smi, .dvt or .syn file.")
    inspect.add_argument("file", help="File to inspect.")
    inspect.add_argument(
        "--max-lines",
        type=int,
        default=MAX_LINES_PER_PAGE,
        help="Lines per page when numbering subtitle cues (default: %(default)s).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else LOG_LEVEL,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.command == "lines":
            _sync(args, MappingMode.lines)
        elif args.command == "sentences":
            _sync(args, MappingMode.sentences)
        elif args.command == "resume":
            _resume(args)
        else:
            _inspect(args)
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
