"""Tests for the resumable sync pipeline.

WHY: The pipeline's whole purpose is that a crash never costs a second
transcription. These tests run it against a temporary checkpoint, then
run it again with a transcriber that fails if called.

HOW: The transcriber is a plain function returning the conftest sample
words; checkpoints live in pytest's tmp_path.
"""

import pytest

from depo_sync.core.errors import InputError
from depo_sync.core.ir import ProcessingStage, SyncDocument
from depo_sync.formats.checkpoint import decode_checkpoint
from depo_sync.pipeline import MappingMode, SyncPipeline

from conftest import SPOKEN_WORDS, make_words


class _CountingTranscriber:
    def __init__(self, words):
        self.words = words
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return list(self.words)


def _never_called():
    raise AssertionError("transcriber must not be called when words are cached")


def _read(path):
    return decode_checkpoint(path.read_text(encoding="utf-8"))


class TestFreshRun:
    """A run without a checkpoint executes every stage."""

    def test_all_stages_complete(self, tmp_path, sample_transcript, sample_words):
        checkpoint = tmp_path / "smith.syn"
        transcriber = _CountingTranscriber(sample_words)

        doc = SyncPipeline(checkpoint, sample_transcript, transcribe=transcriber).run()

        assert transcriber.calls == 1
        assert doc.processing_stage.pending_stage is None
        assert len(doc.sentences) == 6
        assert doc.raw_text.startswith("We are on the record.")
        assert doc.sanitized_text.splitlines()[0] == "We are on the record."
        assert doc.api_elapsed_ms >= 0.0

    def test_checkpoint_written(self, tmp_path, sample_transcript, sample_words):
        checkpoint = tmp_path / "smith.syn"
        doc = SyncPipeline(checkpoint, sample_transcript, transcribe=lambda: sample_words).run()

        saved = _read(checkpoint)
        assert saved.sentences == doc.sentences
        assert saved.raw_words == sample_words

    def test_status_messages(self, tmp_path, sample_transcript, sample_words):
        messages = []
        SyncPipeline(
            tmp_path / "smith.syn",
            sample_transcript,
            transcribe=lambda: sample_words,
            on_status=messages.append,
        ).run()

        assert messages[0] == "Transcribing..."
        assert any(m.startswith("Mapping (lines mode)") for m in messages)

    def test_sentence_mode(self, tmp_path, sample_transcript, sample_words):
        doc = SyncPipeline(
            tmp_path / "smith.syn",
            sample_transcript,
            transcribe=lambda: sample_words,
            mode=MappingMode.sentences,
        ).run()

        assert [s.display_text for s in doc.sentences] == [
            "We are on the record.",
            "Please state your name.",
            "John Smith.",
            "Where do you live?",
            "I live in Springfield, Illinois.",
            "Objection.",
        ]
        assert (doc.sentences[0].start_ms, doc.sentences[0].end_ms) == (1000.0, 2900.0)
        assert all(s.page_number is None for s in doc.sentences)

    def test_sentence_mode_starts_at_start_line(self, tmp_path, sample_transcript):
        words = make_words(SPOKEN_WORDS[11:])
        doc = SyncPipeline(
            tmp_path / "smith.syn",
            sample_transcript,
            transcribe=lambda: words,
            mode=MappingMode.sentences,
            start_line=4,
        ).run()

        assert [s.display_text for s in doc.sentences] == [
            "Where do you live?",
            "I live in Springfield, Illinois.",
            "Objection.",
        ]
        assert (doc.sentences[0].start_ms, doc.sentences[0].end_ms) == (1000.0, 2500.0)


class TestResume:
    """A second run picks up the cached stages."""

    def test_cached_words_are_reused(self, tmp_path, sample_transcript, sample_words):
        checkpoint = tmp_path / "smith.syn"
        first = SyncPipeline(checkpoint, sample_transcript, transcribe=lambda: sample_words).run()

        second = SyncPipeline(checkpoint, sample_transcript, transcribe=_never_called).run()

        assert second.sentences == first.sentences

    def test_failed_mapping_keeps_earlier_stages(self, tmp_path, sample_words):
        checkpoint = tmp_path / "smith.syn"

        with pytest.raises(InputError):
            SyncPipeline(checkpoint, "   \n", transcribe=lambda: sample_words).run()

        saved = _read(checkpoint)
        assert saved.processing_stage.api_complete
        assert saved.processing_stage.sanitization_complete
        assert saved.processing_stage.pending_stage == "mapping"
        assert saved.raw_words == sample_words

    def test_resume_after_failed_mapping(self, tmp_path, sample_transcript, sample_words):
        checkpoint = tmp_path / "smith.syn"
        with pytest.raises(InputError):
            SyncPipeline(checkpoint, "   \n", transcribe=lambda: sample_words).run()

        pipeline = SyncPipeline(checkpoint, sample_transcript, start_line=1, transcribe=_never_called)
        doc = pipeline.run()

        assert len(doc.sentences) == 6

    def test_start_line_change_remaps(self, tmp_path, sample_transcript, sample_words):
        checkpoint = tmp_path / "smith.syn"
        SyncPipeline(checkpoint, sample_transcript, transcribe=lambda: sample_words).run()

        doc = SyncPipeline(
            checkpoint, sample_transcript, start_line=3, transcribe=_never_called,
        ).run()

        assert doc.start_line == 3
        assert doc.sanitized_text.splitlines()[0] == "John Smith."
        assert (doc.sentences[0].start_ms, doc.sentences[0].end_ms) == (0.0, 0.0)
        assert _read(checkpoint).start_line == 3

    def _sanitized_doc(self, sample_words):
        return SyncDocument(
            raw_words=sample_words,
            sanitized_text="\n".join([
                "We are on the record.",
                "Please state your name.",
                "John Smith.",
                "Where do you live?",
                "I live in Springfield, Illinois.",
                "Objection.",
            ]),
            processing_stage=ProcessingStage(api_complete=True, sanitization_complete=True),
        )

    def test_line_mapping_uses_cached_text(self, tmp_path, sample_transcript, sample_words):
        reworded = sample_transcript.replace("Please state your name.", "Kindly tell us who you are.")
        pipeline = SyncPipeline(tmp_path / "smith.syn", reworded, transcribe=_never_called)

        doc = pipeline.run(self._sanitized_doc(sample_words))

        assert "Kindly tell us" in doc.sentences[1].display_text
        assert (doc.sentences[1].start_ms, doc.sentences[1].end_ms) == (3000.0, 4500.0)
        assert doc.sentences[1].confidence == pytest.approx(90.0)

    def test_sentence_mapping_uses_cached_text(self, tmp_path, sample_words):
        pipeline = SyncPipeline(
            tmp_path / "smith.syn",
            "1     Q.   Something else entirely.\n",
            transcribe=_never_called,
            mode=MappingMode.sentences,
        )

        doc = pipeline.run(self._sanitized_doc(sample_words))

        assert len(doc.sentences) == 6
        assert doc.sentences[1].display_text == "Please state your name."

    def test_load_without_checkpoint_is_fresh(self, tmp_path, sample_transcript):
        doc = SyncPipeline(tmp_path / "missing.syn", sample_transcript).load()
        assert doc.processing_stage.pending_stage == "api"


class TestErrors:
    """Invalid input fails before anything is cached."""

    def test_no_transcriber_and_no_cache(self, tmp_path, sample_transcript):
        with pytest.raises(InputError):
            SyncPipeline(tmp_path / "smith.syn", sample_transcript).run()

    def test_empty_word_list(self, tmp_path, sample_transcript):
        checkpoint = tmp_path / "smith.syn"
        with pytest.raises(InputError):
            SyncPipeline(checkpoint, sample_transcript, transcribe=lambda: []).run()
        assert not checkpoint.exists()

    def test_negative_start_line(self, tmp_path, sample_transcript):
        with pytest.raises(InputError):
            SyncPipeline(tmp_path / "smith.syn", sample_transcript, start_line=-2)
