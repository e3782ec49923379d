"""Deposition transcript synchronization engine.

WHY: A court reporter's transcript is authoritative for *what* was said
but carries no timing, while a speech-recognition service gives noisy
word-level timing for the video. Legal video-review tools need both: the
reporter's page:line text, anchored to the video clock.

HOW: Four-stage pipeline — parse the transcript into page/line units,
sanitize each line down to its spoken words, align those words against
the recognized word stream with dynamic time warping, then aggregate the
aligned words back into sentences or original lines. Codecs under
``formats`` turn the result into SAMI subtitles, OpenDVT XML and the
resumable SYN checkpoint.

RULES:
- The core never performs I/O; callers pass text and word lists in and
  persist the returned strings themselves
- Alignment never fails mid-run: unmatched words get interpolated
  timestamps with low confidence instead of raising
- Invalid input (empty transcript, empty word list) raises InputError
  before any alignment work starts
"""

__version__ = "0.1.0"
