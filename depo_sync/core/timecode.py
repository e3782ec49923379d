"""Millisecond time formatting for display and cue listings."""

from __future__ import annotations


def format_ms(ms: float) -> str:
    """Format milliseconds as MM:SS.mmm (minutes are not wrapped into hours)."""
    total = int(max(ms, 0))
    minutes, rest = divmod(total, 60_000)
    seconds, millis = divmod(rest, 1000)
    return "{:02d}:{:02d}.{:03d}".format(minutes, seconds, millis)


def parse_ms(value: str) -> int:
    """Parse MM:SS.mmm back to milliseconds; malformed input gives 0."""
    if not value:
        return 0
    parts = value.split(":")
    if len(parts) != 2:
        return 0
    try:
        minutes = int(parts[0])
        seconds_part, _, millis_part = parts[1].partition(".")
        seconds = int(seconds_part)
        millis = int(millis_part) if millis_part else 0
    except ValueError:
        return 0
    return minutes * 60_000 + seconds * 1000 + millis


def format_timecode(ms: float) -> str:
    """Format milliseconds as HH:MM:SS.mmm."""
    total = int(max(ms, 0))
    hours, rest = divmod(total, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)
    return "{:02d}:{:02d}:{:02d}.{:03d}".format(hours, minutes, seconds, millis)
