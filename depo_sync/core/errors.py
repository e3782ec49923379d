"""Typed errors raised by the synchronization engine.

WHY: Callers must be able to tell bad input apart from a bad file. Both
are ``ValueError`` subclasses so the CLI's single ``except ValueError``
keeps working, while library callers can catch them separately.

RULES:
- InputError: empty or invalid input, raised before any alignment work
- FormatError: malformed interchange XML, checkpoint JSON or word file
- Poor alignment is never an error; it shows up as low confidence
"""


class InputError(ValueError):
    """Raised when alignment input is missing or unusable."""


class FormatError(ValueError):
    """Raised when a serialized document cannot be decoded."""
