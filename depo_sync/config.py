"""Configuration constants and .env loading.

WHY: Chunk sizes, the page grid and the origination stamp written into
exported files are tuning knobs that differ between deployments. Keeping
them as plain module-level values makes them easy to find and override
without touching the algorithms.

HOW: python-dotenv loads the .env file on import. Each constant is read
with os.getenv and a literal default. Integer settings go through
load_int_setting() so a typo in .env fails loudly instead of silently
falling back.

RULES:
- Every default can be overridden via an environment variable
- Integer settings that are set but not integers raise ValueError
- CHUNK_SIZE/OVERLAP_SIZE feed align_chunked(); the aligner validates them
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def load_int_setting(name: str, default: int) -> int:
    """Read an integer setting from the environment.

    RULES:
    - Missing or empty variable → default
    - Present but not an integer → ValueError naming the variable
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(
            "{} must be an integer, got '{}'. Fix the value in the .env file.".format(name, raw)
        ) from None


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------

CHUNK_SIZE = load_int_setting("DEPO_SYNC_CHUNK_SIZE", 1500)
"""Human words per chunk before the chunked aligner takes over."""

OVERLAP_SIZE = load_int_setting("DEPO_SYNC_OVERLAP_SIZE", 150)
"""Human words of trailing context re-aligned at the start of each chunk."""

# ---------------------------------------------------------------------------
# Transcript page grid
# ---------------------------------------------------------------------------

MAX_LINES_PER_PAGE = load_int_setting("DEPO_SYNC_MAX_LINES_PER_PAGE", 25)

# ---------------------------------------------------------------------------
# Origination stamp for exported files
# ---------------------------------------------------------------------------

APP_NAME = os.getenv("DEPO_SYNC_APP_NAME", "SyncExpress")
APP_VERSION = os.getenv("DEPO_SYNC_APP_VERSION", "1.0")

LOG_LEVEL = os.getenv("DEPO_SYNC_LOG_LEVEL", "WARNING").upper()

# ---------------------------------------------------------------------------
# Output files
# ---------------------------------------------------------------------------

SUBTITLE_SUFFIX = ".smi"
INTERCHANGE_SUFFIX = ".dvt"
CHECKPOINT_SUFFIX = ".syn"
