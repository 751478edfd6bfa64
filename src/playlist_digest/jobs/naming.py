"""Naming rules for output locations and screenshot files.

The screenshot filename rule must be invertible: the capture executor
recovers which timestamps are already done purely from the filenames
recorded in state.
"""

import re
from typing import Optional

SLUG_MAX_LENGTH = 50
SCREENSHOT_EXT = ".png"

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")
_SLUG_INDEX = re.compile(r"^(\d+)-")


def sanitize_title(title: str) -> str:
    """Make a title safe for use as a directory name.

    Strips characters that are invalid on common filesystems, collapses
    whitespace to hyphens, lowercases, and truncates to 50 characters.
    """
    safe = _UNSAFE_CHARS.sub("", title)
    safe = _WHITESPACE.sub("-", safe)
    return safe.lower()[:SLUG_MAX_LENGTH]


def make_slug(index: int, title: str) -> str:
    """Build the output slug for an item: ``01-my-video-title``."""
    return f"{index:02d}-{sanitize_title(title)}"


def slug_index(slug: str) -> Optional[int]:
    """Recover the sequential index from a slug, or None if it has none."""
    match = _SLUG_INDEX.match(slug)
    if not match:
        return None
    return int(match.group(1))


def timestamp_to_filename(timestamp: str) -> str:
    """``00:01:30`` -> ``00-01-30.png``"""
    return timestamp.replace(":", "-") + SCREENSHOT_EXT


def timestamp_from_filename(filename: str) -> str:
    """Inverse of :func:`timestamp_to_filename`: ``00-01-30.png`` -> ``00:01:30``"""
    stem = filename
    if stem.endswith(SCREENSHOT_EXT):
        stem = stem[: -len(SCREENSHOT_EXT)]
    return stem.replace("-", ":")


def parse_timestamp(timestamp: str) -> int:
    """Convert ``HH:MM:SS`` or ``MM:SS`` to seconds (0 if unparseable)."""
    try:
        parts = [int(p) for p in timestamp.strip().split(":")]
    except ValueError:
        return 0
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    return 0


def format_seconds(seconds: float) -> str:
    """Format seconds as zero-padded ``HH:MM:SS``."""
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"
