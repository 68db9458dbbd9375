"""
Utilities for building download filenames and directories.
"""

import re
import time
from pathlib import Path
from typing import Optional

from pathvalidate import sanitize_filename

VIDEO_EXTENSION = "mp4"

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s_]")
_WHITESPACE = re.compile(r"\s+")


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    Path(directory_path).mkdir(parents=True, exist_ok=True)


def sanitize_tag_text(text: str) -> str:
    """Lowercases and reduces text to ``[a-z0-9_]``, turning whitespace into ``_``."""
    cleaned = _DISALLOWED_CHARS.sub("", text.lower())
    return _WHITESPACE.sub("_", cleaned.strip())


def generate_filename(
    video_id: int, tags: list[str], timestamp_ms: Optional[int] = None
) -> str:
    """
    Builds ``<tag1>_<tag2>_<id>_<epoch ms>.mp4`` from the first two tags.

    Falls back to ``video`` when the video has no usable tags.
    """
    prefix = sanitize_tag_text(" ".join(tags[:2])) if tags else ""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{prefix or 'video'}_{video_id}_{timestamp_ms}.{VIDEO_EXTENSION}"


def clean_user_filename(filename: str) -> str:
    """Sanitizes a caller-supplied filename, adding the video extension if absent."""
    cleaned = sanitize_filename(filename, platform="auto").strip()
    if not cleaned:
        raise ValueError(f"Filename '{filename}' is empty after sanitizing.")
    if not Path(cleaned).suffix:
        cleaned = f"{cleaned}.{VIDEO_EXTENSION}"
    return cleaned


def category_dir(download_root: Path, category: Optional[str]) -> Path:
    """Returns the directory a video belongs in for an optional category."""
    if not category:
        return Path(download_root)
    return Path(download_root) / sanitize_filename(category, platform="auto")
