"""
Helper functions for formatting data into human-readable strings.
"""

import math


def format_size(bytes_size: float) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 34m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def extract_codec(file_type: str) -> str:
    """Infers the codec label from a container MIME type."""
    if "mp4" in file_type:
        return "h264"
    if "webm" in file_type:
        return "vp8"
    return "unknown"


def estimate_bitrate(file_size: int, duration: float) -> str:
    """Average bitrate in kbps, rounded half up, e.g. ``'4521kbps'``."""
    if not duration:
        return "unknown"
    kbps = math.floor(file_size * 8 / duration / 1000 + 0.5)
    return f"{kbps}kbps"
