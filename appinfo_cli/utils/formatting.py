"""
Helper functions for formatting data into human-readable strings.
"""

import re

_TAG_REGEX = re.compile(r"<[^>]+>")
_BREAK_REGEX = re.compile(r"<br\s*/?>", re.IGNORECASE)


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


def format_ttl(seconds: int) -> str:
    """Formats a cache lifetime as hours (e.g., '23h')."""
    return f"{seconds // 3600}h"


def strip_html(text: str | None) -> str:
    """
    Turns the store's HTML requirement snippets into plain text lines.
    """
    if not text:
        return ""
    text = _BREAK_REGEX.sub("\n", text)
    text = _TAG_REGEX.sub("", text)
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)
