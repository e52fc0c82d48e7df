"""
Tag normalizer -- turns arbitrary scraped text into a canonical hashtag.

Canonical form is "#" followed by one or more ASCII letters, digits or
underscores, upper-cased so that "#ai", "AI" and "##AI!!" all compare equal.
"""

import re
from typing import Optional

TAG_PATTERN = re.compile(r"^#[A-Za-z0-9_]+$")

_STRIP_RE = re.compile(r"[^A-Za-z0-9_]")


def normalize_tag(text) -> Optional[str]:
    """
    Normalize raw text into a canonical tag.

    Returns None when nothing usable is left (empty or punctuation-only input).
    Pure and idempotent: normalize_tag(normalize_tag(x)) == normalize_tag(x).
    """
    if not isinstance(text, str):
        return None

    body = text.strip()
    if body.startswith("#"):
        body = body[1:]

    body = _STRIP_RE.sub("", body)
    if not body:
        return None

    return "#" + body.upper()


def is_canonical(tag: str) -> bool:
    """True if tag already matches the canonical "#TAG" shape."""
    return isinstance(tag, str) and bool(TAG_PATTERN.match(tag))
