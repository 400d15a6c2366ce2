"""Input normalization helpers shared by request schemas and services."""

import re
import unicodedata

# Control characters to remove (except newline, tab)
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

MULTI_WHITESPACE_PATTERN = re.compile(r"[ \t]+")
NON_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def normalize_text(text: str | None) -> str | None:
    """
    Normalize free text (vote comments):
    - Unicode NFC
    - control characters and null bytes removed (newlines and tabs kept)
    - runs of spaces collapsed, outer whitespace stripped

    Returns None for None or text that is empty after normalization.
    """
    if text is None:
        return None

    text = unicodedata.normalize("NFC", text)
    text = CONTROL_CHAR_PATTERN.sub("", text)
    text = MULTI_WHITESPACE_PATTERN.sub(" ", text).strip()
    return text or None


def normalize_single_line(text: str | None) -> str | None:
    """Normalize text for single-line fields such as game titles."""
    if text is None:
        return None
    return normalize_text(text.replace("\r", " ").replace("\n", " "))


def slugify(text: str) -> str:
    """Build a URL slug: ASCII lowercase words joined by hyphens."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return NON_SLUG_PATTERN.sub("-", ascii_text.lower()).strip("-")
