"""
Text sanitation for user-submitted board content.

HTML entities are decoded first. Script blocks, embedded frames and inline
event handlers are then removed, and any remaining markup is stripped so only
plain text is stored.
"""

import html
import re

import structlog

logger = structlog.get_logger()

DANGEROUS_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<style[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<(iframe|embed|object)[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<(iframe|embed|object)[^>]*>", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=\s*(\"[^\"]*\"|'[^']*'|[^\s>]+)", re.IGNORECASE),
    re.compile(r"(javascript|vbscript)\s*:", re.IGNORECASE),
]

TAG_PATTERN = re.compile(r"<[^>]*>")
NULL_BYTES = re.compile(r"\x00|%00")
HORIZONTAL_WHITESPACE = re.compile(r"[ \t\f\v]+")


def sanitize_text(value, field_name: str = "text") -> str:
    """Return ``value`` as plain text with markup removed and whitespace tidied."""
    if not isinstance(value, str) or not value:
        return ""

    # Entities decoded first so encoded tags are stripped like literal ones.
    cleaned = NULL_BYTES.sub("", html.unescape(value))

    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(cleaned):
            logger.warning("Dangerous markup removed", field=field_name, pattern=pattern.pattern)
            cleaned = pattern.sub("", cleaned)

    cleaned = TAG_PATTERN.sub("", cleaned)
    cleaned = HORIZONTAL_WHITESPACE.sub(" ", cleaned)
    return "\n".join(line.strip() for line in cleaned.splitlines()).strip()


def sanitize_search_query(value) -> str:
    """Search terms are matched with ILIKE; wildcards from the caller are literal."""
    text = sanitize_text(value, field_name="search")
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")[:100]
