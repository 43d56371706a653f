"""
Input sanitization for text handed to the resolver.

Malformed input is never rejected: it is coerced, cleaned and truncated,
and each adjustment is reported as a diagnostic string.
"""

import logging
import re

logger = logging.getLogger(__name__)

# Script/style blocks are dropped with their content; other tags keep their text
_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"</?[A-Za-z][^<>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


def coerce_text(value: object) -> tuple[str, list[str]]:
    """
    Coerce an arbitrary value to text.

    Returns:
        Tuple of (text, diagnostics)
    """
    if value is None:
        return "", []
    if isinstance(value, str):
        return value, []
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace"), ["malformed_input: decoded bytes"]
    return str(value), [f"malformed_input: coerced {type(value).__name__} to text"]


def sanitize_text(value: object, max_length: int) -> tuple[str, list[str]]:
    """
    Strip markup and control characters, collapse whitespace and truncate.

    Args:
        value: Raw input (anything; non-strings are coerced)
        max_length: Maximum length of the returned text

    Returns:
        Tuple of (sanitized text, diagnostics)

    Example:
        >>> sanitize_text("<b>BlackRock</b>\\x00 Inc.", 100)
        ('BlackRock Inc.', ['malformed_input: removed markup', ...])
    """
    text, diagnostics = coerce_text(value)
    if not text:
        return "", diagnostics

    stripped = _TAG_RE.sub(" ", _BLOCK_RE.sub(" ", text))
    if stripped != text:
        diagnostics.append("malformed_input: removed markup")
    cleaned = _CONTROL_RE.sub(" ", stripped)
    if cleaned != stripped:
        diagnostics.append("malformed_input: removed control characters")

    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    if len(cleaned) > max_length:
        logger.debug(f"Truncating input from {len(cleaned)} to {max_length} chars")
        diagnostics.append(f"malformed_input: truncated {len(cleaned)} chars to {max_length}")
        cleaned = cleaned[:max_length].rstrip()
    return cleaned, diagnostics
