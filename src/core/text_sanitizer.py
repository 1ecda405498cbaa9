#!/usr/bin/env python3
"""
Text sanitization utilities for keyword matching and log output.

Folds typographic quotes, normalizes keywords for comparison and builds
safe log previews of untrusted upstream text.
"""

import re
import logging

logger = logging.getLogger(__name__)

# Typographic quotation marks folded to ASCII
TYPOGRAPHIC_QUOTES_MAP = {
    "“": '"',  # Left double quotation mark
    "”": '"',  # Right double quotation mark
    "„": '"',  # Double low-9 quotation mark
    "‘": "'",  # Left single quotation mark
    "’": "'",  # Right single quotation mark
    "‚": "'",  # Single low-9 quotation mark
}

TYPOGRAPHIC_QUOTES_TRANSLATION = str.maketrans(TYPOGRAPHIC_QUOTES_MAP)

_PUNCTUATION_RE = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_quotes(text: str) -> str:
    """
    Normalize typographic quotation marks to ASCII equivalents.

    Args:
        text: Input text that may contain curly quotes

    Returns:
        Text with normalized ASCII quotes
    """
    if not text:
        return text

    return text.translate(TYPOGRAPHIC_QUOTES_TRANSLATION)


def normalize_keyword(text: str) -> str:
    """
    Normalize a keyword for comparison.

    Lowercases, folds typographic quotes, removes punctuation and
    collapses whitespace. "30-Year Mortgage" becomes "30year mortgage".
    """
    if not text:
        return ""

    normalized = normalize_quotes(str(text)).lower()
    normalized = _PUNCTUATION_RE.sub("", normalized)
    normalized = _WHITESPACE_RE.sub(" ", normalized)
    return normalized.strip()


def preview(text: str, limit: int = 120) -> str:
    """Single-line truncated preview of untrusted text for log messages."""
    if not text:
        return ""

    flat = _WHITESPACE_RE.sub(" ", str(text)).strip()
    if len(flat) <= limit:
        return flat
    return flat[:limit] + "..."
