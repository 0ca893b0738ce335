"""Credential redaction for log lines and error messages."""

from __future__ import annotations

__all__ = ["redact_sensitive"]

import re

_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(https://x-access-token:)[^@]+(@github\.com/)"), r"\1***\2"),
    (re.compile(r"(Bearer\s+)[A-Za-z0-9_.\-]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"\b(gh[pousr]_|github_pat_)[A-Za-z0-9_]+"), r"\1***"),
)


def redact_sensitive(text: str) -> str:
    """Replace GitHub access tokens in *text* with ``***``.

    Covers token-bearing clone URLs, ``Authorization: Bearer`` values, and
    bare personal/installation tokens (``ghp_``, ``ghs_``, ``github_pat_``...).

    Args:
        text: String that may contain a token.

    Returns:
        Sanitised string safe for logging and error messages.
    """
    for pattern, replacement in _PATTERNS:
        text = pattern.sub(replacement, text)
    return text
