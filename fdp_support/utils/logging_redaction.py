"""
Logging redaction helpers.
Redacts beneficiary identifiers and credentials from log messages.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # CNIC: 12345-1234567-1 or 13 bare digits
    (re.compile(r"\b\d{5}-\d{7}-\d\b"), "[CNIC]"),
    (re.compile(r"\b\d{13}\b"), "[CNIC]"),
    # Mobile numbers: 03001234567 / +923001234567 / 0300-1234567
    (re.compile(r"(?<!\d)(?:\+92|0)3\d{2}-?\d{7}(?!\d)"), "[PHONE]"),
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._]+)"), r"\1[REDACTED]"),
    # Password / token key=value pairs
    (re.compile(r"(?i)(password|passwd|token|secret)\s*[:=]\s*([^\s,;]+)"), r"\1=[REDACTED]"),
    # Credentials embedded in a database URL
    (re.compile(r"(://[^:/\s]+:)([^@\s]+)(@)"), r"\1[REDACTED]\3"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed format args; let the handler report it
            return True
        record.msg = redact_message(message)
        record.args = ()
        return True


def install_redaction_filter() -> None:
    """Attach the filter to every root handler (idempotent)."""
    root = logging.getLogger()
    targets = list(root.handlers) or [root]
    for target in targets:
        if any(isinstance(f, RedactingFilter) for f in target.filters):
            continue
        target.addFilter(RedactingFilter())
