"""Scrub credentials and home paths from upstream error text before it is shown."""

from __future__ import annotations

import os
import re

_REDACTIONS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"sk-ant-[a-zA-Z0-9_-]+"), "[REDACTED_KEY]"),
    (re.compile(r"sk-(?:proj-)?[a-zA-Z0-9_-]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r"Bearer\s+\S+"), "Bearer [REDACTED]"),
    (re.compile(r"(?i)(x-api-key|api-key|authorization):\s*\S+"), r"\1: [REDACTED]"),
]

MAX_ERROR_LENGTH = 2000


def sanitize_error(message: str) -> str:
    """Redact API keys, auth headers and the user's home directory."""
    if not message:
        return message

    sanitized = message
    for pattern, replacement in _REDACTIONS:
        sanitized = pattern.sub(replacement, sanitized)

    home = os.environ.get("HOME") or os.environ.get("USERPROFILE") or ""
    if home and home != "/":
        sanitized = sanitized.replace(home, "[USER_HOME]")

    if len(sanitized) > MAX_ERROR_LENGTH:
        sanitized = sanitized[:MAX_ERROR_LENGTH] + "..."
    return sanitized
