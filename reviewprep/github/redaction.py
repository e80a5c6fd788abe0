"""Log-record scrubbing: GitHub credentials never reach the logs, PR bodies and prompts only as sizes."""

from __future__ import annotations

import re
from typing import Any, Optional

REDACTED = "[redacted]"

# Fields whose value is a credential, whatever it looks like
CREDENTIAL_FIELDS = frozenset({"token", "github_token", "authorization", "api_key"})
# Free text copied from PRs or sent to the model
TEXT_FIELDS = frozenset({"body", "prompt", "completion"})

_CREDENTIAL_IN_TEXT = re.compile(
    r"(?i:bearer)\s+\S+"
    r"|\bgh[pousr]_[A-Za-z0-9]{20,}\b"
    r"|\bgithub_pat_[A-Za-z0-9_]{20,}\b"
)


def scrub_credentials(text: str) -> str:
    """Replace bearer headers and GitHub token literals embedded in free text."""
    return _CREDENTIAL_IN_TEXT.sub(REDACTED, text)


def text_size_marker(text: str) -> str:
    return f"<{len(text)} chars>" if text else ""


def sanitize_for_log(value: Any, *, key: Optional[str] = None) -> Any:
    field = (key or "").lower()
    if field in CREDENTIAL_FIELDS:
        return REDACTED
    if field in TEXT_FIELDS and isinstance(value, str):
        return text_size_marker(value)

    if isinstance(value, dict):
        return {str(name): sanitize_for_log(item, key=str(name)) for name, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_for_log(item) for item in value]
    if isinstance(value, str):
        return scrub_credentials(value)
    return value


def sanitize_log_extra(**fields: Any) -> dict[str, Any]:
    """`extra=` payload for a log call, with every field passed through sanitize_for_log."""
    return {key: sanitize_for_log(value, key=key) for key, value in fields.items()}
