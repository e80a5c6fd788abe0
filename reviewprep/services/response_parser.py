"""Tolerant JSON extraction from generated text."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"^```[\w-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```\s*$")

_EMPTY = object()


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang line and a trailing ``` line when present."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
        cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_json_response(text: str, *, default: Any = _EMPTY) -> Any:
    """Parse model output as JSON, returning `default` ([] unless given) on failure or `null`.

    An empty result does not distinguish a parse failure from a model that
    legitimately answered with nothing; failures are only visible in logs.
    """
    fallback = [] if default is _EMPTY else default
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"Failed to parse LLM response as JSON: {e} ({len(cleaned)} chars)")
        return fallback
    return fallback if parsed is None else parsed
