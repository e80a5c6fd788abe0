"""GitHub ingestion errors."""

from __future__ import annotations

import math


class GitHubError(Exception):
    """Base class for GitHub ingestion failures."""


class RateLimitError(GitHubError):
    """Rate limit that cannot be waited out within the allowed window."""

    def __init__(self, wait_seconds: float) -> None:
        self.wait_seconds = wait_seconds
        super().__init__(f"Rate limited. Resets in {math.ceil(wait_seconds)}s - too long to wait.")


class GitHubSearchError(GitHubError):
    """A search page came back with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"GitHub search failed ({status_code}): {body}")
