"""Manual-entry path: PR records synthesized from pasted URLs."""

from __future__ import annotations

import re
from typing import Iterable

from reviewprep.models.pull_request import PullRequest

PR_URL_PATTERN = re.compile(r"github\.com/([^/\s]+)/([^/\s]+)/pull/(\d+)")


def is_pull_request_url(url: str) -> bool:
    return PR_URL_PATTERN.search(url or "") is not None


def pull_requests_from_urls(urls: Iterable[str]) -> list[PullRequest]:
    """Build zero-count records flagged `manual_entry`; raises ValueError on the first invalid URL."""
    prs: list[PullRequest] = []
    seen: set[str] = set()
    for raw in urls:
        url = (raw or "").strip()
        if not url:
            continue
        match = PR_URL_PATTERN.search(url)
        if match is None:
            raise ValueError(f"Not a GitHub pull request URL: {url}")
        if url in seen:
            continue
        seen.add(url)

        owner, repo, number = match.groups()
        prs.append(
            PullRequest(
                title=f"PR #{number}",
                url=url,
                repo=f"{owner}/{repo}",
                merged_at=None,
                manual_entry=True,
            )
        )
    return prs
