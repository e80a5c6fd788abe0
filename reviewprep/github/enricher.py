"""Best-effort enrichment of search hits with per-PR detail."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional, Sequence

from reviewprep.config.settings import settings
from reviewprep.github.fetcher import RateLimitedFetcher
from reviewprep.github.redaction import sanitize_log_extra
from reviewprep.github.search import FetchProgress, ProgressCallback
from reviewprep.models.pull_request import PullRequest

logger = logging.getLogger(__name__)

_REPO_PATTERN = re.compile(r"repos/(.+)$")


def extract_repo(repository_url: Any) -> str:
    """`https://api.github.com/repos/owner/name` -> `owner/name`, else `unknown`."""
    if not isinstance(repository_url, str):
        return "unknown"
    match = _REPO_PATTERN.search(repository_url)
    return match.group(1) if match else "unknown"


class PullRequestEnricher:
    """Turns raw search hits into PullRequest records in fixed-size concurrent batches.

    Each batch is fully awaited before the next one starts. The detail call
    for a hit is best-effort: on any failure the record keeps zero counts and
    the merge timestamp from the search hit.
    """

    def __init__(self, fetcher: RateLimitedFetcher, *, batch_size: Optional[int] = None) -> None:
        self._fetcher = fetcher
        self._batch_size = max(batch_size or settings.GITHUB_ENRICH_BATCH_SIZE, 1)

    async def enrich(
        self,
        raw_hits: Sequence[dict[str, Any]],
        *,
        total_count: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[PullRequest]:
        total = total_count if total_count is not None else len(raw_hits)
        enriched: list[PullRequest] = []

        for start in range(0, len(raw_hits), self._batch_size):
            batch = raw_hits[start:start + self._batch_size]
            results = await asyncio.gather(*(self._enrich_one(item) for item in batch))
            enriched.extend(results)
            if on_progress is not None:
                on_progress(FetchProgress(fetched=len(raw_hits), total=total, enriching=len(enriched)))

        return enriched

    async def _enrich_one(self, item: dict[str, Any]) -> PullRequest:
        pull_request = item.get("pull_request") if isinstance(item.get("pull_request"), dict) else {}
        merged_at = pull_request.get("merged_at") or None
        additions = 0
        deletions = 0

        detail_url = pull_request.get("url")
        if isinstance(detail_url, str) and detail_url:
            try:
                response = await self._fetcher.fetch(detail_url)
                if response.is_success:
                    detail = response.json()
                    additions = int(detail.get("additions") or 0)
                    deletions = int(detail.get("deletions") or 0)
                    merged_at = detail.get("merged_at") or merged_at
                else:
                    logger.debug(
                        "PR detail request returned non-success status",
                        extra=sanitize_log_extra(url=detail_url, status_code=response.status_code),
                    )
            except Exception as exc:
                logger.debug(
                    "PR detail enrichment failed, keeping search defaults",
                    extra=sanitize_log_extra(url=detail_url, error=str(exc)),
                )
                additions = 0
                deletions = 0

        return PullRequest(
            title=str(item.get("title") or ""),
            url=str(item.get("html_url") or ""),
            repo=extract_repo(item.get("repository_url")),
            merged_at=merged_at,
            body=str(item.get("body") or ""),
            additions=max(additions, 0),
            deletions=max(deletions, 0),
        )
