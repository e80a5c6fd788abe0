"""Paged search for a user's merged pull requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from reviewprep.config.settings import settings
from reviewprep.github.errors import GitHubSearchError
from reviewprep.github.fetcher import RateLimitedFetcher
from reviewprep.github.redaction import sanitize_log_extra

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchProgress:
    """Progress snapshot: `enriching` is None while search pages are still loading."""

    fetched: int
    total: int
    enriching: Optional[int] = None


ProgressCallback = Callable[[FetchProgress], None]


def build_merged_pr_query(username: str, start_date: str, end_date: str) -> str:
    return f"author:{username} type:pr is:merged merged:{start_date}..{end_date}"


class PullRequestSearchClient:
    """Pages through `/search/issues` until the first page's total is reached or a short page arrives."""

    SEARCH_PATH = "/search/issues"

    def __init__(self, fetcher: RateLimitedFetcher, *, per_page: Optional[int] = None) -> None:
        self._fetcher = fetcher
        self._per_page = per_page or settings.GITHUB_SEARCH_PER_PAGE
        self.total_count = 0

    async def search(
        self,
        username: str,
        start_date: str,
        end_date: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[dict[str, Any]]:
        query = build_merged_pr_query(username, start_date, end_date)
        items: list[dict[str, Any]] = []
        total_count = 0
        page = 1

        while True:
            response = await self._fetcher.fetch(
                self.SEARCH_PATH,
                params={
                    "q": query,
                    "per_page": self._per_page,
                    "page": page,
                    "sort": "updated",
                    "order": "desc",
                },
            )
            if not response.is_success:
                raise GitHubSearchError(response.status_code, response.text)

            payload = response.json()
            page_items = payload.get("items") if isinstance(payload.get("items"), list) else []

            # Later pages never revise the total; the count drifts as PRs merge mid-scan.
            if page == 1:
                total_count = int(payload.get("total_count") or 0)
                self.total_count = total_count

            items.extend(item for item in page_items if isinstance(item, dict))
            if on_progress is not None:
                on_progress(FetchProgress(fetched=len(items), total=total_count))

            logger.debug(
                "Fetched search page",
                extra=sanitize_log_extra(page=page, page_items=len(page_items), fetched=len(items), total=total_count),
            )

            if len(items) >= total_count or len(page_items) < self._per_page:
                break
            page += 1

        logger.info(
            "Merged PR search finished",
            extra=sanitize_log_extra(username=username, pages=page, fetched=len(items), total=total_count),
        )
        return items
