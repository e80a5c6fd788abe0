"""Run-scoped GitHub client carrying credentials, base URL and the HTTP session."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from reviewprep.config.settings import settings
from reviewprep.github.enricher import PullRequestEnricher
from reviewprep.github.errors import GitHubError
from reviewprep.github.fetcher import RateLimitedFetcher
from reviewprep.github.redaction import sanitize_log_extra
from reviewprep.github.search import ProgressCallback, PullRequestSearchClient
from reviewprep.models.pull_request import PullRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TokenCheck:
    """Outcome of validating a personal access token against `/user`."""

    valid: bool
    username: Optional[str] = None
    name: Optional[str] = None
    error: Optional[str] = None


class GitHubClient:
    """Explicitly constructed client; one instance per ingestion run."""

    ACCEPT_JSON = "application/vnd.github+json"

    def __init__(
        self,
        token: str,
        *,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[Any] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._token = token
        self._base_url = base_url or settings.GITHUB_API_URL
        self._timeout_seconds = timeout_seconds or settings.GITHUB_TIMEOUT_SECONDS
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._client: Optional[httpx.AsyncClient] = None
        self._fetcher: Optional[RateLimitedFetcher] = None

    async def __aenter__(self) -> "GitHubClient":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            self._fetcher = None

    @property
    def fetcher(self) -> RateLimitedFetcher:
        self._ensure_client()
        assert self._fetcher is not None
        return self._fetcher

    async def verify_token(self, *, propagate_errors: bool = False) -> TokenCheck:
        """Check the token by loading the authenticated user's profile.

        By default failures are reported in the returned TokenCheck. With
        `propagate_errors`, only a 401 comes back as an invalid check: network
        errors and rate limits are raised as-is and other non-success statuses
        raise GitHubError.
        """
        try:
            response = await self.fetcher.fetch("/user")
        except Exception as exc:
            if propagate_errors:
                raise
            logger.warning("Token verification request failed", extra=sanitize_log_extra(error=str(exc)))
            return TokenCheck(valid=False, error="Network error - could not reach GitHub.")

        if response.status_code == 401:
            return TokenCheck(valid=False, error="Invalid token - authentication failed.")
        if not response.is_success:
            if propagate_errors:
                raise GitHubError(f"GitHub API returned {response.status_code}.")
            return TokenCheck(valid=False, error=f"GitHub API returned {response.status_code}.")

        user = response.json()
        login = str(user.get("login") or "")
        return TokenCheck(valid=True, username=login, name=user.get("name") or login)

    async def fetch_merged_prs(
        self,
        username: str,
        start_date: str,
        end_date: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[PullRequest]:
        """Search then enrich; the result is ordered and unique by URL."""
        search_client = PullRequestSearchClient(self.fetcher)
        hits = await search_client.search(username, start_date, end_date, on_progress)

        enricher = PullRequestEnricher(self.fetcher)
        prs = await enricher.enrich(hits, total_count=search_client.total_count, on_progress=on_progress)

        unique: list[PullRequest] = []
        seen: set[str] = set()
        for pr in prs:
            if pr.url in seen:
                continue
            seen.add(pr.url)
            unique.append(pr)

        if len(unique) != len(prs):
            logger.info(
                "Dropped duplicate PRs returned across search pages",
                extra=sanitize_log_extra(duplicates=len(prs) - len(unique)),
            )
        return unique

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        headers = {
            "Accept": self.ACCEPT_JSON,
            "User-Agent": settings.USER_AGENT,
            "X-GitHub-Api-Version": settings.GITHUB_API_VERSION,
            "Authorization": f"Bearer {self._token}",
        }
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout_seconds,
            transport=self._transport,
        )
        self._fetcher = RateLimitedFetcher(self._client, sleep=self._sleep, clock=self._clock)
        return self._client
