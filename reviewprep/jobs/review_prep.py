"""Caller-facing entrypoints: load PRs (cache-first), manual entry, run the assessment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence

from reviewprep.github.client import GitHubClient
from reviewprep.github.errors import GitHubError
from reviewprep.github.manual import pull_requests_from_urls
from reviewprep.github.redaction import sanitize_log_extra
from reviewprep.github.search import ProgressCallback
from reviewprep.models.assessment import Assessment
from reviewprep.models.pull_request import PullRequest
from reviewprep.orchestrator import AnalysisPipeline, StageCallback
from reviewprep.services.credentials import TokenCipher
from reviewprep.stores.pr_cache import PRSnapshotCache
from reviewprep.stores.profile_store import UserProfile

logger = logging.getLogger(__name__)


class TokenRejectedError(GitHubError):
    """The stored token failed verification against GitHub."""


@dataclass(slots=True)
class PullRequestLoad:
    prs: list[PullRequest]
    source: str  # "local_cache", "durable_cache", "github" or "manual"
    fetched_at: int


async def load_pull_requests(
    profile: UserProfile,
    *,
    cipher: TokenCipher,
    cache: PRSnapshotCache,
    client_factory: Callable[[str], Any] = GitHubClient,
    on_progress: Optional[ProgressCallback] = None,
    force_fetch: bool = False,
) -> PullRequestLoad:
    """Fresh local snapshot, then fresh durable snapshot, then a GitHub fetch.

    Fetch failures, including network errors while verifying the token,
    propagate so the caller can offer retry, manual entry or skip. Only a
    token GitHub answers with 401 raises TokenRejectedError.
    """
    if not force_fetch:
        cached = cache.get_fresh(profile.email, profile.period_start, profile.period_end)
        if cached is not None:
            return PullRequestLoad(prs=cached.prs, source="local_cache", fetched_at=cached.fetched_at)

        durable = await cache.load_durable(profile.email)
        if durable is not None and cache.is_fresh(durable, profile.period_start, profile.period_end):
            cache.save_local(profile.email, durable)
            return PullRequestLoad(prs=durable.prs, source="durable_cache", fetched_at=durable.fetched_at)

    token = cipher.decrypt(profile.encrypted_token, profile.email)
    async with client_factory(token) as client:
        check = await client.verify_token(propagate_errors=True)
        if not check.valid:
            raise TokenRejectedError(f"PAT validation failed: {check.error}")

        username = check.username or profile.github_username
        prs = await client.fetch_merged_prs(username, profile.period_start, profile.period_end, on_progress)

    snapshot = cache.save(profile.email, prs, profile.period_start, profile.period_end)
    logger.info(
        "Loaded pull requests from GitHub",
        extra=sanitize_log_extra(user=profile.email, prs=len(prs), period=[profile.period_start, profile.period_end]),
    )
    return PullRequestLoad(prs=snapshot.prs, source="github", fetched_at=snapshot.fetched_at)


async def save_manual_pull_requests(
    user_email: str,
    urls: Iterable[str],
    *,
    cache: PRSnapshotCache,
) -> PullRequestLoad:
    """Manual fallback when the fetch fails; stored with an empty date range."""
    prs = pull_requests_from_urls(urls)
    if not prs:
        raise ValueError("At least one pull request URL is required")
    snapshot = cache.save(user_email, prs, "", "")
    return PullRequestLoad(prs=snapshot.prs, source="manual", fetched_at=snapshot.fetched_at)


async def run_assessment(
    prs: Sequence[PullRequest],
    level: str,
    user_email: str,
    *,
    pipeline: Optional[AnalysisPipeline] = None,
    on_stage_change: Optional[StageCallback] = None,
) -> Assessment:
    job_pipeline = pipeline or AnalysisPipeline()
    return await job_pipeline.run(prs, level, user_email, on_stage_change)
