from __future__ import annotations

from typing import Any, Optional

import httpx
import pytest

from reviewprep.github.client import GitHubClient, TokenCheck
from reviewprep.github.errors import GitHubError
from reviewprep.jobs.review_prep import (
    TokenRejectedError,
    load_pull_requests,
    run_assessment,
    save_manual_pull_requests,
)
from reviewprep.models.pull_request import PullRequest
from reviewprep.orchestrator import AnalysisPipeline
from reviewprep.stores.local_cache import MemoryKeyValueStore
from reviewprep.stores.pr_cache import HOUR_MS, PRSnapshotCache
from reviewprep.stores.profile_store import UserProfile
from tests.fakes import FakeGenerator, make_pr

PROFILE = UserProfile(
    email="dev@example.com",
    level="C5",
    github_username="octocat",
    encrypted_token="sealed:ghp_secret",
    period_start="2025-01-01",
    period_end="2025-06-30",
)


class FakeCipher:
    def __init__(self) -> None:
        self.decrypted: list[tuple[str, str]] = []

    def encrypt(self, plaintext: str, identity: str) -> str:
        return f"sealed:{plaintext}"

    def decrypt(self, blob: str, identity: str) -> str:
        self.decrypted.append((blob, identity))
        return blob.removeprefix("sealed:")


class FakeGitHubClient:
    instances: list["FakeGitHubClient"] = []

    def __init__(self, token: str, *, check: Optional[TokenCheck] = None, prs: Optional[list[PullRequest]] = None):
        self.token = token
        self.check = check or TokenCheck(valid=True, username="octocat-login")
        self.prs = prs if prs is not None else [make_pr(0), make_pr(1)]
        self.fetch_args: Optional[tuple[Any, ...]] = None
        self.closed = False
        FakeGitHubClient.instances.append(self)

    async def __aenter__(self) -> "FakeGitHubClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        self.closed = True

    async def verify_token(self, *, propagate_errors: bool = False) -> TokenCheck:
        return self.check

    async def fetch_merged_prs(self, username, start_date, end_date, on_progress=None) -> list[PullRequest]:
        self.fetch_args = (username, start_date, end_date)
        return self.prs


class FakeDurable:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self.docs = docs
        self.writes: list[dict[str, Any]] = []

    def where(self, **_filters: Any) -> "FakeDurable":
        return self

    def find(self) -> list[dict[str, Any]]:
        return self.docs

    def upsert_by(self, doc: dict[str, Any], **_filters: Any) -> dict[str, Any]:
        self.writes.append(doc)
        return doc


@pytest.fixture(autouse=True)
def reset_clients():
    FakeGitHubClient.instances = []
    yield


@pytest.mark.asyncio
async def test_fetches_from_github_when_cache_is_empty() -> None:
    cipher = FakeCipher()
    cache = PRSnapshotCache(MemoryKeyValueStore())

    result = await load_pull_requests(PROFILE, cipher=cipher, cache=cache, client_factory=FakeGitHubClient)

    client = FakeGitHubClient.instances[0]
    assert result.source == "github"
    assert len(result.prs) == 2
    assert client.token == "ghp_secret"
    assert client.fetch_args == ("octocat-login", "2025-01-01", "2025-06-30")
    assert client.closed is True
    assert cipher.decrypted == [("sealed:ghp_secret", "dev@example.com")]
    assert cache.get_fresh(PROFILE.email, PROFILE.period_start, PROFILE.period_end) is not None


@pytest.mark.asyncio
async def test_fresh_local_snapshot_skips_github() -> None:
    cipher = FakeCipher()
    cache = PRSnapshotCache(MemoryKeyValueStore())
    cache.save(PROFILE.email, [make_pr(5)], PROFILE.period_start, PROFILE.period_end)

    result = await load_pull_requests(PROFILE, cipher=cipher, cache=cache, client_factory=FakeGitHubClient)

    assert result.source == "local_cache"
    assert [pr.url for pr in result.prs] == [make_pr(5).url]
    assert FakeGitHubClient.instances == []
    assert cipher.decrypted == []


@pytest.mark.asyncio
async def test_force_fetch_bypasses_the_cache() -> None:
    cache = PRSnapshotCache(MemoryKeyValueStore())
    cache.save(PROFILE.email, [make_pr(5)], PROFILE.period_start, PROFILE.period_end)

    result = await load_pull_requests(
        PROFILE, cipher=FakeCipher(), cache=cache, client_factory=FakeGitHubClient, force_fetch=True
    )

    assert result.source == "github"
    assert len(FakeGitHubClient.instances) == 1


@pytest.mark.asyncio
async def test_fresh_durable_snapshot_is_restored_locally() -> None:
    now = 1_700_000_000_000
    durable = FakeDurable(
        [
            {
                "id": 1,
                "userEmail": PROFILE.email,
                "prs": [make_pr(3).to_dict()],
                "fetchedAt": now - 1000,
                "dateRange": {"start": PROFILE.period_start, "end": PROFILE.period_end},
            }
        ]
    )
    local = MemoryKeyValueStore()
    cache = PRSnapshotCache(local, durable, clock=lambda: now)

    result = await load_pull_requests(PROFILE, cipher=FakeCipher(), cache=cache, client_factory=FakeGitHubClient)
    await cache.drain()

    assert result.source == "durable_cache"
    assert [pr.url for pr in result.prs] == [make_pr(3).url]
    assert FakeGitHubClient.instances == []
    assert cache.get_fresh(PROFILE.email, PROFILE.period_start, PROFILE.period_end) is not None


@pytest.mark.asyncio
async def test_rejected_token_raises_before_fetching() -> None:
    def factory(token: str) -> FakeGitHubClient:
        return FakeGitHubClient(token, check=TokenCheck(valid=False, error="Invalid token - authentication failed."))

    with pytest.raises(TokenRejectedError, match="Invalid token"):
        await load_pull_requests(PROFILE, cipher=FakeCipher(), cache=PRSnapshotCache(MemoryKeyValueStore()),
                                 client_factory=factory)

    assert FakeGitHubClient.instances[0].fetch_args is None


@pytest.mark.asyncio
async def test_manual_entries_are_cached_with_an_empty_period() -> None:
    cache = PRSnapshotCache(MemoryKeyValueStore())

    result = await save_manual_pull_requests(
        PROFILE.email, ["https://github.com/acme/web/pull/9"], cache=cache
    )

    assert result.source == "manual"
    assert result.prs[0].manual_entry is True
    assert cache.get_fresh(PROFILE.email, "", "") is not None


@pytest.mark.asyncio
async def test_manual_entry_requires_a_url() -> None:
    with pytest.raises(ValueError):
        await save_manual_pull_requests(PROFILE.email, ["  "], cache=PRSnapshotCache(MemoryKeyValueStore()))


@pytest.mark.asyncio
async def test_run_assessment_delegates_to_the_pipeline() -> None:
    class NullStore:
        def upsert(self, assessment) -> None:
            pass

    pipeline = AnalysisPipeline(generator=FakeGenerator([]), store=NullStore())

    assessment = await run_assessment([], "C5", PROFILE.email, pipeline=pipeline)

    assert assessment.user_email == PROFILE.email
    assert assessment.clusters == []


@pytest.mark.asyncio
async def test_restored_durable_snapshot_keeps_its_original_fetch_time() -> None:
    t0 = 1_700_000_000_000
    clock_now = [t0 + 23 * HOUR_MS]
    durable = FakeDurable(
        [
            {
                "id": 1,
                "userEmail": PROFILE.email,
                "prs": [make_pr(3).to_dict()],
                "fetchedAt": t0,
                "dateRange": {"start": PROFILE.period_start, "end": PROFILE.period_end},
            }
        ]
    )
    cache = PRSnapshotCache(MemoryKeyValueStore(), durable, clock=lambda: clock_now[0])

    result = await load_pull_requests(PROFILE, cipher=FakeCipher(), cache=cache, client_factory=FakeGitHubClient)
    await cache.drain()

    assert result.source == "durable_cache"
    assert result.fetched_at == t0
    assert durable.writes == []
    assert cache.get_fresh(PROFILE.email, PROFILE.period_start, PROFILE.period_end).fetched_at == t0

    clock_now[0] = t0 + 24 * HOUR_MS + 1000
    assert cache.get_fresh(PROFILE.email, PROFILE.period_start, PROFILE.period_end) is None


def _github_client_factory(handler):
    def factory(token: str) -> GitHubClient:
        return GitHubClient(token, base_url="https://api.github.com", transport=httpx.MockTransport(handler))

    return factory


@pytest.mark.asyncio
async def test_network_error_during_token_check_is_not_a_rejected_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(httpx.ConnectError):
        await load_pull_requests(
            PROFILE,
            cipher=FakeCipher(),
            cache=PRSnapshotCache(MemoryKeyValueStore()),
            client_factory=_github_client_factory(handler),
        )


@pytest.mark.asyncio
async def test_server_error_during_token_check_raises_github_error() -> None:
    with pytest.raises(GitHubError) as exc_info:
        await load_pull_requests(
            PROFILE,
            cipher=FakeCipher(),
            cache=PRSnapshotCache(MemoryKeyValueStore()),
            client_factory=_github_client_factory(lambda request: httpx.Response(502)),
        )

    assert not isinstance(exc_info.value, TokenRejectedError)
    assert "GitHub API returned 502." in str(exc_info.value)


@pytest.mark.asyncio
async def test_unauthorized_token_check_raises_token_rejected() -> None:
    with pytest.raises(TokenRejectedError, match="Invalid token"):
        await load_pull_requests(
            PROFILE,
            cipher=FakeCipher(),
            cache=PRSnapshotCache(MemoryKeyValueStore()),
            client_factory=_github_client_factory(lambda request: httpx.Response(401)),
        )
