from __future__ import annotations

import httpx
import pytest

from reviewprep.github.client import GitHubClient


def _client(handler) -> GitHubClient:
    return GitHubClient("ghp_testtoken", base_url="https://api.github.com", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_verify_token_returns_login_and_sends_bearer_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"login": "octocat", "name": "The Octocat"})

    async with _client(handler) as client:
        check = await client.verify_token()

    assert check.valid is True
    assert check.username == "octocat"
    assert check.name == "The Octocat"
    assert seen[0].url.path == "/user"
    assert seen[0].headers["Authorization"] == "Bearer ghp_testtoken"
    assert seen[0].headers["Accept"] == "application/vnd.github+json"
    assert "X-GitHub-Api-Version" in seen[0].headers


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "error"),
    [
        (401, "Invalid token - authentication failed."),
        (500, "GitHub API returned 500."),
    ],
)
async def test_verify_token_reports_failures(status_code: int, error: str) -> None:
    async with _client(lambda request: httpx.Response(status_code)) as client:
        check = await client.verify_token()

    assert check.valid is False
    assert check.error == error


@pytest.mark.asyncio
async def test_verify_token_reports_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with _client(handler) as client:
        check = await client.verify_token()

    assert check.valid is False
    assert check.error == "Network error - could not reach GitHub."


@pytest.mark.asyncio
async def test_fetch_merged_prs_drops_duplicate_urls() -> None:
    hit = {
        "title": "Add checkout flow",
        "html_url": "https://github.com/acme/web/pull/1",
        "repository_url": "https://api.github.com/repos/acme/web",
        "pull_request": {"url": "https://api.github.com/repos/acme/web/pulls/1"},
    }
    other = {**hit, "title": "Fix cart", "html_url": "https://github.com/acme/web/pull/2",
             "pull_request": {"url": "https://api.github.com/repos/acme/web/pulls/2"}}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/search/issues":
            return httpx.Response(200, json={"total_count": 3, "items": [hit, other, hit]})
        return httpx.Response(200, json={"additions": 3, "deletions": 1, "merged_at": "2025-01-02T00:00:00Z"})

    async with _client(handler) as client:
        prs = await client.fetch_merged_prs("octocat", "2025-01-01", "2025-06-30")

    assert [pr.url for pr in prs] == [
        "https://github.com/acme/web/pull/1",
        "https://github.com/acme/web/pull/2",
    ]
    assert prs[0].additions == 3


@pytest.mark.asyncio
async def test_verify_token_can_propagate_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with _client(handler) as client:
        with pytest.raises(httpx.ConnectError):
            await client.verify_token(propagate_errors=True)


@pytest.mark.asyncio
async def test_verify_token_propagating_still_reports_unauthorized() -> None:
    async with _client(lambda request: httpx.Response(401)) as client:
        check = await client.verify_token(propagate_errors=True)

    assert check.valid is False
    assert check.error == "Invalid token - authentication failed."
