from __future__ import annotations

from typing import Any, AsyncIterator

from reviewprep.models.pull_request import PullRequest


class FakeGenerator:
    """Replays scripted responses in order, split into small deltas."""

    def __init__(self, responses: list[str], chunk_size: int = 7) -> None:
        self._responses = list(responses)
        self._chunk_size = chunk_size
        self.prompts: list[str] = []
        self.temperatures: list[float] = []
        self.active = 0
        self.max_active = 0

    async def stream(self, prompt: str, *, temperature: float) -> AsyncIterator[str]:
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        text = self._responses.pop(0) if self._responses else "[]"
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            for start in range(0, len(text), self._chunk_size):
                yield text[start:start + self._chunk_size]
        finally:
            self.active -= 1


def make_pr(index: int, repo: str = "acme/web", **overrides: Any) -> PullRequest:
    fields: dict[str, Any] = {
        "title": f"PR {index}",
        "url": f"https://github.com/{repo}/pull/{index}",
        "repo": repo,
        "merged_at": f"2025-03-{index + 1:02d}T10:00:00Z",
        "body": f"Body of PR {index}",
        "additions": 10 * index,
        "deletions": index,
    }
    fields.update(overrides)
    return PullRequest(**fields)
