"""Pull request record produced by search + enrichment or manual entry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class PullRequest:
    """One merged pull request. The canonical `url` is its identity."""

    title: str
    url: str
    repo: str
    merged_at: Optional[str]
    body: str = ""
    additions: int = 0
    deletions: int = 0
    manual_entry: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "title": self.title,
            "url": self.url,
            "repo": self.repo,
            "mergedAt": self.merged_at,
            "body": self.body,
            "additions": self.additions,
            "deletions": self.deletions,
        }
        if self.manual_entry:
            payload["manualEntry"] = True
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PullRequest":
        merged_at = payload.get("mergedAt")
        return cls(
            title=str(payload.get("title") or ""),
            url=str(payload.get("url") or ""),
            repo=str(payload.get("repo") or "unknown"),
            merged_at=str(merged_at) if merged_at else None,
            body=str(payload.get("body") or ""),
            additions=_non_negative_int(payload.get("additions")),
            deletions=_non_negative_int(payload.get("deletions")),
            manual_entry=bool(payload.get("manualEntry") or False),
        )


def _non_negative_int(raw: Any) -> int:
    try:
        value = int(raw or 0)
    except (TypeError, ValueError):
        return 0
    return max(value, 0)
