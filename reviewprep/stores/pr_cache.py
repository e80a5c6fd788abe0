"""Cached PR snapshots: a fast local copy plus a fire-and-forget durable copy."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from reviewprep.config.settings import settings
from reviewprep.models.pull_request import PullRequest
from reviewprep.stores.documents import DocumentCollection
from reviewprep.stores.local_cache import KeyValueStore

logger = logging.getLogger(__name__)

PR_DATA_COLLECTION = "pr_data"
HOUR_MS = 60 * 60 * 1000


def cache_key(user_email: str) -> str:
    return f"pr_data_{user_email}"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class CachedPRSnapshot:
    prs: list[PullRequest]
    fetched_at: int
    start: str
    end: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "prs": [pr.to_dict() for pr in self.prs],
            "fetchedAt": self.fetched_at,
            "dateRange": {"start": self.start, "end": self.end},
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "CachedPRSnapshot":
        date_range = payload.get("dateRange") if isinstance(payload.get("dateRange"), dict) else {}
        prs = payload.get("prs") if isinstance(payload.get("prs"), list) else []
        return cls(
            prs=[PullRequest.from_dict(pr) for pr in prs if isinstance(pr, dict)],
            fetched_at=int(payload["fetchedAt"]),
            start=str(date_range.get("start") or ""),
            end=str(date_range.get("end") or ""),
        )

    def is_fresh(self, period_start: str, period_end: str, *, now_ms: int, ttl_ms: int) -> bool:
        """Fresh within the TTL and for exactly the requested period (string equality)."""
        if now_ms - self.fetched_at > ttl_ms:
            return False
        return self.start == period_start and self.end == period_end


class PRSnapshotCache:
    """Local cache is authoritative for validity; the durable write never blocks or fails it."""

    def __init__(
        self,
        local_store: KeyValueStore,
        durable: Optional[DocumentCollection] = None,
        *,
        ttl_hours: Optional[float] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._local = local_store
        self._durable = durable
        self._ttl_ms = int((ttl_hours if ttl_hours is not None else settings.PR_CACHE_TTL_HOURS) * HOUR_MS)
        self._clock = clock
        self._pending: set[asyncio.Task] = set()

    def get_fresh(self, user_email: str, period_start: str, period_end: str) -> Optional[CachedPRSnapshot]:
        raw = self._local.get(cache_key(user_email))
        if not raw:
            return None
        try:
            snapshot = CachedPRSnapshot.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable PR cache entry for {user_email}: {e}")
            return None

        if not snapshot.is_fresh(period_start, period_end, now_ms=self._clock(), ttl_ms=self._ttl_ms):
            return None
        return snapshot

    def save(
        self,
        user_email: str,
        prs: Sequence[PullRequest],
        period_start: str,
        period_end: str,
    ) -> CachedPRSnapshot:
        """Write the local cache now and schedule the durable copy in the background.

        Must be called from a running event loop when a durable collection is configured.
        """
        snapshot = CachedPRSnapshot(prs=list(prs), fetched_at=self._clock(), start=period_start, end=period_end)
        self.save_local(user_email, snapshot)

        if self._durable is not None:
            doc = {"userEmail": user_email, **snapshot.to_dict()}
            task = asyncio.get_running_loop().create_task(self._write_durable(user_email, doc))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        return snapshot

    def save_local(self, user_email: str, snapshot: CachedPRSnapshot) -> None:
        """Write an existing snapshot to the local cache as-is, keeping its `fetched_at`."""
        self._local.set(cache_key(user_email), json.dumps(snapshot.to_dict()))

    async def load_durable(self, user_email: str) -> Optional[CachedPRSnapshot]:
        """Cross-device copy, or None when missing, unreadable or unavailable."""
        if self._durable is None:
            return None
        try:
            results = await asyncio.to_thread(self._durable.where(userEmail=user_email).find)
            if not results:
                return None
            return CachedPRSnapshot.from_dict(results[0])
        except Exception as e:
            logger.warning(f"Failed to load durable PR snapshot for {user_email}: {e}")
            return None

    def is_fresh(self, snapshot: CachedPRSnapshot, period_start: str, period_end: str) -> bool:
        return snapshot.is_fresh(period_start, period_end, now_ms=self._clock(), ttl_ms=self._ttl_ms)

    async def drain(self) -> None:
        """Wait for scheduled durable writes (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _write_durable(self, user_email: str, doc: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._durable.upsert_by, doc, userEmail=user_email)
        except Exception as e:
            logger.error(f"Failed to persist PR data for {user_email}: {e}")
