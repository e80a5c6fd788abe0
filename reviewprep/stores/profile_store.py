"""User profiles: level, GitHub identity, encrypted token and review period."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from reviewprep.config.database import SessionLocal
from reviewprep.stores.documents import DocumentCollection

USERS_COLLECTION = "users"


@dataclass(slots=True)
class UserProfile:
    email: str
    level: str
    github_username: str
    encrypted_token: str
    period_start: str
    period_end: str
    full_name: str = ""
    title: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "fullName": self.full_name,
            "title": self.title,
            "level": self.level,
            "githubUsername": self.github_username,
            "githubToken": self.encrypted_token,
            "periodStart": self.period_start,
            "periodEnd": self.period_end,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "UserProfile":
        return cls(
            email=str(payload.get("email") or ""),
            full_name=str(payload.get("fullName") or ""),
            title=str(payload.get("title") or ""),
            level=str(payload.get("level") or ""),
            github_username=str(payload.get("githubUsername") or ""),
            encrypted_token=str(payload.get("githubToken") or ""),
            period_start=str(payload.get("periodStart") or ""),
            period_end=str(payload.get("periodEnd") or ""),
        )


class ProfileStore:
    def __init__(
        self,
        collection: Optional[DocumentCollection] = None,
        *,
        session_factory: Callable[[], Any] = SessionLocal,
    ) -> None:
        self._collection = collection or DocumentCollection(session_factory, USERS_COLLECTION)

    def save(self, profile: UserProfile) -> None:
        self._collection.upsert_by(profile.to_dict(), email=profile.email)

    def load(self, email: str) -> Optional[UserProfile]:
        results = self._collection.where(email=email).find()
        return UserProfile.from_dict(results[0]) if results else None
