"""Idempotent persistence of the assessment aggregate, keyed by user email."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from reviewprep.config.database import SessionLocal
from reviewprep.models.assessment import Assessment
from reviewprep.stores.documents import DocumentCollection

logger = logging.getLogger(__name__)

ASSESSMENTS_COLLECTION = "assessments"


class AssessmentStore:
    def __init__(
        self,
        collection: Optional[DocumentCollection] = None,
        *,
        session_factory: Callable[[], Any] = SessionLocal,
    ) -> None:
        self._collection = collection or DocumentCollection(session_factory, ASSESSMENTS_COLLECTION)

    def upsert(self, assessment: Assessment) -> None:
        """Replace the user's assessment in place, or insert the first one."""
        self._collection.upsert_by(assessment.to_dict(), userEmail=assessment.user_email)
        logger.info(f"Saved assessment for {assessment.user_email}")

    def load_by_user(self, user_email: str) -> Optional[Assessment]:
        """First stored assessment for the user; backend errors read as "none"."""
        try:
            results = self._collection.where(userEmail=user_email).find()
        except Exception as e:
            logger.error(f"Failed to load assessment: {e}")
            return None
        if not results:
            return None
        return Assessment.from_dict(results[0])
