"""Document-store capability: named collections of JSON documents over SQLAlchemy.

Writes are find-then-create/update with no transaction spanning the two
calls, so two concurrent writers for the same key can still race.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable

from sqlalchemy import select

from reviewprep.models.document import Document

logger = logging.getLogger(__name__)


def _as_dict(row: Document) -> dict[str, Any]:
    payload = copy.deepcopy(row.payload) if isinstance(row.payload, dict) else {}
    payload["id"] = row.id
    return payload


def _strip_id(doc: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in doc.items() if key != "id"}


class DocumentQuery:
    """Equality filter over top-level document fields."""

    def __init__(self, collection: "DocumentCollection", filters: dict[str, Any]) -> None:
        self._collection = collection
        self._filters = filters

    def find(self) -> list[dict[str, Any]]:
        statement = select(Document).where(Document.collection == self._collection.name)
        for field, value in self._filters.items():
            statement = statement.where(Document.payload[field].as_string() == str(value))
        statement = statement.order_by(Document.id)

        db = self._collection.session_factory()
        try:
            return [_as_dict(row) for row in db.execute(statement).scalars().all()]
        finally:
            db.close()


class DocumentCollection:
    def __init__(self, session_factory: Callable[[], Any], name: str) -> None:
        self.session_factory = session_factory
        self.name = name

    def where(self, **filters: Any) -> DocumentQuery:
        return DocumentQuery(self, filters)

    def create(self, doc: dict[str, Any]) -> dict[str, Any]:
        db = self.session_factory()
        try:
            row = Document(collection=self.name, payload=_strip_id(doc))
            db.add(row)
            db.commit()
            db.refresh(row)
            return _as_dict(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def update(self, doc_id: int, doc: dict[str, Any]) -> dict[str, Any]:
        """Replace the whole document; there are no partial updates."""
        db = self.session_factory()
        try:
            row = db.get(Document, doc_id)
            if row is None or row.collection != self.name:
                raise KeyError(f"No document {doc_id} in collection {self.name}")
            row.payload = _strip_id(doc)
            db.commit()
            db.refresh(row)
            return _as_dict(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def upsert_by(self, doc: dict[str, Any], **filters: Any) -> dict[str, Any]:
        """Replace the first document matching `filters`, or create one."""
        existing = self.where(**filters).find()
        if existing:
            return self.update(existing[0]["id"], doc)
        return self.create(doc)
