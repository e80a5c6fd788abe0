"""Generic JSON document row backing every document-store collection."""

from datetime import datetime

from sqlalchemy import JSON, BigInteger, Column, DateTime, Index, Integer, String

from reviewprep.config.database import Base


class Document(Base):
    """Schemaless document mapped to the `documents` table."""

    __tablename__ = "documents"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    collection = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_documents_collection", "collection"),
    )

    def __repr__(self):
        return f"<Document {self.collection}:{self.id}>"
