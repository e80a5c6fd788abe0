"""SQLAlchemy engine, session factory and declarative base"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from reviewprep.config.settings import settings

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None) -> None:
    """Create all tables registered on the declarative base."""
    # Import models so they register on Base.metadata
    from reviewprep.models import document  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
