"""Engine, session factory and declarative base for the moderation store."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from quorum.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Register every model on Base.metadata before create_all or Alembic reads it.
import quorum.models  # noqa: E402,F401


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True, "echo": settings.sql_debug}
    if url.startswith("sqlite"):
        # FastAPI runs sync endpoints and dependencies on worker threads.
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(
    settings.effective_database_url,
    **_engine_options(settings.effective_database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session; services own commit and rollback."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create every moderation table that does not exist yet."""
    Base.metadata.create_all(bind=engine)
