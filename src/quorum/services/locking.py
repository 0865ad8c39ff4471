"""Transaction and row-lock discipline for decision instances.

Every vote-then-maybe-resolve sequence runs inside :func:`atomic` and takes an
exclusive lock on the decision-instance row before reading any tally, so two
voters crossing a threshold at once cannot both apply the resolution.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from quorum.core.errors import NotFoundError, TransientStoreError
from quorum.core.settings import settings
from quorum.db.session import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit on success; roll back and re-raise on any failure.

    Store-level failures (lock timeouts, deadlocks, uniqueness races, lost
    connections) surface as :class:`TransientStoreError`.
    """
    try:
        _apply_lock_timeout(db)
        yield db
        db.commit()
    except (IntegrityError, OperationalError, DBAPIError) as exc:
        db.rollback()
        logger.warning("Moderation transaction rolled back on store error: %s", exc)
        raise TransientStoreError() from exc
    except BaseException:
        db.rollback()
        raise


def lock_row(db: Session, model: type[ModelT], pk: int, *, missing: str) -> ModelT:
    """Return ``model`` row ``pk`` locked ``FOR UPDATE``.

    Raises:
        NotFoundError: With message ``missing`` if the row does not exist.
    """
    row = db.scalar(
        select(model)
        .where(model.__mapper__.primary_key[0] == pk)  # type: ignore[attr-defined]
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if row is None:
        raise NotFoundError(missing)
    return row


def _apply_lock_timeout(db: Session) -> None:
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL lock_timeout = {int(settings.lock_timeout_ms)}"))
