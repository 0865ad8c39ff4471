# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator, Sequence
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-quorum")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from quorum.core.security import create_access_token  # noqa: E402
from quorum.db.session import Base  # noqa: E402
from quorum.db.session import get_db as app_get_session  # noqa: E402
from quorum.main import app as fastapi_app  # noqa: E402
from quorum.models import (  # noqa: E402
    Answer,
    BadgeTier,
    ClosureConfigEntry,
    Comment,
    Question,
    QuestionTag,
    ReviewThreshold,
    Tag,
    User,
    UserTagBadge,
)
from quorum.services.config import seed_defaults  # noqa: E402
from quorum.services.notifications import Notification  # noqa: E402

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    """A session on a fresh in-memory database with default config seeded.

    Services commit and roll back for real, so each test gets its own engine.
    """
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    seed_defaults(session)
    session.commit()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


class RecordingDispatcher:
    """Notification dispatcher that keeps what it was sent."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    def dispatch(self, notification: Notification) -> None:
        self.sent.append(notification)


@pytest.fixture()
def notifier() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory creating committed users."""

    def _make(reputation: int = 1000, username: str | None = None) -> User:
        user = User(
            username=username or f"user{next(_USER_COUNTER)}",
            reputation=reputation,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def make_tag(db_session: Session) -> Callable[[str], Tag]:
    def _make(name: str) -> Tag:
        tag = db_session.scalar(select(Tag).where(Tag.name == name))
        if tag is None:
            tag = Tag(name=name)
            db_session.add(tag)
            db_session.commit()
        return tag

    return _make


@pytest.fixture()
def make_question(db_session: Session) -> Callable[..., Question]:
    """Return a factory creating committed questions with optional tags."""

    def _make(owner: User, tags: Sequence[Tag] = (), score: int = 0) -> Question:
        question = Question(user_id=owner.id, title="How do I parse dates?", body="...", score=score)
        question.tag_links = [QuestionTag(tag_id=tag.id) for tag in tags]
        db_session.add(question)
        db_session.commit()
        return question

    return _make


@pytest.fixture()
def make_answer(db_session: Session) -> Callable[[Question, User], Answer]:
    def _make(question: Question, owner: User) -> Answer:
        answer = Answer(question_id=question.id, user_id=owner.id, body="Use dateutil.")
        db_session.add(answer)
        db_session.commit()
        return answer

    return _make


@pytest.fixture()
def make_comment(db_session: Session) -> Callable[[Question, User], Comment]:
    def _make(question: Question, owner: User) -> Comment:
        comment = Comment(question_id=question.id, user_id=owner.id, text="Buy cheap pills here")
        db_session.add(comment)
        db_session.commit()
        return comment

    return _make


@pytest.fixture()
def grant_badge(db_session: Session) -> Callable[..., UserTagBadge]:
    def _grant(user: User, tag: Tag, tier: BadgeTier, is_active: bool = True) -> UserTagBadge:
        badge = UserTagBadge(user_id=user.id, tag_id=tag.id, badge_tier=tier, is_active=is_active)
        db_session.add(badge)
        db_session.commit()
        return badge

    return _grant


@pytest.fixture()
def set_closure_config(db_session: Session) -> Callable[..., None]:
    """Override closure_config rows, e.g. ``set_closure_config(close_votes_needed=3)``."""

    def _set(**values: int | bool) -> None:
        for key, value in values.items():
            row = db_session.get(ClosureConfigEntry, key)
            text = str(value).lower() if isinstance(value, bool) else str(value)
            if row is None:
                db_session.add(ClosureConfigEntry(config_key=key, config_value=text))
            else:
                row.config_value = text
        db_session.commit()

    return _set


@pytest.fixture()
def set_review_threshold(db_session: Session) -> Callable[..., None]:
    def _set(review_type: str, *, min_reputation: int | None = None, votes_needed: int | None = None) -> None:
        row = db_session.get(ReviewThreshold, review_type)
        assert row is not None
        if min_reputation is not None:
            row.min_reputation = min_reputation
        if votes_needed is not None:
            row.votes_needed = votes_needed
        db_session.commit()

    return _set


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Return a helper building authorization headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
