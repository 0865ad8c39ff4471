# tests/services/test_retag.py
"""Tests for retagging by owners and tag badge holders."""

import pytest
from sqlalchemy import select

from quorum.core.errors import InsufficientBadgeError, InvalidRequestError, NotFoundError
from quorum.models import BadgeTier, Question, Tag, TagRevision
from quorum.services.retag import RetagService


def _tag_names(db_session, question_id: int) -> list[str]:
    question = db_session.get(Question, question_id)
    db_session.refresh(question)
    return sorted(
        db_session.scalars(select(Tag.name).where(Tag.id.in_(question.tag_ids))).all()
    )


def test_owner_retags_and_creates_missing_tags(db_session, make_user, make_tag, make_question) -> None:
    owner = make_user(reputation=1)
    question = make_question(owner, tags=[make_tag("python")])

    outcome = RetagService(db_session).retag_question(
        question.id, owner.id, [" python ", "dateutil", "python"]
    )

    assert outcome.tags == ("python", "dateutil")
    assert _tag_names(db_session, question.id) == ["dateutil", "python"]
    revision = db_session.get(TagRevision, outcome.revision_id)
    assert revision.tags_before == "python"
    assert revision.tags_after == "python,dateutil"
    assert revision.edit_reason == "Retagged by tag badge holder"


def test_silver_badge_holder_may_retag(
    db_session, make_user, make_tag, make_question, grant_badge
) -> None:
    python = make_tag("python")
    question = make_question(make_user(), tags=[make_tag("java")])
    editor = make_user(reputation=1)
    grant_badge(editor, python, BadgeTier.SILVER)

    outcome = RetagService(db_session).retag_question(
        question.id, editor.id, ["python"], reason="Wrong language"
    )

    assert _tag_names(db_session, question.id) == ["python"]
    assert db_session.get(TagRevision, outcome.revision_id).edit_reason == "Wrong language"


@pytest.mark.parametrize("tier", [BadgeTier.BRONZE, None])
def test_retag_without_silver_badge_is_denied(
    db_session, make_user, make_tag, make_question, grant_badge, tier
) -> None:
    python = make_tag("python")
    question = make_question(make_user(), tags=[python])
    editor = make_user(reputation=100_000)
    if tier is not None:
        grant_badge(editor, python, tier)

    with pytest.raises(InsufficientBadgeError):
        RetagService(db_session).retag_question(question.id, editor.id, ["python", "regex"])

    assert _tag_names(db_session, question.id) == ["python"]
    assert db_session.scalars(select(TagRevision)).all() == []
    assert db_session.scalar(select(Tag).where(Tag.name == "regex")) is None


def test_retag_requires_tags(db_session, make_user, make_question) -> None:
    owner = make_user()
    question = make_question(owner)

    with pytest.raises(InvalidRequestError, match="Tags are required"):
        RetagService(db_session).retag_question(question.id, owner.id, ["  ", ""])


def test_retag_missing_question(db_session, make_user) -> None:
    with pytest.raises(NotFoundError):
        RetagService(db_session).retag_question(404, make_user().id, ["python"])
