"""Retagging questions by their owner or a silver/gold tag badge holder."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from quorum.core.errors import InvalidRequestError, NotFoundError
from quorum.models import Question, QuestionTag, Tag, TagRevision, User
from quorum.services.badges import BadgeRegistry, SqlBadgeRegistry
from quorum.services.locking import atomic, lock_row
from quorum.services.privilege import ModerationAction, PrivilegeContext, PrivilegeGate

logger = logging.getLogger(__name__)

DEFAULT_RETAG_REASON = "Retagged by tag badge holder"


@dataclass(frozen=True)
class RetagOutcome:
    question_id: int
    tags: tuple[str, ...]
    revision_id: int


class RetagService:
    """Replaces a question's tags and records the revision."""

    def __init__(self, db: Session, *, badges: BadgeRegistry | None = None) -> None:
        self.db = db
        self.gate = PrivilegeGate(badges or SqlBadgeRegistry(db))

    def retag_question(
        self,
        question_id: int,
        actor_id: int,
        tags: Sequence[str],
        reason: str | None = None,
    ) -> RetagOutcome:
        """Replace the tags on ``question_id``.

        Non-owners need an active silver or gold badge on one of the requested
        tags that already exists. Unknown tag names are created.
        """
        names = _normalize(tags)
        if not names:
            raise InvalidRequestError("Tags are required")

        with atomic(self.db):
            question = lock_row(self.db, Question, question_id, missing="Question not found")
            actor = self.db.get(User, actor_id)
            if actor is None:
                raise NotFoundError("User not found")

            existing = {
                tag.name: tag
                for tag in self.db.scalars(select(Tag).where(Tag.name.in_(names)))
            }
            self.gate.require(
                actor,
                ModerationAction.RETAG,
                PrivilegeContext(
                    owner_id=question.user_id,
                    tag_ids=tuple(tag.id for tag in existing.values()),
                    subject="question",
                ),
            )

            before = ",".join(self._tag_names(question))
            tag_ids: list[int] = []
            for name in names:
                tag = existing.get(name)
                if tag is None:
                    tag = Tag(name=name)
                    self.db.add(tag)
                    self.db.flush()
                    existing[name] = tag
                tag_ids.append(tag.id)

            wanted = set(tag_ids)
            current = set(question.tag_ids)
            question.tag_links[:] = [link for link in question.tag_links if link.tag_id in wanted]
            for tag_id in tag_ids:
                if tag_id not in current:
                    question.tag_links.append(QuestionTag(question_id=question.id, tag_id=tag_id))

            revision = TagRevision(
                question_id=question.id,
                user_id=actor.id,
                tags_before=before,
                tags_after=",".join(names),
                edit_reason=reason or DEFAULT_RETAG_REASON,
            )
            self.db.add(revision)
            self.db.flush()
            revision_id = revision.id

        logger.info("Question %s retagged by user %s: %s", question_id, actor_id, names)
        return RetagOutcome(question_id, tuple(names), revision_id)

    def _tag_names(self, question: Question) -> list[str]:
        if not question.tag_ids:
            return []
        return list(
            self.db.scalars(
                select(Tag.name).where(Tag.id.in_(question.tag_ids)).order_by(Tag.name)
            )
        )


def _normalize(tags: Sequence[str]) -> list[str]:
    names: list[str] = []
    for raw in tags:
        name = raw.strip()
        if name and name not in names:
            names.append(name)
    return names
