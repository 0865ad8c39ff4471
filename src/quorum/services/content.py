"""Content and review-type variants with their per-variant behavior."""

from __future__ import annotations

import enum

from sqlalchemy.orm import Session

from quorum.core.errors import InvalidRequestError, NotFoundError
from quorum.db.session import Base
from quorum.models import Answer, Comment, Question


class ContentType(str, enum.Enum):
    """Kinds of content that can be flagged for review."""

    QUESTION = "question"
    ANSWER = "answer"
    COMMENT = "comment"

    @property
    def model(self) -> type[Base]:
        """Return the ORM class storing this kind of content."""
        return _CONTENT_MODELS[self]

    @classmethod
    def parse(cls, value: str) -> ContentType:
        """Return the member for ``value`` or raise ``InvalidRequestError``."""
        try:
            return cls(value)
        except ValueError as err:
            raise InvalidRequestError("Invalid content type") from err


_CONTENT_MODELS: dict[ContentType, type[Base]] = {
    ContentType.QUESTION: Question,
    ContentType.ANSWER: Answer,
    ContentType.COMMENT: Comment,
}


class ReviewType(str, enum.Enum):
    """Review categories, each with its own two-word vote vocabulary."""

    SPAM_SCAM = "spam_scam"
    OUTDATED = "outdated"

    @property
    def hide_vote(self) -> str:
        """Vote value meaning "act on the flag"; also the flagger's own vote."""
        return "hide" if self is ReviewType.SPAM_SCAM else "outdated"

    @property
    def keep_vote(self) -> str:
        """Vote value meaning "leave the content as it is"."""
        return "keep" if self is ReviewType.SPAM_SCAM else "current"

    @property
    def vocabulary(self) -> tuple[str, str]:
        return (self.hide_vote, self.keep_vote)

    @property
    def flag_type(self) -> str:
        """ContentFlag type applied when a review of this type is approved."""
        return "hidden_spam" if self is ReviewType.SPAM_SCAM else "outdated"

    @classmethod
    def parse(cls, value: str) -> ReviewType:
        """Return the member for ``value`` or raise ``InvalidRequestError``."""
        try:
            return cls(value)
        except ValueError as err:
            raise InvalidRequestError("Invalid review type") from err

    def validate_vote(self, vote: str) -> str:
        """Return ``vote`` if it belongs to this type's vocabulary."""
        if vote not in self.vocabulary:
            hide, keep = self.vocabulary
            raise InvalidRequestError(
                f'Invalid vote for {self.value} review. Use "{hide}" or "{keep}".'
            )
        return vote


def load_content(db: Session, content_type: ContentType, content_id: int) -> Question | Answer | Comment:
    """Return the content row or raise ``NotFoundError``."""
    content = db.get(content_type.model, content_id)
    if content is None:
        raise NotFoundError("Content not found")
    return content  # type: ignore[return-value]


def content_owner_id(db: Session, content_type: ContentType, content_id: int) -> int:
    """Return the id of the user who authored the content."""
    return load_content(db, content_type, content_id).user_id


def content_preview(content: Question | Answer | Comment, length: int = 200) -> str:
    """Return a short text excerpt for queue listings."""
    if isinstance(content, Question):
        return content.title
    if isinstance(content, Answer):
        return content.body[:length]
    return content.text
