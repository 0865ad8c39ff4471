"""Question closure, reopen and retag endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from quorum.api.v1.dependencies import CurrentUserDep, SessionDep
from quorum.core.errors import NotFoundError
from quorum.models import Question
from quorum.schemas import (
    CloseReasonResponse,
    CloseStatusResponse,
    CloseVoteCountResponse,
    CloseVoteCreate,
    CloseVoteResponse,
    HammerCreate,
    HammerResponse,
    ReopenStatusResponse,
    ReopenVoteCreate,
    ReopenVoteResponse,
    RetagRequest,
    RetagResponse,
)
from quorum.services import ClosureService, ReopenService, RetagService

router = APIRouter(prefix="/questions", tags=["questions"])


@router.get("/close-reasons", response_model=list[CloseReasonResponse])
async def list_close_reasons(db: SessionDep) -> list[CloseReasonResponse]:
    """List the active close reasons."""
    reasons = ClosureService(db).close_reasons()
    return [CloseReasonResponse.model_validate(reason) for reason in reasons]


@router.get("/{question_id}/close", response_model=CloseStatusResponse)
async def get_close_votes(question_id: int, db: SessionDep) -> CloseStatusResponse:
    """Return active close votes per reason for a question."""
    service = ClosureService(db)
    counts = service.close_vote_counts(question_id)
    question = db.get(Question, question_id)
    if question is None:
        raise NotFoundError("Question not found")
    return CloseStatusResponse(
        question_id=question.id,
        is_closed=question.is_closed,
        close_reason_code=question.close_reason_code,
        closed_at=question.closed_at,
        votes=[CloseVoteCountResponse.model_validate(count) for count in counts],
        reasons=[CloseReasonResponse.model_validate(r) for r in service.close_reasons()],
    )


@router.post("/{question_id}/close", response_model=CloseVoteResponse)
async def cast_close_vote(
    question_id: int,
    payload: CloseVoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CloseVoteResponse:
    """Vote to close a question for one reason."""
    outcome = ClosureService(db).cast_close_vote(
        question_id,
        current_user.id,
        payload.reason_code,
        details=payload.details,
        duplicate_of=payload.duplicate_of,
    )
    return CloseVoteResponse.model_validate(outcome)


@router.post("/{question_id}/hammer", response_model=HammerResponse)
async def hammer_close(
    question_id: int,
    payload: HammerCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> HammerResponse:
    """Close a question immediately using a gold tag badge."""
    outcome = ClosureService(db).hammer_close(
        question_id,
        current_user.id,
        payload.action,
        duplicate_target_id=payload.duplicate_of,
        reason=payload.reason,
    )
    return HammerResponse.model_validate(outcome)


@router.get("/{question_id}/reopen", response_model=ReopenStatusResponse)
async def get_reopen_status(
    question_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ReopenStatusResponse:
    """Return reopen progress and whether the caller has voted."""
    status = ReopenService(db).reopen_status(question_id, current_user.id)
    return ReopenStatusResponse.model_validate(status)


@router.post("/{question_id}/reopen", response_model=ReopenVoteResponse)
async def cast_reopen_vote(
    question_id: int,
    payload: ReopenVoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ReopenVoteResponse:
    """Vote to reopen a closed question."""
    outcome = ReopenService(db).cast_reopen_vote(question_id, current_user.id, payload.reason)
    return ReopenVoteResponse.model_validate(outcome)


@router.put("/{question_id}/retag", response_model=RetagResponse)
async def retag_question(
    question_id: int,
    payload: RetagRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> RetagResponse:
    """Replace a question's tags."""
    outcome = RetagService(db).retag_question(
        question_id, current_user.id, payload.tags, payload.reason
    )
    return RetagResponse.model_validate(outcome)
