"""Reputation history endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from quorum.api.v1.dependencies import CurrentUserDep, SessionDep
from quorum.schemas import ReputationEntryResponse, ReputationHistoryResponse
from quorum.services import ReputationLedger

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/reputation", response_model=ReputationHistoryResponse)
async def get_my_reputation(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(50, ge=1, le=200),
) -> ReputationHistoryResponse:
    """Return the caller's reputation and most recent ledger entries."""
    ledger = ReputationLedger(db)
    entries = ledger.history(current_user.id, limit=limit)
    return ReputationHistoryResponse(
        user_id=current_user.id,
        reputation=ledger.current_reputation(current_user.id),
        entries=[ReputationEntryResponse.model_validate(entry) for entry in entries],
    )
