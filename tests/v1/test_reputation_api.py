# tests/v1/test_reputation_api.py
"""Tests for the reputation history endpoint."""

from fastapi import status

from quorum.services.closure import ClosureService


def test_history_lists_close_rewards(
    client, db_session, make_user, make_question, set_closure_config, auth_headers
) -> None:
    set_closure_config(close_votes_needed=1)
    voter = make_user(reputation=600)
    ClosureService(db_session).cast_close_vote(make_question(make_user()).id, voter.id, "unclear")

    response = client.get("/api/v1/users/me/reputation", headers=auth_headers(voter))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["user_id"] == voter.id
    assert data["reputation"] == 602
    assert [(e["points"], e["reason"]) for e in data["entries"]] == [
        (2, "Close vote accepted")
    ]


def test_history_limit_is_validated(client, make_user, auth_headers) -> None:
    response = client.get(
        "/api/v1/users/me/reputation", params={"limit": 0}, headers=auth_headers(make_user())
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
