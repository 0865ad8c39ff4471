# tests/v1/test_review_api.py
"""Tests for review queue endpoints."""

from email.utils import parsedate_to_datetime

from fastapi import status

from quorum.services.review import ReviewQueueService


def _flag(client, headers, comment_id: int):
    return client.post(
        "/api/v1/review/flag",
        json={"content_type": "comment", "content_id": comment_id, "review_type": "spam_scam"},
        headers=headers,
    )


def test_flag_and_vote(client, make_user, make_question, make_comment, auth_headers) -> None:
    comment = make_comment(make_question(make_user()), make_user())

    flagged = _flag(client, auth_headers(make_user()), comment.id)
    assert flagged.status_code == status.HTTP_200_OK
    item = flagged.json()
    assert item["status"] == "pending"
    assert item["hide_votes"] == 1

    voted = client.post(
        "/api/v1/review/vote",
        json={"review_queue_id": item["review_queue_id"], "vote": "keep"},
        headers=auth_headers(make_user()),
    )
    assert voted.status_code == status.HTTP_200_OK
    assert voted.json()["keep_votes"] == 1
    assert voted.json()["vote_recorded"] is True


def test_flag_rejects_unknown_review_type(client, make_user, auth_headers) -> None:
    response = client.post(
        "/api/v1/review/flag",
        json={"content_type": "comment", "content_id": 1, "review_type": "rudeness"},
        headers=auth_headers(make_user()),
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_invalid_vote_value(client, make_user, make_question, make_comment, auth_headers) -> None:
    comment = make_comment(make_question(make_user()), make_user())
    item_id = _flag(client, auth_headers(make_user()), comment.id).json()["review_queue_id"]

    response = client.post(
        "/api/v1/review/vote",
        json={"review_queue_id": item_id, "vote": "current"},
        headers=auth_headers(make_user()),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "invalid_request"


def test_rate_limited_vote_returns_retry_after(
    client, db_session, make_user, make_question, make_comment, auth_headers
) -> None:
    question = make_question(make_user())
    flagger, reviewer = make_user(), make_user()
    service = ReviewQueueService(db_session)
    items = [
        service.flag("comment", make_comment(question, make_user()).id, "spam_scam", flagger.id)
        for _ in range(21)
    ]
    for item in items[:20]:
        service.vote(item.review_queue_id, reviewer.id, "keep")

    response = client.post(
        "/api/v1/review/vote",
        json={"review_queue_id": items[20].review_queue_id, "vote": "keep"},
        headers=auth_headers(reviewer),
    )

    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    body = response.json()
    assert body["code"] == "denied_rate_limited"
    assert body["limit"] == 20
    retry_at = parsedate_to_datetime(response.headers["Retry-After"])
    assert (retry_at.hour, retry_at.minute) == (0, 0)


def test_queue_requires_reputation(client, make_user, auth_headers) -> None:
    response = client.get(
        "/api/v1/review/queue",
        params={"review_type": "spam_scam"},
        headers=auth_headers(make_user(reputation=50)),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["required_reputation"] == 100


def test_queue_lists_pending_items(
    client, make_user, make_question, make_comment, auth_headers
) -> None:
    comment = make_comment(make_question(make_user()), make_user())
    _flag(client, auth_headers(make_user()), comment.id)

    response = client.get("/api/v1/review/queue", headers=auth_headers(make_user()))

    assert response.status_code == status.HTTP_200_OK
    page = response.json()
    assert page["review_type"] == "spam_scam"
    assert page["total"] == 1
    assert page["items"][0]["content_id"] == comment.id
    assert page["items"][0]["user_vote"] is None
    assert page["usage"]["remaining"] == 20


def test_stats(client, make_user, auth_headers) -> None:
    response = client.get("/api/v1/review/stats", headers=auth_headers(make_user(reputation=150)))

    assert response.status_code == status.HTTP_200_OK
    queues = {queue["review_type"]: queue for queue in response.json()["queues"]}
    assert queues["spam_scam"]["can_access"] is True
    assert queues["outdated"]["can_access"] is False


def test_content_flags_after_approval(
    client, make_user, make_question, make_comment, set_review_threshold, auth_headers
) -> None:
    set_review_threshold("spam_scam", votes_needed=1)
    comment = make_comment(make_question(make_user()), make_user())
    flagged = _flag(client, auth_headers(make_user()), comment.id)
    assert flagged.json()["status"] == "approved"

    response = client.get(f"/api/v1/review/flags/comment/{comment.id}")

    assert response.status_code == status.HTTP_200_OK
    flags = response.json()
    assert [flag["flag_type"] for flag in flags] == ["hidden_spam"]
