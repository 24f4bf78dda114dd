"""Tests for friend endpoints."""

import pytest
from fastapi.testclient import TestClient

from skillwise.childlock.service import ChildLockService
from skillwise.friends.service import FriendService


@pytest.fixture
def wired(app, mock_user_service, mock_notification_service):
    app.state.friend_service = FriendService(
        user_service=mock_user_service,
        notification_service=mock_notification_service,
    )
    app.state.child_lock_service = ChildLockService(user_service=mock_user_service)
    return app


def test_send_request_by_handle(
    client: TestClient, wired, make_user, auth_headers, mock_user_service
) -> None:
    sender = make_user(handle="sender")
    recipient = make_user(handle="recipient")
    mock_user_service.register(sender, recipient)

    response = client.post(
        "/api/friends/requests",
        json={"handle": "@recipient"},
        headers=auth_headers(sender),
    )

    assert response.status_code == 201
    assert response.json()["data"]["handle"] == "recipient"


def test_reverse_pending_is_400(
    client: TestClient, wired, make_user, auth_headers, mock_user_service
) -> None:
    sender = make_user(handle="sender")
    recipient = make_user(handle="recipient")
    sender.received_friend_requests.add(recipient.id)
    recipient.sent_friend_requests.add(sender.id)
    mock_user_service.register(sender, recipient)

    response = client.post(
        "/api/friends/requests",
        json={"handle": "recipient"},
        headers=auth_headers(sender),
    )

    assert response.status_code == 400
    assert "Accept it instead" in response.json()["message"]


def test_child_needs_child_lock_for_requests(
    client: TestClient, wired, make_child, make_user, auth_headers, mock_user_service
) -> None:
    child = make_child(handle="kid")
    friend = make_user(handle="friend")
    mock_user_service.register(child, friend)

    denied = client.post(
        "/api/friends/requests", json={"handle": "friend"}, headers=auth_headers(child)
    )
    allowed = client.post(
        "/api/friends/requests",
        json={"handle": "friend"},
        headers=auth_headers(child, **{"X-Child-Lock": "lock-1234"}),
    )

    assert denied.status_code == 401
    assert allowed.status_code == 201


def test_unknown_handle_is_404(
    client: TestClient, wired, make_user, auth_headers, mock_user_service
) -> None:
    sender = make_user(handle="sender")
    mock_user_service.register(sender)

    response = client.post(
        "/api/friends/requests",
        json={"handle": "ghost_user"},
        headers=auth_headers(sender),
    )

    assert response.status_code == 404
