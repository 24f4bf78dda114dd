"""Tests for Childlock endpoints."""

import pytest
from fastapi.testclient import TestClient

from skillwise.childlock.service import ChildLockService


@pytest.fixture(autouse=True)
def child_lock_service(app, mock_user_service):
    app.state.child_lock_service = ChildLockService(user_service=mock_user_service)


def test_convert_under_25_is_403(
    client: TestClient, make_user, auth_headers, mock_user_service
) -> None:
    user = make_user(age=20)
    mock_user_service.register(user)

    response = client.post(
        "/api/childlock/convert",
        json={"childLockPassword": "secret-lock", "phone": "5551234567"},
        headers=auth_headers(user),
    )

    assert response.status_code == 403


def test_convert(client: TestClient, make_user, auth_headers, mock_user_service) -> None:
    user = make_user(age=40)
    mock_user_service.register(user)

    response = client.post(
        "/api/childlock/convert",
        json={"childLockPassword": "secret-lock", "phone": "5551234567"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["role"] == "Child"
    assert data["hasChildLock"] is True


def test_verify_wrong_password_is_401(
    client: TestClient, make_child, auth_headers, mock_user_service
) -> None:
    child = make_child()
    mock_user_service.register(child)

    response = client.post(
        "/api/childlock/verify",
        json={"childLockPassword": "wrong-one"},
        headers=auth_headers(child),
    )

    assert response.status_code == 401


def test_verify_non_child_is_403(
    client: TestClient, make_user, auth_headers, mock_user_service
) -> None:
    user = make_user()
    mock_user_service.register(user)

    response = client.post(
        "/api/childlock/verify",
        json={"childLockPassword": "lock-1234"},
        headers=auth_headers(user),
    )

    assert response.status_code == 403


def test_update(client: TestClient, make_child, auth_headers, mock_user_service) -> None:
    child = make_child()
    mock_user_service.register(child)

    response = client.put(
        "/api/childlock",
        json={"currentPassword": "lock-1234", "newPassword": "brand-new-lock"},
        headers=auth_headers(child),
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
