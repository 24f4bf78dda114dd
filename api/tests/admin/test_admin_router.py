"""Tests for admin endpoints."""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from skillwise.admin.service import AdminService
from skillwise.auth.permissions import UserRole
from skillwise.learning.service import LearningService


@pytest.fixture(autouse=True)
def admin_service(app, mock_user_service, mock_course_service, mock_notification_service):
    learning = Mock(spec=LearningService)
    learning.count_enrollments = AsyncMock(return_value=2)
    app.state.admin_service = AdminService(
        user_service=mock_user_service,
        course_service=mock_course_service,
        learning_service=learning,
        notification_service=mock_notification_service,
    )


@pytest.fixture
def admin(make_user, mock_user_service):
    user = make_user(UserRole.ADMIN)
    mock_user_service.register(user)
    return user


def test_invalid_role_is_400(
    client: TestClient, admin, make_user, auth_headers, mock_user_service
) -> None:
    target = make_user()
    mock_user_service.register(target)

    response = client.put(
        f"/api/admin/users/{target.id}/role",
        json={"role": "Parent"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400


def test_own_role_is_400(client: TestClient, admin, auth_headers) -> None:
    response = client.put(
        f"/api/admin/users/{admin.id}/role",
        json={"role": "Student"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400


def test_role_update(
    client: TestClient, admin, make_user, auth_headers, mock_user_service
) -> None:
    target = make_user()
    mock_user_service.register(target)

    response = client.put(
        f"/api/admin/users/{target.id}/role",
        json={"role": "Teacher"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["data"]["role"] == "Teacher"


def test_unblocking_under_13_is_403(
    client: TestClient, admin, make_user, auth_headers, mock_user_service
) -> None:
    kid = make_user(UserRole.STUDENT, age=9)
    kid.apply_age_policy()
    mock_user_service.register(kid)

    response = client.put(
        f"/api/admin/users/{kid.id}/block", headers=auth_headers(admin)
    )

    assert response.status_code == 403


def test_block_toggle_message(
    client: TestClient, admin, make_user, auth_headers, mock_user_service
) -> None:
    target = make_user()
    mock_user_service.register(target)

    response = client.put(
        f"/api/admin/users/{target.id}/block",
        json={"reason": "Spam"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "User blocked"
    assert body["data"]["blockedReason"] == "Spam"


def test_stats(client: TestClient, admin, auth_headers) -> None:
    response = client.get("/api/admin/stats", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalUsers"] == 1
    assert data["totalEnrollments"] == 2
    assert data["usersByRole"]["Admin"] == 1
