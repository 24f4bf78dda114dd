"""Tests for guardian endpoints."""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from skillwise.auth.permissions import UserRole
from skillwise.auth.schemas import UserSummary
from skillwise.guardians.service import GuardianService, OwnRequestError


@pytest.fixture
def guardian_service(app):
    service = Mock(spec=GuardianService)
    app.state.guardian_service = service
    return service


@pytest.fixture
def blocked_kid(make_user, mock_user_service):
    user = make_user(UserRole.STUDENT, age=10, handle="little_one")
    user.apply_age_policy()
    mock_user_service.register(user)
    return user


def test_blocked_child_can_request_a_parent(
    client: TestClient, guardian_service, blocked_kid, make_user, auth_headers
) -> None:
    parent = make_user(UserRole.PARENT, handle="mom")
    guardian_service.send_request = AsyncMock(
        return_value=UserSummary.from_user(parent)
    )

    response = client.post(
        "/api/guardians/requests",
        json={"handle": "mom"},
        headers=auth_headers(blocked_kid),
    )

    assert response.status_code == 201
    assert response.json()["data"]["id"] == str(parent.id)


def test_accepting_own_request_is_403(
    client: TestClient, guardian_service, blocked_kid, auth_headers
) -> None:
    guardian_service.accept_request = AsyncMock(side_effect=OwnRequestError())

    response = client.post(
        f"/api/guardians/requests/{blocked_kid.id}/accept",
        headers=auth_headers(blocked_kid),
    )

    assert response.status_code == 403


def test_children_listing_is_parent_only(
    client: TestClient, guardian_service, make_user, auth_headers, mock_user_service
) -> None:
    teacher = make_user(UserRole.TEACHER)
    mock_user_service.register(teacher)

    response = client.get("/api/guardians/children", headers=auth_headers(teacher))

    assert response.status_code == 403
