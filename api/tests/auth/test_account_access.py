"""Tests for token and account dependencies through ``/api/auth/me``."""

from datetime import timedelta
from unittest.mock import Mock

from fastapi.testclient import TestClient

from skillwise.auth.models import UNDER_AGE_BLOCK_REASON
from skillwise.auth.permissions import UserRole
from skillwise.auth.security import create_access_token


class TestGetMe:
    def test_requires_token(self, client: TestClient) -> None:
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_rejects_malformed_header(self, client: TestClient) -> None:
        response = client.get("/api/auth/me", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_rejects_expired_token(self, client: TestClient, make_user) -> None:
        user = make_user()
        token = create_access_token(
            {"sub": str(user.id)}, expires_delta=timedelta(seconds=-1)
        )
        response = client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    def test_unknown_account(
        self, client: TestClient, make_user, auth_headers
    ) -> None:
        """A valid token for an account that no longer exists."""
        response = client.get("/api/auth/me", headers=auth_headers(make_user()))
        assert response.status_code == 401

    def test_returns_stored_profile(
        self, client: TestClient, make_user, auth_headers, mock_user_service
    ) -> None:
        user = make_user(UserRole.TEACHER, name="Ada Teacher")
        mock_user_service.register(user)

        response = client.get("/api/auth/me", headers=auth_headers(user))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == str(user.id)
        assert body["data"]["role"] == "Teacher"
        assert body["data"]["name"] == "Ada Teacher"
        assert body["data"]["hasChildLock"] is False

    def test_blocked_account_can_read_profile(
        self, client: TestClient, make_user, auth_headers, mock_user_service
    ) -> None:
        user = make_user(age=11)
        user.apply_age_policy()
        mock_user_service.register(user)

        response = client.get("/api/auth/me", headers=auth_headers(user))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["isBlocked"] is True
        assert data["requiresParentalApproval"] is True
        assert data["blockedReason"] == UNDER_AGE_BLOCK_REASON

    def test_stored_role_wins_over_token(
        self, client: TestClient, make_user, auth_headers, mock_user_service
    ) -> None:
        user = make_user(UserRole.STUDENT)
        mock_user_service.register(user)
        headers = auth_headers(user)
        user.role = UserRole.TEACHER.value

        response = client.get("/api/auth/me", headers=headers)

        assert response.json()["data"]["role"] == "Teacher"


class TestBlockedAccounts:
    def test_blocked_user_gets_403_on_active_routes(
        self, app, client: TestClient, make_user, auth_headers, mock_user_service
    ) -> None:
        app.state.community_service = Mock()
        user = make_user(is_blocked=True, blocked_reason="Spam")
        mock_user_service.register(user)

        response = client.get("/api/community/stats", headers=auth_headers(user))

        assert response.status_code == 403
        assert response.json()["message"] == "Spam"

    def test_non_admin_gets_403_on_admin_routes(
        self, app, client: TestClient, make_user, auth_headers, mock_user_service
    ) -> None:
        app.state.admin_service = Mock()
        user = make_user(UserRole.TEACHER)
        mock_user_service.register(user)

        response = client.get("/api/admin/stats", headers=auth_headers(user))

        assert response.status_code == 403
