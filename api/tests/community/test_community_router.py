"""Tests for community endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from skillwise.auth.permissions import UserRole
from skillwise.childlock.service import ChildLockService
from skillwise.community.service import (
    CommunityService,
    DuplicateReportError,
    ForbiddenError,
)


@pytest.fixture
def community_service(app, mock_user_service):
    service = Mock(spec=CommunityService)
    app.state.community_service = service
    app.state.child_lock_service = ChildLockService(user_service=mock_user_service)
    return service


@pytest.fixture
def member(make_user, mock_user_service):
    user = make_user()
    mock_user_service.register(user)
    return user


class TestShareEndpoint:
    def test_share_of_non_public_post_is_403(
        self, client: TestClient, community_service, member, auth_headers
    ) -> None:
        community_service.share = AsyncMock(
            side_effect=ForbiddenError(
                "This post cannot be shared because it is not public"
            )
        )

        response = client.post(
            f"/api/community/posts/{uuid4()}/share", headers=auth_headers(member)
        )

        assert response.status_code == 403
        assert "not public" in response.json()["message"]

    def test_share_passes_optional_text(
        self, client: TestClient, community_service, member, auth_headers
    ) -> None:
        community_service.share = AsyncMock(side_effect=ForbiddenError())
        post_id = uuid4()

        client.post(
            f"/api/community/posts/{post_id}/share",
            json={"text": "Worth a read"},
            headers=auth_headers(member),
        )

        community_service.share.assert_awaited_once_with(post_id, member, "Worth a read")


class TestPostingGate:
    def test_child_without_child_lock_cannot_post(
        self, client: TestClient, community_service, make_child, auth_headers, mock_user_service
    ) -> None:
        child = make_child()
        mock_user_service.register(child)
        community_service.create_post = AsyncMock()

        response = client.post(
            "/api/community/posts",
            json={"type": "blog", "text": "Hi"},
            headers=auth_headers(child),
        )

        assert response.status_code == 401
        community_service.create_post.assert_not_awaited()


class TestReportsEndpoints:
    def test_duplicate_report_is_409(
        self, client: TestClient, community_service, member, auth_headers
    ) -> None:
        community_service.report_post = AsyncMock(side_effect=DuplicateReportError())

        response = client.post(
            f"/api/community/posts/{uuid4()}/report",
            json={"reason": "Spam"},
            headers=auth_headers(member),
        )

        assert response.status_code == 409

    def test_report_listing_is_admin_only(
        self, client: TestClient, community_service, member, auth_headers
    ) -> None:
        response = client.get("/api/community/reports", headers=auth_headers(member))
        assert response.status_code == 403

    def test_admin_lists_reports(
        self, client: TestClient, community_service, make_user, auth_headers, mock_user_service
    ) -> None:
        admin = make_user(UserRole.ADMIN)
        mock_user_service.register(admin)
        community_service.list_reports = AsyncMock(return_value=[])

        response = client.get(
            "/api/community/reports?status=pending", headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.json()["data"] == []


class TestFeedEndpoint:
    def test_limit_above_maximum_is_rejected(
        self, client: TestClient, community_service, member, auth_headers
    ) -> None:
        response = client.get(
            "/api/community/posts?limit=51", headers=auth_headers(member)
        )
        assert response.status_code == 400
