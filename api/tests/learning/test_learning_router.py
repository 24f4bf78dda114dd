"""Tests for learning endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from skillwise.childlock.service import ChildLockService
from skillwise.learning.schemas import EnrollmentResponse, ProgressResponse
from skillwise.learning.service import (
    AlreadyEnrolledError,
    LearningService,
    NotEnrolledError,
)
from skillwise.utils import utc_now


@pytest.fixture
def learning_service(app, mock_user_service):
    service = Mock(spec=LearningService)
    app.state.learning_service = service
    app.state.child_lock_service = ChildLockService(user_service=mock_user_service)
    return service


def _enrollment(course_id) -> EnrollmentResponse:
    return EnrollmentResponse(
        course_id=course_id,
        course_title="Intro to Fractions",
        enrolled_at=utc_now(),
        current_lecture_index=0,
        progress_percent=0,
    )


class TestEnrollEndpoint:
    def test_student_enrolls(
        self, client: TestClient, learning_service, make_user, auth_headers, mock_user_service
    ) -> None:
        user = make_user()
        mock_user_service.register(user)
        course_id = uuid4()
        learning_service.enroll = AsyncMock(return_value=_enrollment(course_id))

        response = client.post(
            f"/api/learning/courses/{course_id}/enroll", headers=auth_headers(user)
        )

        assert response.status_code == 201
        assert response.json()["data"]["courseId"] == str(course_id)
        learning_service.enroll.assert_awaited_once_with(user.id, course_id)

    def test_child_needs_child_lock(
        self, client: TestClient, learning_service, make_child, auth_headers, mock_user_service
    ) -> None:
        child = make_child()
        mock_user_service.register(child)
        learning_service.enroll = AsyncMock()

        response = client.post(
            f"/api/learning/courses/{uuid4()}/enroll", headers=auth_headers(child)
        )

        assert response.status_code == 401
        assert response.headers["X-Child-Lock-Feature"] == "course_enrollment"
        learning_service.enroll.assert_not_awaited()

    def test_child_with_wrong_child_lock(
        self, client: TestClient, learning_service, make_child, auth_headers, mock_user_service
    ) -> None:
        child = make_child()
        mock_user_service.register(child)
        learning_service.enroll = AsyncMock()

        response = client.post(
            f"/api/learning/courses/{uuid4()}/enroll",
            headers=auth_headers(child, **{"X-Child-Lock": "wrong-lock"}),
        )

        assert response.status_code == 401
        learning_service.enroll.assert_not_awaited()

    def test_child_with_child_lock(
        self, client: TestClient, learning_service, make_child, auth_headers, mock_user_service
    ) -> None:
        child = make_child()
        mock_user_service.register(child)
        course_id = uuid4()
        learning_service.enroll = AsyncMock(return_value=_enrollment(course_id))

        response = client.post(
            f"/api/learning/courses/{course_id}/enroll",
            headers=auth_headers(child, **{"X-Child-Lock": "lock-1234"}),
        )

        assert response.status_code == 201

    def test_already_enrolled(
        self, client: TestClient, learning_service, make_user, auth_headers, mock_user_service
    ) -> None:
        user = make_user()
        mock_user_service.register(user)
        learning_service.enroll = AsyncMock(side_effect=AlreadyEnrolledError())

        response = client.post(
            f"/api/learning/courses/{uuid4()}/enroll", headers=auth_headers(user)
        )

        assert response.status_code == 400


class TestProgressEndpoints:
    def test_get_progress(
        self, client: TestClient, learning_service, make_user, auth_headers, mock_user_service
    ) -> None:
        user = make_user()
        mock_user_service.register(user)
        learning_service.get_progress = AsyncMock(
            return_value=ProgressResponse(
                total_lectures=4, completed_lectures=2, overall_progress=50
            )
        )

        response = client.get(
            f"/api/learning/courses/{uuid4()}/progress", headers=auth_headers(user)
        )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "totalLectures": 4,
            "completedLectures": 2,
            "overallProgress": 50,
        }

    def test_not_enrolled_is_404(
        self, client: TestClient, learning_service, make_user, auth_headers, mock_user_service
    ) -> None:
        user = make_user()
        mock_user_service.register(user)
        learning_service.get_progress = AsyncMock(side_effect=NotEnrolledError())

        response = client.get(
            f"/api/learning/courses/{uuid4()}/progress", headers=auth_headers(user)
        )

        assert response.status_code == 404

    def test_quiz_score_out_of_range(
        self, client: TestClient, learning_service, make_user, auth_headers, mock_user_service
    ) -> None:
        user = make_user()
        mock_user_service.register(user)

        response = client.post(
            f"/api/learning/courses/{uuid4()}/lectures/0/quiz-attempts",
            json={"score": 120, "passed": True},
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        assert response.json()["details"]
