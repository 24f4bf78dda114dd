"""Tests for account moderation."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from skillwise.admin.service import (
    AdminService,
    InvalidRoleError,
    ParentalApprovalRequiredError,
    SelfModificationError,
    UserNotFoundError,
)
from skillwise.auth.models import AccountStatus
from skillwise.auth.permissions import UserRole
from skillwise.learning.service import LearningService
from skillwise.notifications.models import NotificationType


@pytest.fixture
def learning_service():
    service = Mock(spec=LearningService)
    service.count_enrollments = AsyncMock(return_value=0)
    return service


@pytest.fixture
def service(
    mock_user_service, mock_course_service, learning_service, mock_notification_service
):
    return AdminService(
        user_service=mock_user_service,
        course_service=mock_course_service,
        learning_service=learning_service,
        notification_service=mock_notification_service,
    )


@pytest.fixture
def admin(make_user, mock_user_service):
    user = make_user(UserRole.ADMIN)
    mock_user_service.register(user)
    return user


@pytest.fixture
def student(make_user, mock_user_service):
    user = make_user(UserRole.STUDENT)
    mock_user_service.register(user)
    return user


class TestUpdateRole:
    @pytest.mark.asyncio
    async def test_assigns_role(self, service, admin, student, mock_user_service) -> None:
        updated = await service.update_role(admin, student.id, "Teacher")

        assert updated.role == "Teacher"
        mock_user_service.save_account_state.assert_awaited_once_with(student)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["Parent", "teacher", "Owner", ""])
    async def test_rejects_unassignable_roles(self, service, admin, student, role) -> None:
        with pytest.raises(InvalidRoleError):
            await service.update_role(admin, student.id, role)
        assert student.role == "Student"

    @pytest.mark.asyncio
    async def test_cannot_change_own_role(self, service, admin) -> None:
        with pytest.raises(SelfModificationError):
            await service.update_role(admin, admin.id, "Student")

    @pytest.mark.asyncio
    async def test_unknown_user(self, service, admin) -> None:
        with pytest.raises(UserNotFoundError):
            await service.update_role(admin, uuid4(), "Teacher")


class TestToggleBlock:
    @pytest.mark.asyncio
    async def test_block_with_reason(
        self, service, admin, student, mock_notification_service
    ) -> None:
        user = await service.toggle_block(admin, student.id, "  Spamming  ")

        assert user.is_blocked is True
        assert user.blocked_reason == "Spamming"
        assert user.status == AccountStatus.INACTIVE.value
        [notification] = mock_notification_service.sent
        assert notification.user_id == student.id
        assert notification.type == NotificationType.ACCOUNT_BLOCKED

    @pytest.mark.asyncio
    async def test_block_default_reason(self, service, admin, student) -> None:
        user = await service.toggle_block(admin, student.id)
        assert user.blocked_reason

    @pytest.mark.asyncio
    async def test_unblock(
        self, service, admin, student, mock_notification_service
    ) -> None:
        student.is_blocked = True
        student.blocked_reason = "Spamming"
        student.status = AccountStatus.INACTIVE.value

        user = await service.toggle_block(admin, student.id)

        assert user.is_blocked is False
        assert user.blocked_reason is None
        assert user.status == AccountStatus.ACTIVE.value
        assert mock_notification_service.sent[0].type == NotificationType.ACCOUNT_UNBLOCKED

    @pytest.mark.asyncio
    async def test_under_13_student_needs_parental_approval(
        self, service, admin, make_user, mock_user_service, mock_notification_service
    ) -> None:
        kid = make_user(UserRole.STUDENT, age=12)
        kid.apply_age_policy()
        mock_user_service.register(kid)

        with pytest.raises(ParentalApprovalRequiredError):
            await service.toggle_block(admin, kid.id)
        assert kid.is_blocked is True
        assert mock_notification_service.sent == []

    @pytest.mark.asyncio
    async def test_under_13_student_with_confirmed_parent(
        self, service, admin, make_user, mock_user_service
    ) -> None:
        kid = make_user(
            UserRole.STUDENT,
            age=12,
            parent_id=uuid4(),
            parent_confirmed=True,
            is_blocked=True,
            blocked_reason="Spamming",
        )
        mock_user_service.register(kid)

        user = await service.toggle_block(admin, kid.id)

        assert user.is_blocked is False

    @pytest.mark.asyncio
    async def test_cannot_block_self(self, service, admin) -> None:
        with pytest.raises(SelfModificationError):
            await service.toggle_block(admin, admin.id)


class TestStats:
    @pytest.mark.asyncio
    async def test_counts(
        self,
        service,
        admin,
        student,
        make_user,
        mock_user_service,
        mock_course_service,
        learning_service,
    ) -> None:
        blocked = make_user(UserRole.TEACHER, is_blocked=True)
        mock_user_service.register(blocked)
        mock_course_service.count_courses.return_value = 4
        learning_service.count_enrollments.return_value = 9

        stats = await service.get_stats()

        assert stats.total_users == 3
        assert stats.users_by_role == {
            "Child": 0,
            "Student": 1,
            "Parent": 0,
            "Teacher": 1,
            "Admin": 1,
        }
        assert stats.blocked_users == 1
        assert stats.total_courses == 4
        assert stats.total_enrollments == 9
