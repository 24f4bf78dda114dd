"""Administration service layer.

Business logic for:
- Listing accounts
- Role changes
- Blocking and unblocking accounts (respecting the under-13 policy)
- Platform statistics
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from skillwise.admin.schemas import AdminStatsResponse
from skillwise.auth.models import AccountStatus, User, is_under_age
from skillwise.auth.permissions import ASSIGNABLE_ROLES, UserRole, parse_role
from skillwise.config.settings import get_settings
from skillwise.notifications.models import create_account_status_notification


if TYPE_CHECKING:
    from skillwise.auth.service import UserService
    from skillwise.courses.service import CourseService
    from skillwise.learning.service import LearningService
    from skillwise.notifications.service import NotificationService

logger = structlog.get_logger(__name__)

DEFAULT_BLOCK_REASON = "Blocked by an administrator"


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AdminError(Exception):
    """Base administration error."""

    def __init__(self, message: str, code: str = "admin_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UserNotFoundError(AdminError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class InvalidRoleError(AdminError):
    def __init__(self, role: str):
        allowed = ", ".join(sorted(r.value for r in ASSIGNABLE_ROLES))
        super().__init__(
            f"Invalid role '{role}'. Allowed roles: {allowed}", "invalid_role"
        )


class SelfModificationError(AdminError):
    def __init__(self, message: str = "You cannot change your own account"):
        super().__init__(message, "self_modification")


class ParentalApprovalRequiredError(AdminError):
    def __init__(
        self,
        message: str = "Students under 13 can only be unblocked after parental approval",
    ):
        super().__init__(message, "parental_approval_required")


# ==============================================================================
# Admin Service
# ==============================================================================


class AdminService:
    """Service for account moderation and platform statistics."""

    def __init__(
        self,
        user_service: "UserService",
        course_service: "CourseService",
        learning_service: "LearningService",
        notification_service: "NotificationService",
    ):
        self.user_service = user_service
        self.course_service = course_service
        self.learning_service = learning_service
        self.notification_service = notification_service

    async def list_users(
        self,
        role: UserRole | None = None,
        blocked: bool | None = None,
        limit: int = 100,
    ) -> list[User]:
        return await self.user_service.list_users(role, blocked, limit)

    async def update_role(self, admin: User, user_id: UUID, role: str) -> User:
        """Assign one of Admin, Student, Teacher or Child.

        A new Child has no Childlock yet; it sets the first one through
        ``ChildLockService.update``.

        Raises:
            InvalidRoleError: If ``role`` is not assignable
            SelfModificationError: If the admin targets their own account
            UserNotFoundError: If the user does not exist
        """
        new_role = parse_role(role)
        if new_role is None or new_role not in ASSIGNABLE_ROLES:
            raise InvalidRoleError(role)
        if admin.id == user_id:
            raise SelfModificationError("You cannot change your own role")

        user = await self._require_user(user_id)
        previous = user.role
        user.role = new_role.value
        await self.user_service.save_account_state(user)

        logger.info(
            "user_role_updated",
            target_user_id=str(user.id),
            previous_role=previous,
            role=user.role,
        )
        return user

    async def toggle_block(
        self, admin: User, user_id: UUID, reason: str | None = None
    ) -> User:
        """Block an active account or unblock a blocked one.

        Raises:
            SelfModificationError: If the admin targets their own account
            UserNotFoundError: If the user does not exist
            ParentalApprovalRequiredError: When unblocking a Student under 13
                without a confirmed parent
        """
        if admin.id == user_id:
            raise SelfModificationError("You cannot block your own account")

        user = await self._require_user(user_id)

        if user.is_blocked:
            minimum_age = get_settings().minimum_unsupervised_age
            if (
                user.role == UserRole.STUDENT.value
                and is_under_age(user.age, minimum_age)
                and not user.parent_confirmed
            ):
                raise ParentalApprovalRequiredError
            user.is_blocked = False
            user.blocked_reason = None
            user.requires_parental_approval = False
            user.status = AccountStatus.ACTIVE.value
        else:
            user.is_blocked = True
            user.blocked_reason = (reason or "").strip() or DEFAULT_BLOCK_REASON
            user.status = AccountStatus.INACTIVE.value

        await self.user_service.save_account_state(user)
        await self.notification_service.dispatch(
            create_account_status_notification(
                user_id=user.id,
                blocked=user.is_blocked,
                reason=user.blocked_reason,
                actor_id=admin.id,
            )
        )

        logger.info(
            "user_block_toggled",
            target_user_id=str(user.id),
            blocked=user.is_blocked,
        )
        return user

    async def get_stats(self) -> AdminStatsResponse:
        counts = await self.user_service.count_users()
        return AdminStatsResponse(
            total_users=counts["total"],
            users_by_role={role.value: counts[role.value] for role in UserRole},
            blocked_users=counts["blocked"],
            total_courses=await self.course_service.count_courses(),
            total_enrollments=await self.learning_service.count_enrollments(),
        )

    async def _require_user(self, user_id: UUID) -> User:
        user = await self.user_service.get_user(user_id)
        if user is None:
            raise UserNotFoundError
        return user
