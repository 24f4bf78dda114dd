"""Childlock service layer.

A Child account carries a second password, the Childlock, which must be
presented to use restricted features (enrolling, friend requests, posting).
Accounts are converted into Child mode by an adult who then hands the
device over.
"""

from enum import Enum
from typing import TYPE_CHECKING

import structlog

from skillwise.auth.permissions import UserRole, is_child
from skillwise.auth.security import hash_password, verify_password
from skillwise.config.settings import get_settings


if TYPE_CHECKING:
    from skillwise.auth.models import User
    from skillwise.auth.service import UserService

logger = structlog.get_logger(__name__)

MIN_PHONE_LENGTH = 10


class RestrictedFeature(str, Enum):
    """Features a Child account unlocks with the Childlock."""

    COURSE_ENROLLMENT = "course_enrollment"
    FRIEND_REQUESTS = "friend_requests"
    COMMUNITY_POST = "community_post"


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ChildLockError(Exception):
    """Base Childlock error."""

    def __init__(self, message: str, code: str = "child_lock_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotEligibleError(ChildLockError):
    def __init__(self, min_age: int):
        super().__init__(
            f"You must be at least {min_age} years old to convert to a child account",
            "not_eligible",
        )


class AlreadyChildError(ChildLockError):
    def __init__(self, message: str = "You already have a child account"):
        super().__init__(message, "already_child")


class NotChildError(ChildLockError):
    def __init__(
        self, message: str = "This feature is only available for child accounts"
    ):
        super().__init__(message, "not_child")


class InvalidChildLockError(ChildLockError):
    def __init__(self, message: str = "Invalid child lock password"):
        super().__init__(message, "invalid_child_lock")


class ChildLockValidationError(ChildLockError):
    def __init__(self, message: str):
        super().__init__(message, "validation_error")


# ==============================================================================
# Childlock Service
# ==============================================================================


class ChildLockService:
    """Conversion to Child mode and Childlock verification."""

    def __init__(self, user_service: "UserService"):
        self.user_service = user_service

    async def convert_to_child(
        self, user: "User", child_lock_password: str, phone: str
    ) -> "User":
        """Turn ``user`` into a Child account protected by a Childlock.

        Raises:
            NotEligibleError: If the caller is younger than the conversion age
            AlreadyChildError: If the account is already a Child account
            ChildLockValidationError: If the password or phone is too short
        """
        settings = get_settings()

        if user.age is None or user.age < settings.child_conversion_min_age:
            raise NotEligibleError(settings.child_conversion_min_age)
        if is_child(user.role):
            raise AlreadyChildError

        _check_password(child_lock_password, settings.child_lock_min_length)
        phone = (phone or "").strip()
        if len(phone) < MIN_PHONE_LENGTH:
            raise ChildLockValidationError(
                "Please provide a valid phone number (at least 10 digits)"
            )

        user.role = UserRole.CHILD.value
        user.child_lock_hash = hash_password(child_lock_password)
        user.phone = phone
        await self.user_service.save_account_state(user)

        logger.info("account_converted_to_child", target_user_id=str(user.id))
        return user

    def verify(self, user: "User", password: str | None) -> None:
        """Check the Childlock of a Child account.

        Raises:
            NotChildError: If the account is not a Child account
            InvalidChildLockError: If the password is missing or wrong
        """
        if not is_child(user.role):
            raise NotChildError
        if not password or not verify_password(password, user.child_lock_hash):
            logger.warning("child_lock_rejected", target_user_id=str(user.id))
            raise InvalidChildLockError

    async def update(self, user: "User", current: str | None, new: str) -> None:
        """Replace the Childlock after checking the current one.

        A Child account without a Childlock (one given the Child role by an
        admin) sets its first lock without a current password.

        Raises:
            NotChildError: If the account is not a Child account
            InvalidChildLockError: If ``current`` is wrong
            ChildLockValidationError: If ``new`` is too short
        """
        if not is_child(user.role):
            raise NotChildError
        if user.child_lock_hash is not None and not (
            current and verify_password(current, user.child_lock_hash)
        ):
            raise InvalidChildLockError("Current password is incorrect")
        _check_password(new, get_settings().child_lock_min_length)

        user.child_lock_hash = hash_password(new)
        await self.user_service.save_account_state(user)
        logger.info("child_lock_updated", target_user_id=str(user.id))


def _check_password(password: str | None, min_length: int) -> None:
    if not password or len(password) < min_length:
        raise ChildLockValidationError(
            f"Child lock password must be at least {min_length} characters long"
        )
