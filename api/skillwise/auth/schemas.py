"""Pydantic schemas for user accounts."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from skillwise.auth.permissions import UserRole
from skillwise.core.schemas import CamelModel


if TYPE_CHECKING:
    from skillwise.auth.models import User


HANDLE_PATTERN = r"^@?[A-Za-z0-9_.]{3,30}$"


class CreateUserRequest(CamelModel):
    """Account creation data (admin seed script and internal callers)."""

    email: EmailStr
    name: str = Field(..., min_length=2, max_length=100)
    handle: str | None = Field(None, pattern=HANDLE_PATTERN)
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.STUDENT
    age: int | None = Field(None, ge=0, le=150)
    phone: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class UserSummary(CamelModel):
    """Public view of a user shown next to posts, friends and requests."""

    id: UUID
    name: str
    handle: str
    role: str

    @classmethod
    def from_user(cls, user: "User") -> "UserSummary":
        return cls(id=user.id, name=user.name, handle=user.handle, role=user.role)


class UserResponse(CamelModel):
    """Authenticated user profile.

    Built from token claims by ``get_current_user`` (profile fields empty) or
    from a stored ``User`` via :meth:`from_user`.
    """

    id: UUID
    email: str
    role: str
    name: str | None = None
    handle: str | None = None
    age: int | None = None
    status: str | None = None
    is_blocked: bool = False
    blocked_reason: str | None = None
    requires_parental_approval: bool = False
    parent_id: UUID | None = None
    parent_confirmed: bool = False
    has_child_lock: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user: "User") -> "UserResponse":
        """Create response from User model."""
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            name=user.name,
            handle=user.handle,
            age=user.age,
            status=user.status,
            is_blocked=user.is_blocked,
            blocked_reason=user.blocked_reason,
            requires_parental_approval=user.requires_parental_approval,
            parent_id=user.parent_id,
            parent_confirmed=user.parent_confirmed,
            has_child_lock=user.child_lock_hash is not None,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
