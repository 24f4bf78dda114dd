"""Pydantic schemas for administration."""

from pydantic import Field

from skillwise.auth.schemas import UserResponse
from skillwise.core.schemas import CamelModel


class UpdateRoleRequest(CamelModel):
    """Role is validated by the service so unknown roles answer 400."""

    role: str = Field(..., min_length=1, max_length=20)


class ToggleBlockRequest(CamelModel):
    reason: str | None = Field(None, max_length=500)


class UserListResponse(CamelModel):
    items: list[UserResponse]
    total: int


class AdminStatsResponse(CamelModel):
    total_users: int
    users_by_role: dict[str, int]
    blocked_users: int
    total_courses: int
    total_enrollments: int
