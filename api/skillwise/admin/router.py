"""Administration API endpoints (Admin role only)."""

from uuid import UUID

from fastapi import APIRouter, Query

from skillwise.admin.dependencies import AdminServiceDep, handle_admin_error
from skillwise.admin.schemas import (
    AdminStatsResponse,
    ToggleBlockRequest,
    UpdateRoleRequest,
    UserListResponse,
)
from skillwise.admin.service import AdminError
from skillwise.auth.dependencies import AdminUser
from skillwise.auth.permissions import UserRole
from skillwise.auth.schemas import UserResponse
from skillwise.core.schemas import ApiResponse, ok


router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get(
    "/users",
    response_model=ApiResponse[UserListResponse],
    summary="List users",
)
async def list_users(
    service: AdminServiceDep,
    _admin: AdminUser,
    role: UserRole | None = None,
    blocked: bool | None = None,
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse[UserListResponse]:
    """List accounts, newest first.

    Args:
        role: Filter by role
        blocked: Filter by block status
        limit: Max results
    """
    users = await service.list_users(role, blocked, limit)
    items = [UserResponse.from_user(u) for u in users]
    return ok(UserListResponse(items=items, total=len(items)))


@router.put(
    "/users/{user_id}/role",
    response_model=ApiResponse[UserResponse],
    summary="Update user role",
)
async def update_role(
    user_id: UUID,
    data: UpdateRoleRequest,
    service: AdminServiceDep,
    admin: AdminUser,
) -> ApiResponse[UserResponse]:
    """Assign Admin, Student, Teacher or Child. Admins cannot change their own role."""
    try:
        user = await service.update_role(admin, user_id, data.role)
    except AdminError as e:
        raise handle_admin_error(e) from e
    return ok(UserResponse.from_user(user), message="Role updated")


@router.put(
    "/users/{user_id}/block",
    response_model=ApiResponse[UserResponse],
    summary="Block or unblock user",
)
async def toggle_block(
    user_id: UUID,
    service: AdminServiceDep,
    admin: AdminUser,
    data: ToggleBlockRequest | None = None,
) -> ApiResponse[UserResponse]:
    try:
        user = await service.toggle_block(admin, user_id, data.reason if data else None)
    except AdminError as e:
        raise handle_admin_error(e) from e
    message = "User blocked" if user.is_blocked else "User unblocked"
    return ok(UserResponse.from_user(user), message=message)


@router.get(
    "/stats",
    response_model=ApiResponse[AdminStatsResponse],
    summary="Platform statistics",
)
async def get_stats(
    service: AdminServiceDep,
    _admin: AdminUser,
) -> ApiResponse[AdminStatsResponse]:
    return ok(await service.get_stats())
