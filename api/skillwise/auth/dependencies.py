"""Auth dependencies for SkillWise routes.

``CurrentUser`` trusts the token claims, ``AccountUser`` loads the stored
account (blocked ones included) and ``ActiveUser`` rejects blocked accounts.
Role gates are built with ``require_role`` and ``require_permission``.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from skillwise.auth.models import User
from skillwise.auth.permissions import UserRole, has_permission
from skillwise.auth.schemas import UserResponse
from skillwise.auth.security import decode_access_token
from skillwise.auth.service import UserService
from skillwise.core.context import set_user_id


async def get_user_service(request: Request) -> UserService:
    """Get user service from app state."""
    service = getattr(request.app.state, "user_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User service not available",
        )
    return service


UserServiceDep = Annotated[UserService, Depends(get_user_service)]


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse:
    """Get the authenticated user from the access token claims.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user_id = payload["sub"]
    set_user_id(user_id)

    return UserResponse(
        id=user_id,
        email=payload.get("email", ""),
        role=payload.get("role", UserRole.STUDENT.value),
        name=payload.get("name"),
    )


async def get_account_user(
    current: Annotated[UserResponse, Depends(get_current_user)],
    user_service: UserServiceDep,
) -> User:
    """Load the stored account behind the token, blocked or not.

    The stored role wins over the token claim, so role changes made by an
    admin apply on the next request.

    Raises:
        HTTPException(401): If the account no longer exists
    """
    user = await user_service.get_user(current.id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_active_user(
    user: Annotated[User, Depends(get_account_user)],
) -> User:
    """Reject blocked accounts.

    Raises:
        HTTPException(403): If the account is blocked
    """
    if user.is_blocked:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=user.blocked_reason or "Account is blocked",
        )
    return user


def require_role(*allowed_roles: UserRole):
    """Create dependency requiring one of ``allowed_roles`` (exact match)."""

    async def role_checker(
        user: Annotated[User, Depends(get_active_user)],
    ) -> User:
        if user.role not in {role.value for role in allowed_roles}:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return role_checker


def require_permission(required_role: UserRole):
    """Create dependency requiring at least the level of ``required_role``.

    Example:
        @router.post("/courses")
        async def create_course(
            user: Annotated[User, Depends(require_permission(UserRole.TEACHER))]
        ):
            # Accessible by Teacher and Admin
            ...
    """

    async def permission_checker(
        user: Annotated[User, Depends(get_active_user)],
    ) -> User:
        if not has_permission(user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return permission_checker


# ==============================================================================
# Annotated shorthands used in route signatures
# ==============================================================================

# Token-derived identity (works for blocked accounts too)
CurrentUser = Annotated[UserResponse, Depends(get_current_user)]

# Stored account, including blocked ones (guardian approval flow)
AccountUser = Annotated[User, Depends(get_account_user)]

# Stored, unblocked account
ActiveUser = Annotated[User, Depends(get_active_user)]

AdminUser = Annotated[User, Depends(require_role(UserRole.ADMIN))]
TeacherUser = Annotated[User, Depends(require_permission(UserRole.TEACHER))]
ParentUser = Annotated[User, Depends(require_role(UserRole.PARENT))]
