"""FastAPI dependencies for the Childlock.

Provides dependency injection for:
- Childlock service
- Feature gates that require the Childlock from Child accounts
- Error handlers
"""

from typing import Annotated

import structlog
from fastapi import Depends, Header, HTTPException, Request, status

from skillwise.auth.dependencies import get_active_user
from skillwise.auth.models import User
from skillwise.auth.permissions import is_child
from skillwise.childlock.service import (
    ChildLockError,
    ChildLockService,
    RestrictedFeature,
)


logger = structlog.get_logger(__name__)

CHILD_LOCK_HEADER = "X-Child-Lock"


async def get_child_lock_service(request: Request) -> ChildLockService:
    """Get Childlock service from app state."""
    service = getattr(request.app.state, "child_lock_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Childlock service not available",
        )
    return service


ChildLockServiceDep = Annotated[ChildLockService, Depends(get_child_lock_service)]


def require_child_lock(feature: RestrictedFeature):
    """Create dependency that asks Child accounts for their Childlock.

    The password travels in the ``X-Child-Lock`` header. Other roles pass
    through untouched.

    Example:
        @router.post("/courses/{course_id}/enroll")
        async def enroll(
            user: Annotated[
                User, Depends(require_child_lock(RestrictedFeature.COURSE_ENROLLMENT))
            ],
        ):
            ...
    """

    async def child_lock_checker(
        user: Annotated[User, Depends(get_active_user)],
        service: ChildLockServiceDep,
        child_lock: Annotated[str | None, Header(alias=CHILD_LOCK_HEADER)] = None,
    ) -> User:
        if not is_child(user.role):
            return user
        if not child_lock:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Child lock password is required to access this feature",
                headers={"X-Child-Lock-Feature": feature.value},
            )
        try:
            service.verify(user, child_lock)
        except ChildLockError as e:
            raise handle_child_lock_error(e) from e
        logger.debug("child_lock_verified", feature=feature.value)
        return user

    return child_lock_checker


def handle_child_lock_error(error: ChildLockError) -> HTTPException:
    """Convert Childlock errors to HTTP exceptions."""
    status_map = {
        "not_eligible": status.HTTP_403_FORBIDDEN,
        "already_child": status.HTTP_400_BAD_REQUEST,
        "not_child": status.HTTP_403_FORBIDDEN,
        "invalid_child_lock": status.HTTP_401_UNAUTHORIZED,
        "validation_error": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


# ==============================================================================
# Annotated shorthands used in route signatures
# ==============================================================================

EnrollmentUser = Annotated[
    User, Depends(require_child_lock(RestrictedFeature.COURSE_ENROLLMENT))
]
FriendRequestUser = Annotated[
    User, Depends(require_child_lock(RestrictedFeature.FRIEND_REQUESTS))
]
PostingUser = Annotated[
    User, Depends(require_child_lock(RestrictedFeature.COMMUNITY_POST))
]
