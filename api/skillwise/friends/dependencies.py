"""FastAPI dependencies for friends.

Provides dependency injection for:
- Friend service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from skillwise.friends.service import FriendError, FriendService


async def get_friend_service(request: Request) -> FriendService:
    """Get friend service from app state."""
    service = getattr(request.app.state, "friend_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Friend service not available",
        )
    return service


FriendServiceDep = Annotated[FriendService, Depends(get_friend_service)]


def handle_friend_error(error: FriendError) -> HTTPException:
    """Convert friend errors to HTTP exceptions."""
    status_map = {
        "user_not_found": status.HTTP_404_NOT_FOUND,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
