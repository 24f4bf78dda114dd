"""FastAPI dependencies for the community feed.

Provides dependency injection for:
- Community service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from skillwise.community.service import CommunityError, CommunityService


async def get_community_service(request: Request) -> CommunityService:
    """Get community service from app state."""
    service = getattr(request.app.state, "community_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Community service not available",
        )
    return service


CommunityServiceDep = Annotated[CommunityService, Depends(get_community_service)]


def handle_community_error(error: CommunityError) -> HTTPException:
    """Convert community errors to HTTP exceptions."""
    status_map = {
        "post_not_found": status.HTTP_404_NOT_FOUND,
        "poll_not_found": status.HTTP_404_NOT_FOUND,
        "report_not_found": status.HTTP_404_NOT_FOUND,
        "forbidden": status.HTTP_403_FORBIDDEN,
        "duplicate_report": status.HTTP_409_CONFLICT,
        "invalid_post": status.HTTP_400_BAD_REQUEST,
        "invalid_option": status.HTTP_400_BAD_REQUEST,
        "invalid_cursor": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
