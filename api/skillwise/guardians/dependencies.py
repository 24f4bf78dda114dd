"""FastAPI dependencies for guardian links.

Provides dependency injection for:
- Guardian service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from skillwise.guardians.service import GuardianError, GuardianService


async def get_guardian_service(request: Request) -> GuardianService:
    """Get guardian service from app state."""
    service = getattr(request.app.state, "guardian_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Guardian service not available",
        )
    return service


GuardianServiceDep = Annotated[GuardianService, Depends(get_guardian_service)]


def handle_guardian_error(error: GuardianError) -> HTTPException:
    """Convert guardian errors to HTTP exceptions."""
    status_map = {
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "request_not_found": status.HTTP_400_BAD_REQUEST,
        "own_request": status.HTTP_403_FORBIDDEN,
        "linked_elsewhere": status.HTTP_409_CONFLICT,
        "not_your_child": status.HTTP_403_FORBIDDEN,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
