"""FastAPI dependencies for learning.

Provides dependency injection for:
- Learning service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from skillwise.learning.service import LearningError, LearningService


async def get_learning_service(request: Request) -> LearningService:
    """Get learning service from app state."""
    service = getattr(request.app.state, "learning_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Learning service not available",
        )
    return service


LearningServiceDep = Annotated[LearningService, Depends(get_learning_service)]


def handle_learning_error(error: LearningError) -> HTTPException:
    """Convert learning errors to HTTP exceptions."""
    status_map = {
        "not_enrolled": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "already_enrolled": status.HTTP_400_BAD_REQUEST,
        "course_not_available": status.HTTP_400_BAD_REQUEST,
        "invalid_lecture_index": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
