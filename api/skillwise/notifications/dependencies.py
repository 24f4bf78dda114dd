"""FastAPI dependencies for notifications.

Provides dependency injection for:
- Notification service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from skillwise.notifications.service import NotificationError, NotificationService


async def get_notification_service(request: Request) -> NotificationService:
    """Get notification service from app state."""
    service = getattr(request.app.state, "notification_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification service not available",
        )
    return service


NotificationServiceDep = Annotated[
    NotificationService, Depends(get_notification_service)
]


def handle_notification_error(error: NotificationError) -> HTTPException:
    """Convert notification errors to HTTP exceptions."""
    status_map = {
        "notification_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_cursor": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
