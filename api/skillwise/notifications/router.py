"""Notification API routes.

Endpoints for:
- GET /api/notifications - List user notifications
- GET /api/notifications/unread-count - Get unread count
- POST /api/notifications/{id}/read - Mark one as read
- POST /api/notifications/read-all - Mark all as read
- DELETE /api/notifications/{id} - Delete own notification
"""

from uuid import UUID

from fastapi import APIRouter, Query

from skillwise.auth.dependencies import CurrentUser
from skillwise.core.schemas import ApiResponse, MessageResponse, ok
from skillwise.notifications.dependencies import (
    NotificationServiceDep,
    handle_notification_error,
)
from skillwise.notifications.models import NotificationType
from skillwise.notifications.schemas import (
    MarkReadResponse,
    NotificationListResponse,
    UnreadCountResponse,
)
from skillwise.notifications.service import NotificationError


router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
)


@router.get(
    "",
    response_model=ApiResponse[NotificationListResponse],
    summary="List user notifications",
    description="Get paginated list of notifications for the authenticated user.",
)
async def list_notifications(
    current_user: CurrentUser,
    service: NotificationServiceDep,
    limit: int = Query(default=20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(default=None, description="Pagination cursor"),
    unread_only: bool = Query(default=False, description="Only show unread"),
    notification_type: NotificationType | None = Query(
        default=None, alias="type", description="Filter by type"
    ),
) -> ApiResponse[NotificationListResponse]:
    try:
        page = await service.get_notifications(
            user_id=current_user.id,
            limit=limit,
            cursor=cursor,
            unread_only=unread_only,
            notification_type=notification_type,
        )
    except NotificationError as e:
        raise handle_notification_error(e) from e
    return ok(page)


@router.get(
    "/unread-count",
    response_model=ApiResponse[UnreadCountResponse],
    summary="Get unread notification count",
)
async def get_unread_count(
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> ApiResponse[UnreadCountResponse]:
    count = await service.get_unread_count(current_user.id)
    return ok(UnreadCountResponse(count=count))


@router.post(
    "/read-all",
    response_model=ApiResponse[MarkReadResponse],
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> ApiResponse[MarkReadResponse]:
    marked = await service.mark_all_as_read(current_user.id)
    unread = await service.get_unread_count(current_user.id)
    return ok(MarkReadResponse(marked_count=marked, unread_count=unread))


@router.post(
    "/{notification_id}/read",
    response_model=ApiResponse[MarkReadResponse],
    summary="Mark notification as read",
)
async def mark_read(
    notification_id: UUID,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> ApiResponse[MarkReadResponse]:
    try:
        changed = await service.mark_as_read(current_user.id, notification_id)
    except NotificationError as e:
        raise handle_notification_error(e) from e
    unread = await service.get_unread_count(current_user.id)
    return ok(MarkReadResponse(marked_count=int(changed), unread_count=unread))


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    summary="Delete notification",
)
async def delete_notification(
    notification_id: UUID,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> MessageResponse:
    """Delete one of the current user's notifications."""
    try:
        await service.delete_notification(current_user.id, notification_id)
    except NotificationError as e:
        raise handle_notification_error(e) from e
    return MessageResponse(message="Notification deleted")
