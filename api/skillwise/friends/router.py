"""Friend API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from skillwise.auth.dependencies import ActiveUser
from skillwise.auth.schemas import UserSummary
from skillwise.childlock.dependencies import FriendRequestUser
from skillwise.core.schemas import ApiResponse, MessageResponse, ok
from skillwise.friends.dependencies import FriendServiceDep, handle_friend_error
from skillwise.friends.schemas import (
    FriendListResponse,
    FriendRequestsResponse,
    SendFriendRequest,
)
from skillwise.friends.service import FriendError


router = APIRouter(prefix="/api/friends", tags=["friends"])


@router.get(
    "",
    response_model=ApiResponse[FriendListResponse],
    summary="List friends",
)
async def list_friends(
    service: FriendServiceDep,
    user: ActiveUser,
) -> ApiResponse[FriendListResponse]:
    friends = await service.list_friends(user)
    return ok(FriendListResponse(items=friends, total=len(friends)))


@router.get(
    "/requests",
    response_model=ApiResponse[FriendRequestsResponse],
    summary="List pending friend requests",
)
async def list_requests(
    service: FriendServiceDep,
    user: ActiveUser,
) -> ApiResponse[FriendRequestsResponse]:
    return ok(await service.list_requests(user))


@router.post(
    "/requests",
    response_model=ApiResponse[UserSummary],
    status_code=status.HTTP_201_CREATED,
    summary="Send friend request",
)
async def send_request(
    data: SendFriendRequest,
    service: FriendServiceDep,
    user: FriendRequestUser,
) -> ApiResponse[UserSummary]:
    """Send a request by handle. Child accounts send the Childlock."""
    try:
        recipient = await service.send_request(user, data.handle)
    except FriendError as e:
        raise handle_friend_error(e) from e
    return ok(recipient, message="Friend request sent")


@router.post(
    "/requests/{requester_id}/accept",
    response_model=ApiResponse[UserSummary],
    summary="Accept friend request",
)
async def accept_request(
    requester_id: UUID,
    service: FriendServiceDep,
    user: ActiveUser,
) -> ApiResponse[UserSummary]:
    try:
        friend = await service.accept_request(user, requester_id)
    except FriendError as e:
        raise handle_friend_error(e) from e
    return ok(friend, message="Friend request accepted")


@router.post(
    "/requests/{requester_id}/reject",
    response_model=MessageResponse,
    summary="Reject friend request",
)
async def reject_request(
    requester_id: UUID,
    service: FriendServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    try:
        await service.reject_request(user, requester_id)
    except FriendError as e:
        raise handle_friend_error(e) from e
    return MessageResponse(message="Friend request rejected")


@router.delete(
    "/requests/{recipient_id}",
    response_model=MessageResponse,
    summary="Cancel sent friend request",
)
async def cancel_request(
    recipient_id: UUID,
    service: FriendServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    try:
        await service.cancel_request(user, recipient_id)
    except FriendError as e:
        raise handle_friend_error(e) from e
    return MessageResponse(message="Friend request cancelled")


@router.delete(
    "/{friend_id}",
    response_model=MessageResponse,
    summary="Remove friend",
)
async def remove_friend(
    friend_id: UUID,
    service: FriendServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    try:
        await service.remove_friend(user, friend_id)
    except FriendError as e:
        raise handle_friend_error(e) from e
    return MessageResponse(message="Friend removed")
