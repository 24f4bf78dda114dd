"""Guardian link API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from skillwise.auth.dependencies import AccountUser, ActiveUser, ParentUser
from skillwise.auth.schemas import UserSummary
from skillwise.core.schemas import ApiResponse, MessageResponse, ok
from skillwise.guardians.dependencies import GuardianServiceDep, handle_guardian_error
from skillwise.guardians.schemas import (
    ChildAccountResponse,
    ChildProgressResponse,
    GuardianLinkRequest,
    PendingGuardianRequests,
)
from skillwise.guardians.service import GuardianError


router = APIRouter(prefix="/api/guardians", tags=["guardians"])


@router.post(
    "/requests",
    response_model=ApiResponse[UserSummary],
    status_code=status.HTTP_201_CREATED,
    summary="Send guardian link request",
)
async def send_request(
    data: GuardianLinkRequest,
    service: GuardianServiceDep,
    user: AccountUser,
) -> ApiResponse[UserSummary]:
    """Parents address a Child/Student handle, children a Parent handle.

    Open to accounts blocked while waiting for parental approval.
    """
    try:
        other = await service.send_request(user, data.handle)
    except GuardianError as e:
        raise handle_guardian_error(e) from e
    return ok(other, message="Guardian request sent")


@router.get(
    "/requests",
    response_model=ApiResponse[PendingGuardianRequests],
    summary="List pending guardian requests",
)
async def list_requests(
    service: GuardianServiceDep,
    user: AccountUser,
) -> ApiResponse[PendingGuardianRequests]:
    return ok(await service.list_pending(user))


@router.post(
    "/requests/{other_id}/accept",
    response_model=ApiResponse[UserSummary],
    summary="Accept guardian request",
)
async def accept_request(
    other_id: UUID,
    service: GuardianServiceDep,
    user: AccountUser,
) -> ApiResponse[UserSummary]:
    try:
        other = await service.accept_request(user, other_id)
    except GuardianError as e:
        raise handle_guardian_error(e) from e
    return ok(other, message="Guardian link established")


@router.post(
    "/requests/{other_id}/reject",
    response_model=MessageResponse,
    summary="Reject guardian request",
)
async def reject_request(
    other_id: UUID,
    service: GuardianServiceDep,
    user: AccountUser,
) -> MessageResponse:
    try:
        await service.reject_request(user, other_id)
    except GuardianError as e:
        raise handle_guardian_error(e) from e
    return MessageResponse(message="Guardian request rejected")


@router.delete(
    "/links/{other_id}",
    response_model=MessageResponse,
    summary="Remove guardian link",
)
async def remove_link(
    other_id: UUID,
    service: GuardianServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    try:
        await service.remove_link(user, other_id)
    except GuardianError as e:
        raise handle_guardian_error(e) from e
    return MessageResponse(message="Guardian link removed")


@router.get(
    "/children",
    response_model=ApiResponse[list[ChildAccountResponse]],
    summary="List linked children",
)
async def list_children(
    service: GuardianServiceDep,
    parent: ParentUser,
) -> ApiResponse[list[ChildAccountResponse]]:
    return ok(await service.list_children(parent))


@router.get(
    "/children/{child_id}/progress",
    response_model=ApiResponse[ChildProgressResponse],
    summary="Get child learning progress",
)
async def get_child_progress(
    child_id: UUID,
    service: GuardianServiceDep,
    parent: ParentUser,
) -> ApiResponse[ChildProgressResponse]:
    try:
        return ok(await service.get_child_progress(parent, child_id))
    except GuardianError as e:
        raise handle_guardian_error(e) from e
