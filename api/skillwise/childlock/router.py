"""Childlock API endpoints."""

from fastapi import APIRouter

from skillwise.auth.dependencies import ActiveUser
from skillwise.auth.schemas import UserResponse
from skillwise.childlock.dependencies import (
    ChildLockServiceDep,
    handle_child_lock_error,
)
from skillwise.childlock.schemas import (
    ConvertToChildRequest,
    UpdateChildLockRequest,
    VerifyChildLockRequest,
)
from skillwise.childlock.service import ChildLockError
from skillwise.core.schemas import ApiResponse, MessageResponse, ok


router = APIRouter(prefix="/api/childlock", tags=["childlock"])


@router.post(
    "/convert",
    response_model=ApiResponse[UserResponse],
    summary="Convert account to Child mode",
)
async def convert_to_child(
    data: ConvertToChildRequest,
    service: ChildLockServiceDep,
    user: ActiveUser,
) -> ApiResponse[UserResponse]:
    """Protect the current account with a Childlock (callers aged 25+)."""
    try:
        converted = await service.convert_to_child(
            user, data.child_lock_password, data.phone
        )
    except ChildLockError as e:
        raise handle_child_lock_error(e) from e
    return ok(
        UserResponse.from_user(converted),
        message="Successfully converted to child account",
    )


@router.post(
    "/verify",
    response_model=MessageResponse,
    summary="Verify Childlock password",
)
async def verify_child_lock(
    data: VerifyChildLockRequest,
    service: ChildLockServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    try:
        service.verify(user, data.child_lock_password)
    except ChildLockError as e:
        raise handle_child_lock_error(e) from e
    return MessageResponse(message="Child lock password verified successfully")


@router.put(
    "",
    response_model=MessageResponse,
    summary="Change Childlock password",
)
async def update_child_lock(
    data: UpdateChildLockRequest,
    service: ChildLockServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    try:
        await service.update(user, data.current_password, data.new_password)
    except ChildLockError as e:
        raise handle_child_lock_error(e) from e
    return MessageResponse(message="Child lock password updated successfully")
