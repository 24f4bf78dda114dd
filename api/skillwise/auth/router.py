"""Account API endpoints.

Registration, login and token refresh are handled outside this service;
these routes only describe the authenticated account.
"""

from fastapi import APIRouter

from skillwise.auth.dependencies import AccountUser
from skillwise.auth.schemas import UserResponse
from skillwise.core.schemas import ApiResponse, ok


router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Get current user",
)
async def get_me(user: AccountUser) -> ApiResponse[UserResponse]:
    """Get the stored profile of the token holder.

    Blocked accounts can still read their profile, including the block reason.
    """
    return ok(UserResponse.from_user(user))
