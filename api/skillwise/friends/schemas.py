"""Pydantic schemas for friends."""

from pydantic import Field

from skillwise.auth.schemas import HANDLE_PATTERN, UserSummary
from skillwise.core.schemas import CamelModel


class SendFriendRequest(CamelModel):
    handle: str = Field(..., pattern=HANDLE_PATTERN, description="Recipient handle")


class FriendListResponse(CamelModel):
    items: list[UserSummary]
    total: int


class FriendRequestsResponse(CamelModel):
    """Pending requests in both directions."""

    received: list[UserSummary]
    sent: list[UserSummary]
