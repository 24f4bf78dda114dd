"""Friendship rules.

Friend state has no table of its own: it lives in the ``friends``,
``sent_friend_requests`` and ``received_friend_requests`` sets of both users
(see ``skillwise.auth.models``). A request is valid only while both sides
reference each other.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID


if TYPE_CHECKING:
    from skillwise.auth.models import User


class FriendshipState(str, Enum):
    """Relationship of a user towards another user."""

    NONE = "none"
    FRIENDS = "friends"
    REQUEST_SENT = "request_sent"
    REQUEST_RECEIVED = "request_received"


def friendship_state(user: "User", other_id: UUID) -> FriendshipState:
    """State of ``user`` towards ``other_id`` as seen from ``user``'s row."""
    if other_id in user.friends:
        return FriendshipState.FRIENDS
    if other_id in user.sent_friend_requests:
        return FriendshipState.REQUEST_SENT
    if other_id in user.received_friend_requests:
        return FriendshipState.REQUEST_RECEIVED
    return FriendshipState.NONE


def has_pending_request(recipient: "User", requester: "User") -> bool:
    """Whether ``requester`` -> ``recipient`` is pending on both sides."""
    return (
        requester.id in recipient.received_friend_requests
        and recipient.id in requester.sent_friend_requests
    )