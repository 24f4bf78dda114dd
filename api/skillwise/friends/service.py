"""Friend request workflow.

Business logic for:
- Sending, accepting, rejecting and cancelling friend requests
- Removing friends
- Listing friends and pending requests

Every transition updates both users' reference sets and, where the other
party should know, dispatches a notification.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from skillwise.auth.models import normalize_handle
from skillwise.auth.schemas import UserSummary
from skillwise.friends.models import (
    FriendshipState,
    friendship_state,
    has_pending_request,
)
from skillwise.friends.schemas import FriendRequestsResponse
from skillwise.notifications.models import NotificationType, create_friend_notification


if TYPE_CHECKING:
    from skillwise.auth.models import User
    from skillwise.auth.service import UserService
    from skillwise.notifications.service import NotificationService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class FriendError(Exception):
    """Base friend workflow error."""

    def __init__(self, message: str, code: str = "friend_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class FriendUserNotFoundError(FriendError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class InvalidFriendRequestError(FriendError):
    """Request cannot be sent in the current relationship state."""

    def __init__(self, message: str, code: str = "invalid_request"):
        super().__init__(message, code)


class FriendRequestNotFoundError(FriendError):
    def __init__(self, message: str = "Friend request not found"):
        super().__init__(message, "request_not_found")


class NotFriendsError(FriendError):
    def __init__(self, message: str = "This user is not in your friends list"):
        super().__init__(message, "not_friends")


_SEND_REJECTIONS = {
    FriendshipState.FRIENDS: ("You are already friends", "already_friends"),
    FriendshipState.REQUEST_SENT: ("Friend request already sent", "already_sent"),
    FriendshipState.REQUEST_RECEIVED: (
        "This user already sent you a request. Accept it instead",
        "reverse_request_pending",
    ),
}


# ==============================================================================
# Friend Service
# ==============================================================================


class FriendService:
    """Service for friend requests and friend lists."""

    def __init__(
        self,
        user_service: "UserService",
        notification_service: "NotificationService",
    ):
        self.user_service = user_service
        self.notification_service = notification_service

    async def send_request(self, sender: "User", handle: str) -> UserSummary:
        """Send a friend request to the user owning ``handle``.

        Raises:
            InvalidFriendRequestError: Self request, already friends, already
                sent, or a reverse request is waiting
            FriendUserNotFoundError: If no user has ``handle``
        """
        if normalize_handle(handle) == sender.handle:
            raise InvalidFriendRequestError(
                "You cannot send a friend request to yourself", "self_request"
            )

        recipient = await self.user_service.get_user_by_handle(handle)
        if recipient is None:
            raise FriendUserNotFoundError
        if recipient.id == sender.id:
            raise InvalidFriendRequestError(
                "You cannot send a friend request to yourself", "self_request"
            )

        state = friendship_state(sender, recipient.id)
        if state in _SEND_REJECTIONS:
            message, code = _SEND_REJECTIONS[state]
            raise InvalidFriendRequestError(message, code)

        await self.user_service.add_relation(
            sender.id, "sent_friend_requests", recipient.id
        )
        await self.user_service.add_relation(
            recipient.id, "received_friend_requests", sender.id
        )

        await self.notification_service.dispatch(
            create_friend_notification(
                NotificationType.FRIEND_REQUEST, recipient.id, sender.id, sender.name
            )
        )
        logger.info("friend_request_sent", recipient_id=str(recipient.id))
        return UserSummary.from_user(recipient)

    async def accept_request(self, recipient: "User", requester_id: UUID) -> UserSummary:
        """Accept a pending request from ``requester_id``.

        Raises:
            FriendRequestNotFoundError: Unless both sides reference the request
        """
        requester = await self._require_pending(recipient, requester_id)

        await self._clear_pending(recipient, requester)
        await self.user_service.add_relation(recipient.id, "friends", requester.id)
        await self.user_service.add_relation(requester.id, "friends", recipient.id)

        await self.notification_service.dispatch(
            create_friend_notification(
                NotificationType.FRIEND_ACCEPTED,
                requester.id,
                recipient.id,
                recipient.name,
            )
        )
        logger.info("friend_request_accepted", requester_id=str(requester.id))
        return UserSummary.from_user(requester)

    async def reject_request(self, recipient: "User", requester_id: UUID) -> None:
        """Decline a pending request from ``requester_id``.

        Raises:
            FriendRequestNotFoundError: Unless both sides reference the request
        """
        requester = await self._require_pending(recipient, requester_id)
        await self._clear_pending(recipient, requester)

        await self.notification_service.dispatch(
            create_friend_notification(
                NotificationType.FRIEND_REJECTED,
                requester.id,
                recipient.id,
                recipient.name,
            )
        )
        logger.info("friend_request_rejected", requester_id=str(requester.id))

    async def cancel_request(self, sender: "User", recipient_id: UUID) -> None:
        """Withdraw a request ``sender`` sent to ``recipient_id``."""
        if recipient_id not in sender.sent_friend_requests:
            raise FriendRequestNotFoundError
        await self.user_service.remove_relation(
            sender.id, "sent_friend_requests", recipient_id
        )
        await self.user_service.remove_relation(
            recipient_id, "received_friend_requests", sender.id
        )
        logger.info("friend_request_cancelled", recipient_id=str(recipient_id))

    async def remove_friend(self, user: "User", friend_id: UUID) -> None:
        if friend_id not in user.friends:
            raise NotFriendsError
        await self.user_service.remove_relation(user.id, "friends", friend_id)
        await self.user_service.remove_relation(friend_id, "friends", user.id)
        logger.info("friend_removed", friend_id=str(friend_id))

    async def list_friends(self, user: "User") -> list[UserSummary]:
        friends = await self.user_service.get_users(user.friends)
        return sorted(
            (UserSummary.from_user(f) for f in friends), key=lambda s: s.name.lower()
        )

    async def list_requests(self, user: "User") -> FriendRequestsResponse:
        received = await self.user_service.get_users(user.received_friend_requests)
        sent = await self.user_service.get_users(user.sent_friend_requests)
        return FriendRequestsResponse(
            received=[UserSummary.from_user(u) for u in received],
            sent=[UserSummary.from_user(u) for u in sent],
        )

    async def _require_pending(self, recipient: "User", requester_id: UUID) -> "User":
        requester = await self.user_service.get_user(requester_id)
        if requester is None or not has_pending_request(recipient, requester):
            raise FriendRequestNotFoundError
        return requester

    async def _clear_pending(self, recipient: "User", requester: "User") -> None:
        await self.user_service.remove_relation(
            recipient.id, "received_friend_requests", requester.id
        )
        await self.user_service.remove_relation(
            requester.id, "sent_friend_requests", recipient.id
        )
