"""Tests for the friend request workflow."""

from uuid import uuid4

import pytest

from skillwise.friends.models import FriendshipState, friendship_state
from skillwise.friends.service import (
    FriendRequestNotFoundError,
    FriendService,
    FriendUserNotFoundError,
    InvalidFriendRequestError,
    NotFriendsError,
)
from skillwise.notifications.models import NotificationType


@pytest.fixture
def service(mock_user_service, mock_notification_service):
    return FriendService(
        user_service=mock_user_service,
        notification_service=mock_notification_service,
    )


@pytest.fixture
def alice(make_user, mock_user_service):
    user = make_user(name="Alice", handle="alice")
    mock_user_service.register(user)
    return user


@pytest.fixture
def bruno(make_user, mock_user_service):
    user = make_user(name="Bruno", handle="bruno")
    mock_user_service.register(user)
    return user


class TestSendRequest:
    @pytest.mark.asyncio
    async def test_records_both_sides_and_notifies(
        self, service, alice, bruno, mock_notification_service
    ) -> None:
        summary = await service.send_request(alice, "@Bruno")

        assert summary.id == bruno.id
        assert bruno.id in alice.sent_friend_requests
        assert alice.id in bruno.received_friend_requests
        [notification] = mock_notification_service.sent
        assert notification.user_id == bruno.id
        assert notification.type == NotificationType.FRIEND_REQUEST

    @pytest.mark.asyncio
    async def test_self_request(self, service, alice) -> None:
        with pytest.raises(InvalidFriendRequestError) as exc_info:
            await service.send_request(alice, "alice")
        assert exc_info.value.code == "self_request"

    @pytest.mark.asyncio
    async def test_unknown_handle(self, service, alice) -> None:
        with pytest.raises(FriendUserNotFoundError):
            await service.send_request(alice, "nobody_here")

    @pytest.mark.asyncio
    async def test_already_friends(self, service, alice, bruno) -> None:
        alice.friends.add(bruno.id)
        bruno.friends.add(alice.id)

        with pytest.raises(InvalidFriendRequestError) as exc_info:
            await service.send_request(alice, "bruno")
        assert exc_info.value.code == "already_friends"

    @pytest.mark.asyncio
    async def test_already_sent(self, service, alice, bruno) -> None:
        await service.send_request(alice, "bruno")

        with pytest.raises(InvalidFriendRequestError) as exc_info:
            await service.send_request(alice, "bruno")
        assert exc_info.value.code == "already_sent"

    @pytest.mark.asyncio
    async def test_reverse_request_pending(self, service, alice, bruno) -> None:
        await service.send_request(bruno, "alice")

        with pytest.raises(InvalidFriendRequestError) as exc_info:
            await service.send_request(alice, "bruno")
        assert exc_info.value.code == "reverse_request_pending"


class TestAnswerRequest:
    @pytest.mark.asyncio
    async def test_accept_makes_both_friends(
        self, service, alice, bruno, mock_notification_service
    ) -> None:
        await service.send_request(alice, "bruno")

        await service.accept_request(bruno, alice.id)

        assert friendship_state(alice, bruno.id) == FriendshipState.FRIENDS
        assert friendship_state(bruno, alice.id) == FriendshipState.FRIENDS
        assert not alice.sent_friend_requests
        assert not bruno.received_friend_requests
        assert mock_notification_service.sent[-1].type == NotificationType.FRIEND_ACCEPTED
        assert mock_notification_service.sent[-1].user_id == alice.id

    @pytest.mark.asyncio
    async def test_accept_requires_both_references(self, service, alice, bruno) -> None:
        """A half-recorded request is not accepted."""
        bruno.received_friend_requests.add(alice.id)

        with pytest.raises(FriendRequestNotFoundError):
            await service.accept_request(bruno, alice.id)
        assert alice.id not in bruno.friends

    @pytest.mark.asyncio
    async def test_sender_cannot_accept_own_request(self, service, alice, bruno) -> None:
        await service.send_request(alice, "bruno")

        with pytest.raises(FriendRequestNotFoundError):
            await service.accept_request(alice, bruno.id)

    @pytest.mark.asyncio
    async def test_reject_clears_pending(
        self, service, alice, bruno, mock_notification_service
    ) -> None:
        await service.send_request(alice, "bruno")

        await service.reject_request(bruno, alice.id)

        assert friendship_state(alice, bruno.id) == FriendshipState.NONE
        assert friendship_state(bruno, alice.id) == FriendshipState.NONE
        assert mock_notification_service.sent[-1].type == NotificationType.FRIEND_REJECTED

    @pytest.mark.asyncio
    async def test_unknown_requester(self, service, bruno) -> None:
        with pytest.raises(FriendRequestNotFoundError):
            await service.reject_request(bruno, uuid4())


class TestFriendList:
    @pytest.mark.asyncio
    async def test_cancel_request(self, service, alice, bruno) -> None:
        await service.send_request(alice, "bruno")

        await service.cancel_request(alice, bruno.id)

        assert not alice.sent_friend_requests
        assert not bruno.received_friend_requests

    @pytest.mark.asyncio
    async def test_cancel_unknown_request(self, service, alice, bruno) -> None:
        with pytest.raises(FriendRequestNotFoundError):
            await service.cancel_request(alice, bruno.id)

    @pytest.mark.asyncio
    async def test_remove_friend(self, service, alice, bruno) -> None:
        alice.friends.add(bruno.id)
        bruno.friends.add(alice.id)

        await service.remove_friend(alice, bruno.id)

        assert bruno.id not in alice.friends
        assert alice.id not in bruno.friends

    @pytest.mark.asyncio
    async def test_remove_stranger(self, service, alice, bruno) -> None:
        with pytest.raises(NotFriendsError):
            await service.remove_friend(alice, bruno.id)

    @pytest.mark.asyncio
    async def test_list_friends_sorted_by_name(
        self, service, alice, bruno, make_user, mock_user_service
    ) -> None:
        carla = make_user(name="carla")
        mock_user_service.register(carla)
        alice.friends.update({carla.id, bruno.id})

        friends = await service.list_friends(alice)

        assert [f.name for f in friends] == ["Bruno", "carla"]
