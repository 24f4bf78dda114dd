"""Tests for the guardian link state machine."""

from unittest.mock import AsyncMock, Mock

import pytest

from skillwise.auth.models import UNDER_AGE_BLOCK_REASON
from skillwise.auth.permissions import UserRole
from skillwise.guardians.models import GuardianRequest, LinkState, link_state
from skillwise.guardians.service import (
    AlreadyLinkedError,
    ChildLinkedElsewhereError,
    DuplicateGuardianRequestError,
    GuardianRequestNotFoundError,
    GuardianService,
    InvalidPairError,
    NotLinkedError,
    NotYourChildError,
    OwnRequestError,
)
from skillwise.learning.service import LearningService
from skillwise.notifications.models import NotificationType


REQUEST_ROW = "FROM test_ks.guardian_requests WHERE parent_id = ? AND child_id = ?"


@pytest.fixture
def learning_service():
    service = Mock(spec=LearningService)
    service.get_course_summaries = AsyncMock(return_value=[])
    return service


@pytest.fixture
def service(mock_session, mock_user_service, mock_notification_service, learning_service):
    return GuardianService(
        session=mock_session,
        keyspace="test_ks",
        user_service=mock_user_service,
        notification_service=mock_notification_service,
        learning_service=learning_service,
    )


@pytest.fixture
def parent(make_user, mock_user_service):
    user = make_user(UserRole.PARENT, name="Paula", handle="paula")
    mock_user_service.register(user)
    return user


@pytest.fixture
def kid(make_user, mock_user_service):
    """An 11-year-old student blocked until a parent confirms."""
    user = make_user(UserRole.STUDENT, name="Kiko", handle="kiko", age=11)
    user.apply_age_policy()
    mock_user_service.register(user)
    return user


def _pending(cql, as_row, parent, kid, initiated_by) -> None:
    parent.pending_child_requests.add(kid.id)
    kid.pending_parent_requests.add(parent.id)
    cql.respond(
        REQUEST_ROW,
        [
            as_row(
                GuardianRequest(
                    parent_id=parent.id, child_id=kid.id, initiated_by=initiated_by.id
                )
            )
        ],
    )


class TestSendRequest:
    @pytest.mark.asyncio
    async def test_blocked_child_can_ask_a_parent(
        self, service, cql, parent, kid, mock_notification_service
    ) -> None:
        summary = await service.send_request(kid, "@paula")

        assert summary.id == parent.id
        assert link_state(parent, kid) == LinkState.PENDING
        [params] = cql.executed("INSERT INTO test_ks.guardian_requests")
        assert params[:3] == [parent.id, kid.id, kid.id]
        [notification] = mock_notification_service.sent
        assert notification.user_id == parent.id
        assert notification.type == NotificationType.PARENT_REQUEST

    @pytest.mark.asyncio
    async def test_parent_to_parent_is_invalid(
        self, service, parent, make_user, mock_user_service
    ) -> None:
        other = make_user(UserRole.PARENT, handle="other_parent")
        mock_user_service.register(other)

        with pytest.raises(InvalidPairError):
            await service.send_request(parent, "other_parent")

    @pytest.mark.asyncio
    async def test_teacher_cannot_be_supervised(
        self, service, parent, make_user, mock_user_service
    ) -> None:
        teacher = make_user(UserRole.TEACHER, handle="teach")
        mock_user_service.register(teacher)

        with pytest.raises(InvalidPairError):
            await service.send_request(parent, "teach")

    @pytest.mark.asyncio
    async def test_duplicate_request(self, service, cql, as_row, parent, kid) -> None:
        _pending(cql, as_row, parent, kid, initiated_by=kid)

        with pytest.raises(DuplicateGuardianRequestError):
            await service.send_request(parent, "kiko")

    @pytest.mark.asyncio
    async def test_already_linked(self, service, parent, kid) -> None:
        kid.parent_id = parent.id
        kid.parent_confirmed = True

        with pytest.raises(AlreadyLinkedError):
            await service.send_request(parent, "kiko")

    @pytest.mark.asyncio
    async def test_child_linked_to_another_parent(
        self, service, parent, kid, make_user
    ) -> None:
        kid.parent_id = make_user(UserRole.PARENT).id
        kid.parent_confirmed = True

        with pytest.raises(ChildLinkedElsewhereError):
            await service.send_request(parent, "kiko")


class TestAcceptRequest:
    @pytest.mark.asyncio
    async def test_accept_lifts_the_age_block(
        self, service, cql, as_row, parent, kid, mock_notification_service
    ) -> None:
        assert kid.is_blocked
        _pending(cql, as_row, parent, kid, initiated_by=kid)

        await service.accept_request(parent, kid.id)

        assert kid.parent_id == parent.id
        assert kid.parent_confirmed is True
        assert kid.is_blocked is False
        assert kid.requires_parental_approval is False
        assert kid.blocked_reason is None
        assert kid.id in parent.child_accounts
        assert not parent.pending_child_requests
        assert not kid.pending_parent_requests
        types = [n.type for n in mock_notification_service.sent]
        assert types == [NotificationType.PARENT_APPROVAL, NotificationType.ACCOUNT_UNBLOCKED]

    @pytest.mark.asyncio
    async def test_moderator_block_survives_accept(
        self, service, cql, as_row, parent, kid
    ) -> None:
        kid.blocked_reason = "Abusive language"
        _pending(cql, as_row, parent, kid, initiated_by=kid)

        await service.accept_request(parent, kid.id)

        assert kid.parent_confirmed is True
        assert kid.is_blocked is True
        assert kid.blocked_reason == "Abusive language"

    @pytest.mark.asyncio
    async def test_initiator_cannot_accept(
        self, service, cql, as_row, parent, kid
    ) -> None:
        _pending(cql, as_row, parent, kid, initiated_by=kid)

        with pytest.raises(OwnRequestError):
            await service.accept_request(kid, parent.id)
        assert kid.parent_confirmed is False

    @pytest.mark.asyncio
    async def test_requires_mutual_references(
        self, service, cql, as_row, parent, kid
    ) -> None:
        _pending(cql, as_row, parent, kid, initiated_by=kid)
        kid.pending_parent_requests.clear()

        with pytest.raises(GuardianRequestNotFoundError):
            await service.accept_request(parent, kid.id)

    @pytest.mark.asyncio
    async def test_reject_clears_both_sides(
        self, service, cql, as_row, parent, kid, mock_notification_service
    ) -> None:
        _pending(cql, as_row, parent, kid, initiated_by=parent)

        await service.reject_request(kid, parent.id)

        assert link_state(parent, kid) == LinkState.UNLINKED
        assert kid.is_blocked is True
        assert mock_notification_service.sent[-1].user_id == parent.id


class TestLinks:
    @pytest.mark.asyncio
    async def test_remove_link(self, service, parent, kid) -> None:
        kid.parent_id = parent.id
        kid.parent_confirmed = True
        parent.child_accounts.add(kid.id)

        await service.remove_link(kid, parent.id)

        assert kid.parent_id is None
        assert kid.parent_confirmed is False
        assert kid.id not in parent.child_accounts

    @pytest.mark.asyncio
    async def test_remove_missing_link(self, service, parent, kid) -> None:
        with pytest.raises(NotLinkedError):
            await service.remove_link(parent, kid.id)

    @pytest.mark.asyncio
    async def test_child_progress_requires_link(self, service, parent, kid) -> None:
        with pytest.raises(NotYourChildError):
            await service.get_child_progress(parent, kid.id)

    @pytest.mark.asyncio
    async def test_child_progress(
        self, service, parent, kid, learning_service
    ) -> None:
        kid.parent_id = parent.id
        kid.parent_confirmed = True
        parent.child_accounts.add(kid.id)

        progress = await service.get_child_progress(parent, kid.id)

        assert progress.child.id == kid.id
        assert progress.courses == []
        learning_service.get_course_summaries.assert_awaited_once_with(kid.id)

    @pytest.mark.asyncio
    async def test_list_children_skips_unconfirmed(
        self, service, parent, kid, make_user, mock_user_service
    ) -> None:
        stale = make_user(UserRole.CHILD)
        mock_user_service.register(stale)
        kid.parent_id = parent.id
        kid.parent_confirmed = True
        parent.child_accounts.update({kid.id, stale.id})

        children = await service.list_children(parent)

        assert [c.user.id for c in children] == [kid.id]


def test_under_age_reason_is_the_policy_reason(kid) -> None:
    assert kid.blocked_reason == UNDER_AGE_BLOCK_REASON
