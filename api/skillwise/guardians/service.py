# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Guardian link service layer.

Business logic for:
- Parent/child link requests initiated from either side
- Accepting, rejecting and removing links
- Lifting the under-13 block once a parent confirms the link
- Parent views of linked children and their progress
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from skillwise.auth.schemas import UserSummary
from skillwise.guardians.models import (
    GuardianRequest,
    LinkState,
    has_mutual_request,
    link_state,
    resolve_pair,
)
from skillwise.guardians.schemas import (
    ChildAccountResponse,
    ChildProgressResponse,
    GuardianRequestResponse,
    PendingGuardianRequests,
)
from skillwise.notifications.models import (
    create_account_status_notification,
    create_guardian_decision_notification,
    create_guardian_request_notification,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from skillwise.auth.models import User
    from skillwise.auth.service import UserService
    from skillwise.learning.service import LearningService
    from skillwise.notifications.service import NotificationService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class GuardianError(Exception):
    """Base guardian link error."""

    def __init__(self, message: str, code: str = "guardian_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class GuardianUserNotFoundError(GuardianError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class InvalidPairError(GuardianError):
    def __init__(
        self,
        message: str = "Guardian links connect a Parent with a Child or Student account",
    ):
        super().__init__(message, "invalid_pair")


class GuardianRequestNotFoundError(GuardianError):
    def __init__(self, message: str = "No pending request from this user"):
        super().__init__(message, "request_not_found")


class DuplicateGuardianRequestError(GuardianError):
    def __init__(self, message: str = "Request already sent"):
        super().__init__(message, "request_already_sent")


class AlreadyLinkedError(GuardianError):
    def __init__(self, message: str = "Already connected"):
        super().__init__(message, "already_linked")


class ChildLinkedElsewhereError(GuardianError):
    def __init__(self, message: str = "This child is already linked to another parent"):
        super().__init__(message, "linked_elsewhere")


class OwnRequestError(GuardianError):
    def __init__(self, message: str = "Only the other party can accept this request"):
        super().__init__(message, "own_request")


class NotLinkedError(GuardianError):
    def __init__(self, message: str = "Child is not connected to this parent"):
        super().__init__(message, "not_linked")


class NotYourChildError(GuardianError):
    def __init__(
        self, message: str = "You can only view progress of your connected children"
    ):
        super().__init__(message, "not_your_child")


# ==============================================================================
# Guardian Service
# ==============================================================================


class GuardianService:
    """Service for the parent/child link state machine."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        user_service: "UserService",
        notification_service: "NotificationService",
        learning_service: "LearningService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.user_service = user_service
        self.notification_service = notification_service
        self.learning_service = learning_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_request = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.guardian_requests
            WHERE parent_id = ? AND child_id = ?
        """)
        self._insert_request = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.guardian_requests
            (parent_id, child_id, initiated_by, created_at)
            VALUES (?, ?, ?, ?)
        """)
        self._delete_request = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.guardian_requests
            WHERE parent_id = ? AND child_id = ?
        """)

    # ==========================================================================
    # Requests
    # ==========================================================================

    async def send_request(self, actor: "User", handle: str) -> UserSummary:
        """Ask the user owning ``handle`` to link with ``actor``.

        Raises:
            GuardianUserNotFoundError: If no user has ``handle``
            InvalidPairError: Unless one side is a Parent and the other a
                Child or Student
            AlreadyLinkedError: If the pair is already linked
            ChildLinkedElsewhereError: If the child has another parent
            DuplicateGuardianRequestError: If a request is already pending
        """
        other = await self.user_service.get_user_by_handle(handle)
        if other is None:
            raise GuardianUserNotFoundError
        parent, child = self._pair(actor, other)

        state = link_state(parent, child)
        if state == LinkState.LINKED:
            raise AlreadyLinkedError
        if child.parent_confirmed and child.parent_id not in (None, parent.id):
            raise ChildLinkedElsewhereError
        if state == LinkState.PENDING:
            raise DuplicateGuardianRequestError

        request = GuardianRequest(
            parent_id=parent.id, child_id=child.id, initiated_by=actor.id
        )
        await self.session.aexecute(
            self._insert_request,
            [request.parent_id, request.child_id, request.initiated_by, request.created_at],
        )
        await self.user_service.add_relation(
            parent.id, "pending_child_requests", child.id
        )
        await self.user_service.add_relation(
            child.id, "pending_parent_requests", parent.id
        )

        await self.notification_service.dispatch(
            create_guardian_request_notification(
                recipient_id=other.id,
                actor_id=actor.id,
                actor_name=actor.name,
                from_parent=actor.id == parent.id,
            )
        )
        logger.info(
            "guardian_request_sent",
            parent_id=str(parent.id),
            child_id=str(child.id),
        )
        return UserSummary.from_user(other)

    async def accept_request(self, actor: "User", other_id: UUID) -> UserSummary:
        """Confirm a pending link. Only the non-initiating party may accept.

        When the child was blocked waiting for parental approval, the block is
        lifted as ``parent_confirmed`` becomes true.

        Raises:
            GuardianRequestNotFoundError: Unless both sides reference the request
            OwnRequestError: If ``actor`` initiated the request
            ChildLinkedElsewhereError: If the child has another parent
        """
        other = await self._require_user(other_id)
        parent, child = self._pair(actor, other)

        if not has_mutual_request(parent, child):
            raise GuardianRequestNotFoundError
        request = await self._get_request_row(parent.id, child.id)
        if request is not None and request.initiated_by == actor.id:
            raise OwnRequestError
        if child.parent_confirmed and child.parent_id not in (None, parent.id):
            raise ChildLinkedElsewhereError

        was_confirmed = child.parent_confirmed
        was_blocked = child.is_blocked
        child.parent_id = parent.id
        child.parent_confirmed = True
        if not was_confirmed and child.requires_parental_approval:
            child.lift_parental_block()
        await self.user_service.save_account_state(child)

        await self._clear_pending(parent, child)
        await self.user_service.add_relation(parent.id, "child_accounts", child.id)

        await self.notification_service.dispatch(
            create_guardian_decision_notification(
                recipient_id=other.id,
                actor_id=actor.id,
                actor_name=actor.name,
                decision="accepted",
            )
        )
        if was_blocked and not child.is_blocked:
            await self.notification_service.dispatch(
                create_account_status_notification(
                    child.id, blocked=False, actor_id=parent.id
                )
            )

        logger.info(
            "guardian_link_confirmed",
            parent_id=str(parent.id),
            child_id=str(child.id),
            unblocked=was_blocked and not child.is_blocked,
        )
        return UserSummary.from_user(other)

    async def reject_request(self, actor: "User", other_id: UUID) -> None:
        """Decline (or withdraw) a pending request; either party may do it.

        Raises:
            GuardianRequestNotFoundError: Unless both sides reference the request
        """
        other = await self._require_user(other_id)
        parent, child = self._pair(actor, other)
        if not has_mutual_request(parent, child):
            raise GuardianRequestNotFoundError

        await self._clear_pending(parent, child)
        await self.notification_service.dispatch(
            create_guardian_decision_notification(
                recipient_id=other.id,
                actor_id=actor.id,
                actor_name=actor.name,
                decision="rejected",
            )
        )
        logger.info(
            "guardian_request_rejected",
            parent_id=str(parent.id),
            child_id=str(child.id),
        )

    async def remove_link(self, actor: "User", other_id: UUID) -> None:
        """Dissolve a confirmed link from either side.

        Raises:
            NotLinkedError: If the pair is not linked
        """
        other = await self._require_user(other_id)
        parent, child = self._pair(actor, other)
        if child.parent_id != parent.id:
            raise NotLinkedError

        child.parent_id = None
        child.parent_confirmed = False
        await self.user_service.save_account_state(child)
        await self.user_service.remove_relation(parent.id, "child_accounts", child.id)

        await self.notification_service.dispatch(
            create_guardian_decision_notification(
                recipient_id=other.id,
                actor_id=actor.id,
                actor_name=actor.name,
                decision="removed",
            )
        )
        logger.info(
            "guardian_link_removed",
            parent_id=str(parent.id),
            child_id=str(child.id),
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def list_pending(self, user: "User") -> PendingGuardianRequests:
        """Pending requests involving ``user``, split by direction."""
        other_ids = user.pending_child_requests | user.pending_parent_requests
        others = await self.user_service.get_users(other_ids)

        incoming, outgoing = [], []
        for other in others:
            pair = resolve_pair(user, other)
            if pair is None:
                continue
            parent, child = pair
            request = await self._get_request_row(parent.id, child.id)
            mine = request is not None and request.initiated_by == user.id
            item = GuardianRequestResponse(
                user=UserSummary.from_user(other),
                initiated_by_me=mine,
                created_at=request.created_at if request else None,
            )
            (outgoing if mine else incoming).append(item)
        return PendingGuardianRequests(incoming=incoming, outgoing=outgoing)

    async def list_children(self, parent: "User") -> list[ChildAccountResponse]:
        children = await self.user_service.get_users(parent.child_accounts)
        return [
            ChildAccountResponse(
                user=UserSummary.from_user(child),
                age=child.age,
                parent_confirmed=child.parent_confirmed,
                is_blocked=child.is_blocked,
            )
            for child in children
            if child.parent_id == parent.id
        ]

    async def get_child_progress(
        self, parent: "User", child_id: UUID
    ) -> ChildProgressResponse:
        """Enrollments of a linked child with ledger-derived progress.

        Raises:
            NotYourChildError: If the child is not linked to ``parent``
        """
        if child_id not in parent.child_accounts:
            raise NotYourChildError
        child = await self._require_user(child_id)
        if child.parent_id != parent.id:
            raise NotYourChildError

        return ChildProgressResponse(
            child=UserSummary.from_user(child),
            courses=await self.learning_service.get_course_summaries(child.id),
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _pair(self, actor: "User", other: "User") -> tuple["User", "User"]:
        pair = resolve_pair(actor, other)
        if pair is None:
            raise InvalidPairError
        return pair

    async def _require_user(self, user_id: UUID) -> "User":
        user = await self.user_service.get_user(user_id)
        if user is None:
            raise GuardianUserNotFoundError
        return user

    async def _get_request_row(
        self, parent_id: UUID, child_id: UUID
    ) -> GuardianRequest | None:
        result = await self.session.aexecute(self._get_request, [parent_id, child_id])
        row = result.one()
        return GuardianRequest.from_row(row) if row else None

    async def _clear_pending(self, parent: "User", child: "User") -> None:
        await self.user_service.remove_relation(
            parent.id, "pending_child_requests", child.id
        )
        await self.user_service.remove_relation(
            child.id, "pending_parent_requests", parent.id
        )
        await self.session.aexecute(self._delete_request, [parent.id, child.id])
