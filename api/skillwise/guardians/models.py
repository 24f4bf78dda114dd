"""Database models and rules for guardian links.

A guardian link connects a Parent account with a Child or Student account:

    unlinked -> pending -> linked

The pending state is recorded on both users (``pending_child_requests`` on
the parent, ``pending_parent_requests`` on the child). The
``guardian_requests`` table remembers who initiated each request, since only
the other party may accept it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from skillwise.auth.permissions import is_parent, is_supervisable
from skillwise.utils import ensure_utc_aware, utc_now


if TYPE_CHECKING:
    from skillwise.auth.models import User


class LinkState(str, Enum):
    """Guardian link state between one parent and one child."""

    UNLINKED = "unlinked"
    PENDING = "pending"
    LINKED = "linked"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

GUARDIAN_REQUESTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.guardian_requests (
    parent_id UUID,
    child_id UUID,
    initiated_by UUID,
    created_at TIMESTAMP,
    PRIMARY KEY ((parent_id), child_id)
)
"""

GUARDIANS_TABLES_CQL = [
    GUARDIAN_REQUESTS_TABLE_CQL,
]


# ==============================================================================
# Domain Rules
# ==============================================================================


def resolve_pair(actor: "User", other: "User") -> tuple["User", "User"] | None:
    """Order two users as ``(parent, child)``, or None if they cannot link."""
    if is_parent(actor.role) and is_supervisable(other.role):
        return actor, other
    if is_supervisable(actor.role) and is_parent(other.role):
        return other, actor
    return None


def has_mutual_request(parent: "User", child: "User") -> bool:
    """Whether the pending request is referenced on both sides."""
    return (
        child.id in parent.pending_child_requests
        and parent.id in child.pending_parent_requests
    )


def link_state(parent: "User", child: "User") -> LinkState:
    if child.parent_id == parent.id and child.parent_confirmed:
        return LinkState.LINKED
    if has_mutual_request(parent, child):
        return LinkState.PENDING
    return LinkState.UNLINKED


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class GuardianRequest:
    parent_id: UUID
    child_id: UUID
    initiated_by: UUID
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: Any) -> "GuardianRequest":
        return cls(
            parent_id=row.parent_id,
            child_id=row.child_id,
            initiated_by=row.initiated_by,
            created_at=ensure_utc_aware(row.created_at),
        )
