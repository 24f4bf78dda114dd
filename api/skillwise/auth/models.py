"""Database models for user accounts.

Cassandra table definitions for:
- users: the account record, including the friend and guardian reference sets

Relationship state lives on both parties as ``SET<UUID>`` columns so a
workflow can check the mutual-reference precondition from the two user rows
alone:

- friends, sent_friend_requests, received_friend_requests
- pending_parent_requests (on the child), pending_child_requests (on the
  parent), child_accounts (on the parent)
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from skillwise.auth.permissions import UserRole
from skillwise.utils import ensure_utc_aware, utc_now


UNDER_AGE_BLOCK_REASON = "Users under 13 require parental approval"


class AccountStatus(str, Enum):
    """Account activation status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    handle TEXT,
    name TEXT,
    phone TEXT,
    password_hash TEXT,
    role TEXT,
    age INT,
    status TEXT,
    is_blocked BOOLEAN,
    blocked_reason TEXT,
    requires_parental_approval BOOLEAN,
    parent_id UUID,
    parent_confirmed BOOLEAN,
    child_lock_hash TEXT,
    friends SET<UUID>,
    sent_friend_requests SET<UUID>,
    received_friend_requests SET<UUID>,
    pending_parent_requests SET<UUID>,
    pending_child_requests SET<UUID>,
    child_accounts SET<UUID>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USER_EMAIL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_email_idx ON {keyspace}.users (email)
"""

USER_HANDLE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_handle_idx ON {keyspace}.users (handle)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_EMAIL_INDEX_CQL,
    USER_HANDLE_INDEX_CQL,
]


# ==============================================================================
# Domain Rules
# ==============================================================================


def is_under_age(age: int | None, minimum_age: int = 13) -> bool:
    """Whether an account needs parental approval because of its age."""
    return age is not None and age < minimum_age


def normalize_handle(handle: str) -> str:
    """Handles are case-insensitive and stored without a leading ``@``."""
    return handle.strip().lstrip("@").lower()


# ==============================================================================
# Entity Classes
# ==============================================================================


class User:
    """User account.

    Attributes:
        id: Unique identifier
        email: Unique email address (lowercase)
        handle: Unique public handle used to address friend/guardian requests
        name: Display name
        role: Admin, Teacher, Student, Parent or Child
        age: Age in years, drives the under-13 block policy
        status: active or inactive
        is_blocked: Soft restriction flag (users are never deleted)
        blocked_reason: Why the account is blocked
        requires_parental_approval: Blocked because of the age policy
        parent_id: Linked parent (set once a guardian link is confirmed)
        parent_confirmed: Whether the guardian link is confirmed
        child_lock_hash: Argon2id hash of the Childlock password
    """

    def __init__(
        self,
        id: UUID | None = None,
        email: str = "",
        handle: str | None = None,
        name: str = "",
        phone: str | None = None,
        password_hash: str = "",
        role: str = UserRole.STUDENT.value,
        age: int | None = None,
        status: str = AccountStatus.ACTIVE.value,
        is_blocked: bool = False,
        blocked_reason: str | None = None,
        requires_parental_approval: bool = False,
        parent_id: UUID | None = None,
        parent_confirmed: bool = False,
        child_lock_hash: str | None = None,
        friends: set[UUID] | None = None,
        sent_friend_requests: set[UUID] | None = None,
        received_friend_requests: set[UUID] | None = None,
        pending_parent_requests: set[UUID] | None = None,
        pending_child_requests: set[UUID] | None = None,
        child_accounts: set[UUID] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.email = email.lower().strip()
        self.handle = normalize_handle(handle) if handle else self.email.split("@")[0]
        self.name = name
        self.phone = phone
        self.password_hash = password_hash
        self.role = role
        self.age = age
        self.status = status
        self.is_blocked = bool(is_blocked)
        self.blocked_reason = blocked_reason
        self.requires_parental_approval = bool(requires_parental_approval)
        self.parent_id = parent_id
        self.parent_confirmed = bool(parent_confirmed)
        self.child_lock_hash = child_lock_hash
        # Cassandra returns None for empty collections
        self.friends = set(friends or ())
        self.sent_friend_requests = set(sent_friend_requests or ())
        self.received_friend_requests = set(received_friend_requests or ())
        self.pending_parent_requests = set(pending_parent_requests or ())
        self.pending_child_requests = set(pending_child_requests or ())
        self.child_accounts = set(child_accounts or ())
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email,
            handle=row.handle,
            name=row.name,
            phone=row.phone,
            password_hash=row.password_hash,
            role=row.role,
            age=row.age,
            status=row.status,
            is_blocked=row.is_blocked,
            blocked_reason=row.blocked_reason,
            requires_parental_approval=row.requires_parental_approval,
            parent_id=row.parent_id,
            parent_confirmed=row.parent_confirmed,
            child_lock_hash=row.child_lock_hash,
            friends=row.friends,
            sent_friend_requests=row.sent_friend_requests,
            received_friend_requests=row.received_friend_requests,
            pending_parent_requests=row.pending_parent_requests,
            pending_child_requests=row.pending_child_requests,
            child_accounts=row.child_accounts,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def apply_age_policy(self, minimum_age: int = 13) -> bool:
        """Block under-age accounts, or lift a block placed by this policy.

        An account below ``minimum_age`` without a confirmed parent is blocked
        and marked as requiring parental approval. Once the age reaches the
        minimum, a block that was placed by this policy is lifted. Blocks
        placed by moderators are left alone.

        Returns:
            True if the account state changed.
        """
        if is_under_age(self.age, minimum_age) and not self.parent_confirmed:
            if self.is_blocked and self.requires_parental_approval:
                return False
            self.is_blocked = True
            self.blocked_reason = UNDER_AGE_BLOCK_REASON
            self.requires_parental_approval = True
            self.status = AccountStatus.INACTIVE.value
            return True

        if not is_under_age(self.age, minimum_age) and self.requires_parental_approval:
            self.lift_parental_block()
            return True

        return False

    def lift_parental_block(self) -> None:
        """Clear a block that was waiting for parental approval."""
        self.requires_parental_approval = False
        if self.blocked_reason == UNDER_AGE_BLOCK_REASON:
            self.is_blocked = False
            self.blocked_reason = None
            self.status = AccountStatus.ACTIVE.value
