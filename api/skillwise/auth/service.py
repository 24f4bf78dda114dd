# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""User account service layer.

Business logic for:
- Account creation with the under-13 parental approval policy
- User lookups by id, email and handle
- Persisting account state (role, block flags, guardian link, Childlock)
- Maintaining the friend and guardian reference sets
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from skillwise.auth.models import User, normalize_handle
from skillwise.auth.permissions import UserRole
from skillwise.auth.schemas import CreateUserRequest
from skillwise.auth.security import hash_password
from skillwise.config.settings import get_settings
from skillwise.utils import utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

# SET<UUID> columns that hold relationship references
RELATION_COLUMNS = (
    "friends",
    "sent_friend_requests",
    "received_friend_requests",
    "pending_parent_requests",
    "pending_child_requests",
    "child_accounts",
)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(Exception):
    """Base account error."""

    def __init__(self, message: str, code: str = "auth_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UserExistsError(AuthError):
    """Email or handle already taken."""

    def __init__(self, message: str = "User already exists", field: str = "email"):
        self.field = field
        super().__init__(message, "user_exists")


# ==============================================================================
# User Service
# ==============================================================================


class UserService:
    """Service for user account storage."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._get_user_by_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE email = ?"
        )
        self._get_user_by_handle = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE handle = ?"
        )
        self._get_users_by_ids = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id IN ?"
        )
        self._list_users = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users LIMIT ?"
        )
        self._list_role_states = self.session.prepare(
            f"SELECT role, is_blocked FROM {self.keyspace}.users"
        )

        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users (
                id, email, handle, name, phone, password_hash, role, age, status,
                is_blocked, blocked_reason, requires_parental_approval,
                parent_id, parent_confirmed, child_lock_hash,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Scalar account state, written as a whole after a domain transition
        self._update_account_state = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET role = ?, status = ?, is_blocked = ?, blocked_reason = ?,
                requires_parental_approval = ?, parent_id = ?,
                parent_confirmed = ?, child_lock_hash = ?, phone = ?,
                updated_at = ?
            WHERE id = ?
        """)

        self._add_relation = {
            column: self.session.prepare(
                f"UPDATE {self.keyspace}.users SET {column} = {column} + ? "
                "WHERE id = ?"
            )
            for column in RELATION_COLUMNS
        }
        self._remove_relation = {
            column: self.session.prepare(
                f"UPDATE {self.keyspace}.users SET {column} = {column} - ? "
                "WHERE id = ?"
            )
            for column in RELATION_COLUMNS
        }

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_user(self, user_id: UUID) -> User | None:
        """Find user by ID."""
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.session.aexecute(
            self._get_user_by_email, [email.lower().strip()]
        )
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_handle(self, handle: str) -> User | None:
        result = await self.session.aexecute(
            self._get_user_by_handle, [normalize_handle(handle)]
        )
        row = result.one()
        return User.from_row(row) if row else None

    async def get_users(self, user_ids: set[UUID] | list[UUID]) -> list[User]:
        """Load several users at once; unknown ids are skipped."""
        ids = list(user_ids)
        if not ids:
            return []
        result = await self.session.aexecute(self._get_users_by_ids, [ids])
        return [User.from_row(row) for row in result.all()]

    async def list_users(
        self,
        role: UserRole | None = None,
        blocked: bool | None = None,
        limit: int = 100,
    ) -> list[User]:
        """List users, filtered in memory by role and block status.

        Reads up to ``limit`` rows when no filter is given. Filters are applied
        to a wider scan since Cassandra cannot filter these columns without
        ALLOW FILTERING; this is an admin-only, low-frequency listing.
        """
        scan_limit = limit if role is None and blocked is None else limit * 10
        result = await self.session.aexecute(self._list_users, [scan_limit])
        users = [User.from_row(row) for row in result.all()]
        if role is not None:
            users = [u for u in users if u.role == role.value]
        if blocked is not None:
            users = [u for u in users if u.is_blocked == blocked]
        return sorted(users, key=lambda u: u.created_at, reverse=True)[:limit]

    async def count_users(self) -> dict[str, int]:
        """Count users per role plus blocked accounts (full scan)."""
        result = await self.session.aexecute(self._list_role_states)
        counts: dict[str, int] = {role.value: 0 for role in UserRole}
        counts["total"] = 0
        counts["blocked"] = 0
        for row in result.all():
            counts["total"] += 1
            if row.role in counts:
                counts[row.role] += 1
            if row.is_blocked:
                counts["blocked"] += 1
        return counts

    # ==========================================================================
    # Commands
    # ==========================================================================

    async def create_user(self, data: CreateUserRequest) -> User:
        """Create an account, applying the under-13 parental approval policy.

        Raises:
            UserExistsError: If the email or handle is already taken
        """
        settings = get_settings()

        if await self.get_user_by_email(data.email):
            raise UserExistsError("Email already registered", field="email")

        user = User(
            email=data.email,
            handle=data.handle,
            name=data.name,
            phone=data.phone,
            password_hash=hash_password(data.password),
            role=data.role.value,
            age=data.age,
        )
        if await self.get_user_by_handle(user.handle):
            raise UserExistsError("Handle already taken", field="handle")

        user.apply_age_policy(settings.minimum_unsupervised_age)

        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.email,
                user.handle,
                user.name,
                user.phone,
                user.password_hash,
                user.role,
                user.age,
                user.status,
                user.is_blocked,
                user.blocked_reason,
                user.requires_parental_approval,
                user.parent_id,
                user.parent_confirmed,
                user.child_lock_hash,
                user.created_at,
                user.updated_at,
            ],
        )

        logger.info(
            "user_created",
            new_user_id=str(user.id),
            role=user.role,
            blocked=user.is_blocked,
        )
        return user

    async def save_account_state(self, user: User) -> User:
        """Persist the scalar account fields of ``user``."""
        user.updated_at = utc_now()
        await self.session.aexecute(
            self._update_account_state,
            [
                user.role,
                user.status,
                user.is_blocked,
                user.blocked_reason,
                user.requires_parental_approval,
                user.parent_id,
                user.parent_confirmed,
                user.child_lock_hash,
                user.phone,
                user.updated_at,
                user.id,
            ],
        )
        return user

    async def add_relation(self, user_id: UUID, column: str, other_id: UUID) -> None:
        """Add ``other_id`` to one of the user's relationship sets."""
        await self.session.aexecute(self._add_relation[column], [{other_id}, user_id])

    async def remove_relation(
        self, user_id: UUID, column: str, other_id: UUID
    ) -> None:
        """Remove ``other_id`` from one of the user's relationship sets."""
        await self.session.aexecute(
            self._remove_relation[column], [{other_id}, user_id]
        )
