# ruff: noqa: E402
"""Shared fixtures.

Services are tested against a ``Mock(spec=Session)`` whose ``aexecute``
answers by matching fragments of the prepared CQL, so a test only queues the
rows the code path under test actually reads.
"""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_REQUESTS", "false")

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session
from fastapi import FastAPI
from fastapi.testclient import TestClient

from skillwise.auth.models import User
from skillwise.auth.permissions import UserRole
from skillwise.auth.security import create_access_token, hash_password


# ==============================================================================
# Cassandra doubles
# ==============================================================================


class FakeResult:
    """Result set exposing the parts of the driver API the services use."""

    def __init__(self, rows: list[Any] | None = None):
        self.rows = list(rows or [])

    def one(self) -> Any:
        return self.rows[0] if self.rows else None

    def all(self) -> list[Any]:
        return list(self.rows)

    def __iter__(self):
        return iter(self.rows)


def _normalize(query: str) -> str:
    return " ".join(query.split())


class CqlResponder:
    """Routes ``aexecute`` calls to canned rows by CQL fragment.

    ``respond`` registers a standing answer; ``respond_once`` queues an
    answer consumed by the next matching call. Unmatched calls return an
    empty result.
    """

    def __init__(self) -> None:
        self.standing: list[tuple[str, list[Any]]] = []
        self.queued: list[tuple[str, list[Any]]] = []
        self.calls: list[tuple[str, list[Any]]] = []

    def respond(self, fragment: str, rows: list[Any]) -> None:
        self.standing.insert(0, (_normalize(fragment), rows))

    def respond_once(self, fragment: str, rows: list[Any]) -> None:
        self.queued.append((_normalize(fragment), rows))

    async def __call__(self, statement: Any, params: list[Any] | None = None):
        query = _normalize(getattr(statement, "query_string", statement))
        self.calls.append((query, list(params or [])))

        for i, (fragment, rows) in enumerate(self.queued):
            if fragment in query:
                del self.queued[i]
                return FakeResult(rows)
        for fragment, rows in self.standing:
            if fragment in query:
                return FakeResult(rows)
        return FakeResult()

    def executed(self, fragment: str) -> list[list[Any]]:
        """Parameters of every call whose CQL contains ``fragment``."""
        fragment = _normalize(fragment)
        return [params for query, params in self.calls if fragment in query]


@pytest.fixture
def cql() -> CqlResponder:
    return CqlResponder()


@pytest.fixture
def mock_session(cql: CqlResponder):
    """Mock Cassandra session answering through ``cql``."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda q: Mock(query_string=q))
    # cassandra-asyncio-driver adds aexecute
    session.aexecute = AsyncMock(side_effect=cql.__call__)
    return session


def _as_row(entity: Any) -> SimpleNamespace:
    return SimpleNamespace(**vars(entity))


@pytest.fixture
def as_row() -> Callable[[Any], SimpleNamespace]:
    """Row double with one attribute per entity field."""
    return _as_row


# ==============================================================================
# Users
# ==============================================================================


@pytest.fixture
def make_user() -> Callable[..., User]:
    def _make(role: UserRole = UserRole.STUDENT, **kwargs: Any) -> User:
        user_id = kwargs.pop("id", None) or uuid4()
        kwargs.setdefault("email", f"{role.value.lower()}_{user_id.hex[:8]}@test.com")
        kwargs.setdefault("name", f"Test {role.value}")
        kwargs.setdefault("handle", f"{role.value.lower()}_{user_id.hex[:8]}")
        kwargs.setdefault("age", 30)
        return User(id=user_id, role=role.value, **kwargs)

    return _make


@pytest.fixture
def make_child(make_user) -> Callable[..., User]:
    """Child account whose Childlock is ``lock-1234``."""

    def _make(**kwargs: Any) -> User:
        kwargs.setdefault("child_lock_hash", hash_password("lock-1234"))
        return make_user(UserRole.CHILD, **kwargs)

    return _make


def _auth_headers(user: User, **extra: str) -> dict[str, str]:
    token = create_access_token(
        {"sub": str(user.id), "email": user.email, "role": user.role}
    )
    return {"Authorization": f"Bearer {token}", **extra}


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Bearer headers for a user, plus any extra headers."""
    return _auth_headers


# ==============================================================================
# Services
# ==============================================================================


@pytest.fixture
def mock_user_service():
    """UserService double backed by an in-memory directory."""
    from skillwise.auth.service import UserService

    directory: dict[UUID, User] = {}
    service = Mock(spec=UserService)
    service.directory = directory

    def register(*users: User) -> None:
        for user in users:
            directory[user.id] = user

    async def get_user(user_id):
        return directory.get(UUID(str(user_id)))

    async def get_user_by_handle(handle):
        handle = handle.lstrip("@").lower()
        return next((u for u in directory.values() if u.handle == handle), None)

    async def get_users(user_ids):
        return [directory[i] for i in user_ids if i in directory]

    async def add_relation(user_id, column, other_id):
        if user_id in directory:
            getattr(directory[user_id], column).add(other_id)

    async def remove_relation(user_id, column, other_id):
        if user_id in directory:
            getattr(directory[user_id], column).discard(other_id)

    async def save_account_state(user):
        directory[user.id] = user
        return user

    async def count_users():
        counts = {role.value: 0 for role in UserRole}
        counts["total"] = len(directory)
        counts["blocked"] = sum(1 for u in directory.values() if u.is_blocked)
        for user in directory.values():
            counts[user.role] += 1
        return counts

    service.register = register
    service.get_user = AsyncMock(side_effect=get_user)
    service.get_user_by_handle = AsyncMock(side_effect=get_user_by_handle)
    service.get_users = AsyncMock(side_effect=get_users)
    service.add_relation = AsyncMock(side_effect=add_relation)
    service.remove_relation = AsyncMock(side_effect=remove_relation)
    service.save_account_state = AsyncMock(side_effect=save_account_state)
    service.count_users = AsyncMock(side_effect=count_users)
    service.list_users = AsyncMock(return_value=[])
    return service


@pytest.fixture
def mock_notification_service():
    """Records dispatched notifications."""
    from skillwise.notifications.service import NotificationService

    service = Mock(spec=NotificationService)
    service.sent = []

    async def dispatch(notification):
        service.sent.append(notification)
        return notification

    service.dispatch = AsyncMock(side_effect=dispatch)
    return service


@pytest.fixture
def mock_course_service():
    from skillwise.courses.service import CourseService

    service = Mock(spec=CourseService)
    service.get_course = AsyncMock(return_value=None)
    service.get_courses = AsyncMock(return_value={})
    service.count_courses = AsyncMock(return_value=0)
    return service


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def app(mock_user_service) -> FastAPI:
    """Application without lifespan; tests attach the services they need."""
    from skillwise.main import create_app

    application = create_app()
    application.state.user_service = mock_user_service
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
