"""Tests for account storage and the under-13 policy at creation."""

from datetime import timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest

from skillwise.auth.models import UNDER_AGE_BLOCK_REASON, AccountStatus
from skillwise.auth.permissions import UserRole
from skillwise.auth.schemas import CreateUserRequest
from skillwise.auth.security import verify_password
from skillwise.auth.service import UserExistsError, UserService


BY_EMAIL = "FROM test_ks.users WHERE email = ?"
BY_HANDLE = "FROM test_ks.users WHERE handle = ?"
INSERT_USER = "INSERT INTO test_ks.users ("
LIST_USERS = "SELECT * FROM test_ks.users LIMIT ?"
ROLE_STATES = "SELECT role, is_blocked FROM test_ks.users"


@pytest.fixture
def service(mock_session) -> UserService:
    return UserService(session=mock_session, keyspace="test_ks")


def _request(**overrides) -> CreateUserRequest:
    data = {
        "email": "Learner@Example.com",
        "name": "  Lee Learner ",
        "password": "correct-horse",
    }
    data.update(overrides)
    return CreateUserRequest(**data)


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_creates_active_adult(self, service, cql) -> None:
        user = await service.create_user(_request(age=30))

        assert user.email == "learner@example.com"
        assert user.handle == "learner"
        assert user.name == "Lee Learner"
        assert user.is_blocked is False
        assert user.status == AccountStatus.ACTIVE.value
        assert verify_password("correct-horse", user.password_hash)

        (params,) = cql.executed(INSERT_USER)
        assert params[:3] == [user.id, "learner@example.com", "learner"]
        assert params[6] == "Student"

    @pytest.mark.asyncio
    async def test_under_13_is_blocked_at_creation(self, service, cql) -> None:
        user = await service.create_user(_request(age=11, handle="@Kiddo"))

        assert user.handle == "kiddo"
        assert user.is_blocked is True
        assert user.requires_parental_approval is True
        assert user.blocked_reason == UNDER_AGE_BLOCK_REASON
        assert user.status == AccountStatus.INACTIVE.value
        params = cql.executed(INSERT_USER)[0]
        assert params[8:12] == [
            "inactive",
            True,
            UNDER_AGE_BLOCK_REASON,
            True,
        ]

    @pytest.mark.asyncio
    async def test_unknown_age_is_not_blocked(self, service) -> None:
        user = await service.create_user(_request())
        assert user.is_blocked is False

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service, cql, as_row, make_user) -> None:
        cql.respond(BY_EMAIL, [as_row(make_user(email="learner@example.com"))])

        with pytest.raises(UserExistsError) as exc:
            await service.create_user(_request())

        assert exc.value.field == "email"
        assert cql.executed(INSERT_USER) == []

    @pytest.mark.asyncio
    async def test_duplicate_handle(self, service, cql, as_row, make_user) -> None:
        cql.respond(BY_HANDLE, [as_row(make_user(handle="learner"))])

        with pytest.raises(UserExistsError) as exc:
            await service.create_user(_request())

        assert exc.value.field == "handle"
        assert cql.executed(BY_HANDLE) == [["learner"]]


class TestQueries:
    @pytest.mark.asyncio
    async def test_handle_lookup_is_normalized(self, service, cql) -> None:
        await service.get_user_by_handle(" @Ana.B ")
        assert cql.executed(BY_HANDLE) == [["ana.b"]]

    @pytest.mark.asyncio
    async def test_get_users_without_ids(self, service, cql) -> None:
        assert await service.get_users(set()) == []
        assert cql.calls == []

    @pytest.mark.asyncio
    async def test_list_users_filters_and_orders(
        self, service, cql, as_row, make_user
    ) -> None:
        old_teacher = make_user(UserRole.TEACHER)
        old_teacher.created_at -= timedelta(days=2)
        new_teacher = make_user(UserRole.TEACHER)
        student = make_user()
        cql.respond(LIST_USERS, [as_row(u) for u in (old_teacher, student, new_teacher)])

        users = await service.list_users(role=UserRole.TEACHER, limit=5)

        assert [u.id for u in users] == [new_teacher.id, old_teacher.id]
        assert cql.executed(LIST_USERS) == [[50]]

    @pytest.mark.asyncio
    async def test_count_users(self, service, cql) -> None:
        cql.respond(
            ROLE_STATES,
            [
                SimpleNamespace(role="Admin", is_blocked=False),
                SimpleNamespace(role="Student", is_blocked=True),
                SimpleNamespace(role="Student", is_blocked=False),
                SimpleNamespace(role="Child", is_blocked=None),
            ],
        )

        counts = await service.count_users()

        assert counts["total"] == 4
        assert counts["blocked"] == 1
        assert counts["Student"] == 2
        assert counts["Teacher"] == 0


class TestCommands:
    @pytest.mark.asyncio
    async def test_relations_use_column_statement(self, service, cql) -> None:
        user_id, other_id = uuid4(), uuid4()

        await service.add_relation(user_id, "friends", other_id)
        await service.remove_relation(user_id, "sent_friend_requests", other_id)

        assert cql.executed("SET friends = friends + ?") == [[{other_id}, user_id]]
        assert cql.executed(
            "SET sent_friend_requests = sent_friend_requests - ?"
        ) == [[{other_id}, user_id]]

    @pytest.mark.asyncio
    async def test_save_account_state(self, service, cql, make_user) -> None:
        user = make_user(is_blocked=True, blocked_reason="Spam")

        saved = await service.save_account_state(user)

        (params,) = cql.executed("SET role = ?, status = ?")
        assert params[2:4] == [True, "Spam"]
        assert params[-1] == user.id
        assert saved.updated_at is not None
