"""Tests for Childlock conversion and verification."""

import pytest

from skillwise.auth.permissions import UserRole
from skillwise.auth.security import verify_password
from skillwise.childlock.service import (
    AlreadyChildError,
    ChildLockService,
    ChildLockValidationError,
    InvalidChildLockError,
    NotChildError,
    NotEligibleError,
)


@pytest.fixture
def service(mock_user_service):
    return ChildLockService(user_service=mock_user_service)


class TestConvertToChild:
    @pytest.mark.asyncio
    async def test_adult_converts_account(
        self, service, make_user, mock_user_service
    ) -> None:
        user = make_user(age=34)

        converted = await service.convert_to_child(user, "secret-lock", " 5551234567 ")

        assert converted.role == UserRole.CHILD.value
        assert converted.phone == "5551234567"
        assert verify_password("secret-lock", converted.child_lock_hash)
        mock_user_service.save_account_state.assert_awaited_once_with(user)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("age", [None, 18, 24])
    async def test_caller_must_be_old_enough(self, service, make_user, age) -> None:
        with pytest.raises(NotEligibleError):
            await service.convert_to_child(make_user(age=age), "secret-lock", "5551234567")

    @pytest.mark.asyncio
    async def test_already_child(self, service, make_child) -> None:
        with pytest.raises(AlreadyChildError):
            await service.convert_to_child(make_child(), "secret-lock", "5551234567")

    @pytest.mark.asyncio
    async def test_short_password(self, service, make_user) -> None:
        with pytest.raises(ChildLockValidationError):
            await service.convert_to_child(make_user(), "12345", "5551234567")

    @pytest.mark.asyncio
    async def test_short_phone(self, service, make_user, mock_user_service) -> None:
        user = make_user()
        with pytest.raises(ChildLockValidationError):
            await service.convert_to_child(user, "secret-lock", "555-12")
        assert user.role == UserRole.STUDENT.value
        mock_user_service.save_account_state.assert_not_awaited()


class TestVerify:
    def test_correct_child_lock(self, service, make_child) -> None:
        service.verify(make_child(), "lock-1234")

    def test_wrong_child_lock(self, service, make_child) -> None:
        with pytest.raises(InvalidChildLockError):
            service.verify(make_child(), "lock-0000")

    def test_missing_child_lock(self, service, make_child) -> None:
        with pytest.raises(InvalidChildLockError):
            service.verify(make_child(), None)

    def test_not_a_child(self, service, make_user) -> None:
        with pytest.raises(NotChildError):
            service.verify(make_user(), "lock-1234")


class TestUpdate:
    @pytest.mark.asyncio
    async def test_replaces_child_lock(self, service, make_child) -> None:
        child = make_child()

        await service.update(child, "lock-1234", "new-lock-99")

        assert verify_password("new-lock-99", child.child_lock_hash)
        assert not verify_password("lock-1234", child.child_lock_hash)

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, service, make_child) -> None:
        with pytest.raises(InvalidChildLockError):
            await service.update(make_child(), "nope-nope", "new-lock-99")

    @pytest.mark.asyncio
    async def test_new_password_too_short(self, service, make_child) -> None:
        with pytest.raises(ChildLockValidationError):
            await service.update(make_child(), "lock-1234", "abc")

    @pytest.mark.asyncio
    async def test_first_lock_after_role_assignment(
        self, service, make_child, mock_user_service
    ) -> None:
        """An admin-assigned Child account has no lock until it sets one."""
        child = make_child(child_lock_hash=None)

        await service.update(child, None, "first-lock")

        assert verify_password("first-lock", child.child_lock_hash)
        mock_user_service.save_account_state.assert_awaited_once_with(child)
        service.verify(child, "first-lock")

    @pytest.mark.asyncio
    async def test_existing_lock_requires_current_password(
        self, service, make_child
    ) -> None:
        with pytest.raises(InvalidChildLockError):
            await service.update(make_child(), None, "new-lock-99")
