"""Tests for auth permissions."""

import pytest

from skillwise.auth.permissions import (
    ASSIGNABLE_ROLES,
    ROLE_HIERARCHY,
    UserRole,
    get_role_level,
    has_permission,
    is_admin,
    is_child,
    is_parent,
    is_supervisable,
    parse_role,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Wire values are capitalized role names."""
        assert UserRole.ADMIN.value == "Admin"
        assert UserRole.TEACHER.value == "Teacher"
        assert UserRole.STUDENT.value == "Student"
        assert UserRole.PARENT.value == "Parent"
        assert UserRole.CHILD.value == "Child"

    def test_all_roles_have_levels(self) -> None:
        for role in UserRole:
            assert role in ROLE_HIERARCHY

    def test_parent_is_not_assignable(self) -> None:
        assert UserRole.PARENT not in ASSIGNABLE_ROLES
        assert UserRole.CHILD in ASSIGNABLE_ROLES


class TestParseRole:
    def test_enum_passthrough(self) -> None:
        assert parse_role(UserRole.TEACHER) is UserRole.TEACHER

    def test_string_value(self) -> None:
        assert parse_role("Parent") is UserRole.PARENT

    @pytest.mark.parametrize("role", ["admin", "Superuser", ""])
    def test_unknown_role(self, role: str) -> None:
        assert parse_role(role) is None


class TestGetRoleLevel:
    """Tests for get_role_level function."""

    @pytest.mark.parametrize(
        ("role", "expected_level"),
        [
            (UserRole.ADMIN, 3),
            (UserRole.TEACHER, 2),
            (UserRole.STUDENT, 1),
            (UserRole.PARENT, 1),
            (UserRole.CHILD, 0),
            ("Teacher", 2),
        ],
    )
    def test_levels(self, role, expected_level: int) -> None:
        assert get_role_level(role) == expected_level

    def test_invalid_role_returns_zero(self) -> None:
        assert get_role_level("invalid_role") == 0


class TestHasPermission:
    """Tests for has_permission function."""

    def test_admin_has_all_permissions(self) -> None:
        for role in UserRole:
            assert has_permission(UserRole.ADMIN, role)

    def test_teacher_permissions(self) -> None:
        assert has_permission(UserRole.TEACHER, UserRole.TEACHER)
        assert has_permission(UserRole.TEACHER, UserRole.STUDENT)
        assert not has_permission(UserRole.TEACHER, UserRole.ADMIN)

    def test_parent_and_student_share_a_level(self) -> None:
        assert has_permission("Parent", "Student")
        assert has_permission("Student", "Parent")
        assert not has_permission("Parent", "Teacher")

    def test_child_is_lowest(self) -> None:
        assert has_permission(UserRole.CHILD, UserRole.CHILD)
        assert not has_permission(UserRole.CHILD, UserRole.STUDENT)


class TestRolePredicates:
    def test_is_admin(self) -> None:
        assert is_admin("Admin")
        assert not is_admin(UserRole.TEACHER)

    def test_is_child(self) -> None:
        assert is_child(UserRole.CHILD)
        assert not is_child("Student")

    def test_is_parent(self) -> None:
        assert is_parent("Parent")
        assert not is_parent("Admin")

    @pytest.mark.parametrize(
        ("role", "expected"),
        [
            (UserRole.CHILD, True),
            (UserRole.STUDENT, True),
            (UserRole.PARENT, False),
            (UserRole.TEACHER, False),
            (UserRole.ADMIN, False),
        ],
    )
    def test_is_supervisable(self, role: UserRole, expected: bool) -> None:
        assert is_supervisable(role) is expected
