"""Role-based access control (RBAC) for SkillWise.

Roles and their levels:
- Admin (3): platform moderation, user management
- Teacher (2): authors and edits own courses
- Student (1): learns, posts in the community
- Parent (1): supervises linked child accounts
- Child (0): supervised account, restricted features behind the Childlock
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles. Values match the stored and wire representation."""

    CHILD = "Child"
    STUDENT = "Student"
    PARENT = "Parent"
    TEACHER = "Teacher"
    ADMIN = "Admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.CHILD: 0,
    UserRole.STUDENT: 1,
    UserRole.PARENT: 1,
    UserRole.TEACHER: 2,
    UserRole.ADMIN: 3,
}

# Roles an admin may assign through the role update endpoint
ASSIGNABLE_ROLES: frozenset[UserRole] = frozenset(
    {UserRole.ADMIN, UserRole.STUDENT, UserRole.TEACHER, UserRole.CHILD}
)

# Roles that can sit on the child side of a guardian link
SUPERVISABLE_ROLES: frozenset[UserRole] = frozenset({UserRole.CHILD, UserRole.STUDENT})


def parse_role(role: UserRole | str) -> UserRole | None:
    """Coerce a role value, returning None for unknown roles."""
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def get_role_level(role: UserRole | str) -> int:
    """Permission level for a role, 0 for unknown roles."""
    parsed = parse_role(role)
    return ROLE_HIERARCHY.get(parsed, 0) if parsed else 0


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.TEACHER)
        True
        >>> has_permission("Parent", "Teacher")
        False
        >>> has_permission("Parent", "Student")
        True
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    return parse_role(role) == UserRole.ADMIN


def is_child(role: UserRole | str) -> bool:
    return parse_role(role) == UserRole.CHILD


def is_parent(role: UserRole | str) -> bool:
    return parse_role(role) == UserRole.PARENT


def is_supervisable(role: UserRole | str) -> bool:
    """Whether an account with this role can be linked under a parent."""
    return parse_role(role) in SUPERVISABLE_ROLES
