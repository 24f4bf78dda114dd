"""User accounts, roles and authentication helpers.

Note: Router and dependencies are not exported here to avoid circular imports.
"""

from skillwise.auth.models import AUTH_TABLES_CQL, User
from skillwise.auth.permissions import UserRole


__all__ = ["AUTH_TABLES_CQL", "User", "UserRole"]
