"""Guardians module: parent/child links and parent views of child progress."""

from skillwise.guardians.models import GUARDIANS_TABLES_CQL, LinkState
from skillwise.guardians.service import GuardianService


__all__ = ["GUARDIANS_TABLES_CQL", "GuardianService", "LinkState"]
