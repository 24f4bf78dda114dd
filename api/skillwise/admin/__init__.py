"""Admin module: account moderation and platform statistics."""

from skillwise.admin.service import AdminService


__all__ = ["AdminService"]
