"""Childlock module: Child account conversion and feature gating."""

from skillwise.childlock.service import ChildLockService, RestrictedFeature


__all__ = ["ChildLockService", "RestrictedFeature"]
