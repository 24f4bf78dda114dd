"""Health check module."""

from skillwise.health.router import router


__all__ = ["router"]
