"""Pydantic schemas for the Childlock."""

from pydantic import Field

from skillwise.core.schemas import CamelModel


class ConvertToChildRequest(CamelModel):
    """Length rules are checked by the service so they answer with 400."""

    child_lock_password: str = Field(..., description="New Childlock password")
    phone: str = Field(..., description="Contact phone number")


class VerifyChildLockRequest(CamelModel):
    child_lock_password: str


class UpdateChildLockRequest(CamelModel):
    current_password: str | None = None
    new_password: str
