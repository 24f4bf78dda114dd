"""Shared response schemas.

Every domain route under ``/api`` answers with the envelope
``{"success": true, "data": ..., "message": ...}``. Payload models use
camelCase on the wire and accept either camelCase or snake_case on input.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class MessageResponse(BaseModel):
    """Envelope for operations that return no payload."""

    success: bool = True
    message: str


def ok(data: T, message: str | None = None) -> ApiResponse[T]:
    """Wrap ``data`` in a success envelope."""
    return ApiResponse(data=data, message=message)
