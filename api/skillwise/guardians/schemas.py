"""Pydantic schemas for guardian links."""

from datetime import datetime

from pydantic import Field

from skillwise.auth.schemas import HANDLE_PATTERN, UserSummary
from skillwise.core.schemas import CamelModel
from skillwise.learning.schemas import CourseProgressSummary


class GuardianLinkRequest(CamelModel):
    handle: str = Field(..., pattern=HANDLE_PATTERN, description="Other party handle")


class GuardianRequestResponse(CamelModel):
    """A pending request as seen by one of its parties."""

    user: UserSummary
    initiated_by_me: bool
    created_at: datetime | None = None


class PendingGuardianRequests(CamelModel):
    incoming: list[GuardianRequestResponse]
    outgoing: list[GuardianRequestResponse]


class ChildAccountResponse(CamelModel):
    user: UserSummary
    age: int | None = None
    parent_confirmed: bool
    is_blocked: bool


class ChildProgressResponse(CamelModel):
    child: UserSummary
    courses: list[CourseProgressSummary]
