"""Pydantic schemas for the skills marketplace."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, field_validator

from skillwise.core.schemas import CamelModel
from skillwise.skills.models import (
    SkillLevel,
    SkillPost,
    SkillPostType,
    SkillPricing,
    SkillReview,
)


# ==============================================================================
# Requests
# ==============================================================================


class CreateSkillPostRequest(CamelModel):
    """New offer or request. Pricing consistency is checked by the service."""

    type: SkillPostType
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=5, max_length=1000)
    video_intro: str | None = Field(None, max_length=500)
    skill_tags: list[str] = Field(..., min_length=1, max_length=20)
    level: SkillLevel | None = None
    pricing: SkillPricing = SkillPricing.FREE
    barter_request: str | None = Field(None, max_length=500)
    price_amount: Decimal | None = Field(None, ge=0)

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class UpdateSkillPostRequest(CamelModel):
    """Editable fields; anything omitted is left unchanged."""

    type: SkillPostType | None = None
    title: str | None = Field(None, min_length=3, max_length=100)
    description: str | None = Field(None, min_length=5, max_length=1000)
    video_intro: str | None = Field(None, max_length=500)
    skill_tags: list[str] | None = Field(None, min_length=1, max_length=20)
    level: SkillLevel | None = None
    pricing: SkillPricing | None = None
    barter_request: str | None = Field(None, max_length=500)
    price_amount: Decimal | None = Field(None, ge=0)


class SkillReviewRequest(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=500)


class SkillApprovalRequest(CamelModel):
    approved: bool


# ==============================================================================
# Responses
# ==============================================================================


class SkillAuthor(CamelModel):
    id: UUID
    name: str


class SkillReviewResponse(CamelModel):
    reviewer: SkillAuthor
    rating: int
    comment: str | None = None
    created_at: datetime

    @classmethod
    def from_review(cls, review: SkillReview) -> "SkillReviewResponse":
        return cls(
            reviewer=SkillAuthor(id=review.reviewer_id, name=review.reviewer_name),
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
        )


class SkillPostResponse(CamelModel):
    id: UUID
    author: SkillAuthor
    type: SkillPostType
    title: str
    description: str
    video_intro: str | None = None
    skill_tags: list[str]
    level: SkillLevel | None = None
    pricing: SkillPricing
    barter_request: str | None = None
    price_amount: Decimal | None = None
    is_approved: bool
    average_rating: float = 0.0
    review_count: int = 0
    reviews: list[SkillReviewResponse] | None = Field(
        None, description="Only filled when a single post is requested"
    )
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_post(
        cls, post: SkillPost, reviews: list[SkillReview] | None = None
    ) -> "SkillPostResponse":
        return cls(
            id=post.id,
            author=SkillAuthor(id=post.user_id, name=post.author_name),
            type=SkillPostType(post.type),
            title=post.title,
            description=post.description,
            video_intro=post.video_intro,
            skill_tags=sorted(post.skill_tags),
            level=SkillLevel(post.level) if post.level else None,
            pricing=SkillPricing(post.pricing),
            barter_request=post.barter_request,
            price_amount=post.price_amount,
            is_approved=post.is_approved,
            average_rating=post.rating_average,
            review_count=post.review_count,
            reviews=(
                [SkillReviewResponse.from_review(r) for r in reviews]
                if reviews is not None
                else None
            ),
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class SkillPostListResponse(CamelModel):
    items: list[SkillPostResponse]
    has_more: bool
    next_cursor: str | None = None


class SkillOfMonthResponse(CamelModel):
    user_id: UUID
    skill: str
    course_id: UUID | None = Field(
        None, description="Course the skill was taken from, if any"
    )
