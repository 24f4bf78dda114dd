"""Pydantic schemas for courses."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import Field

from skillwise.core.schemas import CamelModel
from skillwise.courses.models import CourseStatus


if TYPE_CHECKING:
    from skillwise.courses.models import Course, CourseRating
    from skillwise.utils import RatingStats


class LectureInput(CamelModel):
    """Lecture as submitted by the course owner; position comes from order."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    content_url: str | None = Field(None, max_length=500)
    duration_minutes: int | None = Field(None, ge=0)
    has_quiz: bool = False


class CreateCourseRequest(CamelModel):
    """Course creation request."""

    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    tags: list[str] = Field(default_factory=list, max_length=20)
    price: Decimal | None = Field(None, ge=0)
    status: CourseStatus = CourseStatus.DRAFT
    lectures: list[LectureInput] = Field(default_factory=list, max_length=500)


class UpdateCourseRequest(CamelModel):
    """Course update request. ``lectures`` replaces the whole list when given."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    tags: list[str] | None = Field(None, max_length=20)
    price: Decimal | None = Field(None, ge=0)
    status: CourseStatus | None = None
    lectures: list[LectureInput] | None = Field(None, max_length=500)


class LectureResponse(CamelModel):
    index: int
    title: str
    description: str | None = None
    content_url: str | None = None
    duration_minutes: int | None = None
    has_quiz: bool = False


class RatingStatsResponse(CamelModel):
    average_rating: float = 0.0
    total_ratings: int = 0
    rating_distribution: dict[str, int] = Field(
        default_factory=dict, description="Ratings per star value, keys \"1\" to \"5\""
    )

    @classmethod
    def from_stats(cls, stats: "RatingStats") -> "RatingStatsResponse":
        return cls(
            average_rating=stats.average,
            total_ratings=stats.count,
            rating_distribution={str(k): v for k, v in stats.distribution.items()},
        )


class CourseResponse(CamelModel):
    """Course response; ``lectures`` is filled on detail endpoints."""

    id: UUID
    title: str
    slug: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    price: Decimal | None = None
    is_free: bool = True
    teacher_id: UUID | None = None
    status: CourseStatus
    total_lectures: int = 0
    rating_stats: RatingStatsResponse = Field(default_factory=RatingStatsResponse)
    lectures: list[LectureResponse] | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_course(cls, course: "Course", with_lectures: bool = False) -> "CourseResponse":
        return cls(
            id=course.id,
            title=course.title,
            slug=course.slug,
            description=course.description,
            tags=sorted(course.tags),
            price=course.price,
            is_free=course.is_free,
            teacher_id=course.teacher_id,
            status=CourseStatus(course.status),
            total_lectures=course.lecture_count,
            rating_stats=RatingStatsResponse.from_stats(course.rating_stats),
            lectures=[
                LectureResponse(
                    index=lecture.index,
                    title=lecture.title,
                    description=lecture.description,
                    content_url=lecture.content_url,
                    duration_minutes=lecture.duration_minutes,
                    has_quiz=lecture.has_quiz,
                )
                for lecture in course.lectures
            ]
            if with_lectures
            else None,
            created_at=course.created_at,
            updated_at=course.updated_at,
        )


class CourseListResponse(CamelModel):
    items: list[CourseResponse]
    total: int
    has_more: bool = False


class RateCourseRequest(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    review: str | None = Field(None, max_length=500)


class CourseRatingResponse(CamelModel):
    user_id: UUID
    rating: int
    review: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, rating: "CourseRating") -> "CourseRatingResponse":
        return cls(
            user_id=rating.user_id,
            rating=rating.rating,
            review=rating.review,
            created_at=rating.created_at,
            updated_at=rating.updated_at,
        )


class CourseRatingsResponse(CamelModel):
    items: list[CourseRatingResponse]
    rating_stats: RatingStatsResponse
