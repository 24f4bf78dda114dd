"""Database models for courses.

Cassandra table definitions for:
- courses: course record (owner, status, price, tags, lecture count)
- course_lectures: ordered lectures, clustered by position
- courses_by_status / courses_by_teacher: listing tables, newest first
- course_ratings: one star rating (and optional review) per (course, user)

A course's ``lecture_count`` always equals the number of rows in its
``course_lectures`` partition; both are rewritten together when the owner
edits the lecture list.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from skillwise.utils import RatingStats, ensure_utc_aware, utc_now


class CourseStatus(str, Enum):
    """Course publication status."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    slug TEXT,
    description TEXT,
    tags SET<TEXT>,
    price DECIMAL,
    teacher_id UUID,
    status TEXT,
    lecture_count INT,
    rating_average DOUBLE,
    rating_count INT,
    rating_distribution MAP<INT, INT>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_LECTURES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_lectures (
    course_id UUID,
    lecture_index INT,
    title TEXT,
    description TEXT,
    content_url TEXT,
    duration_minutes INT,
    has_quiz BOOLEAN,
    PRIMARY KEY ((course_id), lecture_index)
) WITH CLUSTERING ORDER BY (lecture_index ASC)
"""

COURSES_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_status (
    status TEXT,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY ((status), created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

COURSES_BY_TEACHER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_teacher (
    teacher_id UUID,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY ((teacher_id), created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

COURSE_RATINGS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_ratings (
    course_id UUID,
    user_id UUID,
    rating INT,
    review TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((course_id), user_id)
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSE_LECTURES_TABLE_CQL,
    COURSES_BY_STATUS_TABLE_CQL,
    COURSES_BY_TEACHER_TABLE_CQL,
    COURSE_RATINGS_TABLE_CQL,
]


# ==============================================================================
# Helper Functions
# ==============================================================================


def generate_slug(title: str) -> str:
    """Generate URL-friendly slug from title."""
    slug = unicodedata.normalize("NFKD", title)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    return re.sub(r"[-\s]+", "-", slug)


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Lecture:
    """One position in a course's ordered lecture list."""

    index: int
    title: str
    description: str | None = None
    content_url: str | None = None
    duration_minutes: int | None = None
    has_quiz: bool = False

    @classmethod
    def from_row(cls, row: Any) -> "Lecture":
        return cls(
            index=row.lecture_index,
            title=row.title,
            description=row.description,
            content_url=row.content_url,
            duration_minutes=row.duration_minutes,
            has_quiz=bool(row.has_quiz),
        )


class Course:
    """Course owned by a Teacher.

    Attributes:
        id: Unique identifier
        title: Course title
        slug: URL-friendly identifier
        description: Course description
        tags: Free-form topic tags
        price: Price (None or 0 means free)
        teacher_id: Owning teacher
        status: draft, published or archived
        lecture_count: Number of lectures (denominator of progress percent)
        lectures: Ordered lectures, loaded on demand
        rating_stats: Aggregate of the course_ratings partition
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        slug: str | None = None,
        description: str | None = None,
        tags: set[str] | None = None,
        price: Decimal | None = None,
        teacher_id: UUID | None = None,
        status: str = CourseStatus.DRAFT.value,
        lecture_count: int = 0,
        lectures: list[Lecture] | None = None,
        rating_stats: RatingStats | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.slug = slug or generate_slug(title)
        self.description = description
        self.tags = set(tags or ())
        self.price = price
        self.teacher_id = teacher_id
        self.status = status
        self.lecture_count = lecture_count or 0
        self.lectures = lectures or []
        self.rating_stats = rating_stats or RatingStats()
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            slug=row.slug,
            description=row.description,
            tags=row.tags,
            price=row.price,
            teacher_id=row.teacher_id,
            status=row.status,
            lecture_count=row.lecture_count,
            rating_stats=RatingStats.from_columns(
                getattr(row, "rating_average", None),
                getattr(row, "rating_count", None),
                getattr(row, "rating_distribution", None),
            ),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatus.PUBLISHED.value

    @property
    def is_free(self) -> bool:
        return self.price is None or self.price == 0

    def __repr__(self) -> str:
        return f"<Course {self.title} ({self.status})>"


@dataclass
class CourseRating:
    """A user's star rating of a course."""

    course_id: UUID
    user_id: UUID
    rating: int
    review: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "CourseRating":
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            rating=row.rating,
            review=row.review,
            created_at=ensure_utc_aware(row.created_at),
            updated_at=ensure_utc_aware(row.updated_at),
        )
