# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Course service layer.

Business logic for:
- Course creation by teachers
- Owner (or admin) edits, including replacing the lecture list
- Listing published courses and a teacher's own courses
- Star ratings, one per user, aggregated onto the course row
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from skillwise.auth.permissions import is_admin
from skillwise.courses.models import (
    Course,
    CourseRating,
    CourseStatus,
    Lecture,
    generate_slug,
)
from skillwise.courses.schemas import (
    CreateCourseRequest,
    LectureInput,
    UpdateCourseRequest,
)
from skillwise.utils import RatingStats, summarize_ratings, utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from skillwise.auth.models import User

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class NotCourseOwnerError(CourseError):
    def __init__(self, message: str = "Only the course owner can edit this course"):
        super().__init__(message, "not_course_owner")


class RatingNotAllowedError(CourseError):
    def __init__(self, message: str = "Only enrolled students can rate this course"):
        super().__init__(message, "rating_not_allowed")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for course management."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._get_courses = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id IN ?"
        )
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, slug, description, tags, price, teacher_id, status,
             lecture_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._count_courses = self.session.prepare(
            f"SELECT COUNT(*) FROM {self.keyspace}.courses"
        )

        # Lectures
        self._get_lectures = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_lectures WHERE course_id = ?"
        )
        self._insert_lecture = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_lectures
            (course_id, lecture_index, title, description, content_url,
             duration_minutes, has_quiz)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_lectures = self.session.prepare(
            f"DELETE FROM {self.keyspace}.course_lectures WHERE course_id = ?"
        )

        # Listing tables
        self._insert_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_status (status, created_at, course_id)
            VALUES (?, ?, ?)
        """)
        self._delete_by_status = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_status
            WHERE status = ? AND created_at = ? AND course_id = ?
        """)
        self._list_by_status = self.session.prepare(
            f"SELECT course_id FROM {self.keyspace}.courses_by_status "
            "WHERE status = ? LIMIT ?"
        )
        self._insert_by_teacher = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_teacher (teacher_id, created_at, course_id)
            VALUES (?, ?, ?)
        """)
        self._list_by_teacher = self.session.prepare(
            f"SELECT course_id FROM {self.keyspace}.courses_by_teacher "
            "WHERE teacher_id = ? LIMIT ?"
        )

        # Ratings
        self._get_rating = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_ratings
            WHERE course_id = ? AND user_id = ?
        """)
        self._list_ratings = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_ratings WHERE course_id = ? LIMIT ?"
        )
        self._all_rating_values = self.session.prepare(
            f"SELECT rating FROM {self.keyspace}.course_ratings WHERE course_id = ?"
        )
        self._upsert_rating = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_ratings
            (course_id, user_id, rating, review, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._update_rating_stats = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET rating_average = ?, rating_count = ?, rating_distribution = ?
            WHERE id = ?
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_course(
        self, course_id: UUID, with_lectures: bool = False
    ) -> Course | None:
        """Get course by ID, optionally with its ordered lectures."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        if not row:
            return None
        course = Course.from_row(row)
        if with_lectures:
            course.lectures = await self.get_lectures(course_id)
        return course

    async def require_course(
        self, course_id: UUID, with_lectures: bool = False
    ) -> Course:
        course = await self.get_course(course_id, with_lectures)
        if course is None:
            raise CourseNotFoundError
        return course

    async def get_courses(self, course_ids: list[UUID]) -> dict[UUID, Course]:
        """Load several courses keyed by id; unknown ids are skipped."""
        if not course_ids:
            return {}
        result = await self.session.aexecute(self._get_courses, [list(course_ids)])
        return {row.id: Course.from_row(row) for row in result.all()}

    async def get_lectures(self, course_id: UUID) -> list[Lecture]:
        result = await self.session.aexecute(self._get_lectures, [course_id])
        return [Lecture.from_row(row) for row in result.all()]

    async def list_courses(
        self, status: CourseStatus = CourseStatus.PUBLISHED, limit: int = 50
    ) -> list[Course]:
        """List courses with a status, newest first."""
        result = await self.session.aexecute(self._list_by_status, [status.value, limit])
        return await self._load_ordered([row.course_id for row in result.all()])

    async def list_courses_by_teacher(
        self, teacher_id: UUID, limit: int = 50
    ) -> list[Course]:
        result = await self.session.aexecute(self._list_by_teacher, [teacher_id, limit])
        return await self._load_ordered([row.course_id for row in result.all()])

    async def count_courses(self) -> int:
        result = await self.session.aexecute(self._count_courses)
        row = result.one()
        return row.count if row else 0

    async def _load_ordered(self, course_ids: list[UUID]) -> list[Course]:
        courses = await self.get_courses(course_ids)
        return [courses[cid] for cid in course_ids if cid in courses]

    # ==========================================================================
    # Commands
    # ==========================================================================

    async def create_course(self, data: CreateCourseRequest, teacher_id: UUID) -> Course:
        """Create a course owned by ``teacher_id`` with its lectures."""
        course = Course(
            title=data.title,
            description=data.description,
            tags={tag.strip().lower() for tag in data.tags if tag.strip()},
            price=data.price,
            teacher_id=teacher_id,
            status=data.status.value,
        )
        course.slug = f"{course.slug}-{str(course.id)[:8]}"
        course.lectures = await self._write_lectures(course.id, data.lectures)
        course.lecture_count = len(course.lectures)

        await self._write_course(course)
        await self.session.aexecute(
            self._insert_by_status, [course.status, course.created_at, course.id]
        )
        await self.session.aexecute(
            self._insert_by_teacher, [teacher_id, course.created_at, course.id]
        )

        logger.info(
            "course_created",
            course_id=str(course.id),
            lecture_count=course.lecture_count,
            status=course.status,
        )
        return course

    async def update_course(
        self, course_id: UUID, data: UpdateCourseRequest, actor: "User"
    ) -> Course:
        """Apply an owner edit.

        Raises:
            CourseNotFoundError: If the course does not exist
            NotCourseOwnerError: If ``actor`` is neither the owner nor an admin
        """
        course = await self.require_course(course_id, with_lectures=True)
        if course.teacher_id != actor.id and not is_admin(actor.role):
            raise NotCourseOwnerError

        old_status = course.status

        if data.title is not None:
            course.title = data.title.strip()
            course.slug = f"{generate_slug(course.title)}-{str(course.id)[:8]}"
        if data.description is not None:
            course.description = data.description
        if data.tags is not None:
            course.tags = {tag.strip().lower() for tag in data.tags if tag.strip()}
        if data.price is not None:
            course.price = data.price
        if data.status is not None:
            course.status = data.status.value
        if data.lectures is not None:
            await self.session.aexecute(self._delete_lectures, [course.id])
            course.lectures = await self._write_lectures(course.id, data.lectures)
            course.lecture_count = len(course.lectures)

        course.updated_at = utc_now()
        await self._write_course(course)

        if old_status != course.status:
            await self.session.aexecute(
                self._delete_by_status, [old_status, course.created_at, course.id]
            )
            await self.session.aexecute(
                self._insert_by_status, [course.status, course.created_at, course.id]
            )

        logger.info(
            "course_updated",
            course_id=str(course.id),
            status=course.status,
            lectures_replaced=data.lectures is not None,
        )
        return course

    # ==========================================================================
    # Ratings
    # ==========================================================================

    async def rate_course(
        self, course_id: UUID, user_id: UUID, rating: int, review: str | None = None
    ) -> tuple[CourseRating, RatingStats]:
        """Create or replace the user's rating and refresh the course aggregate.

        Enrollment is checked by the caller.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        await self.require_course(course_id)
        now = utc_now()
        previous = await self.get_rating(course_id, user_id)
        entry = CourseRating(
            course_id=course_id,
            user_id=user_id,
            rating=rating,
            review=(review or "").strip() or None,
            created_at=previous.created_at if previous else now,
            updated_at=now if previous else None,
        )
        await self.session.aexecute(
            self._upsert_rating,
            [
                entry.course_id,
                entry.user_id,
                entry.rating,
                entry.review,
                entry.created_at,
                entry.updated_at,
            ],
        )

        result = await self.session.aexecute(self._all_rating_values, [course_id])
        stats = summarize_ratings(row.rating for row in result.all())
        await self.session.aexecute(
            self._update_rating_stats,
            [stats.average, stats.count, stats.distribution, course_id],
        )

        logger.info(
            "course_rated",
            course_id=str(course_id),
            rating=rating,
            replaced=previous is not None,
            average_rating=stats.average,
        )
        return entry, stats

    async def get_rating(self, course_id: UUID, user_id: UUID) -> CourseRating | None:
        result = await self.session.aexecute(self._get_rating, [course_id, user_id])
        row = result.one()
        return CourseRating.from_row(row) if row else None

    async def list_ratings(
        self, course_id: UUID, limit: int = 50
    ) -> tuple[list[CourseRating], RatingStats]:
        """Ratings of a course with its stored aggregate.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        course = await self.require_course(course_id)
        result = await self.session.aexecute(self._list_ratings, [course_id, limit])
        ratings = [CourseRating.from_row(row) for row in result.all()]
        ratings.sort(key=lambda r: r.created_at, reverse=True)
        return ratings, course.rating_stats

    async def _write_course(self, course: Course) -> None:
        await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.title,
                course.slug,
                course.description,
                course.tags,
                course.price,
                course.teacher_id,
                course.status,
                course.lecture_count,
                course.created_at,
                course.updated_at,
            ],
        )

    async def _write_lectures(
        self, course_id: UUID, lectures: list[LectureInput]
    ) -> list[Lecture]:
        written = []
        for index, item in enumerate(lectures):
            lecture = Lecture(
                index=index,
                title=item.title.strip(),
                description=item.description,
                content_url=item.content_url,
                duration_minutes=item.duration_minutes,
                has_quiz=item.has_quiz,
            )
            await self.session.aexecute(
                self._insert_lecture,
                [
                    course_id,
                    lecture.index,
                    lecture.title,
                    lecture.description,
                    lecture.content_url,
                    lecture.duration_minutes,
                    lecture.has_quiz,
                ],
            )
            written.append(lecture)
        return written
