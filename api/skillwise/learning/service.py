# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Learning service layer.

Business logic for:
- Enrollment and unenrollment
- The progress ledger (lecture and quiz completion)
- Capped quiz attempt history
- Progress aggregation for course pages and the dashboard
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from skillwise.config.settings import get_settings
from skillwise.courses.schemas import CourseResponse
from skillwise.learning.models import (
    Enrollment,
    LectureProgress,
    QuizAttempt,
    compute_percent,
    count_completed,
    split_attempt_history,
)
from skillwise.learning.schemas import (
    CourseProgressSummary,
    DashboardResponse,
    EnrolledCourseResponse,
    EnrollmentResponse,
    LectureProgressResponse,
    ProgressResponse,
    QuizAttemptResponse,
    QuizAttemptResult,
    UpdateProgressRequest,
)
from skillwise.utils import utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from skillwise.courses.models import Course
    from skillwise.courses.service import CourseService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class LearningError(Exception):
    """Base learning error."""

    def __init__(self, message: str, code: str = "learning_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotEnrolledError(LearningError):
    def __init__(self, message: str = "You are not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(LearningError):
    def __init__(self, message: str = "Already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class UnknownCourseError(LearningError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class CourseNotAvailableError(LearningError):
    def __init__(self, message: str = "Course is not open for enrollment"):
        super().__init__(message, "course_not_available")


class InvalidLectureIndexError(LearningError):
    def __init__(self, index: int, total: int):
        super().__init__(
            f"Lecture index {index} is out of range (course has {total} lectures)",
            "invalid_lecture_index",
        )


# ==============================================================================
# Learning Service
# ==============================================================================


class LearningService:
    """Service for enrollments and the progress ledger."""

    def __init__(
        self, session: "Session", keyspace: str, course_service: "CourseService"
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Enrollments
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE user_id = ? AND course_id = ?
        """)
        self._get_user_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE user_id = ?
        """)
        self._upsert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (user_id, course_id, enrolled_at, current_lecture_index,
             progress_percent, last_accessed_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._delete_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments
            WHERE user_id = ? AND course_id = ?
        """)
        self._count_enrollments = self.session.prepare(
            f"SELECT COUNT(*) FROM {self.keyspace}.enrollments"
        )

        # Ledger
        self._get_ledger = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lecture_progress
            WHERE user_id = ? AND course_id = ?
        """)
        self._upsert_lecture_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lecture_progress
            (user_id, course_id, lecture_index, lecture_completed, quiz_completed,
             best_score, attempts_count, completed_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Quiz attempts
        self._get_attempts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts
            WHERE user_id = ? AND course_id = ? AND lecture_index = ?
        """)
        self._insert_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts
            (user_id, course_id, lecture_index, attempt_id, attempted_at,
             score, passed)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_attempt = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.quiz_attempts
            WHERE user_id = ? AND course_id = ? AND lecture_index = ?
              AND attempt_id = ?
        """)

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        """Get enrollment by user and course."""
        result = await self.session.aexecute(self._get_enrollment, [user_id, course_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def require_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment:
        enrollment = await self.get_enrollment(user_id, course_id)
        if enrollment is None:
            raise NotEnrolledError
        return enrollment

    async def list_enrollments(self, user_id: UUID) -> list[Enrollment]:
        """All enrollments of a user, most recently accessed first."""
        result = await self.session.aexecute(self._get_user_enrollments, [user_id])
        enrollments = [Enrollment.from_row(row) for row in result.all()]
        return sorted(
            enrollments,
            key=lambda e: e.last_accessed_at or e.enrolled_at,
            reverse=True,
        )

    async def count_enrollments(self) -> int:
        result = await self.session.aexecute(self._count_enrollments)
        row = result.one()
        return row.count if row else 0

    async def enroll(self, user_id: UUID, course_id: UUID) -> EnrollmentResponse:
        """Enroll a user in a published course.

        Raises:
            UnknownCourseError: If the course does not exist
            CourseNotAvailableError: If the course is not published
            AlreadyEnrolledError: If the user is already enrolled
        """
        course = await self.course_service.get_course(course_id)
        if course is None:
            raise UnknownCourseError
        if not course.is_published:
            raise CourseNotAvailableError

        if await self.get_enrollment(user_id, course_id):
            raise AlreadyEnrolledError

        now = utc_now()
        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            enrolled_at=now,
            last_accessed_at=now,
        )
        # A returning student keeps the ledger from an earlier enrollment
        ledger = await self.get_ledger(user_id, course_id)
        enrollment.progress_percent = compute_percent(
            _completed_indices(ledger), course.lecture_count
        )
        await self._save_enrollment(enrollment)

        logger.info("user_enrolled", course_id=str(course_id))
        return EnrollmentResponse.from_enrollment(enrollment, course.title)

    async def unenroll(self, user_id: UUID, course_id: UUID) -> None:
        """Remove the enrollment. Ledger rows are kept.

        Raises:
            NotEnrolledError: If the user is not enrolled
        """
        await self.require_enrollment(user_id, course_id)
        await self.session.aexecute(self._delete_enrollment, [user_id, course_id])
        logger.info("user_unenrolled", course_id=str(course_id))

    async def get_enrolled_courses(self, user_id: UUID) -> list[EnrollmentResponse]:
        """The user's enrollments joined with course titles."""
        enrollments = await self.list_enrollments(user_id)
        courses = await self.course_service.get_courses(
            [e.course_id for e in enrollments]
        )
        return [
            EnrollmentResponse.from_enrollment(
                e, courses[e.course_id].title if e.course_id in courses else None
            )
            for e in enrollments
        ]

    async def get_enrolled_course(
        self, user_id: UUID, course_id: UUID
    ) -> EnrolledCourseResponse:
        """Course details with the caller's enrollment and ledger.

        Raises:
            NotEnrolledError: If the user is not enrolled
            UnknownCourseError: If the course no longer exists
        """
        enrollment = await self.require_enrollment(user_id, course_id)
        course = await self._require_course(course_id, with_lectures=True)
        ledger = await self.get_ledger(user_id, course_id)

        return EnrolledCourseResponse(
            course=CourseResponse.from_course(course, with_lectures=True),
            enrollment=EnrollmentResponse.from_enrollment(enrollment, course.title),
            progress=_progress(ledger, course.lecture_count),
            lectures=[LectureProgressResponse.from_entity(p) for p in ledger],
        )

    # ==========================================================================
    # Ledger Operations
    # ==========================================================================

    async def get_ledger(self, user_id: UUID, course_id: UUID) -> list[LectureProgress]:
        """Ledger entries of one course, ordered by lecture index."""
        result = await self.session.aexecute(self._get_ledger, [user_id, course_id])
        return [LectureProgress.from_row(row) for row in result.all()]

    async def get_progress(self, user_id: UUID, course_id: UUID) -> ProgressResponse:
        """Ledger-derived progress of an enrollment.

        Raises:
            NotEnrolledError: If the user is not enrolled
            UnknownCourseError: If the course does not exist
        """
        await self.require_enrollment(user_id, course_id)
        course = await self._require_course(course_id)
        ledger = await self.get_ledger(user_id, course_id)
        return _progress(ledger, course.lecture_count)

    async def update_course_progress(
        self, user_id: UUID, course_id: UUID, data: UpdateProgressRequest
    ) -> EnrolledCourseResponse:
        """Mark lectures and quizzes completed and move the lecture pointer.

        The update is a union with the stored ledger; nothing is un-completed.

        Raises:
            NotEnrolledError: If the user is not enrolled
            InvalidLectureIndexError: If any index is outside the course
        """
        enrollment = await self.require_enrollment(user_id, course_id)
        course = await self._require_course(course_id)
        total = course.lecture_count

        indices = set(data.completed_lectures) | set(data.completed_quizzes)
        if data.current_lecture_index is not None:
            indices.add(data.current_lecture_index)
        for index in sorted(indices):
            _check_index(index, total)

        now = utc_now()
        ledger = {p.lecture_index: p for p in await self.get_ledger(user_id, course_id)}
        for index in sorted(set(data.completed_lectures) | set(data.completed_quizzes)):
            entry = ledger.get(index) or LectureProgress(
                user_id=user_id, course_id=course_id, lecture_index=index
            )
            if entry.complete(with_quiz=index in data.completed_quizzes, at=now):
                entry.updated_at = now
                await self._save_lecture_progress(entry)
                ledger[index] = entry

        if data.current_lecture_index is not None:
            enrollment.current_lecture_index = data.current_lecture_index
        await self._refresh_enrollment(enrollment, ledger.values(), total)

        logger.info(
            "course_progress_updated",
            course_id=str(course_id),
            progress_percent=enrollment.progress_percent,
        )
        return await self.get_enrolled_course(user_id, course_id)

    # ==========================================================================
    # Quiz Attempts
    # ==========================================================================

    async def record_quiz_attempt(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_index: int,
        score: float,
        passed: bool,
    ) -> QuizAttemptResult:
        """Append a quiz result to the capped history.

        A passing attempt completes the lecture and its quiz. Completing an
        already completed lecture changes nothing but the attempt counters.

        Raises:
            NotEnrolledError: If the user is not enrolled
            InvalidLectureIndexError: If the lecture does not exist
        """
        enrollment = await self.require_enrollment(user_id, course_id)
        course = await self._require_course(course_id)
        _check_index(lecture_index, course.lecture_count)

        attempt = QuizAttempt(
            user_id=user_id,
            course_id=course_id,
            lecture_index=lecture_index,
            score=score,
            passed=passed,
        )
        await self.session.aexecute(
            self._insert_attempt,
            [
                user_id,
                course_id,
                lecture_index,
                attempt.attempt_id,
                attempt.attempted_at,
                attempt.score,
                attempt.passed,
            ],
        )
        await self._trim_attempts(user_id, course_id, lecture_index, attempt)

        ledger = {p.lecture_index: p for p in await self.get_ledger(user_id, course_id)}
        entry = ledger.get(lecture_index) or LectureProgress(
            user_id=user_id, course_id=course_id, lecture_index=lecture_index
        )
        entry.attempts_count += 1
        if entry.best_score is None or score > entry.best_score:
            entry.best_score = score
        if passed:
            entry.complete(with_quiz=True, at=attempt.attempted_at)
        entry.updated_at = attempt.attempted_at
        await self._save_lecture_progress(entry)
        ledger[lecture_index] = entry

        enrollment.current_lecture_index = max(
            enrollment.current_lecture_index, lecture_index
        )
        await self._refresh_enrollment(enrollment, ledger.values(), course.lecture_count)

        logger.info(
            "quiz_attempt_recorded",
            course_id=str(course_id),
            lecture_index=lecture_index,
            passed=passed,
            progress_percent=enrollment.progress_percent,
        )
        return QuizAttemptResult(
            attempt=QuizAttemptResponse.from_entity(attempt),
            lecture=LectureProgressResponse.from_entity(entry),
            progress=_progress(ledger.values(), course.lecture_count),
        )

    async def get_quiz_attempts(
        self, user_id: UUID, course_id: UUID, lecture_index: int
    ) -> list[QuizAttempt]:
        """Attempt history of one lecture, newest first."""
        await self.require_enrollment(user_id, course_id)
        return await self._load_attempts(user_id, course_id, lecture_index)

    async def _load_attempts(
        self, user_id: UUID, course_id: UUID, lecture_index: int
    ) -> list[QuizAttempt]:
        result = await self.session.aexecute(
            self._get_attempts, [user_id, course_id, lecture_index]
        )
        attempts = [QuizAttempt.from_row(row) for row in result.all()]
        kept, _ = split_attempt_history(attempts, len(attempts))
        return kept

    async def _trim_attempts(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_index: int,
        latest: QuizAttempt,
    ) -> None:
        """Evict the oldest attempts beyond the history limit."""
        limit = get_settings().quiz_attempt_history_limit
        history = await self._load_attempts(user_id, course_id, lecture_index)
        if all(a.attempt_id != latest.attempt_id for a in history):
            history.append(latest)

        _, evicted = split_attempt_history(history, limit)
        for old in evicted:
            await self.session.aexecute(
                self._delete_attempt,
                [user_id, course_id, lecture_index, old.attempt_id],
            )
        if evicted:
            logger.debug(
                "quiz_attempts_evicted",
                course_id=str(course_id),
                lecture_index=lecture_index,
                evicted=len(evicted),
            )

    # ==========================================================================
    # Dashboard
    # ==========================================================================

    async def get_course_summaries(self, user_id: UUID) -> list[CourseProgressSummary]:
        """Ledger-derived progress for each of the user's enrollments."""
        enrollments = await self.list_enrollments(user_id)
        courses = await self.course_service.get_courses(
            [e.course_id for e in enrollments]
        )

        summaries = []
        for enrollment in enrollments:
            course = courses.get(enrollment.course_id)
            total = course.lecture_count if course else 0
            ledger = await self.get_ledger(user_id, enrollment.course_id)
            summaries.append(
                CourseProgressSummary(
                    course_id=enrollment.course_id,
                    course_title=course.title if course else None,
                    progress=_progress(ledger, total),
                    enrolled_at=enrollment.enrolled_at,
                    last_accessed_at=enrollment.last_accessed_at,
                )
            )
        return summaries

    async def get_dashboard(self, user_id: UUID) -> DashboardResponse:
        summaries = await self.get_course_summaries(user_id)
        total = len(summaries)
        completed = sum(1 for s in summaries if s.progress.overall_progress >= 100)
        average = (
            round(sum(s.progress.overall_progress for s in summaries) / total, 2)
            if total
            else 0.0
        )
        return DashboardResponse(
            total_enrolled_courses=total,
            completed_courses=completed,
            in_progress_courses=total - completed,
            average_progress=average,
            courses=summaries,
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _require_course(
        self, course_id: UUID, with_lectures: bool = False
    ) -> "Course":
        course = await self.course_service.get_course(course_id, with_lectures)
        if course is None:
            raise UnknownCourseError
        return course

    async def _refresh_enrollment(
        self,
        enrollment: Enrollment,
        ledger: Iterable[LectureProgress],
        total_lectures: int,
    ) -> None:
        """Recompute the percent mirror from the ledger and save."""
        enrollment.progress_percent = compute_percent(
            _completed_indices(ledger), total_lectures
        )
        enrollment.last_accessed_at = utc_now()
        await self._save_enrollment(enrollment)

    async def _save_enrollment(self, enrollment: Enrollment) -> None:
        await self.session.aexecute(
            self._upsert_enrollment,
            [
                enrollment.user_id,
                enrollment.course_id,
                enrollment.enrolled_at,
                enrollment.current_lecture_index,
                enrollment.progress_percent,
                enrollment.last_accessed_at,
            ],
        )

    async def _save_lecture_progress(self, progress: LectureProgress) -> None:
        await self.session.aexecute(
            self._upsert_lecture_progress,
            [
                progress.user_id,
                progress.course_id,
                progress.lecture_index,
                progress.lecture_completed,
                progress.quiz_completed,
                progress.best_score,
                progress.attempts_count,
                progress.completed_at,
                progress.updated_at,
            ],
        )


def _completed_indices(ledger: Iterable[LectureProgress]) -> list[int]:
    return [p.lecture_index for p in ledger if p.lecture_completed]


def _progress(
    ledger: Iterable[LectureProgress], total_lectures: int
) -> ProgressResponse:
    indices = _completed_indices(ledger)
    return ProgressResponse(
        total_lectures=total_lectures,
        completed_lectures=count_completed(indices, total_lectures),
        overall_progress=compute_percent(indices, total_lectures),
    )


def _check_index(index: int, total_lectures: int) -> None:
    if not 0 <= index < total_lectures:
        raise InvalidLectureIndexError(index, total_lectures)
