"""Pydantic schemas for enrollment and progress."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from skillwise.core.schemas import CamelModel
from skillwise.courses.schemas import CourseResponse
from skillwise.learning.models import Enrollment, LectureProgress, QuizAttempt


# ==============================================================================
# Requests
# ==============================================================================


class QuizAttemptRequest(CamelModel):
    """Result of one quiz attempt as reported by the client."""

    score: float = Field(..., ge=0, le=100, description="Score in percent")
    passed: bool


class UpdateProgressRequest(CamelModel):
    """Additive progress update; listed indices are marked completed."""

    completed_lectures: list[int] = Field(default_factory=list)
    completed_quizzes: list[int] = Field(default_factory=list)
    current_lecture_index: int | None = None


# ==============================================================================
# Responses
# ==============================================================================


class ProgressResponse(CamelModel):
    total_lectures: int
    completed_lectures: int
    overall_progress: int


class EnrollmentResponse(CamelModel):
    course_id: UUID
    course_title: str | None = None
    enrolled_at: datetime
    current_lecture_index: int
    progress_percent: int
    last_accessed_at: datetime | None = None

    @classmethod
    def from_enrollment(
        cls, enrollment: Enrollment, course_title: str | None = None
    ) -> "EnrollmentResponse":
        return cls(
            course_id=enrollment.course_id,
            course_title=course_title,
            enrolled_at=enrollment.enrolled_at,
            current_lecture_index=enrollment.current_lecture_index,
            progress_percent=enrollment.progress_percent,
            last_accessed_at=enrollment.last_accessed_at,
        )


class LectureProgressResponse(CamelModel):
    lecture_index: int
    lecture_completed: bool
    quiz_completed: bool
    best_score: float | None = None
    attempts_count: int = 0
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, progress: LectureProgress) -> "LectureProgressResponse":
        return cls(
            lecture_index=progress.lecture_index,
            lecture_completed=progress.lecture_completed,
            quiz_completed=progress.quiz_completed,
            best_score=progress.best_score,
            attempts_count=progress.attempts_count,
            completed_at=progress.completed_at,
        )


class QuizAttemptResponse(CamelModel):
    attempt_id: UUID
    score: float
    passed: bool
    attempted_at: datetime

    @classmethod
    def from_entity(cls, attempt: QuizAttempt) -> "QuizAttemptResponse":
        return cls(
            attempt_id=attempt.attempt_id,
            score=attempt.score,
            passed=attempt.passed,
            attempted_at=attempt.attempted_at,
        )


class QuizAttemptListResponse(CamelModel):
    lecture_index: int
    attempts: list[QuizAttemptResponse]


class QuizAttemptResult(CamelModel):
    """Outcome of recording an attempt."""

    attempt: QuizAttemptResponse
    lecture: LectureProgressResponse
    progress: ProgressResponse


class EnrolledCourseResponse(CamelModel):
    """Course details together with the caller's enrollment and ledger."""

    course: CourseResponse
    enrollment: EnrollmentResponse
    progress: ProgressResponse
    lectures: list[LectureProgressResponse]


class CourseProgressSummary(CamelModel):
    course_id: UUID
    course_title: str | None = None
    progress: ProgressResponse
    enrolled_at: datetime
    last_accessed_at: datetime | None = None


class DashboardResponse(CamelModel):
    total_enrolled_courses: int
    completed_courses: int
    in_progress_courses: int
    average_progress: float
    courses: list[CourseProgressSummary]
