"""Database models for learning progress.

Cassandra table definitions for:
- enrollments: a user's association with a course
- lecture_progress: the progress ledger, one row per (user, course, lecture)
- quiz_attempts: capped quiz history per lecture, clustered newest first

The ledger is the single source of truth for completion. The enrollment's
``progress_percent`` is a mirror recomputed from it on every ledger write.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID, uuid1

from skillwise.utils import ensure_utc_aware, utc_now


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    user_id UUID,
    course_id UUID,
    enrolled_at TIMESTAMP,
    current_lecture_index INT,
    progress_percent INT,
    last_accessed_at TIMESTAMP,
    PRIMARY KEY ((user_id), course_id)
)
"""

# Partition per (user, course) so a course's whole ledger is one read
LECTURE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lecture_progress (
    user_id UUID,
    course_id UUID,
    lecture_index INT,
    lecture_completed BOOLEAN,
    quiz_completed BOOLEAN,
    best_score DOUBLE,
    attempts_count INT,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), lecture_index)
) WITH CLUSTERING ORDER BY (lecture_index ASC)
"""

QUIZ_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    user_id UUID,
    course_id UUID,
    lecture_index INT,
    attempt_id TIMEUUID,
    attempted_at TIMESTAMP,
    score DOUBLE,
    passed BOOLEAN,
    PRIMARY KEY ((user_id, course_id, lecture_index), attempt_id)
) WITH CLUSTERING ORDER BY (attempt_id DESC)
"""

LEARNING_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    LECTURE_PROGRESS_TABLE_CQL,
    QUIZ_ATTEMPTS_TABLE_CQL,
]


# ==============================================================================
# Domain Rules
# ==============================================================================


def count_completed(completed_indices: Iterable[int], total_lectures: int) -> int:
    """Distinct completed lectures that still exist in the course."""
    return len({i for i in completed_indices if 0 <= i < total_lectures})


def compute_percent(completed_indices: Iterable[int], total_lectures: int) -> int:
    """Overall progress as a whole percent, rounded half up.

    Indices at or beyond ``total_lectures`` belong to lectures that were
    removed and are ignored. Returns 0 for a course without lectures.
    """
    if total_lectures <= 0:
        return 0
    completed = count_completed(completed_indices, total_lectures)
    percent = (Decimal(100) * completed / total_lectures).quantize(
        Decimal(1), rounding=ROUND_HALF_UP
    )
    return min(int(percent), 100)


def split_attempt_history(
    attempts: list["QuizAttempt"], limit: int
) -> tuple[list["QuizAttempt"], list["QuizAttempt"]]:
    """Split a history into the newest ``limit`` attempts and the evicted rest.

    Attempts are ordered by their TIMEUUID, which keeps submissions made
    within the same millisecond in the order they were recorded.
    """
    ordered = sorted(
        attempts, key=lambda a: (a.attempt_id.time, a.attempt_id.bytes), reverse=True
    )
    return ordered[:limit], ordered[limit:]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Enrollment:
    """A user's enrollment in a course."""

    user_id: UUID
    course_id: UUID
    enrolled_at: datetime = field(default_factory=utc_now)
    current_lecture_index: int = 0
    progress_percent: int = 0
    last_accessed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            enrolled_at=ensure_utc_aware(row.enrolled_at),
            current_lecture_index=row.current_lecture_index or 0,
            progress_percent=row.progress_percent or 0,
            last_accessed_at=ensure_utc_aware(row.last_accessed_at),
        )

    @property
    def is_completed(self) -> bool:
        return self.progress_percent >= 100


@dataclass
class LectureProgress:
    """Ledger entry for one lecture of one enrollment."""

    user_id: UUID
    course_id: UUID
    lecture_index: int
    lecture_completed: bool = False
    quiz_completed: bool = False
    best_score: float | None = None
    attempts_count: int = 0
    completed_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "LectureProgress":
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            lecture_index=row.lecture_index,
            lecture_completed=bool(row.lecture_completed),
            quiz_completed=bool(row.quiz_completed),
            best_score=row.best_score,
            attempts_count=row.attempts_count or 0,
            completed_at=ensure_utc_aware(row.completed_at),
            updated_at=ensure_utc_aware(row.updated_at),
        )

    def complete(self, with_quiz: bool, at: datetime) -> bool:
        """Mark the lecture (and optionally its quiz) completed.

        Idempotent: an existing ``completed_at`` is kept.

        Returns:
            True if anything changed.
        """
        changed = False
        if not self.lecture_completed:
            self.lecture_completed = True
            self.completed_at = at
            changed = True
        if with_quiz and not self.quiz_completed:
            self.quiz_completed = True
            changed = True
        return changed


@dataclass
class QuizAttempt:
    """One recorded quiz result."""

    user_id: UUID
    course_id: UUID
    lecture_index: int
    score: float
    passed: bool
    attempted_at: datetime = field(default_factory=utc_now)
    attempt_id: UUID = field(default_factory=uuid1)

    @classmethod
    def from_row(cls, row: Any) -> "QuizAttempt":
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            lecture_index=row.lecture_index,
            score=row.score,
            passed=bool(row.passed),
            attempted_at=ensure_utc_aware(row.attempted_at),
            attempt_id=row.attempt_id,
        )
