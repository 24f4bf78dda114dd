"""Learning module: enrollments, progress ledger and quiz attempts.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from skillwise.learning.models import (
    LEARNING_TABLES_CQL,
    Enrollment,
    LectureProgress,
    QuizAttempt,
)
from skillwise.learning.service import LearningService


__all__ = [
    "LEARNING_TABLES_CQL",
    "Enrollment",
    "LearningService",
    "LectureProgress",
    "QuizAttempt",
]
