"""Courses and their ordered lectures."""

from skillwise.courses.models import COURSES_TABLES_CQL, Course, CourseStatus, Lecture


__all__ = ["COURSES_TABLES_CQL", "Course", "CourseStatus", "Lecture"]
