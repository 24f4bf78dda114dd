"""Learning API endpoints.

Provides routes for:
- Enrollment and unenrollment
- Course progress (ledger) reads and updates
- Quiz attempt recording and history
- The student dashboard
"""

from uuid import UUID

from fastapi import APIRouter, Path, status

from skillwise.auth.dependencies import ActiveUser
from skillwise.childlock.dependencies import EnrollmentUser
from skillwise.core.schemas import ApiResponse, MessageResponse, ok
from skillwise.learning.dependencies import LearningServiceDep, handle_learning_error
from skillwise.learning.schemas import (
    DashboardResponse,
    EnrolledCourseResponse,
    EnrollmentResponse,
    ProgressResponse,
    QuizAttemptListResponse,
    QuizAttemptRequest,
    QuizAttemptResponse,
    QuizAttemptResult,
    UpdateProgressRequest,
)
from skillwise.learning.service import LearningError


router = APIRouter(prefix="/api/learning", tags=["learning"])


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@router.get(
    "/courses",
    response_model=ApiResponse[list[EnrollmentResponse]],
    summary="List my enrolled courses",
)
async def list_enrolled_courses(
    service: LearningServiceDep,
    user: ActiveUser,
) -> ApiResponse[list[EnrollmentResponse]]:
    return ok(await service.get_enrolled_courses(user.id))


@router.post(
    "/courses/{course_id}/enroll",
    response_model=ApiResponse[EnrollmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
)
async def enroll(
    course_id: UUID,
    service: LearningServiceDep,
    user: EnrollmentUser,
) -> ApiResponse[EnrollmentResponse]:
    """Enroll in a published course. Child accounts send the Childlock."""
    try:
        enrollment = await service.enroll(user.id, course_id)
    except LearningError as e:
        raise handle_learning_error(e) from e
    return ok(enrollment, message="Successfully enrolled in course")


@router.get(
    "/courses/{course_id}",
    response_model=ApiResponse[EnrolledCourseResponse],
    summary="Get enrolled course with progress",
)
async def get_enrolled_course(
    course_id: UUID,
    service: LearningServiceDep,
    user: ActiveUser,
) -> ApiResponse[EnrolledCourseResponse]:
    try:
        return ok(await service.get_enrolled_course(user.id, course_id))
    except LearningError as e:
        raise handle_learning_error(e) from e


@router.delete(
    "/courses/{course_id}",
    response_model=MessageResponse,
    summary="Unenroll from a course",
)
async def unenroll(
    course_id: UUID,
    service: LearningServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    """Leave a course. Progress is kept if the user enrolls again."""
    try:
        await service.unenroll(user.id, course_id)
    except LearningError as e:
        raise handle_learning_error(e) from e
    return MessageResponse(message="Successfully unenrolled from course")


# ==============================================================================
# Progress Endpoints
# ==============================================================================


@router.get(
    "/courses/{course_id}/progress",
    response_model=ApiResponse[ProgressResponse],
    summary="Get course progress",
)
async def get_progress(
    course_id: UUID,
    service: LearningServiceDep,
    user: ActiveUser,
) -> ApiResponse[ProgressResponse]:
    try:
        return ok(await service.get_progress(user.id, course_id))
    except LearningError as e:
        raise handle_learning_error(e) from e


@router.put(
    "/courses/{course_id}/progress",
    response_model=ApiResponse[EnrolledCourseResponse],
    summary="Update course progress",
)
async def update_progress(
    course_id: UUID,
    data: UpdateProgressRequest,
    service: LearningServiceDep,
    user: ActiveUser,
) -> ApiResponse[EnrolledCourseResponse]:
    """Mark lectures and quizzes completed (additive) and move the pointer."""
    try:
        return ok(await service.update_course_progress(user.id, course_id, data))
    except LearningError as e:
        raise handle_learning_error(e) from e


# ==============================================================================
# Quiz Attempt Endpoints
# ==============================================================================


@router.post(
    "/courses/{course_id}/lectures/{lecture_index}/quiz-attempts",
    response_model=ApiResponse[QuizAttemptResult],
    status_code=status.HTTP_201_CREATED,
    summary="Record a quiz attempt",
)
async def record_quiz_attempt(
    course_id: UUID,
    data: QuizAttemptRequest,
    service: LearningServiceDep,
    user: ActiveUser,
    lecture_index: int = Path(..., ge=0),
) -> ApiResponse[QuizAttemptResult]:
    try:
        result = await service.record_quiz_attempt(
            user_id=user.id,
            course_id=course_id,
            lecture_index=lecture_index,
            score=data.score,
            passed=data.passed,
        )
    except LearningError as e:
        raise handle_learning_error(e) from e
    return ok(result)


@router.get(
    "/courses/{course_id}/lectures/{lecture_index}/quiz-attempts",
    response_model=ApiResponse[QuizAttemptListResponse],
    summary="List quiz attempts",
)
async def list_quiz_attempts(
    course_id: UUID,
    service: LearningServiceDep,
    user: ActiveUser,
    lecture_index: int = Path(..., ge=0),
) -> ApiResponse[QuizAttemptListResponse]:
    """Last attempts of one lecture, newest first."""
    try:
        attempts = await service.get_quiz_attempts(user.id, course_id, lecture_index)
    except LearningError as e:
        raise handle_learning_error(e) from e
    return ok(
        QuizAttemptListResponse(
            lecture_index=lecture_index,
            attempts=[QuizAttemptResponse.from_entity(a) for a in attempts],
        )
    )


# ==============================================================================
# Dashboard
# ==============================================================================


@router.get(
    "/dashboard",
    response_model=ApiResponse[DashboardResponse],
    summary="Learning dashboard",
)
async def get_dashboard(
    service: LearningServiceDep,
    user: ActiveUser,
) -> ApiResponse[DashboardResponse]:
    return ok(await service.get_dashboard(user.id))
