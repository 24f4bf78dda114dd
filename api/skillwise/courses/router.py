"""Course API endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from skillwise.auth.dependencies import ActiveUser, TeacherUser
from skillwise.auth.permissions import is_admin
from skillwise.core.schemas import ApiResponse, ok
from skillwise.courses.dependencies import CourseServiceDep, handle_course_error
from skillwise.courses.models import CourseStatus
from skillwise.courses.schemas import (
    CourseListResponse,
    CourseRatingResponse,
    CourseRatingsResponse,
    CourseResponse,
    CreateCourseRequest,
    RateCourseRequest,
    RatingStatsResponse,
    UpdateCourseRequest,
)
from skillwise.courses.service import CourseError, RatingNotAllowedError
from skillwise.learning.dependencies import LearningServiceDep


router = APIRouter(prefix="/api/courses", tags=["courses"])


@router.get(
    "",
    response_model=ApiResponse[CourseListResponse],
    summary="List published courses",
)
async def list_courses(
    course_service: CourseServiceDep,
    _user: ActiveUser,
    limit: int = Query(50, ge=1, le=100),
) -> ApiResponse[CourseListResponse]:
    courses = await course_service.list_courses(CourseStatus.PUBLISHED, limit)
    items = [CourseResponse.from_course(c) for c in courses]
    return ok(
        CourseListResponse(items=items, total=len(items), has_more=len(items) >= limit)
    )


@router.get(
    "/mine",
    response_model=ApiResponse[CourseListResponse],
    summary="List my courses",
)
async def list_my_courses(
    course_service: CourseServiceDep,
    user: TeacherUser,
    limit: int = Query(50, ge=1, le=100),
) -> ApiResponse[CourseListResponse]:
    """Courses owned by the current teacher, drafts included."""
    courses = await course_service.list_courses_by_teacher(user.id, limit)
    items = [CourseResponse.from_course(c) for c in courses]
    return ok(
        CourseListResponse(items=items, total=len(items), has_more=len(items) >= limit)
    )


@router.post(
    "",
    response_model=ApiResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    user: TeacherUser,
) -> ApiResponse[CourseResponse]:
    """Create a course owned by the current teacher (Teacher or Admin)."""
    course = await course_service.create_course(data, user.id)
    return ok(CourseResponse.from_course(course, with_lectures=True))


@router.get(
    "/{course_id}",
    response_model=ApiResponse[CourseResponse],
    summary="Get course with lectures",
)
async def get_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: ActiveUser,
) -> ApiResponse[CourseResponse]:
    """Published courses are visible to everyone, drafts only to the owner."""
    course = await course_service.get_course(course_id, with_lectures=True)
    if course is None or (
        not course.is_published
        and course.teacher_id != user.id
        and not is_admin(user.role)
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )
    return ok(CourseResponse.from_course(course, with_lectures=True))


@router.put(
    "/{course_id}",
    response_model=ApiResponse[CourseResponse],
    summary="Update course",
)
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    course_service: CourseServiceDep,
    user: TeacherUser,
) -> ApiResponse[CourseResponse]:
    """Owner edit. Passing ``lectures`` replaces the whole lecture list."""
    try:
        course = await course_service.update_course(course_id, data, user)
    except CourseError as e:
        raise handle_course_error(e) from e
    return ok(CourseResponse.from_course(course, with_lectures=True))


# ==============================================================================
# Ratings
# ==============================================================================


@router.post(
    "/{course_id}/ratings",
    response_model=ApiResponse[RatingStatsResponse],
    summary="Rate course",
)
async def rate_course(
    course_id: UUID,
    data: RateCourseRequest,
    course_service: CourseServiceDep,
    learning_service: LearningServiceDep,
    user: ActiveUser,
) -> ApiResponse[RatingStatsResponse]:
    """Rate 1 to 5 stars with an optional review; rating again replaces it."""
    try:
        if await learning_service.get_enrollment(user.id, course_id) is None:
            raise RatingNotAllowedError
        _, stats = await course_service.rate_course(
            course_id, user.id, data.rating, data.review
        )
    except CourseError as e:
        raise handle_course_error(e) from e
    return ok(RatingStatsResponse.from_stats(stats), message="Rating saved")


@router.get(
    "/{course_id}/ratings",
    response_model=ApiResponse[CourseRatingsResponse],
    summary="List course ratings",
)
async def list_ratings(
    course_id: UUID,
    course_service: CourseServiceDep,
    _user: ActiveUser,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse[CourseRatingsResponse]:
    try:
        ratings, stats = await course_service.list_ratings(course_id, limit)
    except CourseError as e:
        raise handle_course_error(e) from e
    return ok(
        CourseRatingsResponse(
            items=[CourseRatingResponse.from_entity(r) for r in ratings],
            rating_stats=RatingStatsResponse.from_stats(stats),
        )
    )


@router.get(
    "/{course_id}/ratings/mine",
    response_model=ApiResponse[CourseRatingResponse | None],
    summary="Get my rating",
)
async def get_my_rating(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: ActiveUser,
) -> ApiResponse[CourseRatingResponse | None]:
    """The current user's rating, or ``null`` when they have not rated."""
    rating = await course_service.get_rating(course_id, user.id)
    return ok(CourseRatingResponse.from_entity(rating) if rating else None)
