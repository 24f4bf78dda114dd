"""Skills marketplace API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from skillwise.auth.dependencies import ActiveUser, AdminUser
from skillwise.childlock.dependencies import PostingUser
from skillwise.core.schemas import ApiResponse, MessageResponse, ok
from skillwise.skills.dependencies import SkillsServiceDep, handle_skills_error
from skillwise.skills.models import SkillLevel, SkillPostType, SkillPricing
from skillwise.skills.schemas import (
    CreateSkillPostRequest,
    SkillApprovalRequest,
    SkillOfMonthResponse,
    SkillPostListResponse,
    SkillPostResponse,
    SkillReviewRequest,
    UpdateSkillPostRequest,
)
from skillwise.skills.service import SkillsError


router = APIRouter(prefix="/api/skills", tags=["skills"])


@router.get(
    "",
    response_model=ApiResponse[SkillPostListResponse],
    summary="Browse the marketplace",
)
async def list_posts(
    service: SkillsServiceDep,
    _user: ActiveUser,
    post_type: SkillPostType | None = Query(None, alias="type"),
    pricing: SkillPricing | None = Query(None),
    level: SkillLevel | None = Query(None),
    tag: str | None = Query(None, max_length=50, alias="skillTag"),
    limit: int = Query(10, ge=1, le=50),
    cursor: str | None = Query(None, description="Pagination cursor"),
) -> ApiResponse[SkillPostListResponse]:
    """Approved posts, newest first."""
    try:
        page = await service.list_posts(limit, cursor, post_type, pricing, level, tag)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return ok(page)


@router.get(
    "/mine",
    response_model=ApiResponse[SkillPostListResponse],
    summary="My skill posts",
)
async def list_my_posts(
    service: SkillsServiceDep,
    user: ActiveUser,
    limit: int = Query(10, ge=1, le=50),
    cursor: str | None = Query(None),
) -> ApiResponse[SkillPostListResponse]:
    try:
        page = await service.list_my_posts(user, limit, cursor)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return ok(page)


@router.post(
    "",
    response_model=ApiResponse[SkillPostResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create skill post",
)
async def create_post(
    data: CreateSkillPostRequest,
    service: SkillsServiceDep,
    user: PostingUser,
) -> ApiResponse[SkillPostResponse]:
    """Offer or request a skill. Child accounts must send ``X-Child-Lock``."""
    try:
        post = await service.create_post(user, data)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return ok(post, message="Skill post created")


@router.get(
    "/skill-of-month/{user_id}",
    response_model=ApiResponse[SkillOfMonthResponse],
    summary="Skill of the month",
)
async def skill_of_month(
    user_id: UUID,
    service: SkillsServiceDep,
    _user: ActiveUser,
) -> ApiResponse[SkillOfMonthResponse]:
    try:
        result = await service.skill_of_month(user_id)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return ok(result)


@router.get(
    "/{post_id}",
    response_model=ApiResponse[SkillPostResponse],
    summary="Get skill post",
)
async def get_post(
    post_id: UUID,
    service: SkillsServiceDep,
    user: ActiveUser,
) -> ApiResponse[SkillPostResponse]:
    try:
        post = await service.get_post(post_id, user)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return ok(post)


@router.put(
    "/{post_id}",
    response_model=ApiResponse[SkillPostResponse],
    summary="Update skill post",
)
async def update_post(
    post_id: UUID,
    data: UpdateSkillPostRequest,
    service: SkillsServiceDep,
    user: ActiveUser,
) -> ApiResponse[SkillPostResponse]:
    try:
        post = await service.update_post(post_id, user, data)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return ok(post, message="Skill post updated")


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    summary="Delete skill post",
)
async def delete_post(
    post_id: UUID,
    service: SkillsServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    try:
        await service.delete_post(post_id, user)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return MessageResponse(message="Skill post deleted")


@router.post(
    "/{post_id}/reviews",
    response_model=ApiResponse[SkillPostResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Review skill post",
)
async def add_review(
    post_id: UUID,
    data: SkillReviewRequest,
    service: SkillsServiceDep,
    user: ActiveUser,
) -> ApiResponse[SkillPostResponse]:
    """One review per user and post; a second one is rejected."""
    try:
        post = await service.add_review(post_id, user, data.rating, data.comment)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return ok(post, message="Review added")


@router.put(
    "/{post_id}/approval",
    response_model=ApiResponse[SkillPostResponse],
    summary="Approve or hide skill post (admin)",
)
async def set_approval(
    post_id: UUID,
    data: SkillApprovalRequest,
    service: SkillsServiceDep,
    _admin: AdminUser,
) -> ApiResponse[SkillPostResponse]:
    try:
        post = await service.set_approval(post_id, data.approved)
    except SkillsError as e:
        raise handle_skills_error(e) from e
    return ok(post, message="Skill post approved" if data.approved else "Skill post hidden")
