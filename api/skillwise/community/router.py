"""Community feed API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from skillwise.auth.dependencies import ActiveUser, AdminUser
from skillwise.childlock.dependencies import PostingUser
from skillwise.community.dependencies import (
    CommunityServiceDep,
    handle_community_error,
)
from skillwise.community.models import PostType, ReportStatus
from skillwise.community.schemas import (
    CommentRequest,
    CommentResponse,
    CommunityStatsResponse,
    CreatePostRequest,
    FeedResponse,
    LikeResponse,
    PollResponse,
    PostResponse,
    PrivacyRequest,
    ReportRequest,
    ReportResponse,
    ResolveReportRequest,
    SharePostRequest,
    ShareResponse,
    UpdatePostRequest,
    VoteRequest,
)
from skillwise.community.service import CommunityError
from skillwise.core.schemas import ApiResponse, MessageResponse, ok


router = APIRouter(prefix="/api/community", tags=["community"])


# ==============================================================================
# Posts
# ==============================================================================


@router.get(
    "/posts",
    response_model=ApiResponse[FeedResponse],
    summary="Get feed",
)
async def list_feed(
    service: CommunityServiceDep,
    user: ActiveUser,
    limit: int = Query(10, ge=1, le=50),
    cursor: str | None = Query(None, description="Pagination cursor"),
    post_type: PostType | None = Query(None, alias="type"),
) -> ApiResponse[FeedResponse]:
    """Posts visible to the current user, newest first."""
    try:
        feed = await service.list_feed(user, limit, cursor, post_type)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(feed)


@router.post(
    "/posts",
    response_model=ApiResponse[PostResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
async def create_post(
    data: CreatePostRequest,
    service: CommunityServiceDep,
    user: PostingUser,
) -> ApiResponse[PostResponse]:
    """Create a post. Child accounts must send the ``X-Child-Lock`` header."""
    try:
        post = await service.create_post(user, data)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(post, message="Post created")


@router.get(
    "/posts/{post_id}",
    response_model=ApiResponse[PostResponse],
    summary="Get post",
)
async def get_post(
    post_id: UUID,
    service: CommunityServiceDep,
    user: ActiveUser,
) -> ApiResponse[PostResponse]:
    try:
        post = await service.get_post(post_id, user)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(post)


@router.put(
    "/posts/{post_id}",
    response_model=ApiResponse[PostResponse],
    summary="Edit post",
)
async def edit_post(
    post_id: UUID,
    data: UpdatePostRequest,
    service: CommunityServiceDep,
    user: ActiveUser,
) -> ApiResponse[PostResponse]:
    try:
        post = await service.edit_post(post_id, user, data)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(post, message="Post updated")


@router.delete(
    "/posts/{post_id}",
    response_model=MessageResponse,
    summary="Delete post",
)
async def delete_post(
    post_id: UUID,
    service: CommunityServiceDep,
    user: ActiveUser,
    reason: str | None = Query(None, max_length=2000),
) -> MessageResponse:
    """Authors delete their own posts; admins may delete any post with a reason."""
    try:
        await service.delete_post(post_id, user, reason)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return MessageResponse(message="Post deleted")


@router.put(
    "/posts/{post_id}/privacy",
    response_model=ApiResponse[PostResponse],
    summary="Change post privacy",
)
async def set_privacy(
    post_id: UUID,
    data: PrivacyRequest,
    service: CommunityServiceDep,
    user: ActiveUser,
) -> ApiResponse[PostResponse]:
    try:
        post = await service.set_privacy(post_id, user, data.privacy)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(post, message="Privacy updated")


@router.post(
    "/posts/{post_id}/share",
    response_model=ApiResponse[ShareResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Share post",
)
async def share_post(
    post_id: UUID,
    service: CommunityServiceDep,
    user: ActiveUser,
    data: SharePostRequest | None = None,
) -> ApiResponse[ShareResponse]:
    """Share a public post. Non-public posts answer 403."""
    try:
        shared = await service.share(post_id, user, data.text if data else None)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(shared, message="Post shared")


@router.post(
    "/posts/{post_id}/like",
    response_model=ApiResponse[LikeResponse],
    summary="Like or unlike post",
)
async def toggle_like(
    post_id: UUID,
    service: CommunityServiceDep,
    user: ActiveUser,
) -> ApiResponse[LikeResponse]:
    try:
        result = await service.toggle_like(post_id, user)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(result)


# ==============================================================================
# Comments & Polls
# ==============================================================================


@router.get(
    "/posts/{post_id}/comments",
    response_model=ApiResponse[list[CommentResponse]],
    summary="List comments",
)
async def list_comments(
    post_id: UUID,
    service: CommunityServiceDep,
    user: ActiveUser,
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse[list[CommentResponse]]:
    try:
        comments = await service.list_comments(post_id, user, limit)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok([CommentResponse.from_comment(c) for c in comments])


@router.post(
    "/posts/{post_id}/comments",
    response_model=ApiResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    post_id: UUID,
    data: CommentRequest,
    service: CommunityServiceDep,
    user: ActiveUser,
) -> ApiResponse[CommentResponse]:
    try:
        comment = await service.add_comment(post_id, user, data.text)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(CommentResponse.from_comment(comment))


@router.post(
    "/posts/{post_id}/vote",
    response_model=ApiResponse[PollResponse],
    summary="Vote on poll",
)
async def vote_poll(
    post_id: UUID,
    data: VoteRequest,
    service: CommunityServiceDep,
    user: ActiveUser,
) -> ApiResponse[PollResponse]:
    """Voting for the current choice again withdraws the vote."""
    try:
        poll = await service.vote_poll(post_id, user, data.option_id)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(poll)


@router.get(
    "/polls/top",
    response_model=ApiResponse[list[PostResponse]],
    summary="Top polls",
)
async def top_polls(
    service: CommunityServiceDep,
    user: ActiveUser,
    limit: int = Query(5, ge=1, le=20),
) -> ApiResponse[list[PostResponse]]:
    return ok(await service.get_top_polls(user, limit))


@router.get(
    "/users/{author_id}/posts",
    response_model=ApiResponse[FeedResponse],
    summary="List a user's posts",
)
async def list_user_posts(
    author_id: UUID,
    service: CommunityServiceDep,
    user: ActiveUser,
    limit: int = Query(10, ge=1, le=50),
    cursor: str | None = Query(None),
) -> ApiResponse[FeedResponse]:
    try:
        feed = await service.list_user_posts(author_id, user, limit, cursor)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(feed)


@router.get(
    "/stats",
    response_model=ApiResponse[CommunityStatsResponse],
    summary="Community statistics",
)
async def get_stats(
    service: CommunityServiceDep,
    _user: ActiveUser,
) -> ApiResponse[CommunityStatsResponse]:
    return ok(await service.get_stats())


# ==============================================================================
# Reports
# ==============================================================================


@router.post(
    "/posts/{post_id}/report",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report post",
)
async def report_post(
    post_id: UUID,
    data: ReportRequest,
    service: CommunityServiceDep,
    user: ActiveUser,
) -> MessageResponse:
    try:
        await service.report_post(post_id, user, data.reason)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return MessageResponse(message="Report submitted")


@router.get(
    "/reports",
    response_model=ApiResponse[list[ReportResponse]],
    summary="List reports (admin)",
)
async def list_reports(
    service: CommunityServiceDep,
    admin: AdminUser,
    report_status: ReportStatus | None = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse[list[ReportResponse]]:
    return ok(await service.list_reports(admin, report_status, limit))


@router.put(
    "/reports/{post_id}/{reporter_id}",
    response_model=ApiResponse[ReportResponse],
    summary="Resolve report (admin)",
)
async def resolve_report(
    post_id: UUID,
    reporter_id: UUID,
    data: ResolveReportRequest,
    service: CommunityServiceDep,
    admin: AdminUser,
) -> ApiResponse[ReportResponse]:
    """Dismiss a report or delete the reported post."""
    try:
        report = await service.resolve_report(post_id, reporter_id, data.action, admin)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return ok(ReportResponse.from_report(report), message="Report resolved")
