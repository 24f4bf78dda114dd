# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Skills marketplace service layer.

Business logic for:
- Offer and request posts with free, barter or paid pricing
- The marketplace listing (approved posts, month buckets, newest first)
- Star reviews, one per reviewer and post
- Moderation of posts by admins
- The skill of the month derived from a user's enrollments
"""

from collections.abc import AsyncIterator
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from skillwise.auth.permissions import is_admin
from skillwise.config.settings import get_settings
from skillwise.skills.models import (
    DEFAULT_SKILL_OF_MONTH,
    SkillLevel,
    SkillPost,
    SkillPostType,
    SkillPricing,
    SkillReview,
    month_bucket,
    normalize_tags,
    previous_month,
    validation_problem,
)
from skillwise.skills.schemas import (
    CreateSkillPostRequest,
    SkillOfMonthResponse,
    SkillPostListResponse,
    SkillPostResponse,
    UpdateSkillPostRequest,
)
from skillwise.utils import decode_cursor, encode_cursor, summarize_ratings, utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from skillwise.auth.models import User
    from skillwise.auth.service import UserService
    from skillwise.courses.service import CourseService
    from skillwise.learning.service import LearningService

logger = structlog.get_logger(__name__)

# Optional fields an update may reset to null
CLEARABLE_FIELDS = frozenset({"video_intro", "level", "barter_request", "price_amount"})


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class SkillsError(Exception):
    """Base skills marketplace error."""

    def __init__(self, message: str, code: str = "skills_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class SkillPostNotFoundError(SkillsError):
    def __init__(self, message: str = "Skill post not found"):
        super().__init__(message, "skill_post_not_found")


class NotSkillPostOwnerError(SkillsError):
    def __init__(self, message: str = "You can only change your own skill posts"):
        super().__init__(message, "not_owner")


class InvalidSkillPostError(SkillsError):
    def __init__(self, message: str):
        super().__init__(message, "invalid_skill_post")


class DuplicateReviewError(SkillsError):
    def __init__(self, message: str = "You have already reviewed this skill post"):
        super().__init__(message, "duplicate_review")


class InvalidCursorError(SkillsError):
    def __init__(self, message: str = "Invalid pagination cursor"):
        super().__init__(message, "invalid_cursor")


class SkillUserNotFoundError(SkillsError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


# ==============================================================================
# Skills Service
# ==============================================================================


class SkillsService:
    """Service for marketplace posts, reviews and moderation."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        user_service: "UserService",
        learning_service: "LearningService",
        course_service: "CourseService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.user_service = user_service
        self.learning_service = learning_service
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace

        # Posts
        self._get_post = self.session.prepare(
            f"SELECT * FROM {ks}.skill_posts WHERE id = ?"
        )
        self._get_posts = self.session.prepare(
            f"SELECT * FROM {ks}.skill_posts WHERE id IN ?"
        )
        self._insert_post = self.session.prepare(f"""
            INSERT INTO {ks}.skill_posts
            (id, user_id, author_name, type, title, description, video_intro,
             skill_tags, level, pricing, barter_request, price_amount,
             is_approved, rating_average, review_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_content = self.session.prepare(f"""
            UPDATE {ks}.skill_posts
            SET type = ?, title = ?, description = ?, video_intro = ?,
                skill_tags = ?, level = ?, pricing = ?, barter_request = ?,
                price_amount = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_approval = self.session.prepare(
            f"UPDATE {ks}.skill_posts SET is_approved = ? WHERE id = ?"
        )
        self._update_review_stats = self.session.prepare(
            f"UPDATE {ks}.skill_posts SET rating_average = ?, review_count = ? "
            "WHERE id = ?"
        )
        self._delete_post = self.session.prepare(
            f"DELETE FROM {ks}.skill_posts WHERE id = ?"
        )

        # Listing tables
        self._insert_by_month = self.session.prepare(
            f"INSERT INTO {ks}.skill_posts_by_month (month, post_id) VALUES (?, ?)"
        )
        self._list_by_month = self.session.prepare(
            f"SELECT post_id FROM {ks}.skill_posts_by_month WHERE month = ? LIMIT ?"
        )
        self._list_by_month_before = self.session.prepare(
            f"SELECT post_id FROM {ks}.skill_posts_by_month "
            "WHERE month = ? AND post_id < ? LIMIT ?"
        )
        self._delete_by_month = self.session.prepare(
            f"DELETE FROM {ks}.skill_posts_by_month WHERE month = ? AND post_id = ?"
        )
        self._insert_by_user = self.session.prepare(
            f"INSERT INTO {ks}.skill_posts_by_user (user_id, post_id) VALUES (?, ?)"
        )
        self._list_by_user = self.session.prepare(
            f"SELECT post_id FROM {ks}.skill_posts_by_user WHERE user_id = ? LIMIT ?"
        )
        self._list_by_user_before = self.session.prepare(
            f"SELECT post_id FROM {ks}.skill_posts_by_user "
            "WHERE user_id = ? AND post_id < ? LIMIT ?"
        )
        self._delete_by_user = self.session.prepare(
            f"DELETE FROM {ks}.skill_posts_by_user WHERE user_id = ? AND post_id = ?"
        )

        # Reviews
        self._get_review = self.session.prepare(
            f"SELECT * FROM {ks}.skill_post_reviews WHERE post_id = ? AND reviewer_id = ?"
        )
        self._insert_review = self.session.prepare(f"""
            INSERT INTO {ks}.skill_post_reviews
            (post_id, reviewer_id, reviewer_name, rating, comment, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._list_reviews = self.session.prepare(
            f"SELECT * FROM {ks}.skill_post_reviews WHERE post_id = ?"
        )
        self._review_ratings = self.session.prepare(
            f"SELECT rating FROM {ks}.skill_post_reviews WHERE post_id = ?"
        )
        self._delete_reviews = self.session.prepare(
            f"DELETE FROM {ks}.skill_post_reviews WHERE post_id = ?"
        )

    # ==========================================================================
    # Post Queries
    # ==========================================================================

    async def get_post_entity(self, post_id: UUID) -> SkillPost | None:
        result = await self.session.aexecute(self._get_post, [post_id])
        row = result.one()
        return SkillPost.from_row(row) if row else None

    async def require_post(self, post_id: UUID) -> SkillPost:
        post = await self.get_post_entity(post_id)
        if post is None:
            raise SkillPostNotFoundError
        return post

    async def get_posts(self, post_ids: list[UUID]) -> list[SkillPost]:
        """Load posts keeping the order of ``post_ids``; missing ids are skipped."""
        if not post_ids:
            return []
        result = await self.session.aexecute(self._get_posts, [list(post_ids)])
        posts = {row.id: SkillPost.from_row(row) for row in result.all()}
        return [posts[pid] for pid in post_ids if pid in posts]

    async def get_post(self, post_id: UUID, viewer: "User") -> SkillPostResponse:
        """One post with its reviews.

        Posts awaiting approval are only visible to their author and admins.

        Raises:
            SkillPostNotFoundError: If the post does not exist or is hidden
        """
        post = await self._require_visible(post_id, viewer)
        return SkillPostResponse.from_post(post, await self.list_reviews(post.id))

    async def list_posts(
        self,
        limit: int = 10,
        cursor: str | None = None,
        post_type: SkillPostType | None = None,
        pricing: SkillPricing | None = None,
        level: SkillLevel | None = None,
        tag: str | None = None,
    ) -> SkillPostListResponse:
        """Approved posts matching the filters, newest first.

        Walks month buckets backwards, at most ``skills_lookback_months``
        months before the cursor.

        Raises:
            InvalidCursorError: If ``cursor`` cannot be decoded
        """
        settings = get_settings()
        limit = max(1, min(limit, settings.skills_page_size_max))
        before_id, start = self._parse_cursor(cursor)

        def keep(post: SkillPost) -> bool:
            return post.is_approved and post.matches(post_type, pricing, level, tag)

        batches = self._scan_months(
            start, before_id, limit, settings.skills_lookback_months
        )
        return await self._collect_page(batches, keep, limit)

    async def list_my_posts(
        self, user: "User", limit: int = 10, cursor: str | None = None
    ) -> SkillPostListResponse:
        """Every post of ``user``, including those awaiting approval."""
        limit = max(1, min(limit, get_settings().skills_page_size_max))
        before_id, _ = self._parse_cursor(cursor)
        batches = self._scan_partition(
            self._list_by_user, self._list_by_user_before, user.id, before_id, limit
        )
        return await self._collect_page(batches, lambda _post: True, limit)

    # ==========================================================================
    # Post Commands
    # ==========================================================================

    async def create_post(
        self, author: "User", data: CreateSkillPostRequest
    ) -> SkillPostResponse:
        """Create an offer or request.

        Raises:
            InvalidSkillPostError: If tags are empty or pricing is inconsistent
        """
        post = SkillPost(
            user_id=author.id,
            author_name=author.name,
            type=data.type.value,
            title=data.title,
            description=data.description,
            video_intro=data.video_intro,
            skill_tags=normalize_tags(data.skill_tags),
            level=data.level.value if data.level else None,
            pricing=data.pricing.value,
            barter_request=data.barter_request,
            price_amount=data.price_amount,
            is_approved=get_settings().skills_auto_approve,
        )
        self._check_post(post)

        await self.session.aexecute(
            self._insert_post,
            [
                post.id, post.user_id, post.author_name, post.type, post.title,
                post.description, post.video_intro, post.skill_tags, post.level,
                post.pricing, post.barter_request, post.price_amount,
                post.is_approved, post.rating_average, post.review_count,
                post.created_at, post.updated_at,
            ],
        )
        await self.session.aexecute(self._insert_by_user, [post.user_id, post.id])
        if post.is_approved:
            await self.session.aexecute(self._insert_by_month, [post.month, post.id])

        logger.info(
            "skill_post_created",
            post_id=str(post.id),
            type=post.type,
            pricing=post.pricing,
            approved=post.is_approved,
        )
        return SkillPostResponse.from_post(post)

    async def update_post(
        self, post_id: UUID, user: "User", data: UpdateSkillPostRequest
    ) -> SkillPostResponse:
        """Apply the fields present in ``data``.

        Raises:
            SkillPostNotFoundError: If the post does not exist
            NotSkillPostOwnerError: If ``user`` is not the author
            InvalidSkillPostError: If the result has no tags or bad pricing
        """
        post = await self.require_post(post_id)
        if post.user_id != user.id:
            raise NotSkillPostOwnerError

        changes = {
            name: value
            for name, value in data.model_dump(exclude_unset=True).items()
            if value is not None or name in CLEARABLE_FIELDS
        }
        if not changes:
            return SkillPostResponse.from_post(post)

        for name, value in changes.items():
            if isinstance(value, Enum):
                value = value.value
            elif name == "skill_tags":
                value = normalize_tags(value)
            elif name in ("title", "description"):
                value = value.strip()
            setattr(post, name, value)
        self._check_post(post)
        post.updated_at = utc_now()

        await self.session.aexecute(
            self._update_content,
            [
                post.type, post.title, post.description, post.video_intro,
                post.skill_tags, post.level, post.pricing, post.barter_request,
                post.price_amount, post.updated_at, post.id,
            ],
        )
        logger.info("skill_post_updated", post_id=str(post.id), fields=sorted(changes))
        return SkillPostResponse.from_post(post)

    async def delete_post(self, post_id: UUID, user: "User") -> None:
        """Delete a post with its listing rows and reviews.

        Raises:
            SkillPostNotFoundError: If the post does not exist
            NotSkillPostOwnerError: If ``user`` is not the author
        """
        post = await self.require_post(post_id)
        if post.user_id != user.id:
            raise NotSkillPostOwnerError("You can only delete your own skill posts")

        await self.session.aexecute(self._delete_by_month, [post.month, post.id])
        await self.session.aexecute(self._delete_by_user, [post.user_id, post.id])
        await self.session.aexecute(self._delete_reviews, [post.id])
        await self.session.aexecute(self._delete_post, [post.id])
        logger.info("skill_post_deleted", post_id=str(post.id))

    async def set_approval(self, post_id: UUID, approved: bool) -> SkillPostResponse:
        """Approve a post into the marketplace listing, or take it out.

        Raises:
            SkillPostNotFoundError: If the post does not exist
        """
        post = await self.require_post(post_id)
        post.is_approved = approved
        await self.session.aexecute(self._update_approval, [approved, post.id])
        if approved:
            await self.session.aexecute(self._insert_by_month, [post.month, post.id])
        else:
            await self.session.aexecute(self._delete_by_month, [post.month, post.id])
        logger.info("skill_post_moderated", post_id=str(post.id), approved=approved)
        return SkillPostResponse.from_post(post)

    # ==========================================================================
    # Reviews
    # ==========================================================================

    async def list_reviews(self, post_id: UUID) -> list[SkillReview]:
        """Reviews of a post, newest first."""
        result = await self.session.aexecute(self._list_reviews, [post_id])
        reviews = [SkillReview.from_row(row) for row in result.all()]
        return sorted(reviews, key=lambda r: r.created_at, reverse=True)

    async def add_review(
        self,
        post_id: UUID,
        reviewer: "User",
        rating: int,
        comment: str | None = None,
    ) -> SkillPostResponse:
        """Record a review and refresh the post's rating aggregate.

        Raises:
            SkillPostNotFoundError: If the post does not exist or is hidden
            DuplicateReviewError: If ``reviewer`` already reviewed the post
        """
        post = await self._require_visible(post_id, reviewer)
        existing = await self.session.aexecute(self._get_review, [post.id, reviewer.id])
        if existing.one():
            raise DuplicateReviewError

        review = SkillReview(
            post_id=post.id,
            reviewer_id=reviewer.id,
            reviewer_name=reviewer.name,
            rating=rating,
            comment=comment.strip() if comment and comment.strip() else None,
        )
        await self.session.aexecute(
            self._insert_review,
            [
                review.post_id, review.reviewer_id, review.reviewer_name,
                review.rating, review.comment, review.created_at,
            ],
        )

        ratings = await self.session.aexecute(self._review_ratings, [post.id])
        stats = summarize_ratings(row.rating for row in ratings.all())
        post.apply_review_stats(stats)
        await self.session.aexecute(
            self._update_review_stats, [stats.average, stats.count, post.id]
        )

        logger.info(
            "skill_post_reviewed",
            post_id=str(post.id),
            rating=rating,
            average=stats.average,
        )
        return SkillPostResponse.from_post(post, await self.list_reviews(post.id))

    # ==========================================================================
    # Skill of the Month
    # ==========================================================================

    async def skill_of_month(self, user_id: UUID) -> SkillOfMonthResponse:
        """First tag of the course the user enrolled in first.

        Falls back to ``DEFAULT_SKILL_OF_MONTH`` when there is no enrollment
        or that course has no tags.

        Raises:
            SkillUserNotFoundError: If the user does not exist
        """
        if await self.user_service.get_user(user_id) is None:
            raise SkillUserNotFoundError

        enrollments = await self.learning_service.list_enrollments(user_id)
        if not enrollments:
            return SkillOfMonthResponse(user_id=user_id, skill=DEFAULT_SKILL_OF_MONTH)

        first = min(enrollments, key=lambda e: e.enrolled_at)
        course = await self.course_service.get_course(first.course_id)
        if course is None or not course.tags:
            return SkillOfMonthResponse(user_id=user_id, skill=DEFAULT_SKILL_OF_MONTH)
        return SkillOfMonthResponse(
            user_id=user_id, skill=sorted(course.tags)[0], course_id=course.id
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _check_post(post: SkillPost) -> None:
        problem = validation_problem(post)
        if problem:
            raise InvalidSkillPostError(problem)
        if post.pricing != SkillPricing.PAID.value:
            post.price_amount = None
        if post.pricing != SkillPricing.BARTER.value:
            post.barter_request = None

    async def _require_visible(self, post_id: UUID, viewer: "User") -> SkillPost:
        post = await self.require_post(post_id)
        if not post.is_approved and post.user_id != viewer.id and not is_admin(viewer.role):
            raise SkillPostNotFoundError
        return post

    def _parse_cursor(self, cursor: str | None) -> tuple[UUID | None, datetime]:
        if not cursor:
            return None, utc_now()
        try:
            created_at, post_id = decode_cursor(cursor)
        except ValueError as e:
            raise InvalidCursorError from e
        return post_id, created_at

    async def _scan_months(
        self,
        start: datetime,
        before_id: UUID | None,
        limit: int,
        lookback_months: int,
    ) -> AsyncIterator[list[UUID]]:
        """Yield batches of post ids walking month buckets backwards."""
        month = start.date()
        for _ in range(lookback_months + 1):
            async for ids in self._scan_partition(
                self._list_by_month, self._list_by_month_before,
                month_bucket(month), before_id, limit,
            ):
                yield ids
            before_id = None
            month = previous_month(month)

    async def _scan_partition(
        self, first_stmt, next_stmt, key, before_id: UUID | None, limit: int
    ) -> AsyncIterator[list[UUID]]:
        """Yield batches of post ids from one listing partition."""
        batch = (limit + 1) * 2
        while True:
            if before_id is not None:
                result = await self.session.aexecute(next_stmt, [key, before_id, batch])
            else:
                result = await self.session.aexecute(first_stmt, [key, batch])
            ids = [row.post_id for row in result.all()]
            if ids:
                yield ids
            if len(ids) < batch:
                return
            before_id = ids[-1]

    async def _collect_page(
        self, batches: AsyncIterator[list[UUID]], keep, limit: int
    ) -> SkillPostListResponse:
        selected: list[SkillPost] = []
        async for ids in batches:
            posts = await self.get_posts(ids)
            selected.extend(p for p in posts if keep(p))
            if len(selected) > limit:
                break

        has_more = len(selected) > limit
        page = selected[:limit]
        next_cursor = None
        if has_more and page:
            next_cursor = encode_cursor(page[-1].created_at, page[-1].id)

        return SkillPostListResponse(
            items=[SkillPostResponse.from_post(p) for p in page],
            has_more=has_more,
            next_cursor=next_cursor,
        )
