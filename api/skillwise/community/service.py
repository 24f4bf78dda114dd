# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Community service layer.

Business logic for:
- Post creation, editing and deletion
- The feed (day buckets, newest first) with privacy filtering
- Sharing public posts and changing privacy
- Likes, comments and poll votes
- Post reports and their moderation
- Community statistics
"""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from skillwise.auth.permissions import is_admin
from skillwise.community.models import (
    Comment,
    Post,
    PostPrivacy,
    PostReport,
    PostType,
    ReportAction,
    ReportStatus,
    can_view,
    day_bucket,
    tally_votes,
)
from skillwise.community.schemas import (
    CommunityStatsResponse,
    CreatePostRequest,
    FeedResponse,
    LikeResponse,
    PollInput,
    PollResponse,
    PostResponse,
    ReportResponse,
    ShareResponse,
    UpdatePostRequest,
)
from skillwise.config.settings import get_settings
from skillwise.notifications.models import (
    create_post_deleted_notification,
    create_post_shared_notification,
    create_report_resolved_notification,
)
from skillwise.utils import decode_cursor, encode_cursor, utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from skillwise.auth.models import User
    from skillwise.auth.service import UserService
    from skillwise.courses.service import CourseService
    from skillwise.notifications.service import NotificationService

logger = structlog.get_logger(__name__)

MIN_POLL_OPTIONS = 2
TOP_POLLS_SCAN = 100
DEFAULT_DELETE_REASON = "Removed by a moderator"


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommunityError(Exception):
    """Base community error."""

    def __init__(self, message: str, code: str = "community_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class PostNotFoundError(CommunityError):
    def __init__(self, message: str = "Post not found"):
        super().__init__(message, "post_not_found")


class ForbiddenError(CommunityError):
    """The acting user may not perform this operation on the post."""

    def __init__(self, message: str = "You cannot access this post"):
        super().__init__(message, "forbidden")


class InvalidPostError(CommunityError):
    def __init__(self, message: str):
        super().__init__(message, "invalid_post")


class InvalidCursorError(CommunityError):
    def __init__(self, message: str = "Invalid pagination cursor"):
        super().__init__(message, "invalid_cursor")


class PollNotFoundError(CommunityError):
    def __init__(self, message: str = "Poll not found"):
        super().__init__(message, "poll_not_found")


class InvalidOptionError(CommunityError):
    def __init__(self, message: str = "Invalid option"):
        super().__init__(message, "invalid_option")


class DuplicateReportError(CommunityError):
    def __init__(self, message: str = "You have already reported this post"):
        super().__init__(message, "duplicate_report")


class ReportNotFoundError(CommunityError):
    def __init__(self, message: str = "Report not found"):
        super().__init__(message, "report_not_found")


# ==============================================================================
# Community Service
# ==============================================================================


class CommunityService:
    """Service for posts, interactions and moderation."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        user_service: "UserService",
        course_service: "CourseService",
        notification_service: "NotificationService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.user_service = user_service
        self.course_service = course_service
        self.notification_service = notification_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        ks = self.keyspace

        # Posts
        self._get_post = self.session.prepare(f"SELECT * FROM {ks}.posts WHERE id = ?")
        self._get_posts = self.session.prepare(
            f"SELECT * FROM {ks}.posts WHERE id IN ?"
        )
        self._insert_post = self.session.prepare(f"""
            INSERT INTO {ks}.posts
            (id, author_id, author_name, type, privacy, title, text, images,
             course_id, debate_topic, poll_question, poll_options, shared_from,
             likes, shares, comments_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_content = self.session.prepare(f"""
            UPDATE {ks}.posts
            SET title = ?, text = ?, images = ?, debate_topic = ?,
                poll_question = ?, poll_options = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_privacy = self.session.prepare(
            f"UPDATE {ks}.posts SET privacy = ?, updated_at = ? WHERE id = ?"
        )
        self._add_like = self.session.prepare(
            f"UPDATE {ks}.posts SET likes = likes + ? WHERE id = ?"
        )
        self._remove_like = self.session.prepare(
            f"UPDATE {ks}.posts SET likes = likes - ? WHERE id = ?"
        )
        self._add_share = self.session.prepare(
            f"UPDATE {ks}.posts SET shares = shares + ? WHERE id = ?"
        )
        self._set_comments_count = self.session.prepare(
            f"UPDATE {ks}.posts SET comments_count = ? WHERE id = ?"
        )
        self._delete_post = self.session.prepare(f"DELETE FROM {ks}.posts WHERE id = ?")
        self._count_posts = self.session.prepare(f"SELECT COUNT(*) FROM {ks}.posts")

        # Listing tables
        self._insert_by_day = self.session.prepare(
            f"INSERT INTO {ks}.posts_by_day (day, post_id) VALUES (?, ?)"
        )
        self._list_by_day = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts_by_day WHERE day = ? LIMIT ?"
        )
        self._list_by_day_before = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts_by_day "
            "WHERE day = ? AND post_id < ? LIMIT ?"
        )
        self._delete_by_day = self.session.prepare(
            f"DELETE FROM {ks}.posts_by_day WHERE day = ? AND post_id = ?"
        )
        self._insert_by_author = self.session.prepare(
            f"INSERT INTO {ks}.posts_by_author (author_id, post_id) VALUES (?, ?)"
        )
        self._list_by_author = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts_by_author WHERE author_id = ? LIMIT ?"
        )
        self._list_by_author_before = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts_by_author "
            "WHERE author_id = ? AND post_id < ? LIMIT ?"
        )
        self._delete_by_author = self.session.prepare(
            f"DELETE FROM {ks}.posts_by_author WHERE author_id = ? AND post_id = ?"
        )
        self._insert_by_type = self.session.prepare(
            f"INSERT INTO {ks}.posts_by_type (type, post_id) VALUES (?, ?)"
        )
        self._list_by_type = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts_by_type WHERE type = ? LIMIT ?"
        )
        self._list_by_type_before = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts_by_type "
            "WHERE type = ? AND post_id < ? LIMIT ?"
        )
        self._delete_by_type = self.session.prepare(
            f"DELETE FROM {ks}.posts_by_type WHERE type = ? AND post_id = ?"
        )

        # Comments
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {ks}.post_comments
            (post_id, comment_id, author_id, author_name, text, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._list_comments = self.session.prepare(
            f"SELECT * FROM {ks}.post_comments WHERE post_id = ? LIMIT ?"
        )
        self._delete_comments = self.session.prepare(
            f"DELETE FROM {ks}.post_comments WHERE post_id = ?"
        )

        # Poll votes
        self._get_votes = self.session.prepare(
            f"SELECT user_id, option_id FROM {ks}.poll_votes WHERE post_id = ?"
        )
        self._upsert_vote = self.session.prepare(f"""
            INSERT INTO {ks}.poll_votes (post_id, user_id, option_id, voted_at)
            VALUES (?, ?, ?, ?)
        """)
        self._delete_vote = self.session.prepare(
            f"DELETE FROM {ks}.poll_votes WHERE post_id = ? AND user_id = ?"
        )
        self._delete_votes = self.session.prepare(
            f"DELETE FROM {ks}.poll_votes WHERE post_id = ?"
        )

        # Reports
        self._get_report = self.session.prepare(f"""
            SELECT * FROM {ks}.post_reports
            WHERE post_id = ? AND reporter_id = ?
        """)
        self._insert_report = self.session.prepare(f"""
            INSERT INTO {ks}.post_reports
            (post_id, reporter_id, reason, status, action, resolved_by,
             created_at, resolved_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_reports = self.session.prepare(
            f"SELECT * FROM {ks}.post_reports LIMIT ?"
        )

    # ==========================================================================
    # Post Queries
    # ==========================================================================

    async def get_post_entity(self, post_id: UUID) -> Post | None:
        result = await self.session.aexecute(self._get_post, [post_id])
        row = result.one()
        return Post.from_row(row) if row else None

    async def require_post(self, post_id: UUID) -> Post:
        post = await self.get_post_entity(post_id)
        if post is None:
            raise PostNotFoundError
        return post

    async def get_posts(self, post_ids: list[UUID]) -> list[Post]:
        """Load posts keeping the order of ``post_ids``; missing ids are skipped."""
        if not post_ids:
            return []
        result = await self.session.aexecute(self._get_posts, [list(post_ids)])
        posts = {row.id: Post.from_row(row) for row in result.all()}
        return [posts[pid] for pid in post_ids if pid in posts]

    async def get_post(self, post_id: UUID, viewer: "User") -> PostResponse:
        """Render one post for ``viewer``.

        Raises:
            PostNotFoundError: If the post does not exist
            ForbiddenError: If the viewer cannot see it
        """
        post = await self.require_post(post_id)
        if not can_view(post, viewer):
            raise ForbiddenError
        return (await self._render([post], viewer))[0]

    async def list_feed(
        self,
        viewer: "User",
        limit: int = 10,
        cursor: str | None = None,
        post_type: PostType | None = None,
    ) -> FeedResponse:
        """Posts visible to ``viewer``, newest first.

        Without a type filter the feed walks day buckets backwards, at most
        ``feed_lookback_days`` days.

        Raises:
            InvalidCursorError: If ``cursor`` cannot be decoded
        """
        settings = get_settings()
        limit = max(1, min(limit, settings.feed_page_size_max))
        before_id, start = self._parse_cursor(cursor)

        if post_type is not None:
            batches = self._scan_partition(
                self._list_by_type, self._list_by_type_before, post_type.value,
                before_id, limit,
            )
        else:
            batches = self._scan_days(
                start, before_id, limit, settings.feed_lookback_days
            )
        return await self._collect_page(batches, viewer, limit)

    async def list_user_posts(
        self,
        author_id: UUID,
        viewer: "User",
        limit: int = 10,
        cursor: str | None = None,
    ) -> FeedResponse:
        """Posts of one author that ``viewer`` can see, newest first."""
        limit = max(1, min(limit, get_settings().feed_page_size_max))
        before_id, _ = self._parse_cursor(cursor)
        batches = self._scan_partition(
            self._list_by_author, self._list_by_author_before, author_id,
            before_id, limit,
        )
        return await self._collect_page(batches, viewer, limit)

    # ==========================================================================
    # Post Commands
    # ==========================================================================

    async def create_post(self, author: "User", data: CreatePostRequest) -> PostResponse:
        """Create a post after type-specific validation.

        Raises:
            InvalidPostError: If the content does not fit the post type
        """
        if data.type == PostType.SHARED:
            raise InvalidPostError("Shared posts are created by sharing a post")

        post = Post(
            author_id=author.id,
            author_name=author.name,
            type=data.type.value,
            privacy=data.privacy.value,
            title=_clean(data.title),
            text=_clean(data.text),
            images=[url for url in data.images if url.strip()],
            course_id=data.course_id,
            debate_topic=_clean(data.debate_topic),
        )
        if data.poll is not None:
            _apply_poll(post, data.poll)
        _validate_content(post)

        if post.type == PostType.SHARE_COURSE.value:
            course = await self.course_service.get_course(post.course_id)
            if course is None or not course.is_published:
                raise InvalidPostError("Only published courses can be shared")
            post.title = post.title or course.title

        await self._insert(post)
        logger.info("post_created", post_id=str(post.id), post_type=post.type)
        return (await self._render([post], author))[0]

    async def edit_post(
        self, post_id: UUID, user: "User", data: UpdatePostRequest
    ) -> PostResponse:
        """Author edit of title, text, images, poll and debate topic.

        Raises:
            PostNotFoundError: If the post does not exist
            ForbiddenError: If ``user`` is not the author
            InvalidPostError: If the result does not fit the post type
        """
        post = await self.require_post(post_id)
        if post.author_id != user.id:
            raise ForbiddenError("You can only edit your own posts")

        if data.title is not None:
            post.title = _clean(data.title)
        if data.text is not None:
            post.text = _clean(data.text)
        if data.images is not None:
            post.images = [url for url in data.images if url.strip()]
        if data.debate_topic is not None:
            if post.type != PostType.DEBATE.value:
                raise InvalidPostError("Only debates have a topic")
            post.debate_topic = _clean(data.debate_topic)
        if data.poll is not None:
            if not post.is_poll:
                raise InvalidPostError("Only polls have options")
            _apply_poll(post, data.poll)
        _validate_content(post)

        post.updated_at = utc_now()
        await self.session.aexecute(
            self._update_content,
            [
                post.title,
                post.text,
                post.images,
                post.debate_topic,
                post.poll_question,
                post.poll_options,
                post.updated_at,
                post.id,
            ],
        )
        logger.info("post_edited", post_id=str(post.id))
        return (await self._render([post], user))[0]

    async def delete_post(
        self, post_id: UUID, user: "User", reason: str | None = None
    ) -> None:
        """Delete a post as its author or as an admin.

        When an admin removes someone else's post the author is notified.

        Raises:
            PostNotFoundError: If the post does not exist
            ForbiddenError: If ``user`` is neither the author nor an admin
        """
        post = await self.require_post(post_id)
        is_author = post.author_id == user.id
        if not is_author and not is_admin(user.role):
            raise ForbiddenError("You can only delete your own posts")

        await self._remove(post)

        if not is_author:
            limit = get_settings().delete_reason_max_length
            await self.notification_service.dispatch(
                create_post_deleted_notification(
                    author_id=post.author_id,
                    moderator_id=user.id,
                    post_id=post.id,
                    reason=(reason or DEFAULT_DELETE_REASON).strip()[:limit],
                )
            )
        logger.info("post_deleted", post_id=str(post.id), by_author=is_author)

    # ==========================================================================
    # Sharing & Privacy
    # ==========================================================================

    async def share(
        self, post_id: UUID, user: "User", text: str | None = None
    ) -> ShareResponse:
        """Share a public post as a new public post.

        Sharing a share shares its original. Only public posts can be
        shared; this holds for the target and for the original.

        Raises:
            PostNotFoundError: If the post (or the original) does not exist
            ForbiddenError: If the target or the original is not public
        """
        target = await self.require_post(post_id)
        if not target.is_public:
            raise ForbiddenError("This post cannot be shared because it is not public")

        original = target
        if target.is_share:
            original = await self.get_post_entity(target.shared_from)
            if original is None:
                raise PostNotFoundError("The original post no longer exists")
            if not original.is_public:
                raise ForbiddenError(
                    "This post cannot be shared because it is not public"
                )

        shared = Post(
            author_id=user.id,
            author_name=user.name,
            type=PostType.SHARE_COURSE.value
            if original.type == PostType.SHARE_COURSE.value
            else PostType.SHARED.value,
            privacy=PostPrivacy.PUBLIC.value,
            title=original.title,
            text=_clean(text) or f"Shared from {original.author_name}",
            course_id=original.course_id,
            shared_from=original.id,
        )
        await self._insert(shared)

        await self.session.aexecute(self._add_share, [{user.id}, original.id])
        original.shares.add(user.id)

        if original.author_id != user.id:
            await self.notification_service.dispatch(
                create_post_shared_notification(
                    author_id=original.author_id,
                    sharer_id=user.id,
                    sharer_name=user.name,
                    post_id=original.id,
                    share_id=shared.id,
                )
            )

        logger.info(
            "post_shared",
            post_id=str(original.id),
            share_id=str(shared.id),
            shares=len(original.shares),
        )
        rendered = await self._render([shared], user, originals={original.id: original})
        return ShareResponse(shares=len(original.shares), shared_post=rendered[0])

    async def set_privacy(
        self, post_id: UUID, user: "User", privacy: PostPrivacy | str
    ) -> PostResponse:
        """Change a post's privacy. Existing shares are left in place.

        Raises:
            PostNotFoundError: If the post does not exist
            ForbiddenError: If ``user`` is not the author
            InvalidPostError: If ``privacy`` is not a known value
        """
        try:
            value = PostPrivacy(privacy)
        except ValueError as e:
            raise InvalidPostError("Invalid privacy value") from e

        post = await self.require_post(post_id)
        if post.author_id != user.id:
            raise ForbiddenError("You can only change privacy of your own posts")

        post.privacy = value.value
        post.updated_at = utc_now()
        await self.session.aexecute(
            self._update_privacy, [post.privacy, post.updated_at, post.id]
        )
        logger.info("post_privacy_changed", post_id=str(post.id), privacy=post.privacy)
        return (await self._render([post], user))[0]

    # ==========================================================================
    # Likes, Comments, Polls
    # ==========================================================================

    async def toggle_like(self, post_id: UUID, user: "User") -> LikeResponse:
        post = await self._require_visible(post_id, user)
        if user.id in post.likes:
            await self.session.aexecute(self._remove_like, [{user.id}, post.id])
            post.likes.discard(user.id)
            liked = False
        else:
            await self.session.aexecute(self._add_like, [{user.id}, post.id])
            post.likes.add(user.id)
            liked = True
        return LikeResponse(liked=liked, likes_count=len(post.likes))

    async def add_comment(self, post_id: UUID, user: "User", text: str) -> Comment:
        post = await self._require_visible(post_id, user)
        comment = Comment(
            post_id=post.id, author_id=user.id, author_name=user.name, text=text
        )
        await self.session.aexecute(
            self._insert_comment,
            [
                comment.post_id,
                comment.comment_id,
                comment.author_id,
                comment.author_name,
                comment.text,
                comment.created_at,
            ],
        )
        await self.session.aexecute(
            self._set_comments_count, [post.comments_count + 1, post.id]
        )
        logger.info("comment_added", post_id=str(post.id))
        return comment

    async def list_comments(
        self, post_id: UUID, user: "User", limit: int = 100
    ) -> list[Comment]:
        post = await self._require_visible(post_id, user)
        result = await self.session.aexecute(self._list_comments, [post.id, limit])
        return [Comment.from_row(row) for row in result.all()]

    async def vote_poll(self, post_id: UUID, user: "User", option_id: int) -> PollResponse:
        """Vote on a poll. Voting the same option again withdraws the vote.

        Raises:
            PollNotFoundError: If the post is not a poll
            InvalidOptionError: If ``option_id`` is not an option of the poll
        """
        post = await self.get_post_entity(post_id)
        if post is None or not post.is_poll:
            raise PollNotFoundError
        if not can_view(post, user):
            raise ForbiddenError
        if not 0 <= option_id < len(post.poll_options):
            raise InvalidOptionError

        votes = await self._load_votes(post.id)
        current = votes.get(user.id)
        if current == option_id:
            await self.session.aexecute(self._delete_vote, [post.id, user.id])
            votes.pop(user.id)
        else:
            await self.session.aexecute(
                self._upsert_vote, [post.id, user.id, option_id, utc_now()]
            )
            votes[user.id] = option_id

        counts = tally_votes(list(votes.values()), len(post.poll_options))
        return PollResponse.build(post, counts, votes.get(user.id))

    async def get_top_polls(self, viewer: "User", limit: int = 5) -> list[PostResponse]:
        """Recent visible polls ordered by total votes."""
        result = await self.session.aexecute(
            self._list_by_type, [PostType.POLL.value, TOP_POLLS_SCAN]
        )
        posts = await self.get_posts([row.post_id for row in result.all()])
        polls = [p for p in posts if can_view(p, viewer)]

        rendered = await self._render(polls, viewer)
        rendered.sort(key=lambda p: p.poll.total_votes if p.poll else 0, reverse=True)
        return rendered[:limit]

    # ==========================================================================
    # Reports
    # ==========================================================================

    async def report_post(self, post_id: UUID, user: "User", reason: str) -> PostReport:
        """File a report. Each user reports a post at most once.

        Raises:
            InvalidPostError: If the reason is empty
            PostNotFoundError: If the post does not exist
            DuplicateReportError: If ``user`` already reported the post
        """
        reason = (reason or "").strip()
        if not reason:
            raise InvalidPostError("Reason is required")
        post = await self.require_post(post_id)

        existing = await self.session.aexecute(self._get_report, [post.id, user.id])
        if existing.one():
            raise DuplicateReportError

        report = PostReport(
            post_id=post.id,
            reporter_id=user.id,
            reason=reason[: get_settings().report_reason_max_length],
        )
        await self._save_report(report)
        logger.info("post_reported", post_id=str(post.id))
        return report

    async def list_reports(
        self, viewer: "User", status: ReportStatus | None = None, limit: int = 100
    ) -> list[ReportResponse]:
        """Reports newest first, with the reported post when it still exists."""
        result = await self.session.aexecute(self._list_reports, [limit * 10])
        reports = [PostReport.from_row(row) for row in result.all()]
        if status is not None:
            reports = [r for r in reports if r.status == status.value]
        reports = sorted(reports, key=lambda r: r.created_at, reverse=True)[:limit]

        posts = await self.get_posts(list(dict.fromkeys(r.post_id for r in reports)))
        rendered = {p.id: p for p in await self._render(posts, viewer)}
        return [ReportResponse.from_report(r, rendered.get(r.post_id)) for r in reports]

    async def resolve_report(
        self,
        post_id: UUID,
        reporter_id: UUID,
        action: ReportAction,
        moderator: "User",
    ) -> PostReport:
        """Close a report, deleting the post when ``action`` says so.

        Deleting a reported share deletes its original as well. The reporter
        is notified, and so is the author of every deleted post.

        Raises:
            ReportNotFoundError: If there is no such report
        """
        result = await self.session.aexecute(self._get_report, [post_id, reporter_id])
        row = result.one()
        if not row:
            raise ReportNotFoundError
        report = PostReport.from_row(row)

        if action == ReportAction.DELETED_POST:
            for deleted in await self._delete_reported(post_id):
                await self.notification_service.dispatch(
                    create_report_resolved_notification(
                        recipient_id=deleted.author_id,
                        moderator_id=moderator.id,
                        post_id=deleted.id,
                        action=action.value,
                        for_author=True,
                    )
                )

        report.status = ReportStatus.RESOLVED.value
        report.action = action.value
        report.resolved_by = moderator.id
        report.resolved_at = utc_now()
        await self._save_report(report)

        await self.notification_service.dispatch(
            create_report_resolved_notification(
                recipient_id=report.reporter_id,
                moderator_id=moderator.id,
                post_id=post_id,
                action=action.value,
                for_author=False,
            )
        )
        logger.info("report_resolved", post_id=str(post_id), action=action.value)
        return report

    # ==========================================================================
    # Statistics
    # ==========================================================================

    async def get_stats(self) -> CommunityStatsResponse:
        """Totals plus ``trending_today``.

        ``trending_today`` is the larger of the posts of the last 24 hours
        with enough interactions and all posts of the last 24 hours.
        """
        settings = get_settings()
        result = await self.session.aexecute(self._count_posts)
        row = result.one()
        total_posts = row.count if row else 0
        member_counts = await self.user_service.count_users()

        since = utc_now() - timedelta(hours=24)
        recent: list[Post] = []
        for day in {day_bucket(utc_now()), day_bucket(since)}:
            ids = await self.session.aexecute(self._list_by_day, [day, 10_000])
            posts = await self.get_posts([r.post_id for r in ids.all()])
            recent.extend(p for p in posts if p.created_at >= since)

        trending = sum(
            1 for p in recent if p.interactions >= settings.trending_min_interactions
        )
        return CommunityStatsResponse(
            total_posts=total_posts,
            total_members=member_counts["total"],
            trending_today=max(trending, len(recent)),
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _parse_cursor(self, cursor: str | None) -> tuple[UUID | None, datetime]:
        if not cursor:
            return None, utc_now()
        try:
            created_at, post_id = decode_cursor(cursor)
        except ValueError as e:
            raise InvalidCursorError from e
        return post_id, created_at

    async def _scan_days(
        self,
        start: datetime,
        before_id: UUID | None,
        limit: int,
        lookback_days: int,
    ) -> AsyncIterator[list[UUID]]:
        """Yield batches of post ids walking day buckets backwards."""
        batch = (limit + 1) * 2
        for offset in range(lookback_days + 1):
            day = day_bucket(start - timedelta(days=offset))
            while True:
                if before_id is not None:
                    result = await self.session.aexecute(
                        self._list_by_day_before, [day, before_id, batch]
                    )
                else:
                    result = await self.session.aexecute(
                        self._list_by_day, [day, batch]
                    )
                ids = [row.post_id for row in result.all()]
                if ids:
                    yield ids
                if len(ids) < batch:
                    break
                before_id = ids[-1]
            before_id = None

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
        self, batches: AsyncIterator[list[UUID]], viewer: "User", limit: int
    ) -> FeedResponse:
        visible: list[Post] = []
        async for ids in batches:
            posts = await self.get_posts(ids)
            visible.extend(p for p in posts if can_view(p, viewer))
            if len(visible) > limit:
                break

        has_more = len(visible) > limit
        page = visible[:limit]
        next_cursor = None
        if has_more and page:
            next_cursor = encode_cursor(page[-1].created_at, page[-1].id)

        return FeedResponse(
            items=await self._render(page, viewer),
            has_more=has_more,
            next_cursor=next_cursor,
        )

    async def _require_visible(self, post_id: UUID, user: "User") -> Post:
        post = await self.require_post(post_id)
        if not can_view(post, user):
            raise ForbiddenError
        return post

    async def _render(
        self,
        posts: list[Post],
        viewer: "User",
        originals: dict[UUID, Post] | None = None,
    ) -> list[PostResponse]:
        """Render posts for ``viewer``, embedding visible originals of shares."""
        originals = dict(originals or {})
        missing = [
            p.shared_from
            for p in posts
            if p.is_share and p.shared_from not in originals
        ]
        for original in await self.get_posts(list(dict.fromkeys(missing))):
            originals[original.id] = original

        rendered = []
        for post in posts:
            embedded = None
            original = originals.get(post.shared_from) if post.is_share else None
            if original is not None and can_view(original, viewer):
                embedded = PostResponse.from_post(
                    original, viewer.id, poll=await self._poll_for(original, viewer)
                )
            rendered.append(
                PostResponse.from_post(
                    post,
                    viewer.id,
                    poll=await self._poll_for(post, viewer),
                    original=embedded,
                )
            )
        return rendered

    async def _poll_for(self, post: Post, viewer: "User") -> PollResponse | None:
        if not post.is_poll:
            return None
        votes = await self._load_votes(post.id)
        counts = tally_votes(list(votes.values()), len(post.poll_options))
        return PollResponse.build(post, counts, votes.get(viewer.id))

    async def _load_votes(self, post_id: UUID) -> dict[UUID, int]:
        result = await self.session.aexecute(self._get_votes, [post_id])
        return {row.user_id: row.option_id for row in result.all()}

    async def _insert(self, post: Post) -> None:
        await self.session.aexecute(
            self._insert_post,
            [
                post.id,
                post.author_id,
                post.author_name,
                post.type,
                post.privacy,
                post.title,
                post.text,
                post.images,
                post.course_id,
                post.debate_topic,
                post.poll_question,
                post.poll_options,
                post.shared_from,
                post.likes,
                post.shares,
                post.comments_count,
                post.created_at,
                post.updated_at,
            ],
        )
        await self.session.aexecute(self._insert_by_day, [post.day, post.id])
        await self.session.aexecute(self._insert_by_author, [post.author_id, post.id])
        await self.session.aexecute(self._insert_by_type, [post.type, post.id])

    async def _remove(self, post: Post) -> None:
        await self.session.aexecute(self._delete_post, [post.id])
        await self.session.aexecute(self._delete_by_day, [post.day, post.id])
        await self.session.aexecute(self._delete_by_author, [post.author_id, post.id])
        await self.session.aexecute(self._delete_by_type, [post.type, post.id])
        await self.session.aexecute(self._delete_comments, [post.id])
        if post.is_poll:
            await self.session.aexecute(self._delete_votes, [post.id])

    async def _delete_reported(self, post_id: UUID) -> list[Post]:
        """Delete a reported post (and the original of a share)."""
        post = await self.get_post_entity(post_id)
        if post is None:
            return []
        deleted = [post]
        if post.is_share:
            original = await self.get_post_entity(post.shared_from)
            if original is not None:
                deleted.append(original)
        for item in deleted:
            await self._remove(item)
        return deleted

    async def _save_report(self, report: PostReport) -> None:
        await self.session.aexecute(
            self._insert_report,
            [
                report.post_id,
                report.reporter_id,
                report.reason,
                report.status,
                report.action,
                report.resolved_by,
                report.created_at,
                report.resolved_at,
            ],
        )


# ==============================================================================
# Content Validation
# ==============================================================================


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _apply_poll(post: Post, poll: PollInput) -> None:
    post.poll_question = poll.question.strip()
    post.poll_options = poll.options


def _validate_content(post: Post) -> None:
    """Check the fields each post type needs.

    Raises:
        InvalidPostError: Describing the first missing piece
    """
    post_type = PostType(post.type)
    if post_type == PostType.POLL:
        if not post.poll_question:
            raise InvalidPostError("A poll needs a question")
        if len(post.poll_options) < MIN_POLL_OPTIONS:
            raise InvalidPostError("A poll needs at least two options")
    elif post_type == PostType.DEBATE:
        if not post.debate_topic:
            raise InvalidPostError("A debate needs a topic")
    elif post_type == PostType.SHARE_COURSE:
        if post.course_id is None:
            raise InvalidPostError("A course share needs a course")
    elif post_type == PostType.IMAGE:
        if not post.images:
            raise InvalidPostError("An image post needs at least one image")
    elif post_type == PostType.BLOG and not (post.text or post.title):
        raise InvalidPostError("A blog post needs a title or text")
