"""Database models for the community feed.

Cassandra table definitions for:
- posts: post record (likes and shares as sets of user ids)
- posts_by_day / posts_by_author / posts_by_type: listing tables, newest first
- post_comments: comments per post, oldest first
- poll_votes: one vote per (post, user)
- post_reports: one report per (post, reporter)

Post ids are TIMEUUIDs, so ordering listing tables by ``post_id`` orders them
by creation time.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid1

from skillwise.auth.permissions import is_admin
from skillwise.utils import ensure_utc_aware, utc_now


if TYPE_CHECKING:
    from skillwise.auth.models import User


class PostType(str, Enum):
    BLOG = "blog"
    IMAGE = "image"
    POLL = "poll"
    DEBATE = "debate"
    SHARE_COURSE = "share_course"
    SHARED = "shared"


class PostPrivacy(str, Enum):
    PUBLIC = "public"
    FRIENDS = "friends"
    ONLY_ME = "only_me"


class ReportStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class ReportAction(str, Enum):
    DISMISSED = "dismissed"
    DELETED_POST = "deleted_post"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    id TIMEUUID PRIMARY KEY,
    author_id UUID,
    author_name TEXT,
    type TEXT,
    privacy TEXT,
    title TEXT,
    text TEXT,
    images LIST<TEXT>,
    course_id UUID,
    debate_topic TEXT,
    poll_question TEXT,
    poll_options LIST<TEXT>,
    shared_from TIMEUUID,
    likes SET<UUID>,
    shares SET<UUID>,
    comments_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Feed buckets: one partition per UTC day
POSTS_BY_DAY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_day (
    day TEXT,
    post_id TIMEUUID,
    PRIMARY KEY ((day), post_id)
) WITH CLUSTERING ORDER BY (post_id DESC)
"""

POSTS_BY_AUTHOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_author (
    author_id UUID,
    post_id TIMEUUID,
    PRIMARY KEY ((author_id), post_id)
) WITH CLUSTERING ORDER BY (post_id DESC)
"""

POSTS_BY_TYPE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_type (
    type TEXT,
    post_id TIMEUUID,
    PRIMARY KEY ((type), post_id)
) WITH CLUSTERING ORDER BY (post_id DESC)
"""

POST_COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_comments (
    post_id TIMEUUID,
    comment_id TIMEUUID,
    author_id UUID,
    author_name TEXT,
    text TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((post_id), comment_id)
) WITH CLUSTERING ORDER BY (comment_id ASC)
"""

POLL_VOTES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.poll_votes (
    post_id TIMEUUID,
    user_id UUID,
    option_id INT,
    voted_at TIMESTAMP,
    PRIMARY KEY ((post_id), user_id)
)
"""

POST_REPORTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_reports (
    post_id TIMEUUID,
    reporter_id UUID,
    reason TEXT,
    status TEXT,
    action TEXT,
    resolved_by UUID,
    created_at TIMESTAMP,
    resolved_at TIMESTAMP,
    PRIMARY KEY ((post_id), reporter_id)
)
"""

COMMUNITY_TABLES_CQL = [
    POSTS_TABLE_CQL,
    POSTS_BY_DAY_TABLE_CQL,
    POSTS_BY_AUTHOR_TABLE_CQL,
    POSTS_BY_TYPE_TABLE_CQL,
    POST_COMMENTS_TABLE_CQL,
    POLL_VOTES_TABLE_CQL,
    POST_REPORTS_TABLE_CQL,
]


# ==============================================================================
# Domain Rules
# ==============================================================================


def day_bucket(moment: datetime | date) -> str:
    """Feed partition key for a timestamp (UTC day)."""
    return moment.strftime("%Y-%m-%d")


def can_view(post: "Post", viewer: "User") -> bool:
    """Visibility of a post for ``viewer``.

    public: everyone. friends: the author and the author's friends.
    only_me: the author. Admins see everything.
    """
    if post.privacy == PostPrivacy.PUBLIC.value:
        return True
    if post.author_id == viewer.id or is_admin(viewer.role):
        return True
    if post.privacy == PostPrivacy.FRIENDS.value:
        # Friendship is mutual, so the viewer's set is enough
        return post.author_id in viewer.friends
    return False


def tally_votes(option_ids: list[int], option_count: int) -> list[int]:
    """Votes per option; votes for options that no longer exist are dropped."""
    counts = [0] * option_count
    for option_id in option_ids:
        if 0 <= option_id < option_count:
            counts[option_id] += 1
    return counts


# ==============================================================================
# Entity Classes
# ==============================================================================


class Post:
    """Community post.

    Attributes:
        id: TIMEUUID, orders posts by creation
        author_id / author_name: Author (name copied at creation)
        type: blog, image, poll, debate, share_course or shared
        privacy: public, friends or only_me
        poll_question / poll_options: Poll content; option id is the index
        shared_from: Original post of a share
        likes: Users who liked the post
        shares: Distinct users who shared the post
    """

    def __init__(
        self,
        id: UUID | None = None,
        author_id: UUID | None = None,
        author_name: str = "",
        type: str = PostType.BLOG.value,
        privacy: str = PostPrivacy.PUBLIC.value,
        title: str | None = None,
        text: str | None = None,
        images: list[str] | None = None,
        course_id: UUID | None = None,
        debate_topic: str | None = None,
        poll_question: str | None = None,
        poll_options: list[str] | None = None,
        shared_from: UUID | None = None,
        likes: set[UUID] | None = None,
        shares: set[UUID] | None = None,
        comments_count: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid1()
        self.author_id = author_id
        self.author_name = author_name
        self.type = type
        self.privacy = privacy
        self.title = title
        self.text = text
        self.images = list(images or ())
        self.course_id = course_id
        self.debate_topic = debate_topic
        self.poll_question = poll_question
        self.poll_options = list(poll_options or ())
        self.shared_from = shared_from
        self.likes = set(likes or ())
        self.shares = set(shares or ())
        self.comments_count = comments_count or 0
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post instance from Cassandra row."""
        return cls(
            id=row.id,
            author_id=row.author_id,
            author_name=row.author_name,
            type=row.type,
            privacy=row.privacy,
            title=row.title,
            text=row.text,
            images=row.images,
            course_id=row.course_id,
            debate_topic=row.debate_topic,
            poll_question=row.poll_question,
            poll_options=row.poll_options,
            shared_from=row.shared_from,
            likes=row.likes,
            shares=row.shares,
            comments_count=row.comments_count,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def is_public(self) -> bool:
        return self.privacy == PostPrivacy.PUBLIC.value

    @property
    def is_share(self) -> bool:
        return self.shared_from is not None

    @property
    def is_poll(self) -> bool:
        return self.type == PostType.POLL.value

    @property
    def interactions(self) -> int:
        return len(self.likes) + len(self.shares) + self.comments_count

    @property
    def day(self) -> str:
        return day_bucket(self.created_at)

    def __repr__(self) -> str:
        return f"<Post {self.id} ({self.type}, {self.privacy})>"


@dataclass
class Comment:
    post_id: UUID
    author_id: UUID
    author_name: str
    text: str
    comment_id: UUID = field(default_factory=uuid1)
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        return cls(
            post_id=row.post_id,
            comment_id=row.comment_id,
            author_id=row.author_id,
            author_name=row.author_name,
            text=row.text,
            created_at=ensure_utc_aware(row.created_at),
        )


@dataclass
class PostReport:
    post_id: UUID
    reporter_id: UUID
    reason: str
    status: str = ReportStatus.PENDING.value
    action: str | None = None
    resolved_by: UUID | None = None
    created_at: datetime = field(default_factory=utc_now)
    resolved_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "PostReport":
        return cls(
            post_id=row.post_id,
            reporter_id=row.reporter_id,
            reason=row.reason,
            status=row.status,
            action=row.action,
            resolved_by=row.resolved_by,
            created_at=ensure_utc_aware(row.created_at),
            resolved_at=ensure_utc_aware(row.resolved_at),
        )
