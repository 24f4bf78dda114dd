"""Database models for the skills marketplace.

Cassandra table definitions for:
- skill_posts: offers and requests of a skill, with pricing and moderation flag
- skill_posts_by_month: approved posts only, one partition per UTC month
- skill_posts_by_user: every post of a user, approved or not
- skill_post_reviews: one star review per (post, reviewer)

Post ids are TIMEUUIDs, so listing partitions clustered on ``post_id`` come
back newest first.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid1

from skillwise.utils import RatingStats, ensure_utc_aware, utc_now


DEFAULT_SKILL_OF_MONTH = "General Learning"


class SkillPostType(str, Enum):
    OFFER = "offer"
    REQUEST = "request"


class SkillLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class SkillPricing(str, Enum):
    FREE = "free"
    BARTER = "barter"
    PAID = "paid"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

SKILL_POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.skill_posts (
    id TIMEUUID PRIMARY KEY,
    user_id UUID,
    author_name TEXT,
    type TEXT,
    title TEXT,
    description TEXT,
    video_intro TEXT,
    skill_tags SET<TEXT>,
    level TEXT,
    pricing TEXT,
    barter_request TEXT,
    price_amount DECIMAL,
    is_approved BOOLEAN,
    rating_average DOUBLE,
    review_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

SKILL_POSTS_BY_MONTH_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.skill_posts_by_month (
    month TEXT,
    post_id TIMEUUID,
    PRIMARY KEY ((month), post_id)
) WITH CLUSTERING ORDER BY (post_id DESC)
"""

SKILL_POSTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.skill_posts_by_user (
    user_id UUID,
    post_id TIMEUUID,
    PRIMARY KEY ((user_id), post_id)
) WITH CLUSTERING ORDER BY (post_id DESC)
"""

SKILL_POST_REVIEWS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.skill_post_reviews (
    post_id TIMEUUID,
    reviewer_id UUID,
    reviewer_name TEXT,
    rating INT,
    comment TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((post_id), reviewer_id)
)
"""

SKILLS_TABLES_CQL = [
    SKILL_POSTS_TABLE_CQL,
    SKILL_POSTS_BY_MONTH_TABLE_CQL,
    SKILL_POSTS_BY_USER_TABLE_CQL,
    SKILL_POST_REVIEWS_TABLE_CQL,
]


# ==============================================================================
# Domain Rules
# ==============================================================================


def month_bucket(moment: datetime | date) -> str:
    """Listing partition key for a timestamp (UTC month)."""
    return moment.strftime("%Y-%m")


def previous_month(moment: date) -> date:
    first = moment.replace(day=1)
    if first.month == 1:
        return first.replace(year=first.year - 1, month=12)
    return first.replace(month=first.month - 1)


def normalize_tags(tags: list[str]) -> set[str]:
    return {tag.strip().lower() for tag in tags if tag and tag.strip()}


def validation_problem(post: "SkillPost") -> str | None:
    """Why ``post`` cannot be saved, or ``None`` when it can."""
    if post.pricing == SkillPricing.PAID.value and not (
        post.price_amount is not None and post.price_amount > 0
    ):
        return "Price amount is required and must be greater than 0 for paid posts"
    if post.pricing == SkillPricing.BARTER.value and not (post.barter_request or "").strip():
        return "Barter request description is required for barter posts"
    if not post.skill_tags:
        return "At least one skill tag is required"
    return None


# ==============================================================================
# Entity Classes
# ==============================================================================


class SkillPost:
    """A marketplace post offering or requesting a skill.

    Attributes:
        user_id: Author
        type: offer or request
        skill_tags: Lower-cased tags, at least one
        level: Beginner, Intermediate or Advanced (optional)
        pricing: free, barter or paid
        barter_request: What the author wants in exchange (barter only)
        price_amount: Price (paid only)
        is_approved: Approved posts are listed in the marketplace
        rating_average / review_count: Aggregate of skill_post_reviews
    """

    def __init__(
        self,
        id: UUID | None = None,
        user_id: UUID | None = None,
        author_name: str = "",
        type: str = SkillPostType.OFFER.value,
        title: str = "",
        description: str = "",
        video_intro: str | None = None,
        skill_tags: set[str] | None = None,
        level: str | None = None,
        pricing: str = SkillPricing.FREE.value,
        barter_request: str | None = None,
        price_amount: Decimal | None = None,
        is_approved: bool = False,
        rating_average: float | None = None,
        review_count: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid1()
        self.user_id = user_id
        self.author_name = author_name
        self.type = type
        self.title = title
        self.description = description
        self.video_intro = video_intro
        self.skill_tags = set(skill_tags or ())
        self.level = level
        self.pricing = pricing
        self.barter_request = barter_request
        self.price_amount = price_amount
        self.is_approved = bool(is_approved)
        self.rating_average = rating_average or 0.0
        self.review_count = review_count or 0
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "SkillPost":
        return cls(
            id=row.id,
            user_id=row.user_id,
            author_name=row.author_name,
            type=row.type,
            title=row.title,
            description=row.description,
            video_intro=row.video_intro,
            skill_tags=row.skill_tags,
            level=row.level,
            pricing=row.pricing,
            barter_request=row.barter_request,
            price_amount=row.price_amount,
            is_approved=row.is_approved,
            rating_average=row.rating_average,
            review_count=row.review_count,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def month(self) -> str:
        return month_bucket(self.created_at)

    def matches(
        self,
        post_type: SkillPostType | None = None,
        pricing: SkillPricing | None = None,
        level: SkillLevel | None = None,
        tag: str | None = None,
    ) -> bool:
        """Marketplace filters; ``None`` means any."""
        if post_type is not None and self.type != post_type.value:
            return False
        if pricing is not None and self.pricing != pricing.value:
            return False
        if level is not None and self.level != level.value:
            return False
        return tag is None or tag.strip().lower() in self.skill_tags

    def apply_review_stats(self, stats: RatingStats) -> None:
        self.rating_average = stats.average
        self.review_count = stats.count

    def __repr__(self) -> str:
        return f"<SkillPost {self.id} ({self.type}, {self.pricing})>"


@dataclass
class SkillReview:
    post_id: UUID
    reviewer_id: UUID
    reviewer_name: str
    rating: int
    comment: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: Any) -> "SkillReview":
        return cls(
            post_id=row.post_id,
            reviewer_id=row.reviewer_id,
            reviewer_name=row.reviewer_name,
            rating=row.rating,
            comment=row.comment,
            created_at=ensure_utc_aware(row.created_at),
        )
