"""Pydantic schemas for the community feed."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from skillwise.core.schemas import CamelModel
from skillwise.community.models import (
    Comment,
    Post,
    PostPrivacy,
    PostReport,
    PostType,
    ReportAction,
    ReportStatus,
)


# ==============================================================================
# Requests
# ==============================================================================


class PollInput(CamelModel):
    question: str = Field(..., min_length=1, max_length=300)
    options: list[str] = Field(..., max_length=10)

    @field_validator("options")
    @classmethod
    def strip_options(cls, v: list[str]) -> list[str]:
        return [option.strip() for option in v if option.strip()]


class CreatePostRequest(CamelModel):
    """New post. Type-specific fields are checked by the service."""

    type: PostType
    privacy: PostPrivacy = PostPrivacy.PUBLIC
    title: str | None = Field(None, max_length=200)
    text: str | None = Field(None, max_length=10000)
    images: list[str] = Field(default_factory=list, max_length=10)
    course_id: UUID | None = None
    debate_topic: str | None = Field(None, max_length=300)
    poll: PollInput | None = None


class UpdatePostRequest(CamelModel):
    """Editable fields; anything omitted is left unchanged."""

    title: str | None = Field(None, max_length=200)
    text: str | None = Field(None, max_length=10000)
    images: list[str] | None = Field(None, max_length=10)
    debate_topic: str | None = Field(None, max_length=300)
    poll: PollInput | None = None


class SharePostRequest(CamelModel):
    text: str | None = Field(None, max_length=2000)


class PrivacyRequest(CamelModel):
    privacy: PostPrivacy


class CommentRequest(CamelModel):
    text: str = Field(..., min_length=1, max_length=2000)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Comment cannot be empty"
            raise ValueError(msg)
        return v


class VoteRequest(CamelModel):
    option_id: int = Field(..., ge=0)


class ReportRequest(CamelModel):
    """Length is capped by the service (longer reasons are truncated)."""

    reason: str = Field(..., max_length=5000)


class ResolveReportRequest(CamelModel):
    action: ReportAction


# ==============================================================================
# Responses
# ==============================================================================


class PostAuthor(CamelModel):
    id: UUID
    name: str


class PollOptionResponse(CamelModel):
    id: int
    text: str
    votes: int


class PollResponse(CamelModel):
    question: str
    options: list[PollOptionResponse]
    total_votes: int
    my_vote: int | None = None

    @classmethod
    def build(
        cls, post: Post, counts: list[int], my_vote: int | None
    ) -> "PollResponse":
        return cls(
            question=post.poll_question or "",
            options=[
                PollOptionResponse(id=i, text=text, votes=counts[i])
                for i, text in enumerate(post.poll_options)
            ],
            total_votes=sum(counts),
            my_vote=my_vote,
        )


class PostResponse(CamelModel):
    """Post as rendered for one viewer."""

    id: UUID
    author: PostAuthor
    type: PostType
    privacy: PostPrivacy
    title: str | None = None
    text: str | None = None
    images: list[str] = Field(default_factory=list)
    course_id: UUID | None = None
    debate_topic: str | None = None
    poll: PollResponse | None = None
    shared_from: UUID | None = None
    original: "PostResponse | None" = Field(
        None, description="Original of a share, when the viewer can see it"
    )
    likes_count: int = 0
    liked_by_me: bool = False
    shares_count: int = 0
    comments_count: int = 0
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_post(
        cls,
        post: Post,
        viewer_id: UUID,
        poll: PollResponse | None = None,
        original: "PostResponse | None" = None,
    ) -> "PostResponse":
        return cls(
            id=post.id,
            author=PostAuthor(id=post.author_id, name=post.author_name),
            type=PostType(post.type),
            privacy=PostPrivacy(post.privacy),
            title=post.title,
            text=post.text,
            images=post.images,
            course_id=post.course_id,
            debate_topic=post.debate_topic,
            poll=poll,
            shared_from=post.shared_from,
            original=original,
            likes_count=len(post.likes),
            liked_by_me=viewer_id in post.likes,
            shares_count=len(post.shares),
            comments_count=post.comments_count,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


PostResponse.model_rebuild()


class FeedResponse(CamelModel):
    items: list[PostResponse]
    has_more: bool
    next_cursor: str | None = None


class ShareResponse(CamelModel):
    shares: int = Field(description="Distinct sharers of the original")
    shared_post: PostResponse


class LikeResponse(CamelModel):
    liked: bool
    likes_count: int


class CommentResponse(CamelModel):
    id: UUID
    author: PostAuthor
    text: str
    created_at: datetime

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.comment_id,
            author=PostAuthor(id=comment.author_id, name=comment.author_name),
            text=comment.text,
            created_at=comment.created_at,
        )


class ReportResponse(CamelModel):
    post_id: UUID
    reporter_id: UUID
    reason: str
    status: ReportStatus
    action: ReportAction | None = None
    resolved_by: UUID | None = None
    created_at: datetime
    resolved_at: datetime | None = None
    post: PostResponse | None = None

    @classmethod
    def from_report(
        cls, report: PostReport, post: PostResponse | None = None
    ) -> "ReportResponse":
        return cls(
            post_id=report.post_id,
            reporter_id=report.reporter_id,
            reason=report.reason,
            status=ReportStatus(report.status),
            action=ReportAction(report.action) if report.action else None,
            resolved_by=report.resolved_by,
            created_at=report.created_at,
            resolved_at=report.resolved_at,
            post=post,
        )


class CommunityStatsResponse(CamelModel):
    total_posts: int
    total_members: int
    trending_today: int
