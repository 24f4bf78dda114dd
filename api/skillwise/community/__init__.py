"""Community module: posts, sharing, privacy, polls, comments and reports."""

from skillwise.community.models import (
    COMMUNITY_TABLES_CQL,
    Post,
    PostPrivacy,
    PostType,
)
from skillwise.community.service import CommunityService


__all__ = [
    "COMMUNITY_TABLES_CQL",
    "CommunityService",
    "Post",
    "PostPrivacy",
    "PostType",
]
