"""Friends module: friend requests and friend lists."""

from skillwise.friends.models import FriendshipState
from skillwise.friends.service import FriendService


__all__ = ["FriendService", "FriendshipState"]
