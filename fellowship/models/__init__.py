"""ORM models. Importing this package registers every table with Base.metadata."""

from fellowship.models.post import Post
from fellowship.models.relationship import FollowEdge, FriendRequest, Friendship, RequestStatus
from fellowship.models.user import User

__all__ = ["User", "Post", "FriendRequest", "Friendship", "FollowEdge", "RequestStatus"]
