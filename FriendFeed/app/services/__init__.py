"""Domain services for the FriendFeed timeline core."""

from . import friendships, posts, timeline, users

__all__ = [
    "friendships",
    "posts",
    "timeline",
    "users",
]
