from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel

# Response models are frozen and collections are tuples because the cache
# coordinator hands the same instances to every reader.


class UserCreate(BaseModel):
    username: str
    email: str


class UserUpdate(BaseModel):
    username: str
    email: str


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True
        frozen = True


class PostCreate(BaseModel):
    user_id: int
    text: str


class PostUpdate(BaseModel):
    text: str


class PostOut(BaseModel):
    id: int
    user_id: int
    text: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        frozen = True


class FriendshipRequest(BaseModel):
    user_id: int
    friend_id: int


class FriendshipOut(BaseModel):
    id: int
    user_id: int
    username: str
    friend_id: int
    friend_username: str
    created_at: datetime

    class Config:
        frozen = True


class TimelineEntry(BaseModel):
    post_id: int
    text: str
    author_id: int
    author_username: str
    created_at: datetime
    updated_at: datetime

    class Config:
        frozen = True


class TimelinePage(BaseModel):
    content: Tuple[TimelineEntry, ...] = ()
    page: int
    size: int
    total_elements: int
    total_pages: int

    class Config:
        frozen = True


class TimelineCount(BaseModel):
    user_id: int
    post_count: int
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None


class FriendCount(BaseModel):
    user_id: int
    friend_count: int


class FriendshipStatus(BaseModel):
    user_id: int
    friend_id: int
    are_friends: bool
