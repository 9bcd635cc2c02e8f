"""Fan-out-on-read timeline built from a user's friends' posts.

Every variant goes through ``_build_timeline``: resolve the friend set, fetch
all of their posts in one ``IN`` query, filter by the inclusive date window,
project to ``TimelineEntry`` and sort newest first. Pagination and counting
are applied to that finished list, never pushed down into SQL, so pages and
counts always agree with the full timeline.

Equal ``created_at`` values keep post-id ascending order: the bulk fetch is
ordered by id and the sort is stable.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from .. import models, schemas
from ..cache import Namespace, coordinator
from ..errors import InvalidOperation, NotFound
from . import friendships as friendship_service
from . import posts as post_service
from .users import user_exists

logger = logging.getLogger(__name__)


def timeline(db: Session, user_id: int) -> Tuple[schemas.TimelineEntry, ...]:
    _ensure_user(db, user_id)
    return coordinator.get_or_load(
        Namespace.TIMELINE, user_id, lambda: _build_timeline(db, user_id, None, None)
    )


def timeline_page(db: Session, user_id: int, page: int, size: int) -> schemas.TimelinePage:
    _ensure_user(db, user_id)
    _validate_page(page, size)

    def load() -> schemas.TimelinePage:
        return paginate(_build_timeline(db, user_id, None, None), page, size)

    return coordinator.get_or_load(Namespace.TIMELINE_PAGINATED, (user_id, page, size), load)


def timeline_by_date_range(
    db: Session,
    user_id: int,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
) -> Tuple[schemas.TimelineEntry, ...]:
    _ensure_user(db, user_id)
    from_date, to_date = as_utc(from_date), as_utc(to_date)
    return coordinator.get_or_load(
        Namespace.TIMELINE_BY_DATE,
        (user_id, from_date, to_date),
        lambda: _build_timeline(db, user_id, from_date, to_date),
    )


def timeline_page_by_date_range(
    db: Session,
    user_id: int,
    page: int,
    size: int,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
) -> schemas.TimelinePage:
    _ensure_user(db, user_id)
    _validate_page(page, size)
    from_date, to_date = as_utc(from_date), as_utc(to_date)

    def load() -> schemas.TimelinePage:
        return paginate(_build_timeline(db, user_id, from_date, to_date), page, size)

    return coordinator.get_or_load(
        Namespace.TIMELINE_FILTERED_PAGINATED, (user_id, page, size, from_date, to_date), load
    )


def timeline_post_count(db: Session, user_id: int) -> int:
    return len(timeline(db, user_id))


def timeline_post_count_by_date_range(
    db: Session,
    user_id: int,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
) -> int:
    return len(timeline_by_date_range(db, user_id, from_date, to_date))


def paginate(entries: Sequence[schemas.TimelineEntry], page: int, size: int) -> schemas.TimelinePage:
    """Slice an already filtered and sorted timeline; past-the-end pages are empty."""
    _validate_page(page, size)
    total = len(entries)
    start = page * size
    content = tuple(entries[start:min(start + size, total)]) if start < total else ()
    return schemas.TimelinePage(
        content=content,
        page=page,
        size=size,
        total_elements=total,
        total_pages=math.ceil(total / size),
    )


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; aware bounds are converted to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def in_window(created_at: datetime, from_date: Optional[datetime], to_date: Optional[datetime]) -> bool:
    if from_date is not None and created_at < from_date:
        return False
    if to_date is not None and created_at > to_date:
        return False
    return True


def _build_timeline(
    db: Session,
    user_id: int,
    from_date: Optional[datetime],
    to_date: Optional[datetime],
) -> Tuple[schemas.TimelineEntry, ...]:
    friend_ids = [edge.friend_id for edge in friendship_service.friends_of(db, user_id)]
    if not friend_ids:
        return ()

    posts = post_service.posts_by_authors(db, friend_ids)
    entries = [_to_entry(post) for post in posts if in_window(post.created_at, from_date, to_date)]
    entries.sort(key=lambda entry: entry.created_at, reverse=True)
    logger.debug(
        "built timeline for user %s: %s friends, %s posts fetched, %s kept",
        user_id,
        len(friend_ids),
        len(posts),
        len(entries),
    )
    return tuple(entries)


def _to_entry(post: models.Post) -> schemas.TimelineEntry:
    return schemas.TimelineEntry(
        post_id=post.id,
        text=post.text,
        author_id=post.user_id,
        author_username=post.user.username,
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


def _ensure_user(db: Session, user_id: int) -> None:
    if not user_exists(db, user_id):
        raise NotFound(f"User not found with id: {user_id}", field="user_id", value=user_id)


def _validate_page(page: int, size: int) -> None:
    if page < 0:
        raise InvalidOperation("Page index must not be less than zero", field="page", value=page)
    if size < 1:
        raise InvalidOperation("Page size must not be less than one", field="size", value=size)
