"""Symmetric friend graph stored as two directed edges per friendship.

Both edges of a pair are written or removed in one transaction while the
caller holds the row locks for the unordered pair and for both users, so no
reader ever sees a friendship in one direction only and a concurrent
``delete_user`` cannot remove either side mid-write.
"""

from __future__ import annotations

import logging
from typing import Tuple

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased, contains_eager

from .. import models, schemas
from ..cache import Mutation, Namespace, coordinator
from ..concurrency import friendship_key, row_locks, user_key
from ..errors import Conflict, InvalidOperation, NotFound
from .users import require_user

logger = logging.getLogger(__name__)


def add_friend(db: Session, payload: schemas.FriendshipRequest) -> schemas.FriendshipOut:
    user_id, friend_id = payload.user_id, payload.friend_id
    with row_locks.hold(friendship_key(user_id, friend_id), user_key(user_id), user_key(friend_id)):
        user = require_user(db, user_id)
        friend = _require_friend(db, friend_id)
        if user_id == friend_id:
            raise InvalidOperation(
                "A user cannot be friends with themselves", field="friend_id", value=friend_id
            )
        if _edge_exists(db, user_id, friend_id):
            raise Conflict(
                f"Friendship already exists between user {user_id} and {friend_id}",
                field="friend_id",
                value=friend_id,
            )

        forward = models.Friendship(user_id=user_id, friend_id=friend_id)
        backward = models.Friendship(user_id=friend_id, friend_id=user_id)
        db.add_all([forward, backward])
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            logger.warning("friendship insert %s<->%s rejected: %s", user_id, friend_id, exc.orig)
            raise Conflict(
                f"Friendship already exists between user {user_id} and {friend_id}",
                field="friend_id",
                value=friend_id,
            ) from exc
        db.refresh(forward)
        result = _to_schema(forward, user, friend)
    coordinator.invalidate_for(Mutation.ADD_FRIENDSHIP)
    logger.info("users %s and %s are now friends", user_id, friend_id)
    return result


def remove_friend(db: Session, payload: schemas.FriendshipRequest) -> None:
    user_id, friend_id = payload.user_id, payload.friend_id
    with row_locks.hold(friendship_key(user_id, friend_id), user_key(user_id), user_key(friend_id)):
        require_user(db, user_id)
        _require_friend(db, friend_id)
        if not _edge_exists(db, user_id, friend_id):
            raise InvalidOperation(
                f"Friendship does not exist between user {user_id} and {friend_id}",
                field="friend_id",
                value=friend_id,
            )
        try:
            db.execute(
                delete(models.Friendship).where(
                    or_(
                        and_(models.Friendship.user_id == user_id, models.Friendship.friend_id == friend_id),
                        and_(models.Friendship.user_id == friend_id, models.Friendship.friend_id == user_id),
                    )
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
    coordinator.invalidate_for(Mutation.REMOVE_FRIENDSHIP)
    logger.info("users %s and %s are no longer friends", user_id, friend_id)


def friends_of(db: Session, user_id: int) -> Tuple[schemas.FriendshipOut, ...]:
    def load() -> Tuple[schemas.FriendshipOut, ...]:
        require_user(db, user_id)
        owner = aliased(models.User)
        friend = aliased(models.User)
        stmt = (
            select(models.Friendship)
            .join(models.Friendship.user.of_type(owner))
            .join(models.Friendship.friend.of_type(friend))
            .options(
                contains_eager(models.Friendship.user.of_type(owner)),
                contains_eager(models.Friendship.friend.of_type(friend)),
            )
            .where(models.Friendship.user_id == user_id)
            .order_by(models.Friendship.id)
        )
        return tuple(_to_schema(edge, edge.user, edge.friend) for edge in db.scalars(stmt).all())

    return coordinator.get_or_load(Namespace.FRIENDS_OF_USER, user_id, load)


def are_friends(db: Session, user_id: int, friend_id: int) -> bool:
    # Directed lookup only; unknown ids simply yield False.
    return _edge_exists(db, user_id, friend_id)


def friend_count(db: Session, user_id: int) -> int:
    def load() -> int:
        require_user(db, user_id)
        stmt = select(func.count()).select_from(models.Friendship).where(models.Friendship.user_id == user_id)
        return db.scalar(stmt) or 0

    return coordinator.get_or_load(Namespace.FRIEND_COUNT, user_id, load)


def _require_friend(db: Session, friend_id: int) -> models.User:
    friend = db.get(models.User, friend_id)
    if friend is None:
        raise NotFound(f"Friend not found with id: {friend_id}", field="friend_id", value=friend_id)
    return friend


def _edge_exists(db: Session, user_id: int, friend_id: int) -> bool:
    stmt = select(models.Friendship.id).where(
        models.Friendship.user_id == user_id,
        models.Friendship.friend_id == friend_id,
    )
    return db.scalars(stmt).first() is not None


def _to_schema(edge: models.Friendship, user: models.User, friend: models.User) -> schemas.FriendshipOut:
    return schemas.FriendshipOut(
        id=edge.id,
        user_id=user.id,
        username=user.username,
        friend_id=friend.id,
        friend_username=friend.username,
        created_at=edge.created_at,
    )

