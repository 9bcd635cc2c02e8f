from __future__ import annotations

import logging
from typing import Iterable, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, contains_eager

from .. import models, schemas
from ..cache import Mutation, Namespace, coordinator
from ..concurrency import post_key, row_locks, user_key
from ..errors import InvalidOperation, NotFound
from ..models import utcnow
from .users import require_user

logger = logging.getLogger(__name__)

MAX_POST_LENGTH = 1000


def create_post(db: Session, payload: schemas.PostCreate) -> schemas.PostOut:
    # The author lock keeps delete_user from removing the author mid-insert.
    with row_locks.hold(user_key(payload.user_id)):
        require_user(db, payload.user_id)
        _validate_text(payload.text)

        now = utcnow()
        post = models.Post(user_id=payload.user_id, text=payload.text, created_at=now, updated_at=now)
        db.add(post)
        _commit(db)
        db.refresh(post)
    coordinator.invalidate_for(Mutation.CREATE_POST)
    logger.info("user %s created post %s", post.user_id, post.id)
    return schemas.PostOut.model_validate(post, from_attributes=True)


def get_post(db: Session, post_id: int) -> schemas.PostOut:
    def load() -> schemas.PostOut:
        return schemas.PostOut.model_validate(_require_post(db, post_id), from_attributes=True)

    return coordinator.get_or_load(Namespace.POST_BY_ID, post_id, load)


def update_post(db: Session, post_id: int, payload: schemas.PostUpdate) -> schemas.PostOut:
    with row_locks.hold(post_key(post_id)):
        post = _require_post(db, post_id)
        _validate_text(payload.text)
        post.text = payload.text
        post.updated_at = utcnow()
        db.add(post)
        _commit(db)
        db.refresh(post)
    coordinator.invalidate_for(Mutation.UPDATE_POST)
    logger.info("updated post %s", post_id)
    return schemas.PostOut.model_validate(post, from_attributes=True)


def delete_post(db: Session, post_id: int) -> None:
    with row_locks.hold(post_key(post_id)):
        post = _require_post(db, post_id)
        db.delete(post)
        _commit(db)
    coordinator.invalidate_for(Mutation.DELETE_POST)
    logger.info("deleted post %s", post_id)


def list_posts(db: Session) -> Tuple[schemas.PostOut, ...]:
    def load() -> Tuple[schemas.PostOut, ...]:
        stmt = select(models.Post).order_by(models.Post.created_at.desc(), models.Post.id)
        return _to_schemas(db.scalars(stmt).all())

    return coordinator.get_or_load(Namespace.ALL_POSTS, None, load)


def list_posts_page(
    db: Session, page: int, size: int, newest_first: bool = True
) -> Tuple[schemas.PostOut, ...]:
    if page < 0:
        raise InvalidOperation("Page index must not be less than zero", field="page", value=page)
    if size < 1:
        raise InvalidOperation("Page size must not be less than one", field="size", value=size)

    def load() -> Tuple[schemas.PostOut, ...]:
        order = models.Post.created_at.desc() if newest_first else models.Post.created_at.asc()
        stmt = select(models.Post).order_by(order, models.Post.id).offset(page * size).limit(size)
        return _to_schemas(db.scalars(stmt).all())

    return coordinator.get_or_load(Namespace.PAGINATED_POSTS, (page, size, newest_first), load)


def posts_by_user(db: Session, user_id: int) -> Tuple[schemas.PostOut, ...]:
    def load() -> Tuple[schemas.PostOut, ...]:
        require_user(db, user_id)
        stmt = select(models.Post).where(models.Post.user_id == user_id).order_by(models.Post.id)
        return _to_schemas(db.scalars(stmt).all())

    return coordinator.get_or_load(Namespace.POSTS_BY_USER, user_id, load)


def posts_by_authors(db: Session, author_ids: Iterable[int]) -> Sequence[models.Post]:
    """Single ``user_id IN (...)`` fetch of every post by the given authors.

    Rows come back ordered by post id with their authors eagerly joined, so
    callers can read ``post.user.username`` without one query per author.
    """
    ids = sorted(set(author_ids))
    if not ids:
        return []
    stmt = (
        select(models.Post)
        .join(models.Post.user)
        .options(contains_eager(models.Post.user))
        .where(models.Post.user_id.in_(ids))
        .order_by(models.Post.id)
    )
    return db.scalars(stmt).all()


def search_posts(db: Session, text: str) -> Tuple[schemas.PostOut, ...]:
    def load() -> Tuple[schemas.PostOut, ...]:
        stmt = (
            select(models.Post)
            .where(models.Post.text.icontains(text, autoescape=True))
            .order_by(models.Post.id)
        )
        return _to_schemas(db.scalars(stmt).all())

    return coordinator.get_or_load(Namespace.SEARCH_RESULTS, text, load)


def _require_post(db: Session, post_id: int) -> models.Post:
    post = db.get(models.Post, post_id)
    if post is None:
        raise NotFound(f"Post not found with id: {post_id}", field="post_id", value=post_id)
    return post


def _validate_text(text: str | None) -> None:
    if text is None or not text.strip():
        raise InvalidOperation("Post text cannot be empty", field="text", value=text)
    if len(text) > MAX_POST_LENGTH:
        raise InvalidOperation(f"Post text must be at most {MAX_POST_LENGTH} characters", field="text", value=None)


def _to_schemas(posts: Iterable[models.Post]) -> Tuple[schemas.PostOut, ...]:
    return tuple(schemas.PostOut.model_validate(post, from_attributes=True) for post in posts)


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
