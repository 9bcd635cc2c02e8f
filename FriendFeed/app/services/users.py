from __future__ import annotations

import logging
from typing import Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..cache import Mutation, Namespace, coordinator
from ..concurrency import row_locks, user_key
from ..errors import Conflict, InvalidOperation, NotFound

logger = logging.getLogger(__name__)

MAX_USERNAME_LENGTH = 50
MAX_EMAIL_LENGTH = 100


def create_user(db: Session, payload: schemas.UserCreate) -> schemas.UserOut:
    _validate_identity(payload.username, payload.email)
    if _username_taken(db, payload.username):
        raise Conflict(f"Username already exists: {payload.username}", field="username", value=payload.username)
    if _email_taken(db, payload.email):
        raise Conflict(f"Email already exists: {payload.email}", field="email", value=payload.email)

    user = models.User(username=payload.username, email=payload.email)
    db.add(user)
    _commit_identity(db, payload)
    db.refresh(user)
    coordinator.invalidate_for(Mutation.CREATE_USER)
    logger.info("created user id=%s username=%s", user.id, user.username)
    return schemas.UserOut.model_validate(user, from_attributes=True)


def get_user(db: Session, user_id: int) -> schemas.UserOut:
    def load() -> schemas.UserOut:
        user = db.get(models.User, user_id)
        if user is None:
            raise NotFound(f"User not found with id: {user_id}", field="user_id", value=user_id)
        return schemas.UserOut.model_validate(user, from_attributes=True)

    return coordinator.get_or_load(Namespace.USER_BY_ID, user_id, load)


def get_user_by_username(db: Session, username: str) -> schemas.UserOut:
    def load() -> schemas.UserOut:
        user = db.scalars(select(models.User).where(models.User.username == username)).first()
        if user is None:
            raise NotFound(f"User not found with username: {username}", field="username", value=username)
        return schemas.UserOut.model_validate(user, from_attributes=True)

    return coordinator.get_or_load(Namespace.USER_BY_USERNAME, username, load)


def list_users(db: Session) -> Tuple[schemas.UserOut, ...]:
    def load() -> Tuple[schemas.UserOut, ...]:
        users = db.scalars(select(models.User).order_by(models.User.id)).all()
        return tuple(schemas.UserOut.model_validate(user, from_attributes=True) for user in users)

    return coordinator.get_or_load(Namespace.ALL_USERS, None, load)


def update_user(db: Session, user_id: int, payload: schemas.UserUpdate) -> schemas.UserOut:
    _validate_identity(payload.username, payload.email)
    with row_locks.hold(user_key(user_id)):
        user = require_user(db, user_id)
        if user.username != payload.username and _username_taken(db, payload.username):
            raise Conflict(f"Username already exists: {payload.username}", field="username", value=payload.username)
        if user.email != payload.email and _email_taken(db, payload.email):
            raise Conflict(f"Email already exists: {payload.email}", field="email", value=payload.email)

        user.username = payload.username
        user.email = payload.email
        db.add(user)
        _commit_identity(db, payload)
        db.refresh(user)
    coordinator.invalidate_for(Mutation.UPDATE_USER)
    logger.info("updated user id=%s", user_id)
    return schemas.UserOut.model_validate(user, from_attributes=True)


def delete_user(db: Session, user_id: int) -> None:
    """Remove a user together with their posts and every friendship edge touching them."""
    with row_locks.hold(user_key(user_id)):
        require_user(db, user_id)
        try:
            edges = db.execute(
                delete(models.Friendship).where(
                    or_(models.Friendship.user_id == user_id, models.Friendship.friend_id == user_id)
                )
            ).rowcount
            posts = db.execute(delete(models.Post).where(models.Post.user_id == user_id)).rowcount
            db.execute(delete(models.User).where(models.User.id == user_id))
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.expire_all()
    coordinator.invalidate_for(Mutation.DELETE_USER)
    logger.info("deleted user id=%s with %s posts and %s friendship edges", user_id, posts, edges)


def require_user(db: Session, user_id: int) -> models.User:
    """Uncached existence check used inside write paths."""
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFound(f"User not found with id: {user_id}", field="user_id", value=user_id)
    return user


def user_exists(db: Session, user_id: int) -> bool:
    return db.get(models.User, user_id) is not None


def _validate_identity(username: str, email: str) -> None:
    if not username or not username.strip():
        raise InvalidOperation("Username cannot be empty", field="username", value=username)
    if len(username) > MAX_USERNAME_LENGTH:
        raise InvalidOperation(
            f"Username must be at most {MAX_USERNAME_LENGTH} characters", field="username", value=username
        )
    if not email or "@" not in email:
        raise InvalidOperation(f"Invalid email: {email}", field="email", value=email)
    if len(email) > MAX_EMAIL_LENGTH:
        raise InvalidOperation(f"Email must be at most {MAX_EMAIL_LENGTH} characters", field="email", value=email)


def _username_taken(db: Session, username: str) -> bool:
    return db.scalars(select(models.User.id).where(models.User.username == username)).first() is not None


def _email_taken(db: Session, email: str) -> bool:
    return db.scalars(select(models.User.id).where(models.User.email == email)).first() is not None


def _commit_identity(db: Session, payload: schemas.UserCreate | schemas.UserUpdate) -> None:
    # Unique constraints catch a concurrent writer that slipped past the checks above.
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("identity conflict for username=%s email=%s", payload.username, payload.email)
        raise Conflict(
            f"Username or email already exists: {payload.username} / {payload.email}",
            field="username",
            value=payload.username,
        ) from exc
