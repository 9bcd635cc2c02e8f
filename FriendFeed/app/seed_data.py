from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from . import database, schemas
from .cache import coordinator
from .core.logging import configure_logging
from .services import friendships, posts, timeline, users

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    database.Base.metadata.create_all(database.engine)
    db: Session = database.SessionLocal()
    try:
        if users.list_users(db):
            print("Database already seeded; skipping.")
            return

        alice = users.create_user(db, schemas.UserCreate(username="alice", email="alice@example.com"))
        bob = users.create_user(db, schemas.UserCreate(username="bob", email="bob@example.com"))
        charlie = users.create_user(db, schemas.UserCreate(username="charlie", email="charlie@example.com"))

        friendships.add_friend(db, schemas.FriendshipRequest(user_id=alice.id, friend_id=bob.id))
        friendships.add_friend(db, schemas.FriendshipRequest(user_id=alice.id, friend_id=charlie.id))

        posts.create_post(db, schemas.PostCreate(user_id=bob.id, text="hi"))
        posts.create_post(db, schemas.PostCreate(user_id=charlie.id, text="yo"))
        posts.create_post(db, schemas.PostCreate(user_id=alice.id, text="hello friends"))

        for entry in timeline.timeline(db, alice.id):
            print(f"- @{entry.author_username}: {entry.text} ({entry.created_at.isoformat()})")
        logger.info("seeded %s users", len(users.list_users(db)))
    finally:
        db.close()
        coordinator.clear()


if __name__ == "__main__":
    main()
