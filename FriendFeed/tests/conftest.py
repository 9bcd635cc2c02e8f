from __future__ import annotations

import os

os.environ.setdefault("FRIENDFEED_DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from typing import Callable, Iterator, List

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app import schemas
from app.cache import coordinator
from app.database import Base
from app.services import friendships, posts, users


class FakeClock:
    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def fresh_cache() -> Iterator[None]:
    coordinator.clear()
    coordinator.reset_stats()
    yield
    coordinator.clear()


@pytest.fixture()
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr("app.services.posts.utcnow", fake)
    return fake


@pytest.fixture()
def query_log(engine: Engine) -> Iterator[List[str]]:
    statements: List[str] = []

    def record(conn, cursor, statement, parameters, context, executemany) -> None:
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    try:
        yield statements
    finally:
        event.remove(engine, "before_cursor_execute", record)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[[str], schemas.UserOut]:
    def _make(username: str) -> schemas.UserOut:
        return users.create_user(
            db_session, schemas.UserCreate(username=username, email=f"{username}@example.com")
        )

    return _make


@pytest.fixture()
def befriend(db_session: Session) -> Callable[[int, int], schemas.FriendshipOut]:
    def _befriend(user_id: int, friend_id: int) -> schemas.FriendshipOut:
        return friendships.add_friend(db_session, schemas.FriendshipRequest(user_id=user_id, friend_id=friend_id))

    return _befriend


@pytest.fixture()
def publish(db_session: Session) -> Callable[[int, str], schemas.PostOut]:
    def _publish(user_id: int, text: str) -> schemas.PostOut:
        return posts.create_post(db_session, schemas.PostCreate(user_id=user_id, text=text))

    return _publish


@pytest.fixture()
def file_session_factory(tmp_path) -> Iterator[sessionmaker]:
    # Each thread needs its own connection, so cross-thread tests use a file database.
    engine = create_engine(
        f"sqlite:///{tmp_path / 'friendfeed.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()
