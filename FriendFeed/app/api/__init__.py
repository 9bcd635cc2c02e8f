from __future__ import annotations

from fastapi import FastAPI

from . import friendships, posts, timeline, users

API_PREFIX = "/api/v1"


def register_routers(app: FastAPI) -> None:
    app.include_router(users.router, prefix=API_PREFIX)
    app.include_router(posts.router, prefix=API_PREFIX)
    app.include_router(friendships.router, prefix=API_PREFIX)
    app.include_router(timeline.router, prefix=API_PREFIX)
