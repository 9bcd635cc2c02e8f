from __future__ import annotations

from typing import List

from fastapi import APIRouter, Query, status

from .. import schemas
from ..core.config import get_settings
from ..services import posts as post_service
from .dependencies import DbSession, PageIndex, PageSize

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.post("", response_model=schemas.PostOut, status_code=status.HTTP_201_CREATED)
def create_post(payload: schemas.PostCreate, db: DbSession):
    return post_service.create_post(db, payload)


@router.get("", response_model=List[schemas.PostOut])
def list_posts(db: DbSession, page: PageIndex = 0, size: PageSize = get_settings().DEFAULT_PAGE_SIZE):
    return post_service.list_posts_page(db, page, size)


@router.get("/all", response_model=List[schemas.PostOut])
def list_all_posts(db: DbSession):
    return post_service.list_posts(db)


@router.get("/search", response_model=List[schemas.PostOut])
def search_posts(db: DbSession, search: str = Query(..., min_length=1)):
    return post_service.search_posts(db, search)


@router.get("/user/{user_id}", response_model=List[schemas.PostOut])
def posts_by_user(user_id: int, db: DbSession):
    return post_service.posts_by_user(db, user_id)


@router.get("/{post_id}", response_model=schemas.PostOut)
def get_post(post_id: int, db: DbSession):
    return post_service.get_post(db, post_id)


@router.put("/{post_id}", response_model=schemas.PostOut)
def update_post(post_id: int, payload: schemas.PostUpdate, db: DbSession):
    return post_service.update_post(db, post_id, payload)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(post_id: int, db: DbSession) -> None:
    post_service.delete_post(db, post_id)
