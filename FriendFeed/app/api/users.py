from __future__ import annotations

from typing import List

from fastapi import APIRouter, status

from .. import schemas
from ..services import users as user_service
from .dependencies import DbSession

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: schemas.UserCreate, db: DbSession):
    return user_service.create_user(db, payload)


@router.get("", response_model=List[schemas.UserOut])
def list_users(db: DbSession):
    return user_service.list_users(db)


@router.get("/username/{username}", response_model=schemas.UserOut)
def get_user_by_username(username: str, db: DbSession):
    return user_service.get_user_by_username(db, username)


@router.get("/{user_id}", response_model=schemas.UserOut)
def get_user(user_id: int, db: DbSession):
    return user_service.get_user(db, user_id)


@router.put("/{user_id}", response_model=schemas.UserOut)
def update_user(user_id: int, payload: schemas.UserUpdate, db: DbSession):
    return user_service.update_user(db, user_id, payload)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: DbSession) -> None:
    user_service.delete_user(db, user_id)
