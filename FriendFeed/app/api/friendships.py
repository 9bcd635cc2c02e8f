from __future__ import annotations

from typing import List

from fastapi import APIRouter, Body, status

from .. import schemas
from ..services import friendships as friendship_service
from .dependencies import DbSession

router = APIRouter(prefix="/friendships", tags=["Friendships"])


@router.post("", response_model=schemas.FriendshipOut, status_code=status.HTTP_201_CREATED)
def add_friend(payload: schemas.FriendshipRequest, db: DbSession):
    return friendship_service.add_friend(db, payload)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def remove_friend(db: DbSession, payload: schemas.FriendshipRequest = Body(...)) -> None:
    friendship_service.remove_friend(db, payload)


@router.get("/check", response_model=schemas.FriendshipStatus)
def are_friends(user_id: int, friend_id: int, db: DbSession):
    return schemas.FriendshipStatus(
        user_id=user_id,
        friend_id=friend_id,
        are_friends=friendship_service.are_friends(db, user_id, friend_id),
    )


@router.get("/user/{user_id}", response_model=List[schemas.FriendshipOut])
def friends_of(user_id: int, db: DbSession):
    return friendship_service.friends_of(db, user_id)


@router.get("/user/{user_id}/count", response_model=schemas.FriendCount)
def friend_count(user_id: int, db: DbSession):
    return schemas.FriendCount(user_id=user_id, friend_count=friendship_service.friend_count(db, user_id))
