from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Query

from .. import schemas
from ..core.config import get_settings
from ..services import timeline as timeline_service
from .dependencies import DbSession, PageIndex, PageSize

router = APIRouter(prefix="/timeline", tags=["Timeline"])

DEFAULT_PAGE_SIZE = get_settings().DEFAULT_PAGE_SIZE

FromDate = Annotated[
    Optional[datetime], Query(alias="fromDate", description="Start of the window (inclusive, ISO 8601)")
]
ToDate = Annotated[Optional[datetime], Query(alias="toDate", description="End of the window (inclusive, ISO 8601)")]


@router.get("/user/{user_id}", response_model=List[schemas.TimelineEntry])
def get_timeline(user_id: int, db: DbSession):
    return timeline_service.timeline(db, user_id)


@router.get("/user/{user_id}/paginated", response_model=schemas.TimelinePage)
def get_timeline_page(user_id: int, db: DbSession, page: PageIndex = 0, size: PageSize = DEFAULT_PAGE_SIZE):
    return timeline_service.timeline_page(db, user_id, page, size)


@router.get("/user/{user_id}/daterange", response_model=List[schemas.TimelineEntry])
def get_timeline_by_date_range(
    user_id: int,
    db: DbSession,
    from_date: FromDate = None,
    to_date: ToDate = None,
):
    return timeline_service.timeline_by_date_range(db, user_id, from_date, to_date)


@router.get("/user/{user_id}/filtered", response_model=schemas.TimelinePage)
def get_filtered_timeline_page(
    user_id: int,
    db: DbSession,
    page: PageIndex = 0,
    size: PageSize = DEFAULT_PAGE_SIZE,
    from_date: FromDate = None,
    to_date: ToDate = None,
):
    return timeline_service.timeline_page_by_date_range(db, user_id, page, size, from_date, to_date)


@router.get("/user/{user_id}/count", response_model=schemas.TimelineCount)
def get_timeline_count(user_id: int, db: DbSession):
    return schemas.TimelineCount(user_id=user_id, post_count=timeline_service.timeline_post_count(db, user_id))


@router.get("/user/{user_id}/count/daterange", response_model=schemas.TimelineCount)
def get_timeline_count_by_date_range(
    user_id: int,
    db: DbSession,
    from_date: FromDate = None,
    to_date: ToDate = None,
):
    count = timeline_service.timeline_post_count_by_date_range(db, user_id, from_date, to_date)
    return schemas.TimelineCount(user_id=user_id, post_count=count, from_date=from_date, to_date=to_date)
