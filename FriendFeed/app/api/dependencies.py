from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..database import get_db

DbSession = Annotated[Session, Depends(get_db)]

PageIndex = Annotated[int, Query(ge=0, description="Page number (0-indexed)")]
PageSize = Annotated[
    int,
    Query(ge=1, le=get_settings().MAX_PAGE_SIZE, description="Page size"),
]
