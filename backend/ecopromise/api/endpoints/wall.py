# FILE: backend/ecopromise/api/endpoints/wall.py
# Community wall and personal dashboard.

from fastapi import APIRouter, Depends, Query
from typing import Annotated, Optional
from pymongo.database import Database

from ...models.common import success
from ...models.user import UserInDB
from ...models.commitment import CommitmentCategory
from ...services import analytics_service
from ...services.commitment_service import CommitmentService
from .dependencies import get_current_user, get_optional_user, get_db

router = APIRouter()

@router.get("/wall")
def get_wall(
    current_user: Annotated[Optional[UserInDB], Depends(get_optional_user)],
    category: Optional[CommitmentCategory] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db)
):
    feed = CommitmentService(db).list_feed(
        current_user, category=category.value if category else None, page=page, limit=limit
    )
    return success(feed)

@router.get("/wall/stats")
def get_wall_stats(db: Database = Depends(get_db)):
    return success({"stats": analytics_service.get_wall_stats(db)})

@router.get("/dashboard/me")
def get_my_dashboard(
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    return success(analytics_service.get_user_dashboard(db, current_user))
