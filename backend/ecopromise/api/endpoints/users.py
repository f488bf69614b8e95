# FILE: backend/ecopromise/api/endpoints/users.py

from fastapi import APIRouter, Depends, Query
from typing import Annotated, Literal
from pymongo.database import Database

from ...models.common import success, parse_object_id
from ...models.user import UserOut, UserInDB, UserUpdate
from .dependencies import get_current_user, get_db
from ...services import user_service

router = APIRouter()

def _user_out(user: UserInDB) -> UserOut:
    return UserOut.model_validate(user.model_dump(by_alias=True))

@router.get("/users/me")
def get_current_user_profile(
    current_user: Annotated[UserInDB, Depends(get_current_user)]
):
    """
    Retrieves the profile for the currently authenticated user.
    """
    return success({"user": _user_out(current_user)})

@router.patch("/users/me")
def update_current_user_profile(
    update: UserUpdate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    updated = user_service.update_profile(db, current_user, update)
    return success({"user": _user_out(updated)})

@router.get("/users/{user_id}")
def get_user_profile(user_id: str, db: Database = Depends(get_db)):
    """Public profile: no email, plus the number of public commitments."""
    profile = user_service.get_public_profile(db, parse_object_id(user_id, "user ID"))
    return success(profile)

@router.get("/leaderboard")
def get_leaderboard(
    metric: Literal["carbonSaved", "commitments", "level"] = "carbonSaved",
    period: Literal["all", "today", "week", "month"] = "all",
    limit: int = Query(50, ge=1, le=100),
    db: Database = Depends(get_db)
):
    leaders = user_service.get_leaderboard(db, metric=metric, period=period, limit=limit)
    return success({"leaders": leaders, "metric": metric, "period": period})
