# FILE: backend/ecopromise/api/endpoints/flags.py
# Content moderation. Listing and resolving flags is limited to system admins.

from fastapi import APIRouter, Depends, Query, status
from typing import Annotated, Literal
from pymongo.database import Database

from ...models.common import success, parse_object_id
from ...models.user import UserInDB
from ...models.flag import FlagCreate, FlagResolve
from ...services import flag_service
from .dependencies import get_current_user, get_current_admin_user, get_db

router = APIRouter()

@router.post("", status_code=status.HTTP_201_CREATED)
def flag_content(
    flag_in: FlagCreate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    return success({"flag": flag_service.create_flag(db, current_user, flag_in)})

@router.get("")
def list_flags(
    current_admin: Annotated[UserInDB, Depends(get_current_admin_user)],
    status_filter: Literal["open", "resolved", "all"] = Query("open", alias="status"),
    limit: int = Query(100, ge=1, le=500),
    db: Database = Depends(get_db)
):
    return success({"flags": flag_service.list_flags(db, status=status_filter, limit=limit)})

@router.patch("/{flag_id}/resolve")
def resolve_flag(
    flag_id: str,
    resolution: FlagResolve,
    current_admin: Annotated[UserInDB, Depends(get_current_admin_user)],
    db: Database = Depends(get_db)
):
    flag = flag_service.resolve_flag(db, parse_object_id(flag_id, "flag ID"), current_admin, resolution.action)
    return success({"flag": flag})
