# FILE: backend/ecopromise/api/endpoints/notifications.py

from fastapi import APIRouter, Depends, Query
from typing import Annotated
from pymongo.database import Database

from ...models.common import success, parse_object_id
from ...models.user import UserInDB
from ...services import notification_service
from .dependencies import get_current_user, get_db

router = APIRouter()

@router.get("")
def list_notifications(
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    db: Database = Depends(get_db)
):
    return success(notification_service.list_notifications(db, current_user.id, unread_only=unread_only, limit=limit))

# Declared before /{notification_id}/read
@router.patch("/read-all")
def mark_all_notifications_read(
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    modified = notification_service.mark_all_read(db, current_user.id)
    return success({"modified": modified})

@router.patch("/{notification_id}/read")
def mark_notification_read(
    notification_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    notification = notification_service.mark_read(
        db, current_user.id, parse_object_id(notification_id, "notification ID")
    )
    return success({"notification": notification})
