# FILE: backend/ecopromise/models/notification.py

from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from .common import PyObjectId, utcnow

class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    CHALLENGE = "challenge"
    JOIN_REQUEST = "join_request"
    BADGE = "badge"
    MILESTONE = "milestone"
    SYSTEM = "system"

class NotificationInDB(BaseModel):
    id: PyObjectId = Field(alias="_id", default=None)
    user_id: PyObjectId
    type: NotificationType
    message: str
    link: Optional[str] = None
    related_id: Optional[str] = None
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class NotificationOut(NotificationInDB):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
