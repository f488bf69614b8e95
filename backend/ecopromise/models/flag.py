# FILE: backend/ecopromise/models/flag.py
# Moderation flags raised by users against commitments or comments.

from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from .common import PyObjectId, utcnow

class FlagContentType(str, Enum):
    COMMITMENT = "commitment"
    COMMENT = "comment"

class FlagReason(str, Enum):
    SPAM = "spam"
    INAPPROPRIATE = "inappropriate"
    MISINFORMATION = "misinformation"
    OTHER = "other"

class FlagStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"

class FlagResolution(str, Enum):
    DISMISSED = "dismissed"
    CONTENT_REMOVED = "content_removed"

class ResolveAction(str, Enum):
    RESOLVE = "resolve"
    DELETE = "delete"

class FlagCreate(BaseModel):
    content_type: FlagContentType
    content_id: PyObjectId
    reason: FlagReason = FlagReason.OTHER
    details: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(arbitrary_types_allowed=True)

class FlagResolve(BaseModel):
    action: ResolveAction = ResolveAction.RESOLVE

class FlagInDB(BaseModel):
    id: PyObjectId = Field(alias="_id", default=None)
    content_type: FlagContentType
    content_id: PyObjectId
    reason: FlagReason
    details: Optional[str] = None
    flagged_by_user_id: PyObjectId
    status: FlagStatus = FlagStatus.OPEN
    resolution: Optional[FlagResolution] = None
    resolved_by_user_id: Optional[PyObjectId] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class FlagOut(FlagInDB):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
