# FILE: backend/ecopromise/models/join_request.py

from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from .common import PyObjectId, UserSummary, utcnow

class JoinRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

class JoinRequestCreate(BaseModel):
    message: Optional[str] = Field(None, max_length=500)

class JoinRequestReview(BaseModel):
    action: ReviewAction

class JoinRequestInDB(BaseModel):
    id: PyObjectId = Field(alias="_id", default=None)
    user_id: PyObjectId
    organization_id: PyObjectId
    status: JoinRequestStatus = JoinRequestStatus.PENDING
    message: Optional[str] = None
    reviewed_by: Optional[PyObjectId] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class JoinRequestOut(JoinRequestInDB):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
    user: Optional[UserSummary] = None
    organization_name: Optional[str] = None
