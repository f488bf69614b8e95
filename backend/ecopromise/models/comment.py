# FILE: backend/ecopromise/models/comment.py

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from .common import PyObjectId, UserSummary, utcnow

class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)

class CommentInDB(BaseModel):
    id: PyObjectId = Field(alias="_id", default=None)
    commitment_id: PyObjectId
    user_id: PyObjectId
    text: str
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class CommentOut(CommentInDB):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
    user: Optional[UserSummary] = None
