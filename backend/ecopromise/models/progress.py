# FILE: backend/ecopromise/models/progress.py
# A progress update records how many times the pledged action was performed
# since the last update; carbon is credited per occurrence.

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from .common import PyObjectId, utcnow

class ProgressUpdateCreate(BaseModel):
    count: int = Field(1, ge=1, le=1000)
    note: Optional[str] = Field(None, max_length=500)

class ProgressUpdateInDB(BaseModel):
    id: PyObjectId = Field(alias="_id", default=None)
    commitment_id: PyObjectId
    user_id: PyObjectId
    count: int
    note: Optional[str] = None
    delta_carbon_saved: float = 0.0
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class ProgressUpdateOut(ProgressUpdateInDB):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
