# FILE: backend/ecopromise/models/milestone.py

from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from .common import PyObjectId, utcnow

class MilestoneStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class MilestoneSuggestion(BaseModel):
    title: str = Field(..., max_length=120)
    description: str = ""
    target_value: int = Field(1, ge=1)
    estimated_carbon_savings: float = 0.0

class MilestoneInDB(MilestoneSuggestion):
    id: PyObjectId = Field(alias="_id", default=None)
    commitment_id: PyObjectId
    current_value: int = 0
    status: MilestoneStatus = MilestoneStatus.PENDING
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

class MilestoneOut(MilestoneInDB):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
