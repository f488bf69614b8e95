# FILE: backend/ecopromise/models/challenge.py

from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List
from datetime import datetime
from .common import PyObjectId, UserSummary, utcnow, to_naive_utc
from .commitment import Visibility

class ChallengeStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class ChallengeCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=120)
    description: str = Field("", max_length=2000)
    start_date: datetime
    end_date: datetime
    target_carbon_savings: float = Field(0.0, ge=0)
    visibility: Visibility = Visibility.PUBLIC
    organization_id: Optional[PyObjectId] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def check_window(self):
        self.start_date = to_naive_utc(self.start_date)
        self.end_date = to_naive_utc(self.end_date)
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

class ChallengeInDB(BaseModel):
    id: PyObjectId = Field(alias="_id", default=None)
    title: str
    description: str = ""
    start_date: datetime
    end_date: datetime
    target_carbon_savings: float = 0.0
    visibility: Visibility = Visibility.PUBLIC
    status: ChallengeStatus = ChallengeStatus.ACTIVE
    created_by_user_id: PyObjectId
    created_by_org_id: Optional[PyObjectId] = None
    participant_ids: List[PyObjectId] = []
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    def has_participant(self, user_id) -> bool:
        return any(str(pid) == str(user_id) for pid in self.participant_ids)

class ChallengeOut(ChallengeInDB):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
    participant_count: int = 0
    created_by: Optional[UserSummary] = None
    participants: Optional[List[UserSummary]] = None
