# FILE: backend/ecopromise/models/commitment.py
# A commitment is a user-declared sustainability pledge. Category and frequency
# are derived by the AI collaborator at creation time.

from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from .common import PyObjectId, UserSummary, utcnow

class CommitmentCategory(str, Enum):
    TRANSPORT = "transport"
    FOOD = "food"
    ENERGY = "energy"
    WASTE = "waste"
    WATER = "water"
    SHOPPING = "shopping"
    OTHER = "other"

class CommitmentFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ONE_TIME = "one_time"

class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"

class MediaType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"

class CommitmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

class Interpretation(BaseModel):
    category: CommitmentCategory = CommitmentCategory.OTHER
    frequency: CommitmentFrequency = CommitmentFrequency.WEEKLY
    action: str = ""
    summary: str = ""

class CarbonEstimate(BaseModel):
    per_period: float = 0.0
    total: float = 0.0
    unit: str = "kg CO2"

class CommitmentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)
    media_url: Optional[str] = None
    media_type: MediaType = MediaType.TEXT
    duration: str = Field("1 month", max_length=50)
    visibility: Visibility = Visibility.PUBLIC

class CommitmentUpdate(BaseModel):
    text: Optional[str] = Field(None, min_length=1, max_length=1000)
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None
    duration: Optional[str] = Field(None, max_length=50)
    visibility: Optional[Visibility] = None
    status: Optional[CommitmentStatus] = None

class CommitmentInDB(BaseModel):
    id: PyObjectId = Field(alias="_id", default=None)
    user_id: PyObjectId
    text: str
    media_url: Optional[str] = None
    media_type: MediaType = MediaType.TEXT
    category: CommitmentCategory = CommitmentCategory.OTHER
    frequency: CommitmentFrequency = CommitmentFrequency.WEEKLY
    duration: str = "1 month"
    visibility: Visibility = Visibility.PUBLIC
    status: CommitmentStatus = CommitmentStatus.ACTIVE
    estimated_carbon_savings: CarbonEstimate = Field(default_factory=CarbonEstimate)
    actual_carbon_saved: float = 0.0
    likes: List[PyObjectId] = []
    like_count: int = 0
    comment_count: int = 0
    progress_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    def is_owned_by(self, user_id) -> bool:
        return str(self.user_id) == str(user_id)

class CommitmentOut(CommitmentInDB):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
    user: Optional[UserSummary] = None
    liked_by_me: bool = False
