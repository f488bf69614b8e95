# FILE: backend/ecopromise/models/user.py
# User documents are created on first sight of a bridge token; there are no passwords.

from enum import Enum
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime
from .badge import BadgeOut, describe_badges
from .common import PyObjectId, utcnow

class UserRole(str, Enum):
    USER = "user"
    ORG_ADMIN = "org_admin"
    ORG_MEMBER = "org_member"
    ADMIN = "admin"

# Base User Model
class UserBase(BaseModel):
    email: EmailStr
    name: str = "User"
    image: Optional[str] = None
    username: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = None
    sustainability_focus_areas: List[str] = []
    role: UserRole = UserRole.USER
    organization_id: Optional[PyObjectId] = None

    # Denormalised counters, maintained by the gamification service
    total_carbon_saved: float = 0.0
    total_commitments: int = 0
    completed_milestones: int = 0
    level: int = 1
    badges: List[str] = []

    model_config = ConfigDict(arbitrary_types_allowed=True)

# Model for updating the caller's own profile
class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.]+$")
    bio: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = None
    location: Optional[str] = Field(None, max_length=100)
    sustainability_focus_areas: Optional[List[str]] = None

# Model stored in DB
class UserInDB(UserBase):
    id: PyObjectId = Field(alias="_id", default=None)
    google_id: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    @property
    def is_system_admin(self) -> bool:
        return self.role == UserRole.ADMIN

# Model for returning the caller's own data
class UserOut(UserBase):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
    badges: List[BadgeOut] = []
    created_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        arbitrary_types_allowed=True,
    )

    @field_validator('badges', mode='before')
    @classmethod
    def expand_badges(cls, v):
        return describe_badges(v)

# Model for other people's profiles (no email)
class UserPublic(BaseModel):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
    name: str
    username: Optional[str] = None
    image: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    sustainability_focus_areas: List[str] = []
    organization_id: Optional[PyObjectId] = None
    total_carbon_saved: float = 0.0
    total_commitments: int = 0
    completed_milestones: int = 0
    level: int = 1
    badges: List[BadgeOut] = []
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        arbitrary_types_allowed=True,
    )

    @field_validator('badges', mode='before')
    @classmethod
    def expand_badges(cls, v):
        return describe_badges(v)
