# FILE: backend/ecopromise/models/organization.py
# Organizations group users for CSR reporting. Membership lives on the organization
# document (admin_user_ids / member_user_ids) and is mirrored by users.organization_id.

from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from .badge import BadgeOut, describe_badges
from .common import PyObjectId, UserSummary, utcnow

class OrganizationType(str, Enum):
    COMPANY = "company"
    NGO = "ngo"
    SCHOOL = "school"
    GOVERNMENT = "government"
    OTHER = "other"

# Base Organization Attributes
class OrganizationBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=120)
    type: OrganizationType
    description: Optional[str] = Field(None, max_length=2000)
    logo: Optional[str] = None
    settings: Dict[str, Any] = {}

# Creation Request
class OrganizationCreate(OrganizationBase):
    pass

# Update Request
class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=120)
    type: Optional[OrganizationType] = None
    description: Optional[str] = Field(None, max_length=2000)
    logo: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None

# DB Model
class OrganizationInDB(OrganizationBase):
    id: PyObjectId = Field(alias="_id", default=None)
    admin_user_ids: List[PyObjectId] = []
    member_user_ids: List[PyObjectId] = []
    total_org_carbon_saved: float = 0.0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    def is_admin(self, user_id) -> bool:
        return any(str(uid) == str(user_id) for uid in self.admin_user_ids)

    def is_member(self, user_id) -> bool:
        return any(str(uid) == str(user_id) for uid in self.member_user_ids)

# Public Response
class OrganizationOut(OrganizationBase):
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
    admin_user_ids: List[PyObjectId] = []
    member_user_ids: List[PyObjectId] = []
    total_org_carbon_saved: float = 0.0
    created_at: datetime

    # Populated by the service layer
    member_count: int = 0

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        arbitrary_types_allowed=True,
    )

class OrganizationDetail(OrganizationOut):
    admins: List[UserSummary] = []
    members: List[UserSummary] = []

class AddMemberRequest(BaseModel):
    user_id: PyObjectId
    make_admin: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)

class MemberOut(UserSummary):
    email: Optional[str] = None
    role: str = "user"
    total_commitments: int = 0
    completed_milestones: int = 0
    badges: List[BadgeOut] = []
    is_admin: bool = False

    @field_validator('badges', mode='before')
    @classmethod
    def expand_badges(cls, v):
        return describe_badges(v)
