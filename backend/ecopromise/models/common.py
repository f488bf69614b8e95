# FILE: backend/ecopromise/models/common.py
# Shared building blocks for the document models.
# 1. PyObjectId accepts an ObjectId or its hex string and serialises back to str in JSON.
# 2. utcnow() is the single source of timestamps (naive UTC, as BSON stores them).

from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime, timezone
from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer, WithJsonSchema, Field
from typing import Annotated, Any, Dict, Optional

from ..core.errors import AppError

def validate_object_id(v):
    if isinstance(v, ObjectId):
        return v
    if isinstance(v, str) and ObjectId.is_valid(v):
        return ObjectId(v)
    raise ValueError("Invalid ObjectId")

PyObjectId = Annotated[
    ObjectId,
    BeforeValidator(validate_object_id),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
    WithJsonSchema({"type": "string", "example": "64b7f0c2e1a4c2a1d2e3f4a5"}),
]

def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

def parse_object_id(value: Any, field_name: str = "ID") -> ObjectId:
    """Path/body id guard: malformed ids are a client error, not a 500."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise AppError(f"Invalid {field_name} format", 400)

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit if limit else 0)

class UserSummary(BaseModel):
    """The slice of a user embedded in other resources (author, member, participant)."""
    id: PyObjectId = Field(alias="_id", serialization_alias="id")
    name: str
    username: Optional[str] = None
    image: Optional[str] = None
    level: int = 1
    total_carbon_saved: float = 0.0

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

def success(data: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "success"}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
