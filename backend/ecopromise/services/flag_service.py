# FILE: backend/ecopromise/services/flag_service.py
# Moderation flags on commitments and comments.

import logging
from typing import List, Optional, Dict, Any
from bson import ObjectId
from pymongo.database import Database
from pymongo import ReturnDocument, DESCENDING

from ..core.errors import AppError
from ..models.common import utcnow
from ..models.user import UserInDB
from ..models.flag import (
    FlagCreate, FlagOut, FlagContentType, FlagStatus, FlagResolution, ResolveAction,
)

logger = logging.getLogger(__name__)

def _content_exists(db: Database, content_type: FlagContentType, content_id: ObjectId) -> bool:
    collection = db.commitments if content_type == FlagContentType.COMMITMENT else db.comments
    return collection.find_one({"_id": content_id}, {"_id": 1}) is not None

def _remove_content(db: Database, content_type: FlagContentType, content_id: ObjectId) -> None:
    if content_type == FlagContentType.COMMENT:
        comment = db.comments.find_one_and_delete({"_id": content_id})
        if comment:
            db.commitments.update_one(
                {"_id": comment["commitment_id"], "comment_count": {"$gt": 0}},
                {"$inc": {"comment_count": -1}},
            )
        return

    commitment = db.commitments.find_one_and_delete({"_id": content_id})
    if commitment:
        db.milestones.delete_many({"commitment_id": content_id})
        db.comments.delete_many({"commitment_id": content_id})
        db.progress_updates.delete_many({"commitment_id": content_id})
        db.users.update_one(
            {"_id": commitment["user_id"], "total_commitments": {"$gt": 0}},
            {"$inc": {"total_commitments": -1}},
        )

def create_flag(db: Database, user: UserInDB, data: FlagCreate) -> FlagOut:
    if not _content_exists(db, data.content_type, data.content_id):
        raise AppError(f"{data.content_type.value.capitalize()} not found", 404)

    existing = db.flags.find_one({
        "content_type": data.content_type.value,
        "content_id": data.content_id,
        "flagged_by_user_id": user.id,
        "status": FlagStatus.OPEN.value,
    })
    if existing:
        raise AppError("You have already flagged this content", 400)

    doc = {
        "content_type": data.content_type.value,
        "content_id": data.content_id,
        "reason": data.reason.value,
        "details": data.details,
        "flagged_by_user_id": user.id,
        "status": FlagStatus.OPEN.value,
        "resolution": None,
        "resolved_by_user_id": None,
        "resolved_at": None,
        "created_at": utcnow(),
    }
    result = db.flags.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"User {user.id} flagged {doc['content_type']} {doc['content_id']} as {doc['reason']}")
    return FlagOut.model_validate(doc)

def list_flags(db: Database, status: Optional[str] = FlagStatus.OPEN.value, limit: int = 100) -> List[FlagOut]:
    query: Dict[str, Any] = {}
    if status and status != "all":
        query["status"] = status
    cursor = db.flags.find(query).sort("created_at", DESCENDING).limit(limit)
    return [FlagOut.model_validate(doc) for doc in cursor]

def resolve_flag(db: Database, flag_id: ObjectId, admin: UserInDB, action: ResolveAction) -> FlagOut:
    flag = db.flags.find_one({"_id": flag_id})
    if not flag:
        raise AppError("Flag not found", 404)
    if flag["status"] != FlagStatus.OPEN.value:
        raise AppError("Flag has already been resolved", 400)

    content_type = FlagContentType(flag["content_type"])
    resolution = FlagResolution.DISMISSED
    if action == ResolveAction.DELETE:
        _remove_content(db, content_type, flag["content_id"])
        resolution = FlagResolution.CONTENT_REMOVED

    now = utcnow()
    resolved = {
        "status": FlagStatus.RESOLVED.value,
        "resolution": resolution.value,
        "resolved_by_user_id": admin.id,
        "resolved_at": now,
    }
    doc = db.flags.find_one_and_update(
        {"_id": flag_id}, {"$set": resolved}, return_document=ReturnDocument.AFTER
    )
    if action == ResolveAction.DELETE:
        # Close every other open flag on the removed content
        db.flags.update_many(
            {"content_type": content_type.value, "content_id": flag["content_id"], "status": FlagStatus.OPEN.value},
            {"$set": resolved},
        )
    logger.warning(f"Admin {admin.id} resolved flag {flag_id} ({resolution.value})")
    return FlagOut.model_validate(doc)
