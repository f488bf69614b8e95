# FILE: backend/ecopromise/services/user_service.py
# User lookup, first-sight creation from bridge-token claims, profiles and leaderboard.

from pymongo.database import Database
from pymongo import ReturnDocument, DESCENDING, ASCENDING
from bson import ObjectId
from datetime import timedelta
from typing import Optional, Dict, Any, List, Iterable
import logging
import re

from ..core.errors import AppError
from ..models.common import UserSummary, utcnow
from ..models.user import UserInDB, UserUpdate, UserPublic, UserRole

logger = logging.getLogger(__name__)

SUMMARY_PROJECTION = {"name": 1, "username": 1, "image": 1, "level": 1, "total_carbon_saved": 1}

LEADERBOARD_SORTS = {
    "carbonSaved": [("total_carbon_saved", DESCENDING)],
    "commitments": [("total_commitments", DESCENDING)],
    "level": [("level", DESCENDING), ("total_carbon_saved", DESCENDING)],
}

def _email_query(email: str) -> Dict[str, Any]:
    # Emails are stored lower-cased; the regex keeps legacy mixed-case rows reachable
    return {"email": {"$regex": f"^{re.escape(email.strip())}$", "$options": "i"}}

def get_user_by_email(db: Database, email: str) -> Optional[UserInDB]:
    user_dict = db.users.find_one(_email_query(email))
    if user_dict:
        return UserInDB.model_validate(user_dict)
    return None

def get_user_by_id(db: Database, user_id: ObjectId) -> Optional[UserInDB]:
    user_dict = db.users.find_one({"_id": user_id})
    if user_dict:
        return UserInDB.model_validate(user_dict)
    return None

def get_or_create_from_claims(db: Database, claims: Dict[str, Any]) -> UserInDB:
    """
    Finds the user for a verified bridge token, creating the document on first sight.
    The upsert keeps concurrent first requests from creating duplicates.
    """
    email = str(claims["email"]).strip().lower()
    existing = get_user_by_email(db, email)
    if existing:
        return existing

    now = utcnow()
    result = db.users.update_one(
        {"email": email},
        {"$setOnInsert": {
            "google_id": str(claims["sub"]),
            "email": email,
            "name": claims.get("name") or "User",
            "image": claims.get("picture"),
            "sustainability_focus_areas": [],
            "role": UserRole.USER.value,
            "organization_id": None,
            "total_carbon_saved": 0.0,
            "total_commitments": 0,
            "completed_milestones": 0,
            "level": 1,
            "badges": [],
            "created_at": now,
            "updated_at": now,
        }},
        upsert=True,
    )
    if result.upserted_id is not None:
        logger.info(f"Created user {result.upserted_id} for {email} on first sign-in")
    user_dict = db.users.find_one({"email": email})
    if not user_dict:
        raise AppError("User creation failed", 500)
    return UserInDB.model_validate(user_dict)

def update_profile(db: Database, user: UserInDB, update: UserUpdate) -> UserInDB:
    payload = update.model_dump(exclude_unset=True)
    if not payload:
        return user

    if payload.get("username"):
        taken = db.users.find_one({"username": payload["username"], "_id": {"$ne": user.id}})
        if taken:
            raise AppError("username already exists", 400)

    update_doc: Dict[str, Any] = {}
    # A null username must be removed, not stored: the unique index is sparse
    if "username" in payload and payload["username"] is None:
        payload.pop("username")
        update_doc["$unset"] = {"username": ""}

    payload["updated_at"] = utcnow()
    update_doc["$set"] = payload
    user_dict = db.users.find_one_and_update(
        {"_id": user.id},
        update_doc,
        return_document=ReturnDocument.AFTER,
    )
    if not user_dict:
        raise AppError("User not found", 404)
    return UserInDB.model_validate(user_dict)

def get_public_profile(db: Database, user_id: ObjectId) -> Dict[str, Any]:
    user_dict = db.users.find_one({"_id": user_id})
    if not user_dict:
        raise AppError("User not found", 404)
    public_commitments = db.commitments.count_documents({"user_id": user_id, "visibility": "public"})
    return {
        "user": UserPublic.model_validate(user_dict),
        "public_commitments": public_commitments,
    }

def get_summaries(db: Database, user_ids: Iterable[ObjectId]) -> Dict[str, UserSummary]:
    """Batch lookup used to embed author/member summaries without N queries."""
    ids = list({uid for uid in user_ids if uid is not None})
    if not ids:
        return {}
    cursor = db.users.find({"_id": {"$in": ids}}, SUMMARY_PROJECTION)
    return {str(doc["_id"]): UserSummary.model_validate(doc) for doc in cursor}

def get_leaderboard(db: Database, metric: str = "carbonSaved", period: str = "all", limit: int = 50) -> List[UserPublic]:
    query: Dict[str, Any] = {}
    now = utcnow()
    since = {
        "today": now.replace(hour=0, minute=0, second=0, microsecond=0),
        "week": now - timedelta(days=7),
        "month": now - timedelta(days=30),
    }.get(period)
    if since is not None:
        query["updated_at"] = {"$gte": since}

    sort = LEADERBOARD_SORTS.get(metric, LEADERBOARD_SORTS["carbonSaved"]) + [("name", ASCENDING)]
    cursor = db.users.find(query).sort(sort).limit(limit)
    return [UserPublic.model_validate(doc) for doc in cursor]
