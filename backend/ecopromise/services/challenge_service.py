# FILE: backend/ecopromise/services/challenge_service.py
# Time-boxed community challenges. The listed status is derived from the date
# window; the stored status only tracks cancellation.

import logging
from typing import List, Optional, Dict, Any
from bson import ObjectId
from pymongo.database import Database
from pymongo import ReturnDocument, DESCENDING, ASCENDING

from ..core.errors import AppError
from ..models.common import Pagination, utcnow
from ..models.user import UserInDB
from ..models.challenge import ChallengeCreate, ChallengeInDB, ChallengeOut, ChallengeStatus
from ..models.commitment import Visibility
from . import notification_service, user_service
from .organization_service import organization_service

logger = logging.getLogger(__name__)

def _window_query(status: str) -> Dict[str, Any]:
    now = utcnow()
    if status == "active":
        return {"start_date": {"$lte": now}, "end_date": {"$gte": now}, "status": {"$ne": ChallengeStatus.CANCELLED.value}}
    if status == "upcoming":
        return {"start_date": {"$gt": now}, "status": {"$ne": ChallengeStatus.CANCELLED.value}}
    if status == "completed":
        return {"end_date": {"$lt": now}}
    return {}

def _to_out(db: Database, docs: List[Dict[str, Any]], with_participants: bool = False) -> List[ChallengeOut]:
    user_ids = [d["created_by_user_id"] for d in docs]
    if with_participants:
        for d in docs:
            user_ids.extend(d.get("participant_ids", []))
    summaries = user_service.get_summaries(db, user_ids)

    out = []
    for doc in docs:
        challenge = ChallengeOut.model_validate(doc)
        challenge.participant_count = len(challenge.participant_ids)
        challenge.created_by = summaries.get(str(doc["created_by_user_id"]))
        if with_participants:
            challenge.participants = [
                summaries[str(pid)] for pid in challenge.participant_ids if str(pid) in summaries
            ]
        out.append(challenge)
    return out

def _get_or_404(db: Database, challenge_id: ObjectId) -> ChallengeInDB:
    doc = db.challenges.find_one({"_id": challenge_id})
    if not doc:
        raise AppError("Challenge not found", 404)
    return ChallengeInDB.model_validate(doc)

def create_challenge(db: Database, user: UserInDB, data: ChallengeCreate) -> ChallengeOut:
    if data.organization_id is not None:
        org = organization_service.get_or_404(db, data.organization_id)
        if not (org.is_admin(user.id) or user.is_system_admin):
            raise AppError("Not an admin of this organization", 403)

    doc = {
        "title": data.title,
        "description": data.description,
        "start_date": data.start_date,
        "end_date": data.end_date,
        "target_carbon_savings": data.target_carbon_savings,
        "visibility": data.visibility.value,
        "status": ChallengeStatus.ACTIVE.value,
        "created_by_user_id": user.id,
        "created_by_org_id": data.organization_id,
        "participant_ids": [user.id],
        "created_at": utcnow(),
    }
    result = db.challenges.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"User {user.id} created challenge '{data.title}' ({doc['_id']})")
    return _to_out(db, [doc])[0]

def list_challenges(db: Database, status: str = "active", limit: int = 20) -> List[ChallengeOut]:
    query = _window_query(status)
    query["visibility"] = Visibility.PUBLIC.value
    order = ASCENDING if status == "upcoming" else DESCENDING
    cursor = db.challenges.find(query).sort("start_date", order).limit(limit)
    return _to_out(db, list(cursor))

def list_for_organization(db: Database, org_id: ObjectId, status: str = "active",
                          page: int = 1, limit: int = 20) -> Dict[str, Any]:
    query = _window_query(status)
    query["created_by_org_id"] = org_id
    total = db.challenges.count_documents(query)
    cursor = (db.challenges.find(query)
              .sort("start_date", DESCENDING)
              .skip((page - 1) * limit)
              .limit(limit))
    return {
        "challenges": _to_out(db, list(cursor)),
        "pagination": Pagination.build(page, limit, total),
    }

def get_challenge(db: Database, challenge_id: ObjectId) -> ChallengeOut:
    doc = db.challenges.find_one({"_id": challenge_id})
    if not doc:
        raise AppError("Challenge not found", 404)
    return _to_out(db, [doc], with_participants=True)[0]

def join_challenge(db: Database, challenge_id: ObjectId, user: UserInDB) -> ChallengeOut:
    challenge = _get_or_404(db, challenge_id)
    if challenge.has_participant(user.id):
        raise AppError("Already joined this challenge", 400)
    if challenge.end_date < utcnow() or challenge.status == ChallengeStatus.CANCELLED:
        raise AppError("This challenge has ended", 400)

    doc = db.challenges.find_one_and_update(
        {"_id": challenge_id, "participant_ids": {"$ne": user.id}},
        {"$addToSet": {"participant_ids": user.id}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise AppError("Already joined this challenge", 400)

    if str(challenge.created_by_user_id) != str(user.id):
        notification_service.notify_challenge(
            db, challenge.created_by_user_id,
            f"{user.name} joined your challenge '{challenge.title}'",
            str(challenge_id),
        )
    return _to_out(db, [doc])[0]

def leave_challenge(db: Database, challenge_id: ObjectId, user: UserInDB) -> ChallengeOut:
    _get_or_404(db, challenge_id)
    doc = db.challenges.find_one_and_update(
        {"_id": challenge_id, "participant_ids": user.id},
        {"$pull": {"participant_ids": user.id}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise AppError("Not a participant of this challenge", 400)
    return _to_out(db, [doc])[0]
