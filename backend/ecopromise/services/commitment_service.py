# FILE: backend/ecopromise/services/commitment_service.py
# Commitments, their milestones, comments, likes and progress updates.
# Counters (likes, comments, carbon) change through per-document atomic operators.

import logging
from typing import List, Dict, Any, Optional
from bson import ObjectId
from pymongo.database import Database
from pymongo import ReturnDocument, DESCENDING, ASCENDING

from ..core.errors import AppError
from ..models.common import Pagination, utcnow, parse_object_id
from ..models.user import UserInDB
from ..models.commitment import (
    CommitmentCreate, CommitmentUpdate, CommitmentInDB, CommitmentOut,
    CommitmentStatus, Visibility,
)
from ..models.milestone import MilestoneOut, MilestoneStatus
from ..models.comment import CommentCreate, CommentOut
from ..models.progress import ProgressUpdateCreate, ProgressUpdateOut
from . import ai_service, gamification_service, notification_service, user_service

logger = logging.getLogger(__name__)

class CommitmentService:
    def __init__(self, db: Database):
        self.db = db

    # --- Helpers ---

    def _get_or_404(self, commitment_id: ObjectId) -> CommitmentInDB:
        doc = self.db.commitments.find_one({"_id": commitment_id})
        if not doc:
            raise AppError("Commitment not found", 404)
        return CommitmentInDB.model_validate(doc)

    def _ensure_visible(self, commitment: CommitmentInDB, viewer: Optional[UserInDB]):
        if commitment.visibility != Visibility.PRIVATE:
            return
        if viewer and (commitment.is_owned_by(viewer.id) or viewer.is_system_admin):
            return
        raise AppError("Not authorized to view this commitment", 403)

    def _ensure_owner(self, commitment: CommitmentInDB, user: UserInDB, action: str):
        if not commitment.is_owned_by(user.id):
            raise AppError(f"Not authorized to {action} this commitment", 403)

    def _to_out(self, docs: List[Dict[str, Any]], viewer: Optional[UserInDB] = None) -> List[CommitmentOut]:
        authors = user_service.get_summaries(self.db, (d["user_id"] for d in docs))
        out = []
        for doc in docs:
            item = CommitmentOut.model_validate(doc)
            item.user = authors.get(str(doc["user_id"]))
            item.liked_by_me = bool(viewer) and any(str(uid) == str(viewer.id) for uid in item.likes)
            out.append(item)
        return out

    def _milestones(self, commitment_id: ObjectId) -> List[MilestoneOut]:
        cursor = self.db.milestones.find({"commitment_id": commitment_id}).sort("target_value", ASCENDING)
        return [MilestoneOut.model_validate(doc) for doc in cursor]

    # --- CRUD ---

    def create(self, user: UserInDB, data: CommitmentCreate) -> Dict[str, Any]:
        try:
            interpretation = ai_service.interpret_commitment(data.text)
            estimate = ai_service.estimate_carbon_savings(interpretation, data.duration)
            suggestions = ai_service.suggest_milestones(data.text, interpretation, estimate, data.duration)
        except ai_service.AIServiceError as e:
            logger.error(f"Commitment creation aborted for user {user.id}: {e}")
            raise AppError("Failed to create commitment", 500)

        now = utcnow()
        doc = {
            "user_id": user.id,
            "text": data.text,
            "media_url": data.media_url,
            "media_type": data.media_type.value,
            "category": interpretation.category.value,
            "frequency": interpretation.frequency.value,
            "duration": data.duration,
            "visibility": data.visibility.value,
            "status": CommitmentStatus.ACTIVE.value,
            "estimated_carbon_savings": estimate.model_dump(),
            "actual_carbon_saved": 0.0,
            "likes": [],
            "like_count": 0,
            "comment_count": 0,
            "progress_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        result = self.db.commitments.insert_one(doc)
        doc["_id"] = result.inserted_id

        gamification_service.update_user_stats(self.db, user.id, commitments_delta=1)
        gamification_service.award_badges(self.db, user.id, "commitment_created")

        milestone_docs = [
            {
                **suggestion.model_dump(),
                "commitment_id": doc["_id"],
                "current_value": 0,
                "status": MilestoneStatus.PENDING.value,
                "completed_at": None,
                "created_at": now,
            }
            for suggestion in suggestions
        ]
        if milestone_docs:
            inserted = self.db.milestones.insert_many(milestone_docs)
            for milestone, oid in zip(milestone_docs, inserted.inserted_ids):
                milestone["_id"] = oid

        logger.info(f"User {user.id} created commitment {doc['_id']} ({doc['category']}, {doc['frequency']})")
        return {
            "commitment": self._to_out([doc], user)[0],
            "interpretation": interpretation,
            "carbon_estimate": estimate,
            "milestones": [MilestoneOut.model_validate(m) for m in milestone_docs],
        }

    def get(self, commitment_id: ObjectId, viewer: Optional[UserInDB]) -> Dict[str, Any]:
        commitment = self._get_or_404(commitment_id)
        self._ensure_visible(commitment, viewer)
        doc = self.db.commitments.find_one({"_id": commitment_id})
        return {
            "commitment": self._to_out([doc], viewer)[0],
            "milestones": self._milestones(commitment_id),
        }

    def update(self, commitment_id: ObjectId, user: UserInDB, data: CommitmentUpdate) -> CommitmentOut:
        commitment = self._get_or_404(commitment_id)
        self._ensure_owner(commitment, user, "update")

        payload = {
            key: (value.value if hasattr(value, "value") else value)
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key == "media_url"
        }
        payload["updated_at"] = utcnow()
        doc = self.db.commitments.find_one_and_update(
            {"_id": commitment_id},
            {"$set": payload},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_out([doc], user)[0]

    def delete(self, commitment_id: ObjectId, user: UserInDB) -> None:
        commitment = self._get_or_404(commitment_id)
        self._ensure_owner(commitment, user, "delete")

        self.db.milestones.delete_many({"commitment_id": commitment_id})
        self.db.comments.delete_many({"commitment_id": commitment_id})
        self.db.progress_updates.delete_many({"commitment_id": commitment_id})
        self.db.commitments.delete_one({"_id": commitment_id})
        gamification_service.update_user_stats(self.db, user.id, commitments_delta=-1)
        logger.info(f"User {user.id} deleted commitment {commitment_id}")

    # --- Listing ---

    def list_feed(self, viewer: Optional[UserInDB], category: Optional[str] = None, status: Optional[str] = None,
                  page: int = 1, limit: int = 20) -> Dict[str, Any]:
        query: Dict[str, Any] = {"visibility": Visibility.PUBLIC.value}
        if category:
            query["category"] = category
        if status:
            query["status"] = status

        total = self.db.commitments.count_documents(query)
        cursor = (self.db.commitments.find(query)
                  .sort("created_at", DESCENDING)
                  .skip((page - 1) * limit)
                  .limit(limit))
        return {
            "commitments": self._to_out(list(cursor), viewer),
            "pagination": Pagination.build(page, limit, total),
        }

    def list_for_user(self, user_ref: str, viewer: Optional[UserInDB], status: Optional[str] = None) -> List[CommitmentOut]:
        if user_ref == "me":
            if not viewer:
                raise AppError("Authentication required to view your own commitments", 401)
            target_id = viewer.id
        elif viewer and user_ref.lower() == viewer.email.lower():
            target_id = viewer.id
        else:
            target_id = parse_object_id(user_ref, "user ID")

        query: Dict[str, Any] = {"user_id": target_id}
        if status:
            query["status"] = status
        if not viewer or str(viewer.id) != str(target_id):
            query["visibility"] = Visibility.PUBLIC.value

        cursor = self.db.commitments.find(query).sort("created_at", DESCENDING)
        return self._to_out(list(cursor), viewer)

    # --- Likes ---

    def toggle_like(self, commitment_id: ObjectId, user: UserInDB) -> Dict[str, Any]:
        commitment = self._get_or_404(commitment_id)
        self._ensure_visible(commitment, user)

        liked = self.db.commitments.update_one(
            {"_id": commitment_id, "likes": {"$ne": user.id}},
            {"$addToSet": {"likes": user.id}, "$inc": {"like_count": 1}},
        ).modified_count == 1

        if not liked:
            self.db.commitments.update_one(
                {"_id": commitment_id, "likes": user.id},
                {"$pull": {"likes": user.id}, "$inc": {"like_count": -1}},
            )
        elif not commitment.is_owned_by(user.id):
            notification_service.notify_like(self.db, commitment.user_id, user.name, str(commitment_id))

        doc = self.db.commitments.find_one({"_id": commitment_id}, {"like_count": 1, "likes": 1})
        like_count = doc.get("like_count", 0)
        if like_count < 0:
            # Repair drift left by older non-atomic writers
            like_count = len(doc.get("likes", []))
            self.db.commitments.update_one({"_id": commitment_id}, {"$set": {"like_count": like_count}})
        return {"liked": liked, "like_count": like_count}

    # --- Comments ---

    def add_comment(self, commitment_id: ObjectId, user: UserInDB, data: CommentCreate) -> CommentOut:
        commitment = self._get_or_404(commitment_id)
        self._ensure_visible(commitment, user)

        doc = {
            "commitment_id": commitment_id,
            "user_id": user.id,
            "text": data.text,
            "created_at": utcnow(),
        }
        result = self.db.comments.insert_one(doc)
        doc["_id"] = result.inserted_id
        self.db.commitments.update_one({"_id": commitment_id}, {"$inc": {"comment_count": 1}})

        if not commitment.is_owned_by(user.id):
            notification_service.notify_comment(
                self.db, commitment.user_id, user.name, str(commitment_id), str(doc["_id"])
            )

        comment = CommentOut.model_validate(doc)
        comment.user = user_service.get_summaries(self.db, [user.id]).get(str(user.id))
        return comment

    def list_comments(self, commitment_id: ObjectId, viewer: Optional[UserInDB]) -> List[CommentOut]:
        commitment = self._get_or_404(commitment_id)
        self._ensure_visible(commitment, viewer)

        docs = list(self.db.comments.find({"commitment_id": commitment_id}).sort("created_at", DESCENDING))
        authors = user_service.get_summaries(self.db, (d["user_id"] for d in docs))
        comments = []
        for doc in docs:
            comment = CommentOut.model_validate(doc)
            comment.user = authors.get(str(doc["user_id"]))
            comments.append(comment)
        return comments

    def delete_comment(self, commitment_id: ObjectId, comment_id: ObjectId, user: UserInDB) -> None:
        commitment = self._get_or_404(commitment_id)
        comment = self.db.comments.find_one({"_id": comment_id, "commitment_id": commitment_id})
        if not comment:
            raise AppError("Comment not found", 404)

        is_author = str(comment["user_id"]) == str(user.id)
        if not (is_author or commitment.is_owned_by(user.id) or user.is_system_admin):
            raise AppError("Not authorized to delete this comment", 403)

        if self.db.comments.delete_one({"_id": comment_id}).deleted_count:
            self.db.commitments.update_one(
                {"_id": commitment_id, "comment_count": {"$gt": 0}},
                {"$inc": {"comment_count": -1}},
            )

    # --- Progress & Milestones ---

    def add_progress(self, commitment_id: ObjectId, user: UserInDB, data: ProgressUpdateCreate) -> Dict[str, Any]:
        commitment = self._get_or_404(commitment_id)
        self._ensure_owner(commitment, user, "update progress on")
        if commitment.status != CommitmentStatus.ACTIVE:
            raise AppError("Progress can only be logged on active commitments", 400)

        delta = round(data.count * commitment.estimated_carbon_savings.per_period, 2)
        now = utcnow()
        progress_doc = {
            "commitment_id": commitment_id,
            "user_id": user.id,
            "count": data.count,
            "note": data.note,
            "delta_carbon_saved": delta,
            "created_at": now,
        }
        result = self.db.progress_updates.insert_one(progress_doc)
        progress_doc["_id"] = result.inserted_id

        updated = self.db.commitments.find_one_and_update(
            {"_id": commitment_id},
            {"$inc": {"actual_carbon_saved": delta, "progress_count": 1}, "$set": {"updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )

        completed = self._advance_milestones(commitment_id, data.count, now)
        for milestone in completed:
            notification_service.notify_milestone(self.db, user.id, milestone["title"], str(commitment_id))

        gamification_service.update_user_stats(
            self.db, user.id, carbon_delta=delta, milestones_delta=len(completed)
        )
        if user.organization_id:
            self.db.organizations.update_one(
                {"_id": user.organization_id}, {"$inc": {"total_org_carbon_saved": delta}}
            )

        badges = gamification_service.award_badges(self.db, user.id, "progress_logged")
        if completed:
            badges += gamification_service.award_badges(self.db, user.id, "milestone_completed")

        return {
            "progress": ProgressUpdateOut.model_validate(progress_doc),
            "commitment": self._to_out([updated], user)[0],
            "completed_milestones": [MilestoneOut.model_validate(m) for m in completed],
            "new_badges": badges,
        }

    def _advance_milestones(self, commitment_id: ObjectId, count: int, now) -> List[Dict[str, Any]]:
        """pending -> in_progress -> completed as current_value reaches target_value."""
        open_filter = {"commitment_id": commitment_id, "status": {"$ne": MilestoneStatus.COMPLETED.value}}
        self.db.milestones.update_many(open_filter, {"$inc": {"current_value": count}})

        completed = []
        for milestone in self.db.milestones.find(open_filter):
            if milestone["current_value"] >= milestone["target_value"]:
                done = self.db.milestones.find_one_and_update(
                    {"_id": milestone["_id"], "status": {"$ne": MilestoneStatus.COMPLETED.value}},
                    {"$set": {"status": MilestoneStatus.COMPLETED.value, "completed_at": now}},
                    return_document=ReturnDocument.AFTER,
                )
                if done:
                    completed.append(done)
            elif milestone["status"] == MilestoneStatus.PENDING.value:
                self.db.milestones.update_one(
                    {"_id": milestone["_id"]}, {"$set": {"status": MilestoneStatus.IN_PROGRESS.value}}
                )
        return completed

    def list_progress(self, commitment_id: ObjectId, viewer: Optional[UserInDB]) -> List[ProgressUpdateOut]:
        commitment = self._get_or_404(commitment_id)
        self._ensure_visible(commitment, viewer)
        cursor = self.db.progress_updates.find({"commitment_id": commitment_id}).sort("created_at", DESCENDING)
        return [ProgressUpdateOut.model_validate(doc) for doc in cursor]

    def list_milestones(self, commitment_id: ObjectId, viewer: Optional[UserInDB]) -> List[MilestoneOut]:
        commitment = self._get_or_404(commitment_id)
        self._ensure_visible(commitment, viewer)
        return self._milestones(commitment_id)
