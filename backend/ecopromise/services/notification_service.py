# FILE: backend/ecopromise/services/notification_service.py
# Notifications are persisted in MongoDB; when Redis is configured each new
# notification is also published on "notifications:<user_id>" for live clients.

import json
import logging
from typing import Optional, List, Dict, Any, Iterable
from bson import ObjectId
from pymongo.database import Database
from pymongo import DESCENDING, ReturnDocument

from ..core.db import get_redis
from ..core.errors import AppError
from ..models.common import utcnow
from ..models.notification import NotificationType, NotificationOut

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "notifications"

def _publish(notification: Dict[str, Any]) -> None:
    redis_client = get_redis()
    if not redis_client:
        return

    channel = f"{CHANNEL_PREFIX}:{notification['user_id']}"
    payload = {
        "id": str(notification["_id"]),
        "type": notification["type"],
        "message": notification["message"],
        "link": notification.get("link"),
        "related_id": notification.get("related_id"),
        "created_at": notification["created_at"].isoformat(),
    }
    try:
        redis_client.publish(channel, json.dumps(payload))
        logger.info(f"--- [Notification Service] Published '{payload['type']}' to channel '{channel}'. ---")
    except Exception as e:
        logger.error(f"!!! FAILED to publish notification {payload['id']} to Redis. Error: {e}")

def create_notification(
    db: Database,
    user_id: ObjectId,
    type: NotificationType,
    message: str,
    link: Optional[str] = None,
    related_id: Optional[str] = None,
) -> Dict[str, Any]:
    doc = {
        "user_id": user_id,
        "type": type.value,
        "message": message,
        "link": link,
        "related_id": related_id,
        "read": False,
        "created_at": utcnow(),
    }
    result = db.notifications.insert_one(doc)
    doc["_id"] = result.inserted_id
    _publish(doc)
    return doc

# --- Domain helpers ---

def notify_like(db: Database, owner_id: ObjectId, liker_name: str, commitment_id: str):
    return create_notification(
        db, owner_id, NotificationType.LIKE,
        f"{liker_name} liked your commitment",
        link=f"/commitments/{commitment_id}", related_id=commitment_id,
    )

def notify_comment(db: Database, owner_id: ObjectId, commenter_name: str, commitment_id: str, comment_id: str):
    return create_notification(
        db, owner_id, NotificationType.COMMENT,
        f"{commenter_name} commented on your commitment",
        link=f"/commitments/{commitment_id}#comment-{comment_id}", related_id=comment_id,
    )

def notify_challenge(db: Database, user_id: ObjectId, message: str, challenge_id: str):
    return create_notification(
        db, user_id, NotificationType.CHALLENGE, message,
        link=f"/challenges/{challenge_id}", related_id=challenge_id,
    )

def notify_join_request(db: Database, admin_ids: Iterable[ObjectId], requester_name: str, org_id: str, org_name: str):
    for admin_id in admin_ids:
        create_notification(
            db, admin_id, NotificationType.JOIN_REQUEST,
            f"{requester_name} asked to join {org_name}",
            link=f"/org/{org_id}/members", related_id=org_id,
        )

def notify_join_decision(db: Database, user_id: ObjectId, org_id: str, org_name: str, approved: bool):
    verdict = "approved" if approved else "rejected"
    return create_notification(
        db, user_id, NotificationType.JOIN_REQUEST,
        f"Your request to join {org_name} was {verdict}",
        link=f"/org/{org_id}/dashboard" if approved else "/organizations", related_id=org_id,
    )

def notify_badge(db: Database, user_id: ObjectId, badge_name: str):
    return create_notification(
        db, user_id, NotificationType.BADGE,
        f"You earned the '{badge_name}' badge!",
        link="/profile",
    )

def notify_milestone(db: Database, user_id: ObjectId, milestone_title: str, commitment_id: str):
    return create_notification(
        db, user_id, NotificationType.MILESTONE,
        f"Milestone reached: {milestone_title}",
        link=f"/commitments/{commitment_id}", related_id=commitment_id,
    )

# --- Inbox ---

def list_notifications(db: Database, user_id: ObjectId, unread_only: bool = False, limit: int = 50) -> Dict[str, Any]:
    query: Dict[str, Any] = {"user_id": user_id}
    if unread_only:
        query["read"] = False

    cursor = db.notifications.find(query).sort("created_at", DESCENDING).limit(limit)
    notifications: List[NotificationOut] = [NotificationOut.model_validate(doc) for doc in cursor]
    unread_count = db.notifications.count_documents({"user_id": user_id, "read": False})
    return {"notifications": notifications, "unread_count": unread_count}

def mark_read(db: Database, user_id: ObjectId, notification_id: ObjectId) -> NotificationOut:
    doc = db.notifications.find_one_and_update(
        {"_id": notification_id, "user_id": user_id},
        {"$set": {"read": True}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise AppError("Notification not found", 404)
    return NotificationOut.model_validate(doc)

def mark_all_read(db: Database, user_id: ObjectId) -> int:
    result = db.notifications.update_many({"user_id": user_id, "read": False}, {"$set": {"read": True}})
    return result.modified_count
