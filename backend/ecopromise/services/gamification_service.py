# FILE: backend/ecopromise/services/gamification_service.py
# Denormalised user counters, levels and badges.

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List
from bson import ObjectId
from pymongo.database import Database
from pymongo import ReturnDocument

from ..models.badge import BADGE_CATALOG
from ..models.common import utcnow
from . import notification_service

logger = logging.getLogger(__name__)

CARBON_PER_LEVEL = 50.0
MAX_LEVEL = 50

@dataclass(frozen=True)
class BadgeRule:
    key: str
    events: tuple
    earned: Callable[[Dict], bool]

    @property
    def name(self) -> str:
        return BADGE_CATALOG[self.key].name

BADGES: List[BadgeRule] = [
    BadgeRule("first_commitment", ("commitment_created",), lambda u: u.get("total_commitments", 0) >= 1),
    BadgeRule("committed_5", ("commitment_created",), lambda u: u.get("total_commitments", 0) >= 5),
    BadgeRule("committed_20", ("commitment_created",), lambda u: u.get("total_commitments", 0) >= 20),
    BadgeRule("carbon_10kg", ("progress_logged",), lambda u: u.get("total_carbon_saved", 0) >= 10),
    BadgeRule("carbon_100kg", ("progress_logged",), lambda u: u.get("total_carbon_saved", 0) >= 100),
    BadgeRule("carbon_1000kg", ("progress_logged",), lambda u: u.get("total_carbon_saved", 0) >= 1000),
    BadgeRule("first_milestone", ("milestone_completed",), lambda u: u.get("completed_milestones", 0) >= 1),
    BadgeRule("milestones_10", ("milestone_completed",), lambda u: u.get("completed_milestones", 0) >= 10),
]

def level_for(total_carbon_saved: float) -> int:
    return min(MAX_LEVEL, 1 + int(max(total_carbon_saved, 0.0) // CARBON_PER_LEVEL))

def update_user_stats(
    db: Database,
    user_id: ObjectId,
    commitments_delta: int = 0,
    carbon_delta: float = 0.0,
    milestones_delta: int = 0,
) -> Dict:
    """Applies counter deltas atomically, then clamps at zero and recomputes the level."""
    inc = {}
    if commitments_delta:
        inc["total_commitments"] = commitments_delta
    if carbon_delta:
        inc["total_carbon_saved"] = carbon_delta
    if milestones_delta:
        inc["completed_milestones"] = milestones_delta

    update: Dict = {"$set": {"updated_at": utcnow()}}
    if inc:
        update["$inc"] = inc
    user = db.users.find_one_and_update({"_id": user_id}, update, return_document=ReturnDocument.AFTER)
    if not user:
        logger.warning(f"Stats update skipped, user {user_id} not found")
        return {}

    fixes = {}
    for field in ("total_commitments", "total_carbon_saved", "completed_milestones"):
        if user.get(field, 0) < 0:
            fixes[field] = 0
    new_level = level_for(fixes.get("total_carbon_saved", user.get("total_carbon_saved", 0.0)))
    if new_level != user.get("level", 1):
        fixes["level"] = new_level

    if fixes:
        user = db.users.find_one_and_update({"_id": user_id}, {"$set": fixes}, return_document=ReturnDocument.AFTER)
    return user

def award_badges(db: Database, user_id: ObjectId, event: str) -> List[str]:
    """Grants every badge whose rule now holds for this event. Returns newly granted keys."""
    user = db.users.find_one({"_id": user_id})
    if not user:
        return []

    owned = set(user.get("badges", []))
    granted = []
    for badge in BADGES:
        if event not in badge.events or badge.key in owned or not badge.earned(user):
            continue
        # The filter makes the grant idempotent under concurrent events
        result = db.users.update_one(
            {"_id": user_id, "badges": {"$ne": badge.key}},
            {"$addToSet": {"badges": badge.key}},
        )
        if result.modified_count:
            granted.append(badge.key)
            notification_service.notify_badge(db, user_id, badge.name)

    if granted:
        logger.info(f"User {user_id} earned badges {granted} on '{event}'")
    return granted
