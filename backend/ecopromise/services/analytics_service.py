# FILE: backend/ecopromise/services/analytics_service.py
# Read-side aggregations for the wall, the personal dashboard and organization CSR reporting.
# 1. Grouping runs in MongoDB ($match + $group on plain fields); totals are folded in Python.
# 2. The carbon trend is bucketed per calendar day (UTC) in Python.

import structlog
from collections import defaultdict
from datetime import datetime, timedelta
from typing import List, Optional, Dict, Any
from bson import ObjectId
from pymongo.database import Database
from pymongo import DESCENDING

from ..models.badge import describe_badges
from ..models.common import UserSummary, utcnow, to_naive_utc
from ..models.user import UserInDB, UserOut
from ..models.organization import OrganizationInDB, OrganizationOut
from ..models.progress import ProgressUpdateOut
from ..models.commitment import CommitmentStatus, Visibility
from . import user_service

logger = structlog.get_logger(__name__)

TREND_DAYS = 30
TOP_CONTRIBUTORS = 10
TOP_CATEGORIES = 5

def _created_range(start_date: Optional[datetime], end_date: Optional[datetime]) -> Dict[str, Any]:
    created: Dict[str, Any] = {}
    if start_date:
        created["$gte"] = to_naive_utc(start_date)
    if end_date:
        created["$lte"] = to_naive_utc(end_date)
    return {"created_at": created} if created else {}

def _category_sums(db: Database, match: Dict[str, Any]) -> List[Dict[str, Any]]:
    pipeline = [
        {"$match": match},
        {"$group": {
            "_id": "$category",
            "count": {"$sum": 1},
            "carbon_saved": {"$sum": "$actual_carbon_saved"},
            "estimated_carbon_savings": {"$sum": "$estimated_carbon_savings.total"},
        }},
        {"$sort": {"carbon_saved": -1}},
    ]
    return [
        {
            "category": row["_id"],
            "count": row["count"],
            "carbon_saved": row.get("carbon_saved") or 0.0,
            "estimated_carbon_savings": row.get("estimated_carbon_savings") or 0.0,
        }
        for row in db.commitments.aggregate(pipeline)
    ]

def _rounded(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {**row, "carbon_saved": round(row["carbon_saved"], 2),
         "estimated_carbon_savings": round(row["estimated_carbon_savings"], 2)}
        for row in rows
    ]

def _category_breakdown(db: Database, match: Dict[str, Any]) -> List[Dict[str, Any]]:
    return _rounded(_category_sums(db, match))

def _status_counts(db: Database, match: Dict[str, Any]) -> Dict[str, int]:
    pipeline = [{"$match": match}, {"$group": {"_id": "$status", "count": {"$sum": 1}}}]
    return {row["_id"]: row["count"] for row in db.commitments.aggregate(pipeline)}

def _commitment_totals(db: Database, match: Dict[str, Any]) -> Dict[str, Any]:
    # Totals come from the unrounded sums; only the per-category rows are rounded for display
    sums = _category_sums(db, match)
    statuses = _status_counts(db, match)
    return {
        "total_commitments": sum(row["count"] for row in sums),
        "active_commitments": statuses.get(CommitmentStatus.ACTIVE.value, 0),
        "completed_commitments": statuses.get(CommitmentStatus.COMPLETED.value, 0),
        "total_carbon_saved": round(sum(row["carbon_saved"] for row in sums), 2),
        "estimated_carbon_savings": round(sum(row["estimated_carbon_savings"] for row in sums), 2),
        "category_breakdown": _rounded(sums),
    }

def _participation(db: Database, member_ids: List[ObjectId]) -> Dict[str, Any]:
    member_count = len(member_ids)
    active_members = db.users.count_documents({"_id": {"$in": member_ids}, "total_commitments": {"$gt": 0}}) if member_ids else 0
    rate = (active_members / member_count * 100) if member_count else 0.0
    return {
        "member_count": member_count,
        "active_members": active_members,
        "participation_rate": round(rate, 1),
    }

def _organization_out(org: OrganizationInDB) -> OrganizationOut:
    out = OrganizationOut.model_validate(org.model_dump(by_alias=True))
    out.member_count = len(org.member_user_ids)
    return out

def _percent_change(current: float, previous: float) -> float:
    return round((current - previous) / (previous or 1) * 100, 1)

# --- Wall ---

def get_wall_stats(db: Database) -> Dict[str, Any]:
    carbon = list(db.users.aggregate([
        {"$group": {"_id": None, "total": {"$sum": "$total_carbon_saved"}}},
    ]))
    public = {"visibility": Visibility.PUBLIC.value}
    return {
        "total_users": db.users.count_documents({}),
        "total_commitments": db.commitments.count_documents({}),
        "active_commitments": db.commitments.count_documents({"status": CommitmentStatus.ACTIVE.value}),
        "total_carbon_saved": round(carbon[0]["total"], 2) if carbon else 0.0,
        "top_categories": _category_breakdown(db, public)[:TOP_CATEGORIES],
    }

# --- Personal dashboard ---

def get_user_dashboard(db: Database, user: UserInDB) -> Dict[str, Any]:
    totals = _commitment_totals(db, {"user_id": user.id})
    recent = db.progress_updates.find({"user_id": user.id}).sort("created_at", DESCENDING).limit(10)
    return {
        "user": UserOut.model_validate(user.model_dump(by_alias=True)),
        "stats": {
            "total_commitments": totals["total_commitments"],
            "active_commitments": totals["active_commitments"],
            "completed_commitments": totals["completed_commitments"],
            "total_carbon_saved": round(user.total_carbon_saved, 2),
            "estimated_carbon_savings": totals["estimated_carbon_savings"],
            "completed_milestones": user.completed_milestones,
            "level": user.level,
            "badges": describe_badges(user.badges),
        },
        "category_breakdown": totals["category_breakdown"],
        "recent_progress": [ProgressUpdateOut.model_validate(doc) for doc in recent],
    }

# --- Organization ---

def _carbon_trend(db: Database, member_ids: List[ObjectId]) -> List[Dict[str, Any]]:
    since = utcnow() - timedelta(days=TREND_DAYS)
    per_day: Dict[str, float] = defaultdict(float)
    cursor = db.progress_updates.find(
        {"user_id": {"$in": member_ids}, "created_at": {"$gte": since}},
        {"created_at": 1, "delta_carbon_saved": 1},
    )
    for doc in cursor:
        per_day[doc["created_at"].strftime("%Y-%m-%d")] += doc.get("delta_carbon_saved", 0.0)
    return [{"date": day, "carbon_saved": round(per_day[day], 2)} for day in sorted(per_day)]

def _active_org_challenges(db: Database, org_id: ObjectId) -> int:
    now = utcnow()
    return db.challenges.count_documents({
        "created_by_org_id": org_id,
        "status": "active",
        "start_date": {"$lte": now},
        "end_date": {"$gte": now},
    })

def get_org_dashboard(db: Database, org: OrganizationInDB,
                      start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Dict[str, Any]:
    member_ids = list(org.member_user_ids)
    match = {"user_id": {"$in": member_ids}, **_created_range(start_date, end_date)}
    totals = _commitment_totals(db, match)
    breakdown = totals.pop("category_breakdown")

    top = db.users.find({"_id": {"$in": member_ids}}, user_service.SUMMARY_PROJECTION) \
        .sort("total_carbon_saved", DESCENDING).limit(TOP_CONTRIBUTORS)

    logger.info("org_dashboard_built", organization_id=str(org.id), members=len(member_ids),
                commitments=totals["total_commitments"])
    return {
        "organization": _organization_out(org),
        "stats": {
            **totals,
            **_participation(db, member_ids),
            "active_challenges": _active_org_challenges(db, org.id),
        },
        "category_breakdown": breakdown,
        "carbon_trend": _carbon_trend(db, member_ids) if member_ids else [],
        "top_contributors": [UserSummary.model_validate(doc) for doc in top],
    }

def get_csr_report(db: Database, org: OrganizationInDB,
                   start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Carbon and participation totals over the members' commitments created in range.
    With both dates, adds a comparison against the preceding period of equal length
    whenever that period has any commitments.
    """
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    organization = _organization_out(org)
    member_ids = list(org.member_user_ids)

    if not member_ids:
        return {
            "organization": organization,
            "period": {"start_date": start_date, "end_date": end_date},
            "stats": {
                "total_carbon_saved": 0.0,
                "total_commitments": 0,
                "active_commitments": 0,
                "completed_commitments": 0,
                "estimated_carbon_savings": 0.0,
                "member_count": 0,
                "active_members": 0,
                "participation_rate": 0.0,
            },
            "category_breakdown": [],
        }

    totals = _commitment_totals(db, {"user_id": {"$in": member_ids}, **_created_range(start_date, end_date)})
    breakdown = totals.pop("category_breakdown")
    report: Dict[str, Any] = {
        "organization": organization,
        "period": {"start_date": start_date, "end_date": end_date},
        "stats": {**totals, **_participation(db, member_ids)},
        "category_breakdown": breakdown,
    }

    if start_date and end_date:
        previous_start = start_date - (end_date - start_date)
        previous = _commitment_totals(db, {
            "user_id": {"$in": member_ids},
            "created_at": {"$gte": previous_start, "$lte": start_date},
        })
        if previous["total_commitments"]:
            report["comparison"] = {
                "previous_period": {
                    "start_date": previous_start,
                    "end_date": start_date,
                    "total_carbon_saved": previous["total_carbon_saved"],
                    "total_commitments": previous["total_commitments"],
                },
                "changes": {
                    "carbon_saved_change": _percent_change(totals["total_carbon_saved"], previous["total_carbon_saved"]),
                    "commitments_change": _percent_change(totals["total_commitments"], previous["total_commitments"]),
                },
            }

    logger.info("csr_report_built", organization_id=str(org.id),
                carbon=report["stats"]["total_carbon_saved"], has_comparison="comparison" in report)
    return report
