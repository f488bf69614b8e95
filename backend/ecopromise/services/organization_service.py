# FILE: backend/ecopromise/services/organization_service.py
# Organizations, membership and join requests.
# 1. Membership lives on the organization (admin_user_ids / member_user_ids) and is
#    mirrored on users.organization_id; a user belongs to at most one organization.
# 2. Claiming a user is a conditional update on organization_id == None, so two
#    concurrent joins cannot both succeed.
# 3. The system 'admin' role is never downgraded by membership changes.

import logging
import re
from typing import List, Optional, Dict, Any
from bson import ObjectId
from pymongo.database import Database
from pymongo import ReturnDocument, DESCENDING, ASCENDING

from ..core.errors import AppError
from ..models.common import Pagination, utcnow
from ..models.user import UserInDB, UserRole
from ..models.organization import (
    OrganizationCreate, OrganizationUpdate, OrganizationInDB, OrganizationOut,
    OrganizationDetail, AddMemberRequest, MemberOut,
)
from ..models.join_request import (
    JoinRequestCreate, JoinRequestOut, JoinRequestStatus, ReviewAction,
)
from . import notification_service, user_service

logger = logging.getLogger(__name__)

MEMBER_SORTS = {
    "carbonSaved": [("total_carbon_saved", DESCENDING)],
    "level": [("level", DESCENDING), ("total_carbon_saved", DESCENDING)],
    "commitments": [("total_commitments", DESCENDING)],
    "name": [("name", ASCENDING)],
}

class OrganizationService:

    # --- Internal helpers ---

    def get_or_404(self, db: Database, org_id: ObjectId) -> OrganizationInDB:
        doc = db.organizations.find_one({"_id": org_id})
        if not doc:
            raise AppError("Organization not found", 404)
        return OrganizationInDB.model_validate(doc)

    def _to_out(self, doc: Dict[str, Any]) -> OrganizationOut:
        org = OrganizationOut.model_validate(doc)
        org.member_count = len(org.member_user_ids)
        return org

    def _claim_user(self, db: Database, user_id: ObjectId, org_id: ObjectId, role: UserRole) -> bool:
        """Links a user who is in no organization yet. Returns False if someone else got there first."""
        now = utcnow()
        claimed = db.users.update_one(
            {"_id": user_id, "organization_id": None},
            {"$set": {"organization_id": org_id, "updated_at": now}},
        ).modified_count == 1
        if claimed:
            self._set_role(db, user_id, role)
        return claimed

    def _set_role(self, db: Database, user_id: ObjectId, role: UserRole):
        db.users.update_one(
            {"_id": user_id, "role": {"$ne": UserRole.ADMIN.value}},
            {"$set": {"role": role.value}},
        )

    def _unlink_user(self, db: Database, user_id: ObjectId, org_id: ObjectId):
        db.users.update_one(
            {"_id": user_id, "organization_id": org_id, "role": {"$ne": UserRole.ADMIN.value}},
            {"$set": {"role": UserRole.USER.value}},
        )
        db.users.update_one(
            {"_id": user_id, "organization_id": org_id},
            {"$set": {"organization_id": None, "updated_at": utcnow()}},
        )

    def _join_requests_out(self, db: Database, docs: List[Dict[str, Any]]) -> List[JoinRequestOut]:
        users = user_service.get_summaries(db, (d["user_id"] for d in docs))
        org_ids = list({d["organization_id"] for d in docs})
        org_names = {
            str(o["_id"]): o.get("name")
            for o in db.organizations.find({"_id": {"$in": org_ids}}, {"name": 1})
        } if org_ids else {}
        out = []
        for doc in docs:
            item = JoinRequestOut.model_validate(doc)
            item.user = users.get(str(doc["user_id"]))
            item.organization_name = org_names.get(str(doc["organization_id"]))
            out.append(item)
        return out

    # --- CRUD ---

    def create_organization(self, db: Database, creator: UserInDB, data: OrganizationCreate) -> OrganizationOut:
        if creator.organization_id:
            raise AppError("User already belongs to an organization", 400)

        now = utcnow()
        doc = {
            **data.model_dump(),
            "type": data.type.value,
            "admin_user_ids": [creator.id],
            "member_user_ids": [creator.id],
            "total_org_carbon_saved": 0.0,
            "created_at": now,
            "updated_at": now,
        }
        result = db.organizations.insert_one(doc)
        doc["_id"] = result.inserted_id

        if not self._claim_user(db, creator.id, doc["_id"], UserRole.ORG_ADMIN):
            db.organizations.delete_one({"_id": doc["_id"]})
            raise AppError("User already belongs to an organization", 400)

        logger.info(f"--- [Organizations] {creator.email} created organization '{doc['name']}' ({doc['_id']}) ---")
        return self._to_out(doc)

    def list_organizations(self, db: Database, org_type: Optional[str] = None, search: Optional[str] = None,
                           page: int = 1, limit: int = 20) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if org_type:
            query["type"] = org_type
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]

        total = db.organizations.count_documents(query)
        cursor = (db.organizations.find(query)
                  .sort("created_at", DESCENDING)
                  .skip((page - 1) * limit)
                  .limit(limit))
        return {
            "organizations": [self._to_out(doc) for doc in cursor],
            "pagination": Pagination.build(page, limit, total),
        }

    def get_organization(self, db: Database, org_id: ObjectId) -> OrganizationDetail:
        doc = db.organizations.find_one({"_id": org_id})
        if not doc:
            raise AppError("Organization not found", 404)
        detail = OrganizationDetail.model_validate(doc)
        detail.member_count = len(detail.member_user_ids)

        summaries = user_service.get_summaries(db, detail.member_user_ids + detail.admin_user_ids)
        detail.admins = [summaries[str(uid)] for uid in detail.admin_user_ids if str(uid) in summaries]
        detail.members = [summaries[str(uid)] for uid in detail.member_user_ids if str(uid) in summaries]
        return detail

    def update_organization(self, db: Database, org_id: ObjectId, data: OrganizationUpdate) -> OrganizationOut:
        payload = {
            key: (value.value if hasattr(value, "value") else value)
            for key, value in data.model_dump(exclude_unset=True).items()
        }
        payload["updated_at"] = utcnow()
        doc = db.organizations.find_one_and_update(
            {"_id": org_id}, {"$set": payload}, return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise AppError("Organization not found", 404)
        return self._to_out(doc)

    def delete_organization(self, db: Database, org_id: ObjectId) -> None:
        self.get_or_404(db, org_id)
        db.users.update_many(
            {"organization_id": org_id, "role": {"$ne": UserRole.ADMIN.value}},
            {"$set": {"role": UserRole.USER.value}},
        )
        unlinked = db.users.update_many(
            {"organization_id": org_id},
            {"$set": {"organization_id": None, "updated_at": utcnow()}},
        ).modified_count
        db.join_requests.delete_many({"organization_id": org_id, "status": JoinRequestStatus.PENDING.value})
        db.organizations.delete_one({"_id": org_id})
        logger.info(f"--- [Organizations] Deleted organization {org_id}, unlinked {unlinked} member(s) ---")

    # --- Members ---

    def list_members(self, db: Database, org_id: ObjectId, search: Optional[str] = None,
                     sort_by: str = "carbonSaved", page: int = 1, limit: int = 20) -> Dict[str, Any]:
        org = self.get_or_404(db, org_id)
        query: Dict[str, Any] = {"_id": {"$in": list(org.member_user_ids)}}
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"username": {"$regex": pattern, "$options": "i"}},
                {"email": {"$regex": pattern, "$options": "i"}},
            ]

        total = db.users.count_documents(query)
        sort = MEMBER_SORTS.get(sort_by, MEMBER_SORTS["carbonSaved"])
        cursor = db.users.find(query).sort(sort).skip((page - 1) * limit).limit(limit)
        members = []
        for doc in cursor:
            member = MemberOut.model_validate(doc)
            member.is_admin = org.is_admin(doc["_id"])
            members.append(member)
        return {"members": members, "pagination": Pagination.build(page, limit, total)}

    def add_member(self, db: Database, org_id: ObjectId, data: AddMemberRequest) -> OrganizationOut:
        org = self.get_or_404(db, org_id)
        user = user_service.get_user_by_id(db, data.user_id)
        if not user:
            raise AppError("User not found", 404)
        if org.is_member(user.id):
            raise AppError("User is already a member of this organization", 400)

        role = UserRole.ORG_ADMIN if data.make_admin else UserRole.ORG_MEMBER
        if not self._claim_user(db, user.id, org_id, role):
            raise AppError("User already belongs to an organization", 400)

        update: Dict[str, Any] = {"member_user_ids": user.id}
        if data.make_admin:
            update["admin_user_ids"] = user.id
        doc = db.organizations.find_one_and_update(
            {"_id": org_id},
            {"$addToSet": update, "$set": {"updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        logger.info(f"Added user {user.id} to organization {org_id} (admin={data.make_admin})")
        return self._to_out(doc)

    def remove_member(self, db: Database, org_id: ObjectId, user_id: ObjectId) -> None:
        org = self.get_or_404(db, org_id)
        if not org.is_member(user_id):
            raise AppError("User is not a member of this organization", 400)
        if org.is_admin(user_id) and len(org.admin_user_ids) == 1:
            raise AppError("Cannot remove the last admin", 400)

        db.organizations.update_one(
            {"_id": org_id},
            {"$pull": {"member_user_ids": user_id, "admin_user_ids": user_id}, "$set": {"updated_at": utcnow()}},
        )
        self._unlink_user(db, user_id, org_id)
        logger.info(f"Removed user {user_id} from organization {org_id}")

    def toggle_admin(self, db: Database, org_id: ObjectId, user_id: ObjectId) -> Dict[str, Any]:
        org = self.get_or_404(db, org_id)
        if not org.is_member(user_id):
            raise AppError("User is not a member of this organization", 400)

        if org.is_admin(user_id):
            if len(org.admin_user_ids) == 1:
                raise AppError("Cannot remove the last admin", 400)
            db.organizations.update_one({"_id": org_id}, {"$pull": {"admin_user_ids": user_id}})
            self._set_role(db, user_id, UserRole.ORG_MEMBER)
            is_admin = False
        else:
            db.organizations.update_one({"_id": org_id}, {"$addToSet": {"admin_user_ids": user_id}})
            self._set_role(db, user_id, UserRole.ORG_ADMIN)
            is_admin = True
        return {"user_id": str(user_id), "is_admin": is_admin}

    # --- Join Requests ---

    def create_join_request(self, db: Database, org_id: ObjectId, user: UserInDB, data: JoinRequestCreate) -> JoinRequestOut:
        org = self.get_or_404(db, org_id)
        if user.organization_id:
            raise AppError("User already belongs to an organization", 400)
        if db.join_requests.find_one({"user_id": user.id, "organization_id": org_id,
                                      "status": JoinRequestStatus.PENDING.value}):
            raise AppError("A pending join request already exists", 400)

        now = utcnow()
        doc = {
            "user_id": user.id,
            "organization_id": org_id,
            "status": JoinRequestStatus.PENDING.value,
            "message": data.message,
            "reviewed_by": None,
            "reviewed_at": None,
            "created_at": now,
            "updated_at": now,
        }
        result = db.join_requests.insert_one(doc)
        doc["_id"] = result.inserted_id

        notification_service.notify_join_request(db, org.admin_user_ids, user.name, str(org_id), org.name)
        return self._join_requests_out(db, [doc])[0]

    def list_join_requests(self, db: Database, org_id: ObjectId, status: Optional[str] = None) -> List[JoinRequestOut]:
        query: Dict[str, Any] = {"organization_id": org_id}
        if status and status != "all":
            query["status"] = status
        docs = list(db.join_requests.find(query).sort("created_at", DESCENDING))
        return self._join_requests_out(db, docs)

    def review_join_request(self, db: Database, org_id: ObjectId, request_id: ObjectId,
                            reviewer: UserInDB, action: ReviewAction) -> JoinRequestOut:
        org = self.get_or_404(db, org_id)
        request = db.join_requests.find_one({"_id": request_id, "organization_id": org_id})
        if not request:
            raise AppError("Join request not found", 404)
        if request["status"] != JoinRequestStatus.PENDING.value:
            raise AppError("Join request has already been reviewed", 400)

        approved = action == ReviewAction.APPROVE
        if approved:
            if not self._claim_user(db, request["user_id"], org_id, UserRole.ORG_MEMBER):
                raise AppError("User already belongs to an organization", 400)
            db.organizations.update_one(
                {"_id": org_id},
                {"$addToSet": {"member_user_ids": request["user_id"]}, "$set": {"updated_at": utcnow()}},
            )

        now = utcnow()
        doc = db.join_requests.find_one_and_update(
            {"_id": request_id},
            {"$set": {
                "status": (JoinRequestStatus.APPROVED if approved else JoinRequestStatus.REJECTED).value,
                "reviewed_by": reviewer.id,
                "reviewed_at": now,
                "updated_at": now,
            }},
            return_document=ReturnDocument.AFTER,
        )
        notification_service.notify_join_decision(db, request["user_id"], str(org_id), org.name, approved)
        logger.info(f"Join request {request_id} {doc['status']} by {reviewer.id}")
        return self._join_requests_out(db, [doc])[0]

    def list_my_requests(self, db: Database, user: UserInDB) -> List[JoinRequestOut]:
        docs = list(db.join_requests.find({"user_id": user.id}).sort("created_at", DESCENDING))
        return self._join_requests_out(db, docs)

# --- CRITICAL INSTANTIATION ---
organization_service = OrganizationService()
