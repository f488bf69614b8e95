# FILE: backend/ecopromise/api/endpoints/organizations.py
# Organizations, membership, join requests, org challenges and CSR reporting.
# /my-requests/all is declared before the /{org_id} routes.

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from typing import Annotated, Optional, Literal
from datetime import datetime
from pymongo.database import Database

from ...models.common import success, parse_object_id
from ...models.user import UserInDB
from ...models.organization import (
    OrganizationCreate, OrganizationUpdate, OrganizationInDB, OrganizationType, AddMemberRequest,
)
from ...models.join_request import JoinRequestCreate, JoinRequestReview, JoinRequestStatus
from ...services.organization_service import organization_service
from ...services import analytics_service, challenge_service, report_service
from .dependencies import get_current_user, require_org_admin, require_org_member, get_db

router = APIRouter()

@router.post("", status_code=status.HTTP_201_CREATED)
def create_organization(
    org_in: OrganizationCreate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    organization = organization_service.create_organization(db, current_user, org_in)
    return success({"organization": organization})

@router.get("")
def list_organizations(
    org_type: Optional[OrganizationType] = Query(None, alias="type"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db)
):
    result = organization_service.list_organizations(
        db, org_type=org_type.value if org_type else None, search=search, page=page, limit=limit
    )
    return success(result)

@router.get("/my-requests/all")
def list_my_join_requests(
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    return success({"requests": organization_service.list_my_requests(db, current_user)})

@router.get("/{org_id}")
def get_organization(org_id: str, db: Database = Depends(get_db)):
    organization = organization_service.get_organization(db, parse_object_id(org_id, "organization ID"))
    return success({"organization": organization})

@router.patch("/{org_id}")
def update_organization(
    org_update: OrganizationUpdate,
    org: Annotated[OrganizationInDB, Depends(require_org_admin)],
    db: Database = Depends(get_db)
):
    organization = organization_service.update_organization(db, org.id, org_update)
    return success({"organization": organization})

@router.delete("/{org_id}")
def delete_organization(
    org: Annotated[OrganizationInDB, Depends(require_org_admin)],
    db: Database = Depends(get_db)
):
    organization_service.delete_organization(db, org.id)
    return success(message="Organization deleted")

# --- Members ---

@router.get("/{org_id}/members")
def list_members(
    org: Annotated[OrganizationInDB, Depends(require_org_member)],
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Literal["carbonSaved", "level", "commitments", "name"] = "carbonSaved",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db)
):
    result = organization_service.list_members(db, org.id, search=search, sort_by=sort_by, page=page, limit=limit)
    return success(result)

@router.post("/{org_id}/members", status_code=status.HTTP_201_CREATED)
def add_member(
    member_in: AddMemberRequest,
    org: Annotated[OrganizationInDB, Depends(require_org_admin)],
    db: Database = Depends(get_db)
):
    organization = organization_service.add_member(db, org.id, member_in)
    return success({"organization": organization}, message="Member added")

@router.delete("/{org_id}/members/{user_id}")
def remove_member(
    user_id: str,
    org: Annotated[OrganizationInDB, Depends(require_org_admin)],
    db: Database = Depends(get_db)
):
    organization_service.remove_member(db, org.id, parse_object_id(user_id, "user ID"))
    return success(message="Member removed")

@router.patch("/{org_id}/members/{user_id}/admin")
def toggle_member_admin(
    user_id: str,
    org: Annotated[OrganizationInDB, Depends(require_org_admin)],
    db: Database = Depends(get_db)
):
    result = organization_service.toggle_admin(db, org.id, parse_object_id(user_id, "user ID"))
    return success(result)

# --- Join Requests ---

@router.post("/{org_id}/join-request", status_code=status.HTTP_201_CREATED)
def create_join_request(
    org_id: str,
    request_in: JoinRequestCreate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    join_request = organization_service.create_join_request(
        db, parse_object_id(org_id, "organization ID"), current_user, request_in
    )
    return success({"request": join_request}, message="Join request sent")

@router.get("/{org_id}/join-requests")
def list_join_requests(
    org: Annotated[OrganizationInDB, Depends(require_org_admin)],
    status_filter: Optional[Literal["pending", "approved", "rejected", "all"]] = Query(
        JoinRequestStatus.PENDING.value, alias="status"
    ),
    db: Database = Depends(get_db)
):
    return success({"requests": organization_service.list_join_requests(db, org.id, status_filter)})

@router.patch("/{org_id}/join-requests/{request_id}")
def review_join_request(
    request_id: str,
    review: JoinRequestReview,
    org: Annotated[OrganizationInDB, Depends(require_org_admin)],
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    join_request = organization_service.review_join_request(
        db, org.id, parse_object_id(request_id, "request ID"), current_user, review.action
    )
    return success({"request": join_request})

# --- Challenges ---

@router.get("/{org_id}/challenges")
def list_org_challenges(
    org: Annotated[OrganizationInDB, Depends(require_org_member)],
    status_filter: Literal["active", "upcoming", "completed", "all"] = Query("active", alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db)
):
    result = challenge_service.list_for_organization(db, org.id, status=status_filter, page=page, limit=limit)
    return success(result)

# --- Dashboard & Reports ---

@router.get("/{org_id}/dashboard")
def get_org_dashboard(
    org: Annotated[OrganizationInDB, Depends(require_org_member)],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Database = Depends(get_db)
):
    return success(analytics_service.get_org_dashboard(db, org, start_date, end_date))

@router.get("/{org_id}/reports/csr")
def get_csr_report(
    org: Annotated[OrganizationInDB, Depends(require_org_member)],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Database = Depends(get_db)
):
    return success(analytics_service.get_csr_report(db, org, start_date, end_date))

@router.get("/{org_id}/reports/csr.pdf")
def download_csr_report(
    org: Annotated[OrganizationInDB, Depends(require_org_member)],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Database = Depends(get_db)
):
    report = analytics_service.get_csr_report(db, org, start_date, end_date)
    pdf_buffer = report_service.generate_csr_report_pdf(report)
    filename = f"csr-report-{org.id}.pdf"
    headers = {'Content-Disposition': f'attachment; filename="{filename}"'}
    return StreamingResponse(pdf_buffer, media_type="application/pdf", headers=headers)
