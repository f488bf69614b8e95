# FILE: backend/ecopromise/api/endpoints/commitments.py
# Commitments, likes, comments, progress and milestones.
# Reads use optional auth so anonymous visitors can browse public commitments.

from fastapi import APIRouter, Depends, Query, status
from typing import Annotated, Optional
from pymongo.database import Database

from ...models.common import success, parse_object_id
from ...models.user import UserInDB
from ...models.commitment import CommitmentCreate, CommitmentUpdate, CommitmentCategory, CommitmentStatus
from ...models.comment import CommentCreate
from ...models.progress import ProgressUpdateCreate
from ...services.commitment_service import CommitmentService
from .dependencies import get_current_user, get_optional_user, get_db

router = APIRouter()

@router.post("", status_code=status.HTTP_201_CREATED)
def create_commitment(
    commitment_in: CommitmentCreate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    """Interprets the pledge with the AI collaborator and stores it with suggested milestones."""
    return success(CommitmentService(db).create(current_user, commitment_in))

@router.get("")
def list_commitments(
    current_user: Annotated[Optional[UserInDB], Depends(get_optional_user)],
    category: Optional[CommitmentCategory] = None,
    status_filter: Optional[CommitmentStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db)
):
    feed = CommitmentService(db).list_feed(
        current_user,
        category=category.value if category else None,
        status=status_filter.value if status_filter else None,
        page=page,
        limit=limit,
    )
    return success(feed)

@router.get("/user/{user_id}")
def list_user_commitments(
    user_id: str,
    current_user: Annotated[Optional[UserInDB], Depends(get_optional_user)],
    status_filter: Optional[CommitmentStatus] = Query(None, alias="status"),
    db: Database = Depends(get_db)
):
    commitments = CommitmentService(db).list_for_user(
        user_id, current_user, status=status_filter.value if status_filter else None
    )
    return success({"commitments": commitments, "count": len(commitments)})

@router.get("/{commitment_id}")
def get_commitment(
    commitment_id: str,
    current_user: Annotated[Optional[UserInDB], Depends(get_optional_user)],
    db: Database = Depends(get_db)
):
    return success(CommitmentService(db).get(parse_object_id(commitment_id), current_user))

@router.patch("/{commitment_id}")
def update_commitment(
    commitment_id: str,
    commitment_update: CommitmentUpdate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    commitment = CommitmentService(db).update(parse_object_id(commitment_id), current_user, commitment_update)
    return success({"commitment": commitment})

@router.delete("/{commitment_id}")
def delete_commitment(
    commitment_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    CommitmentService(db).delete(parse_object_id(commitment_id), current_user)
    return success(message="Commitment deleted")

# --- Likes ---

@router.post("/{commitment_id}/like")
def toggle_like(
    commitment_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    return success(CommitmentService(db).toggle_like(parse_object_id(commitment_id), current_user))

# --- Comments ---

@router.get("/{commitment_id}/comments")
def list_comments(
    commitment_id: str,
    current_user: Annotated[Optional[UserInDB], Depends(get_optional_user)],
    db: Database = Depends(get_db)
):
    comments = CommitmentService(db).list_comments(parse_object_id(commitment_id), current_user)
    return success({"comments": comments})

@router.post("/{commitment_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    commitment_id: str,
    comment_in: CommentCreate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    comment = CommitmentService(db).add_comment(parse_object_id(commitment_id), current_user, comment_in)
    return success({"comment": comment})

@router.delete("/{commitment_id}/comments/{comment_id}")
def delete_comment(
    commitment_id: str,
    comment_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    CommitmentService(db).delete_comment(
        parse_object_id(commitment_id), parse_object_id(comment_id, "comment ID"), current_user
    )
    return success(message="Comment deleted")

# --- Progress & Milestones ---

@router.post("/{commitment_id}/progress", status_code=status.HTTP_201_CREATED)
def add_progress(
    commitment_id: str,
    progress_in: ProgressUpdateCreate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    return success(CommitmentService(db).add_progress(parse_object_id(commitment_id), current_user, progress_in))

@router.get("/{commitment_id}/progress")
def list_progress(
    commitment_id: str,
    current_user: Annotated[Optional[UserInDB], Depends(get_optional_user)],
    db: Database = Depends(get_db)
):
    updates = CommitmentService(db).list_progress(parse_object_id(commitment_id), current_user)
    return success({"progress": updates})

@router.get("/{commitment_id}/milestones")
def list_milestones(
    commitment_id: str,
    current_user: Annotated[Optional[UserInDB], Depends(get_optional_user)],
    db: Database = Depends(get_db)
):
    milestones = CommitmentService(db).list_milestones(parse_object_id(commitment_id), current_user)
    return success({"milestones": milestones})
