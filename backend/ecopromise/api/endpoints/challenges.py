# FILE: backend/ecopromise/api/endpoints/challenges.py

from fastapi import APIRouter, Depends, Query, status
from typing import Annotated, Literal
from pymongo.database import Database

from ...models.common import success, parse_object_id
from ...models.user import UserInDB
from ...models.challenge import ChallengeCreate
from ...services import challenge_service
from .dependencies import get_current_user, get_db

router = APIRouter()

@router.post("", status_code=status.HTTP_201_CREATED)
def create_challenge(
    challenge_in: ChallengeCreate,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    """Creates a challenge; the creator joins it automatically."""
    return success({"challenge": challenge_service.create_challenge(db, current_user, challenge_in)})

@router.get("")
def list_challenges(
    status_filter: Literal["active", "upcoming", "completed", "all"] = Query("active", alias="status"),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db)
):
    return success({"challenges": challenge_service.list_challenges(db, status=status_filter, limit=limit)})

@router.get("/{challenge_id}")
def get_challenge(challenge_id: str, db: Database = Depends(get_db)):
    challenge = challenge_service.get_challenge(db, parse_object_id(challenge_id, "challenge ID"))
    return success({"challenge": challenge})

@router.post("/{challenge_id}/join")
def join_challenge(
    challenge_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    challenge = challenge_service.join_challenge(db, parse_object_id(challenge_id, "challenge ID"), current_user)
    return success({"challenge": challenge}, message="Joined challenge")

@router.post("/{challenge_id}/leave")
def leave_challenge(
    challenge_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
):
    challenge = challenge_service.leave_challenge(db, parse_object_id(challenge_id, "challenge ID"), current_user)
    return success({"challenge": challenge}, message="Left challenge")
