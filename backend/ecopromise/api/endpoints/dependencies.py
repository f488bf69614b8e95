# FILE: backend/ecopromise/api/endpoints/dependencies.py
# Auth bridge dependencies.
# 1. The frontend forwards a bridge JWT (HS256, NEXTAUTH_SECRET) as "Authorization: Bearer".
# 2. get_current_user creates the user on first sight; get_optional_user never creates.
# 3. Organization guards resolve the {org_id} path parameter; system admins bypass membership.

from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Annotated, Optional, Any, Dict, Callable
from pymongo.database import Database
from jose import JWTError

from ...core.db import get_db
from ...core.errors import AppError
from ...core.security import decode_bridge_token
from ...services import user_service
from ...services.organization_service import organization_service
from ...models.common import parse_object_id
from ...models.user import UserInDB, UserRole
from ...models.organization import OrganizationInDB

bearer_scheme = HTTPBearer(auto_error=False, description="Bridge token minted by the frontend session")

def _decode_claims(token: str) -> Dict[str, Any]:
    try:
        payload = decode_bridge_token(token)
    except JWTError:
        raise AppError("Invalid or expired token", status.HTTP_401_UNAUTHORIZED)

    if not payload.get("sub") or not payload.get("email"):
        raise AppError("Invalid token payload", status.HTTP_401_UNAUTHORIZED)
    return payload

def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Database = Depends(get_db)
) -> UserInDB:
    if credentials is None or not credentials.credentials:
        raise AppError("No token provided", status.HTTP_401_UNAUTHORIZED)

    claims = _decode_claims(credentials.credentials)
    return user_service.get_or_create_from_claims(db, claims)

def get_optional_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Database = Depends(get_db)
) -> Optional[UserInDB]:
    """Anonymous callers and bad tokens both yield None; unknown users are not created here."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        claims = _decode_claims(credentials.credentials)
    except AppError:
        return None
    return user_service.get_user_by_email(db, str(claims["email"]))

def require_role(*roles: UserRole) -> Callable[..., UserInDB]:
    allowed = {role.value for role in roles}

    def checker(current_user: Annotated[UserInDB, Depends(get_current_user)]) -> UserInDB:
        if current_user.role.value not in allowed:
            raise AppError("Insufficient permissions", status.HTTP_403_FORBIDDEN)
        return current_user

    return checker

get_current_admin_user = require_role(UserRole.ADMIN)

def _load_org(org_id: str, db: Database) -> OrganizationInDB:
    return organization_service.get_or_404(db, parse_object_id(org_id, "organization ID"))

def require_org_member(
    org_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
) -> OrganizationInDB:
    org = _load_org(org_id, db)
    if current_user.is_system_admin or org.is_member(current_user.id) or org.is_admin(current_user.id):
        return org
    raise AppError("Not a member of this organization", status.HTTP_403_FORBIDDEN)

def require_org_admin(
    org_id: str,
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    db: Database = Depends(get_db)
) -> OrganizationInDB:
    org = _load_org(org_id, db)
    if current_user.is_system_admin or org.is_admin(current_user.id):
        return org
    raise AppError("Not an admin of this organization", status.HTTP_403_FORBIDDEN)
