# FILE: backend/ecopromise/core/security.py
# Bridge-token helpers. The frontend signs a short-lived HS256 JWT carrying the
# Google identity ({sub, email, name, picture}); the backend only verifies it.
# create_bridge_token exists for scripts and tests that need to act as the frontend.

from datetime import datetime, timedelta, timezone
from typing import Optional, Any
from jose import jwt

from ..core.config import settings

def create_bridge_token(
    sub: str,
    email: str,
    name: Optional[str] = None,
    picture: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Signs a bridge token the same way the frontend API client does."""
    if not settings.NEXTAUTH_SECRET:
        raise ValueError("NEXTAUTH_SECRET is not configured")

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.BRIDGE_TOKEN_EXPIRE_HOURS))
    to_encode: dict[str, Any] = {
        "sub": sub,
        "email": email,
        "iat": now,
        "exp": expire,
    }
    if name is not None:
        to_encode["name"] = name
    if picture is not None:
        to_encode["picture"] = picture

    return jwt.encode(to_encode, settings.NEXTAUTH_SECRET, algorithm=settings.ALGORITHM)

def decode_bridge_token(token: str) -> dict[str, Any]:
    """
    Verifies signature and expiry. Raises jose.JWTError (or ExpiredSignatureError)
    on failure; callers decide how to surface it.
    """
    return jwt.decode(token, settings.NEXTAUTH_SECRET, algorithms=[settings.ALGORITHM])
