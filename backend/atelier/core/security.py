"""
Access token helpers

Issues and validates the bearer tokens the API uses to resolve the calling
actor. Login and account management live in the enclosing storefront.
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

import jwt

from atelier.core.permissions import Actor, UserRole
from atelier.core.settings import settings

ALGORITHM = "HS256"


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed access token for an actor

    Args:
        user_id: User ID to encode in token
        role: One of the UserRole values
        expires_delta: Optional custom expiration time

    Returns:
        JWT access token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.utcnow()
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "exp": now + expires_delta,
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a token

    Returns:
        Token payload dict if valid, None if invalid/expired
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None


def get_actor_from_token(token: str) -> Optional[Actor]:
    """
    Resolve the actor carried by an access token

    Returns:
        Actor if the token is a valid access token with a known role, None otherwise
    """
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        return None

    role = payload.get("role")
    if role not in {r.value for r in UserRole}:
        return None

    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        return None

    return Actor(user_id=user_id, role=role)
