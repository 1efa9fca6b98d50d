"""JWT access token handling.

Access tokens are HS256, short-lived, and issued by the identity service that
shares ``JWT_SECRET_KEY`` with this one. capstore only needs the subject
claim: the opaque id of the authenticated user.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import jwt

from capstore.config import get_settings

logger = logging.getLogger(__name__)


def create_access_token(user_id: str) -> str:
    """Create a short-lived HS256 access token.

    Args:
        user_id: Opaque id of the user.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES),
        "type": "access",
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm="HS256")


def decode_access_token(token: str) -> str:
    """Decode and validate an access token.

    Args:
        token: The encoded JWT.

    Returns:
        user_id (sub claim).

    Raises:
        ValueError: If token is invalid or expired.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=["HS256"]
        )
    except jwt.ExpiredSignatureError:
        raise ValueError("Access token has expired")
    except jwt.InvalidTokenError as e:
        raise ValueError(f"Invalid access token: {e}")

    if payload.get("type") != "access":
        raise ValueError("Token is not an access token")

    sub = payload.get("sub")
    if not sub:
        raise ValueError("Token missing subject")
    return sub
