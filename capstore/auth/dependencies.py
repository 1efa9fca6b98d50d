"""FastAPI dependencies for authentication.

The dependency is awaited before the route body runs, so a handler never
sees a request whose identity is still being verified.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from capstore.auth.jwt_handler import decode_access_token

logger = logging.getLogger(__name__)


async def get_current_user_id(request: Request) -> str:
    """Resolve the calling user's id from the ``Authorization: Bearer`` header.

    Raises:
        HTTPException 401: If the header is missing or the token is invalid.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header[len("Bearer "):]

    try:
        return decode_access_token(token)
    except ValueError as e:
        logger.info(f"Rejected access token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
