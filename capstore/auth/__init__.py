"""Auth module - bearer access token verification."""

from capstore.auth.dependencies import get_current_user_id
from capstore.auth.jwt_handler import create_access_token, decode_access_token

__all__ = [
    "create_access_token",
    "decode_access_token",
    "get_current_user_id",
]
