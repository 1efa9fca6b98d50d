"""Capability token signing."""

from capstore.security.signer import (
    TokenError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
    TokenSigner,
)

__all__ = [
    "TokenError",
    "TokenExpiredError",
    "TokenMalformedError",
    "TokenSignatureError",
    "TokenSigner",
]
