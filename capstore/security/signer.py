"""HMAC-signed capability tokens.

A token is the URL-safe base64 encoding (padding stripped) of::

    {"expiry":<epoch ms>,"payload":{...}}.<hex hmac-sha256>

The JSON is serialized with sorted keys and compact separators so the same
payload and expiry always produce the same bytes. Verification splits on the
last dot, so dots inside the JSON are harmless, and checks the MAC over the
raw bytes before anything is parsed.

Examples:
    >>> signer = TokenSigner(secret="a-long-enough-secret")
    >>> token = signer.sign({"blobId": "ab12"}, ttl_seconds=300)
    >>> signer.verify(token)
    {'blobId': 'ab12'}

Tests:
    - tests/unit/test_signer.py
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any, Callable


class TokenError(ValueError):
    """Base class for capability token failures."""


class TokenMalformedError(TokenError):
    """Token cannot be decoded or has no signature separator."""


class TokenSignatureError(TokenError):
    """Token MAC does not match its contents."""


class TokenExpiredError(TokenError):
    """Token was correctly signed but its expiry has passed."""


_SEPARATOR = b"."


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(token: str) -> bytes:
    padded = token + "=" * (-len(token) % 4)
    return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)


class TokenSigner:
    """Signs and verifies self-contained, time-boxed capability tokens.

    Attributes:
        clock: Callable returning the current time in seconds since the epoch.
    """

    def __init__(
        self,
        secret: str | bytes,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("Signing secret must not be empty")
        self._key = secret.encode("utf-8") if isinstance(secret, str) else secret
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _mac(self, data: bytes) -> bytes:
        return hmac.new(self._key, data, hashlib.sha256).hexdigest().encode("ascii")

    def sign(self, payload: dict[str, Any], ttl_seconds: int) -> str:
        """Create a token granting ``payload`` for ``ttl_seconds``.

        Args:
            payload: JSON-serializable map describing the capability.
            ttl_seconds: Lifetime of the token; must be positive.

        Returns:
            Transport-safe token string.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        expiry = self._now_ms() + int(ttl_seconds * 1000)
        data = json.dumps(
            {"payload": payload, "expiry": expiry},
            separators=(",", ":"),
            sort_keys=True,
        ).encode("utf-8")
        return _b64encode(data + _SEPARATOR + self._mac(data))

    def verify(self, token: str) -> dict[str, Any]:
        """Check a token's signature and expiry and return its payload.

        Raises:
            TokenMalformedError: Token is empty, not base64, or has no separator.
            TokenSignatureError: MAC mismatch.
            TokenExpiredError: Signature valid but expiry has passed.
        """
        if not token:
            raise TokenMalformedError("Empty token")

        try:
            decoded = _b64decode(token)
        except (binascii.Error, ValueError) as e:
            raise TokenMalformedError("Token is not valid base64") from e

        data, sep, sig = decoded.rpartition(_SEPARATOR)
        if not sep or not data:
            raise TokenMalformedError("Token has no signature separator")

        if not hmac.compare_digest(sig, self._mac(data)):
            raise TokenSignatureError("Invalid token signature")

        try:
            parsed = json.loads(data.decode("utf-8"))
            expiry = int(parsed["expiry"])
            payload = parsed["payload"]
        except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
            raise TokenMalformedError("Token body is not a signed envelope") from e

        if not isinstance(payload, dict):
            raise TokenMalformedError("Token payload must be an object")

        if self._now_ms() > expiry:
            raise TokenExpiredError("Token has expired")

        return payload
