"""
OAuth ``state`` helpers (CSRF protection for the linking callback).

The state encodes the user id and an expiry, signed with
``config.oauth_state_secret``.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode

from connectors.errors import AuthError

STATE_TTL = 600  # seconds


def _sign(secret: str, raw: bytes) -> str:
    return hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()[:16]


def create_state(secret: str, user_id: str, *, ttl: int = STATE_TTL) -> str:
    """Create an opaque state string encoding user_id + expiry."""
    raw = json.dumps({"user_id": user_id, "exp": int(time.time()) + ttl}).encode()
    return urlsafe_b64encode(raw).decode() + "." + _sign(secret, raw)


def verify_state(secret: str, state: str) -> str:
    """Verify a state string and return its user_id. Raises AuthError on failure."""
    parts = state.split(".", 1)
    if len(parts) != 2:
        raise AuthError("Invalid OAuth state: bad format")
    try:
        raw = urlsafe_b64decode(parts[0])
        payload = json.loads(raw)
    except (binascii.Error, ValueError) as exc:
        raise AuthError(f"Invalid OAuth state: {exc}") from exc
    if not hmac.compare_digest(parts[1], _sign(secret, raw)):
        raise AuthError("Invalid OAuth state: bad signature")
    if payload.get("exp", 0) < time.time():
        raise AuthError("Invalid OAuth state: expired")
    return payload["user_id"]
