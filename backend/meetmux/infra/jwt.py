"""Centralised JWT helpers for access tokens.

Uses HS256 with the application's secret key. Tokens are issued by the
identity service; this backend only validates them (and encodes them in tests
and local tooling).
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from meetmux.settings import settings

ACCESS_TTL_SECONDS = 7 * 24 * 3600


def encode_access(payload: dict[str, object], *, ttl_seconds: int = ACCESS_TTL_SECONDS) -> str:
    """Encode an access token with issued-at/expiry defaults."""
    now = int(time.time())
    body: Dict[str, Any] = {"iat": now, "exp": now + ttl_seconds}
    body.update(payload)
    return jwt.encode(body, settings.secret_key, algorithm="HS256")


def decode_access(token: str) -> dict[str, object]:
    """Decode and validate an access token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=["HS256"],
        leeway=5,
        options={"require": ["exp", "iat"]},
    )
    # Legacy tokens carry the user id as "id" instead of "sub"
    if not payload.get("sub") and not payload.get("id"):
        raise InvalidTokenError("missing_claim:sub")
    return payload  # type: ignore[return-value]
