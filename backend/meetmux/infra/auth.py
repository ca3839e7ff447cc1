"""Authentication helpers for FastAPI endpoints and Socket.IO channels.

- Bearer JWT verification (HS256) using settings.secret_key.
- Dev headers (X-User-Id) are only respected in development.
- An optional-user dependency for routes that work anonymously.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from meetmux.infra import jwt as jwt_helper
from meetmux.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	email: Optional[str] = None
	name: Optional[str] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		# Normalise all decode failures to invalid_token for the API surface
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or payload.get("id") or "").strip()
	if not sub:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	email = payload.get("email")
	name = payload.get("name")
	return AuthenticatedUser(
		id=sub,
		email=str(email) if email is not None else None,
		name=str(name) if name is not None else None,
	)


def _resolve(
	x_user_id: Optional[str],
	credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[AuthenticatedUser]:
	# Prefer bearer JWT when present
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	# In dev only, allow X-User-Id fallback for local tools
	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=x_user_id.strip())
	return None


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user or fail with 401."""
	user = _resolve(x_user_id, credentials)
	if user is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	return user


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Resolve the caller when credentials are present; anonymous otherwise.

	A presented but invalid bearer token still fails with 401.
	"""
	return _resolve(x_user_id, credentials)


def user_id_from_token(token: str) -> str:
	"""Return the user id carried by a bearer token (Socket.IO handshakes)."""
	token = (token or "").strip()
	if token.lower().startswith("bearer "):
		token = token.split(" ", 1)[1].strip()
	if not token:
		raise ValueError("empty_token")
	try:
		return verify_access_jwt(token).id
	except HTTPException:
		raise ValueError("invalid_token") from None
