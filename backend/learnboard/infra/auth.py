"""Authentication helpers for FastAPI endpoints.

The identity collaborator issues and verifies credentials; this module only
turns an already-signed bearer token into the caller context `{id, role}`.
Dev headers are respected in development only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from learnboard.infra import jwt as jwt_helper
from learnboard.obs import metrics as obs_metrics
from learnboard.settings import settings


class Role(str, Enum):
	"""Closed set of caller roles."""

	USER = "user"
	ADMIN = "admin"
	SYSTEM = "system"
	BOT = "bot"

	@classmethod
	def parse(cls, value: object) -> "Role":
		text = str(value or "").strip().lower()
		for role in cls:
			if role.value == text:
				return role
		return cls.USER


@dataclass(slots=True, frozen=True)
class AuthenticatedUser:
	id: str
	role: Role = Role.USER

	@property
	def is_admin(self) -> bool:
		return self.role is Role.ADMIN


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		obs_metrics.inc_auth_reject("invalid_token")
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	return AuthenticatedUser(id=sub, role=Role.parse(payload.get("role")))


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser | None:
	"""Resolve the caller when credentials are present, else None (anonymous).

	A bearer token that fails verification is still rejected; only the absence
	of credentials yields an anonymous caller.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	# In dev only, allow X-User-* fallback for local tools
	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=x_user_id.strip(), role=Role.parse(x_user_role))
	return None


async def get_current_user(
	user: AuthenticatedUser | None = Depends(get_optional_user),
) -> AuthenticatedUser:
	if user is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	return user


async def get_admin_user(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
	if user.is_admin:
		return user
	raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
