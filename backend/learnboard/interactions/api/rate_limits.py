"""FastAPI glue between endpoints and the rate governor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request, Response

from learnboard.infra.auth import AuthenticatedUser, Role, get_optional_user
from learnboard.infra.rate_limit import RateDecision, RateGovernor
from learnboard.interactions.domain.container import get_governor
from learnboard.interactions.domain.exceptions import RateLimitedError
from learnboard.settings import settings


def client_address(request: Request) -> Optional[str]:
	if settings.rate_limit_trust_forwarded:
		forwarded = request.headers.get("X-Forwarded-For")
		if forwarded:
			return forwarded.split(",")[0].strip()
	client = request.client
	return client.host if client else None


@dataclass
class RateBudget:
	"""Admission granted for one request; `spend` is called once it has succeeded."""

	governor: RateGovernor
	operation: str
	key: str
	role: Optional[Role]
	decision: RateDecision

	async def spend(self, response: Optional[Response] = None) -> RateDecision:
		self.decision = await self.governor.consume(self.key, self.operation, role=self.role)
		if response is not None:
			response.headers["RateLimit-Limit"] = str(self.decision.limit)
			response.headers["RateLimit-Remaining"] = str(self.decision.remaining)
		return self.decision


def get_governor_dep() -> RateGovernor:
	return get_governor()


def rate_budget(operation: str):
	"""Dependency factory admitting a request under `operation`'s budget."""

	async def _admit(
		request: Request,
		user: Optional[AuthenticatedUser] = Depends(get_optional_user),
		governor: RateGovernor = Depends(get_governor_dep),
	) -> RateBudget:
		key = governor.key_for(operation, user.id if user else None, client_address(request))
		role = user.role if user else None
		decision = await governor.check(key, operation, role=role)
		if not decision.allowed:
			raise RateLimitedError(operation, decision.retry_after_seconds, decision.limit)
		return RateBudget(governor=governor, operation=operation, key=key, role=role, decision=decision)

	return _admit
