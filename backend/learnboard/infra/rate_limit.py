"""Per-identity request budgets for mutating operations.

`check` only reads the current window, `consume` spends one unit. Callers
check before running an operation and consume once it has succeeded, so
failed requests never eat into a budget.
"""

from __future__ import annotations

import ipaddress
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Protocol

from learnboard.infra.redis import RedisProxy, redis_client
from learnboard.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * MINUTE


@dataclass(frozen=True)
class RatePolicy:
	operation: str
	limit: int
	window_seconds: int
	# Keyed by client address even for signed-in callers
	address_only: bool = False
	exemptable: bool = True


def _policies(*items: RatePolicy) -> dict[str, RatePolicy]:
	return {item.operation: item for item in items}


DEFAULT_POLICIES: Mapping[str, RatePolicy] = _policies(
	RatePolicy("registration", 10, 15 * MINUTE, address_only=True, exemptable=False),
	RatePolicy("login", 20, 15 * MINUTE, address_only=True, exemptable=False),
	RatePolicy("post_create", 30, HOUR),
	RatePolicy("comment_create", 60, HOUR),
	RatePolicy("content_update", 30, HOUR),
	RatePolicy("content_delete", 30, HOUR),
	RatePolicy("vote", 100, HOUR),
	RatePolicy("save", 30, HOUR),
	RatePolicy("report", 10, HOUR),
	RatePolicy("account_settings", 30, HOUR),
	RatePolicy("contact", 5, HOUR, address_only=True, exemptable=False),
	RatePolicy("admin", 300, 15 * MINUTE),
)


def normalize_address(address: Optional[str], ipv6_subnet: int = 56) -> str:
	"""Collapse an address to the unit a budget is kept for.

	IPv4 is kept as-is, IPv4-mapped IPv6 is unwrapped, and any other IPv6
	address becomes its /`ipv6_subnet` network since one subscriber usually
	holds a whole prefix.
	"""
	if not address:
		return "unknown"
	try:
		parsed = ipaddress.ip_address(address.strip())
	except ValueError:
		return address.strip().lower()
	if isinstance(parsed, ipaddress.IPv6Address):
		if parsed.ipv4_mapped is not None:
			return str(parsed.ipv4_mapped)
		network = ipaddress.IPv6Network((parsed, ipv6_subnet), strict=False)
		return str(network)
	return str(parsed)


def identity_key(
	user_id: Optional[str],
	client_ip: Optional[str],
	*,
	address_only: bool = False,
	ipv6_subnet: int = 56,
) -> str:
	if user_id and not address_only:
		return f"user:{user_id}"
	return f"ip:{normalize_address(client_ip, ipv6_subnet)}"


@dataclass(frozen=True)
class RateDecision:
	allowed: bool
	limit: int
	remaining: int
	retry_after_seconds: int = 0


class WindowStore(Protocol):
	async def peek(self, key: str) -> tuple[int, float]:
		"""Return (count, seconds until reset) for the open window, or (0, 0.0)."""
		...

	async def incr(self, key: str, window_seconds: int) -> tuple[int, float]:
		"""Count one hit, opening a window of `window_seconds` when none is open."""
		...


class InMemoryWindowStore:
	"""Fixed windows held in this process only.

	Expired windows are swept whenever the clock passes the earliest open
	reset, so keys from callers that never return do not accumulate.
	"""

	def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
		self._clock = clock
		self._windows: dict[str, tuple[int, float]] = {}
		self._next_sweep = math.inf

	def __len__(self) -> int:
		return len(self._windows)

	def _sweep(self, now: float) -> None:
		if now < self._next_sweep:
			return
		self._windows = {key: window for key, window in self._windows.items() if window[1] > now}
		self._next_sweep = min((reset_at for _, reset_at in self._windows.values()), default=math.inf)

	async def peek(self, key: str) -> tuple[int, float]:
		now = self._clock()
		self._sweep(now)
		window = self._windows.get(key)
		if window is None:
			return 0, 0.0
		count, reset_at = window
		return count, reset_at - now

	async def incr(self, key: str, window_seconds: int) -> tuple[int, float]:
		now = self._clock()
		self._sweep(now)
		count, reset_at = self._windows.get(key, (0, now + window_seconds))
		count += 1
		self._windows[key] = (count, reset_at)
		self._next_sweep = min(self._next_sweep, reset_at)
		return count, reset_at - now


class RedisWindowStore:
	"""Windows shared by every process that talks to the same Redis."""

	def __init__(self, redis: RedisProxy = redis_client, *, prefix: str = "rl") -> None:
		self._redis = redis
		self._prefix = prefix

	def _key(self, key: str) -> str:
		return f"{self._prefix}:{key}"

	async def peek(self, key: str) -> tuple[int, float]:
		async with self._redis.pipeline(transaction=True) as pipe:
			pipe.get(self._key(key))
			pipe.pttl(self._key(key))
			raw, ttl_ms = await pipe.execute()
		if raw is None or int(ttl_ms) <= 0:
			return 0, 0.0
		return int(raw), int(ttl_ms) / 1000.0

	async def incr(self, key: str, window_seconds: int) -> tuple[int, float]:
		redis_key = self._key(key)
		async with self._redis.pipeline(transaction=True) as pipe:
			pipe.set(redis_key, 0, ex=window_seconds, nx=True)
			pipe.incr(redis_key)
			pipe.pttl(redis_key)
			_, count, ttl_ms = await pipe.execute()
		ttl = int(ttl_ms) / 1000.0 if int(ttl_ms) > 0 else float(window_seconds)
		return int(count), ttl


def _retry_after(seconds: float) -> int:
	return max(1, int(math.ceil(seconds)))


def _role_name(role: object) -> Optional[str]:
	if role is None:
		return None
	return str(getattr(role, "value", role)).lower()


class RateGovernor:
	def __init__(
		self,
		store: Optional[WindowStore] = None,
		*,
		policies: Optional[Mapping[str, RatePolicy]] = None,
		exempt_roles: Iterable[str] = ("system", "bot"),
		ipv6_subnet: int = 56,
	) -> None:
		self.store: WindowStore = store if store is not None else InMemoryWindowStore()
		self._policies = dict(policies or DEFAULT_POLICIES)
		self._exempt_roles = frozenset(role.lower() for role in exempt_roles)
		self.ipv6_subnet = ipv6_subnet

	def policy(self, operation: str) -> RatePolicy:
		# Unknown operations are a wiring mistake, so the KeyError is left to surface.
		return self._policies[operation]

	def key_for(self, operation: str, user_id: Optional[str], client_ip: Optional[str]) -> str:
		policy = self.policy(operation)
		return identity_key(user_id, client_ip, address_only=policy.address_only, ipv6_subnet=self.ipv6_subnet)

	def is_exempt(self, operation: str, role: object) -> bool:
		return self.policy(operation).exemptable and _role_name(role) in self._exempt_roles

	async def check(self, key: str, operation: str, *, role: object = None) -> RateDecision:
		policy = self.policy(operation)
		if self.is_exempt(operation, role):
			obs_metrics.inc_rate_limit_exempt(operation)
			return RateDecision(allowed=True, limit=policy.limit, remaining=policy.limit)
		count, reset_in = await self.store.peek(self._window_key(key, operation))
		if count >= policy.limit:
			retry_after = _retry_after(reset_in)
			obs_metrics.inc_rate_limited(operation)
			logger.warning(
				"rate_limited",
				extra={"operation": operation, "identity": key, "retry_after": retry_after},
			)
			return RateDecision(allowed=False, limit=policy.limit, remaining=0, retry_after_seconds=retry_after)
		return RateDecision(allowed=True, limit=policy.limit, remaining=policy.limit - count)

	async def consume(self, key: str, operation: str, *, role: object = None) -> RateDecision:
		policy = self.policy(operation)
		if self.is_exempt(operation, role):
			return RateDecision(allowed=True, limit=policy.limit, remaining=policy.limit)
		count, _ = await self.store.incr(self._window_key(key, operation), policy.window_seconds)
		return RateDecision(allowed=True, limit=policy.limit, remaining=max(0, policy.limit - count))

	@staticmethod
	def _window_key(key: str, operation: str) -> str:
		return f"{operation}:{key}"
