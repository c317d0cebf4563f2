"""Health check helpers for liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Tuple

from learnboard.infra import postgres
from learnboard.infra.redis import redis_client
from learnboard.settings import settings

LOGGER = logging.getLogger(__name__)


async def _redis_status(timeout: float = 0.2) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=timeout)
		return {"ok": True, "latency_ms": round((perf_counter() - start) * 1000, 2)}
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("Redis readiness check failed", exc_info=True)
		return {"ok": False, "error": str(exc)}


async def _postgres_status(timeout: float = 0.3) -> Dict[str, Any]:
	start = perf_counter()
	try:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
		return {"ok": True, "latency_ms": round((perf_counter() - start) * 1000, 2)}
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("Postgres readiness query failed", exc_info=True)
		return {"ok": False, "error": str(exc)}


async def liveness() -> Dict[str, str]:
	return {"status": "ok", "service": settings.service_name, "commit": settings.git_commit}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	"""Only the backends this process is configured to use are probed."""
	checks: Dict[str, Any] = {}
	if settings.storage_backend.lower() == "postgres":
		checks["postgres"] = await _postgres_status()
	if settings.rate_limit_backend.lower() == "redis":
		checks["redis"] = await _redis_status()
	ok = all(check.get("ok") for check in checks.values())
	payload = {"status": "ok" if ok else "degraded", "checks": checks}
	return (200 if ok else 503), payload
