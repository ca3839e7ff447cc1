"""Liveness and readiness probes.

Redis backs the spatial index and live sessions, so it is always checked;
Postgres only when the container was wired against a pool.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, Tuple

from meetmux.domain import container
from meetmux.infra.errors import STORAGE_ERRORS
from meetmux.infra.redis import redis_client
from meetmux.obs import metrics

LOGGER = logging.getLogger(__name__)


async def _probe(
	name: str,
	check: Callable[[], Awaitable[Any]],
	mark: Callable[[bool], None],
	timeout: float,
) -> Dict[str, Any]:
	started = perf_counter()
	try:
		await asyncio.wait_for(check(), timeout=timeout)
	except STORAGE_ERRORS as exc:
		mark(False)
		LOGGER.warning("readiness probe failed", extra={"probe": name}, exc_info=True)
		return {"ok": False, "error": type(exc).__name__}
	mark(True)
	return {"ok": True, "latency_ms": round((perf_counter() - started) * 1000, 2)}


async def _select_one() -> None:
	pool = container.pool()
	async with pool.acquire() as conn:  # type: ignore[union-attr]
		await conn.execute("SELECT 1")


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	checks: Dict[str, Dict[str, Any]] = {
		"redis": await _probe("redis", redis_client.ping, metrics.mark_redis, timeout=0.2),
	}
	if container.pool() is None:
		checks["postgres"] = {"ok": True, "backend": "memory"}
	else:
		checks["postgres"] = await _probe("postgres", _select_one, metrics.mark_postgres, timeout=0.3)
		checks["postgres"]["backend"] = "postgres"
	ok = all(check["ok"] for check in checks.values())
	return (200 if ok else 503), {"status": "ok" if ok else "degraded", "checks": checks}
