"""asyncpg pool lifecycle, driven by the application lifespan."""

from __future__ import annotations

import logging
from typing import Optional

import asyncpg

from meetmux.settings import settings

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None


async def _prepare_connection(conn: asyncpg.Connection) -> None:
	# Hour-of-day filters name their zone explicitly; keep everything else in UTC
	await conn.execute("SET TIME ZONE 'UTC'")


async def init_pool() -> Optional[asyncpg.pool.Pool]:
	global _pool
	if _pool is None:
		# 127.0.0.1 rather than localhost so the driver never tries ::1 first
		dsn = settings.postgres_url.replace("localhost", "127.0.0.1")
		_pool = await asyncpg.create_pool(
			dsn=dsn,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			init=_prepare_connection,
		)
		logger.info(
			"postgres pool opened",
			extra={"min_size": settings.postgres_min_pool_size, "max_size": settings.postgres_max_pool_size},
		)
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None
		logger.info("postgres pool closed")
