"""Storage-layer exception groupings."""

from __future__ import annotations

import asyncpg
from redis.exceptions import RedisError

# Transient backend failures: callers may retry the same request
STORAGE_ERRORS: tuple[type[BaseException], ...] = (
	asyncpg.PostgresError,
	asyncpg.InterfaceError,
	RedisError,
	ConnectionError,
	TimeoutError,
)

# Rejected writes: retrying the same request fails the same way
INTEGRITY_ERRORS: tuple[type[BaseException], ...] = (asyncpg.IntegrityConstraintViolationError,)
