"""User record store: protocol, in-memory and PostgreSQL implementations."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Protocol, Sequence

import asyncpg

from meetmux.domain.spatial.models import Point
from meetmux.domain.users.models import User, UserStatus


class UserRepository(Protocol):
	async def create(self, user: User) -> User:
		...

	async def get(self, user_id: str) -> Optional[User]:
		...

	async def get_many(self, user_ids: Sequence[str]) -> Dict[str, User]:
		...

	async def set_presence(
		self, user_id: str, *, status: UserStatus, is_online: bool, last_seen: datetime
	) -> Optional[User]:
		...

	async def update_location(self, user_id: str, point: Point, *, last_seen: datetime) -> Optional[User]:
		"""Persist the point and return the row as written (visibility included)."""
		...


class InMemoryUserRepository(UserRepository):
	"""Repository storing users in memory for local development and tests."""

	def __init__(self) -> None:
		self._users: dict[str, User] = {}

	async def create(self, user: User) -> User:
		self._users[user.id] = user
		return replace(user)

	async def get(self, user_id: str) -> Optional[User]:
		user = self._users.get(str(user_id))
		return replace(user) if user else None

	async def get_many(self, user_ids: Sequence[str]) -> Dict[str, User]:
		return {uid: replace(self._users[uid]) for uid in {str(u) for u in user_ids} if uid in self._users}

	async def set_presence(
		self, user_id: str, *, status: UserStatus, is_online: bool, last_seen: datetime
	) -> Optional[User]:
		user = self._users.get(str(user_id))
		if user is None:
			return None
		user.status = status
		user.is_online = is_online
		user.last_seen = last_seen
		return replace(user)

	async def update_location(self, user_id: str, point: Point, *, last_seen: datetime) -> Optional[User]:
		user = self._users.get(str(user_id))
		if user is None:
			return None
		user.location = point
		user.last_seen = last_seen
		return replace(user)


_USER_COLUMNS = """
	id, name, email, avatar_url, bio, interests, lat, lng, status, is_online,
	location_visibility, last_seen, created_at
"""


class PostgresUserRepository(UserRepository):
	"""Stores users in the `users` table."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def create(self, user: User) -> User:
		row = await self._pool.fetchrow(
			f"""
			INSERT INTO users (
				id, name, email, avatar_url, bio, interests, lat, lng, status, is_online,
				location_visibility, last_seen, created_at
			)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
			RETURNING {_USER_COLUMNS}
			""",
			user.id,
			user.name,
			user.email,
			user.avatar_url,
			user.bio,
			list(user.interests),
			user.location.lat if user.location else None,
			user.location.lng if user.location else None,
			user.status.value,
			user.is_online,
			user.location_visibility.value,
			user.last_seen,
			user.created_at,
		)
		return User.from_record(row)

	async def get(self, user_id: str) -> Optional[User]:
		row = await self._pool.fetchrow(f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1", str(user_id))
		return User.from_record(row) if row else None

	async def get_many(self, user_ids: Sequence[str]) -> Dict[str, User]:
		ids = list({str(uid) for uid in user_ids})
		if not ids:
			return {}
		rows = await self._pool.fetch(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ANY($1::text[])", ids)
		return {str(row["id"]): User.from_record(row) for row in rows}

	async def set_presence(
		self, user_id: str, *, status: UserStatus, is_online: bool, last_seen: datetime
	) -> Optional[User]:
		row = await self._pool.fetchrow(
			f"""
			UPDATE users
			SET status = $2, is_online = $3, last_seen = $4
			WHERE id = $1
			RETURNING {_USER_COLUMNS}
			""",
			str(user_id),
			status.value,
			is_online,
			last_seen,
		)
		return User.from_record(row) if row else None

	async def update_location(self, user_id: str, point: Point, *, last_seen: datetime) -> Optional[User]:
		# RETURNING hands back location_visibility from the same snapshot as the write
		row = await self._pool.fetchrow(
			f"""
			UPDATE users
			SET lat = $2, lng = $3, last_seen = $4
			WHERE id = $1
			RETURNING {_USER_COLUMNS}
			""",
			str(user_id),
			point.lat,
			point.lng,
			last_seen,
		)
		return User.from_record(row) if row else None
