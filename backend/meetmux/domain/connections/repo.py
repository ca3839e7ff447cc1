"""Connection edge storage: protocol, in-memory and PostgreSQL implementations."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

import asyncpg

from meetmux.domain.connections.models import Connection, ConnectionStatus, pair_key


class ConnectionRepository(Protocol):
	async def get(self, connection_id: str) -> Optional[Connection]:
		...

	async def find_pair(self, user_a: str, user_b: str) -> Optional[Connection]:
		...

	async def replace_pair(self, edge: Connection, *, superseded_id: Optional[str]) -> bool:
		"""Insert `edge` for its pair, deleting `superseded_id` first.

		Returns False when the pair no longer matches what the caller read
		(another edge was written in between); nothing is changed then.
		"""
		...

	async def transition(
		self, connection_id: str, *, expected: ConnectionStatus, target: ConnectionStatus
	) -> Optional[Connection]:
		"""Compare-and-set the status; None when the edge is not in `expected`."""
		...

	async def list_for_user(self, user_id: str, status: ConnectionStatus) -> Sequence[Connection]:
		...

	async def list_incoming(self, user_id: str, status: ConnectionStatus) -> Sequence[Connection]:
		...


class InMemoryConnectionRepository(ConnectionRepository):
	"""Repository keeping one edge per unordered pair in memory."""

	def __init__(self) -> None:
		self._by_pair: dict[str, Connection] = {}

	def _by_id(self, connection_id: str) -> Optional[Connection]:
		for edge in self._by_pair.values():
			if edge.id == str(connection_id):
				return edge
		return None

	async def get(self, connection_id: str) -> Optional[Connection]:
		edge = self._by_id(connection_id)
		return replace(edge) if edge else None

	async def find_pair(self, user_a: str, user_b: str) -> Optional[Connection]:
		edge = self._by_pair.get(pair_key(user_a, user_b))
		return replace(edge) if edge else None

	async def replace_pair(self, edge: Connection, *, superseded_id: Optional[str]) -> bool:
		current = self._by_pair.get(edge.key)
		current_id = current.id if current else None
		if current_id != superseded_id:
			return False
		self._by_pair[edge.key] = replace(edge)
		return True

	async def transition(
		self, connection_id: str, *, expected: ConnectionStatus, target: ConnectionStatus
	) -> Optional[Connection]:
		edge = self._by_id(connection_id)
		if edge is None or edge.status != expected:
			return None
		edge.status = target
		edge.updated_at = datetime.now(timezone.utc)
		return replace(edge)

	async def list_for_user(self, user_id: str, status: ConnectionStatus) -> Sequence[Connection]:
		edges = [e for e in self._by_pair.values() if e.status == status and e.involves(user_id)]
		return [replace(e) for e in sorted(edges, key=lambda e: e.updated_at, reverse=True)]

	async def list_incoming(self, user_id: str, status: ConnectionStatus) -> Sequence[Connection]:
		edges = [e for e in self._by_pair.values() if e.status == status and e.receiver_id == str(user_id)]
		return [replace(e) for e in sorted(edges, key=lambda e: e.created_at, reverse=True)]


_CONNECTION_COLUMNS = "id, requester_id, receiver_id, status, created_at, updated_at"


class _PairChanged(Exception):
	"""Raised inside the transaction so a lost insert also undoes the delete."""


class PostgresConnectionRepository(ConnectionRepository):
	"""Stores edges in `connections`; a unique index on pair_key enforces one edge per pair."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def get(self, connection_id: str) -> Optional[Connection]:
		row = await self._pool.fetchrow(
			f"SELECT {_CONNECTION_COLUMNS} FROM connections WHERE id = $1",
			str(connection_id),
		)
		return Connection.from_record(row) if row else None

	async def find_pair(self, user_a: str, user_b: str) -> Optional[Connection]:
		row = await self._pool.fetchrow(
			f"SELECT {_CONNECTION_COLUMNS} FROM connections WHERE pair_key = $1",
			pair_key(user_a, user_b),
		)
		return Connection.from_record(row) if row else None

	async def replace_pair(self, edge: Connection, *, superseded_id: Optional[str]) -> bool:
		try:
			return await self._replace_pair(edge, superseded_id)
		except _PairChanged:
			return False

	async def _replace_pair(self, edge: Connection, superseded_id: Optional[str]) -> bool:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				if superseded_id is not None:
					deleted = await conn.fetchval(
						"DELETE FROM connections WHERE id = $1 AND pair_key = $2 RETURNING id",
						superseded_id,
						edge.key,
					)
					if deleted is None:
						return False
				inserted = await conn.fetchval(
					"""
					INSERT INTO connections (id, pair_key, requester_id, receiver_id, status, created_at, updated_at)
					VALUES ($1, $2, $3, $4, $5, $6, $7)
					ON CONFLICT (pair_key) DO NOTHING
					RETURNING id
					""",
					edge.id,
					edge.key,
					edge.requester_id,
					edge.receiver_id,
					edge.status.value,
					edge.created_at,
					edge.updated_at,
				)
				if inserted is None:
					# Roll back the delete as well
					raise _PairChanged()
		return True

	async def transition(
		self, connection_id: str, *, expected: ConnectionStatus, target: ConnectionStatus
	) -> Optional[Connection]:
		row = await self._pool.fetchrow(
			f"""
			UPDATE connections
			SET status = $3, updated_at = NOW()
			WHERE id = $1 AND status = $2
			RETURNING {_CONNECTION_COLUMNS}
			""",
			str(connection_id),
			expected.value,
			target.value,
		)
		return Connection.from_record(row) if row else None

	async def list_for_user(self, user_id: str, status: ConnectionStatus) -> Sequence[Connection]:
		rows = await self._pool.fetch(
			f"""
			SELECT {_CONNECTION_COLUMNS}
			FROM connections
			WHERE status = $2 AND (requester_id = $1 OR receiver_id = $1)
			ORDER BY updated_at DESC
			""",
			str(user_id),
			status.value,
		)
		return [Connection.from_record(row) for row in rows]

	async def list_incoming(self, user_id: str, status: ConnectionStatus) -> Sequence[Connection]:
		rows = await self._pool.fetch(
			f"""
			SELECT {_CONNECTION_COLUMNS}
			FROM connections
			WHERE status = $2 AND receiver_id = $1
			ORDER BY created_at DESC
			""",
			str(user_id),
			status.value,
		)
		return [Connection.from_record(row) for row in rows]

