"""Idempotent DDL applied at startup when running against PostgreSQL."""

from __future__ import annotations

import logging

import asyncpg

logger = logging.getLogger(__name__)

_STATEMENTS = (
	"""
	CREATE TABLE IF NOT EXISTS users (
		id TEXT PRIMARY KEY,
		name TEXT NOT NULL,
		email TEXT NOT NULL DEFAULT '',
		avatar_url TEXT NOT NULL DEFAULT '',
		bio TEXT NOT NULL DEFAULT '',
		interests TEXT[] NOT NULL DEFAULT '{}',
		lat DOUBLE PRECISION,
		lng DOUBLE PRECISION,
		status VARCHAR(16) NOT NULL DEFAULT 'offline',
		is_online BOOLEAN NOT NULL DEFAULT FALSE,
		location_visibility VARCHAR(16) NOT NULL DEFAULT 'everyone',
		last_seen TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		CONSTRAINT users_status_chk CHECK (status IN ('online', 'offline', 'busy', 'away')),
		CONSTRAINT users_visibility_chk CHECK (location_visibility IN ('everyone', 'connections', 'private'))
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS events (
		id TEXT PRIMARY KEY,
		name TEXT NOT NULL,
		description TEXT NOT NULL DEFAULT '',
		activity_type TEXT NOT NULL,
		lat DOUBLE PRECISION,
		lng DOUBLE PRECISION,
		starts_at TIMESTAMPTZ NOT NULL,
		ends_at TIMESTAMPTZ NOT NULL,
		created_by TEXT NOT NULL,
		participants TEXT[] NOT NULL DEFAULT '{}',
		capacity INTEGER NOT NULL DEFAULT 50,
		visibility VARCHAR(16) NOT NULL DEFAULT 'public',
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		CONSTRAINT events_time_chk CHECK (starts_at < ends_at),
		CONSTRAINT events_capacity_chk CHECK (capacity >= 1 AND cardinality(participants) <= capacity)
	)
	""",
	"CREATE INDEX IF NOT EXISTS events_starts_at_idx ON events (starts_at)",
	"CREATE INDEX IF NOT EXISTS events_created_by_idx ON events (created_by)",
	"CREATE INDEX IF NOT EXISTS events_participants_idx ON events USING GIN (participants)",
	"""
	CREATE TABLE IF NOT EXISTS connections (
		id TEXT PRIMARY KEY,
		pair_key TEXT NOT NULL,
		requester_id TEXT NOT NULL,
		receiver_id TEXT NOT NULL,
		status VARCHAR(16) NOT NULL DEFAULT 'pending',
		created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
		CONSTRAINT connections_no_self CHECK (requester_id <> receiver_id),
		CONSTRAINT connections_status_chk CHECK (status IN ('pending', 'accepted', 'rejected'))
	)
	""",
	"CREATE UNIQUE INDEX IF NOT EXISTS connections_pair_key_uidx ON connections (pair_key)",
	"CREATE INDEX IF NOT EXISTS connections_receiver_idx ON connections (receiver_id, status)",
	# Users are referenced by id only; drop foreign keys left by older schemas
	"ALTER TABLE events DROP CONSTRAINT IF EXISTS events_created_by_fkey",
	"ALTER TABLE connections DROP CONSTRAINT IF EXISTS connections_requester_id_fkey",
	"ALTER TABLE connections DROP CONSTRAINT IF EXISTS connections_receiver_id_fkey",
)


async def ensure_schema(pool: asyncpg.Pool) -> None:
	async with pool.acquire() as conn:
		async with conn.transaction():
			for statement in _STATEMENTS:
				await conn.execute(statement)
	logger.info("schema ensured", extra={"statements": len(_STATEMENTS)})
