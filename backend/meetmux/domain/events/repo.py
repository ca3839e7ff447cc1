"""Event storage: protocol, in-memory and PostgreSQL implementations."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, List, Optional, Protocol, Sequence

import asyncpg

from meetmux.domain.errors import AlreadyJoined, EventFull, NotFoundError
from meetmux.domain.events.models import Event
from meetmux.domain.events.query import EventCriteria


def _copy(event: Event) -> Event:
	return replace(event, participants=list(event.participants))


class EventRepository(Protocol):
	async def create(self, event: Event) -> Event:
		...

	async def get(self, event_id: str) -> Optional[Event]:
		...

	async def search(self, criteria: EventCriteria) -> Sequence[Event]:
		"""Events matching `criteria`, ordered by starts_at ascending."""
		...

	async def join(self, event_id: str, user_id: str) -> Event:
		"""Append `user_id` if absent and capacity allows, in one conditional write."""
		...

	async def leave(self, event_id: str, user_id: str) -> Optional[Event]:
		...

	async def list_created_by(self, user_id: str) -> Sequence[Event]:
		...

	async def list_joined(self, user_id: str) -> Sequence[Event]:
		...


def _explain_join_failure(event: Optional[Event], user_id: str) -> Exception:
	if event is None:
		return NotFoundError("event_not_found")
	if event.has_participant(user_id):
		return AlreadyJoined()
	return EventFull()


class InMemoryEventRepository(EventRepository):
	"""Repository storing events in memory for local development and tests."""

	def __init__(self) -> None:
		self._events: dict[str, Event] = {}

	async def create(self, event: Event) -> Event:
		self._events[event.id] = _copy(event)
		return _copy(event)

	async def get(self, event_id: str) -> Optional[Event]:
		event = self._events.get(str(event_id))
		return _copy(event) if event else None

	async def search(self, criteria: EventCriteria) -> Sequence[Event]:
		matched = sorted(
			(e for e in self._events.values() if criteria.matches(e)),
			key=lambda e: e.starts_at,
		)
		if criteria.limit is not None:
			matched = matched[: criteria.limit]
		return [_copy(e) for e in matched]

	async def join(self, event_id: str, user_id: str) -> Event:
		event = self._events.get(str(event_id))
		if event is None or event.has_participant(user_id) or event.is_full:
			raise _explain_join_failure(event, str(user_id))
		event.participants.append(str(user_id))
		return _copy(event)

	async def leave(self, event_id: str, user_id: str) -> Optional[Event]:
		event = self._events.get(str(event_id))
		if event is None:
			return None
		event.participants = [p for p in event.participants if p != str(user_id)]
		return _copy(event)

	async def list_created_by(self, user_id: str) -> Sequence[Event]:
		events = [e for e in self._events.values() if e.created_by == str(user_id)]
		return [_copy(e) for e in sorted(events, key=lambda e: e.starts_at)]

	async def list_joined(self, user_id: str) -> Sequence[Event]:
		events = [e for e in self._events.values() if e.has_participant(user_id)]
		return [_copy(e) for e in sorted(events, key=lambda e: e.starts_at)]


_EVENT_COLUMNS = """
	id, name, description, activity_type, lat, lng, starts_at, ends_at,
	created_by, participants, capacity, visibility, created_at
"""


def build_search_sql(criteria: EventCriteria) -> tuple[str, List[Any]]:
	"""Render `criteria` as a parameterised SELECT over `events`."""
	clauses: List[str] = []
	params: List[Any] = []

	def bind(value: Any) -> str:
		params.append(value)
		return f"${len(params)}"

	clauses.append(f"visibility = {bind(criteria.visibility)}")
	if criteria.ids is not None:
		clauses.append(f"id = ANY({bind(sorted(criteria.ids))}::text[])")
	if criteria.activity_type is not None:
		clauses.append(f"activity_type = {bind(criteria.activity_type)}")
	if criteria.window is not None:
		clauses.append(f"starts_at BETWEEN {bind(criteria.window.start)} AND {bind(criteria.window.end)}")
	if criteria.hours is not None:
		start, end = criteria.hours
		tz_name = str(criteria.tz)
		hour_expr = f"EXTRACT(HOUR FROM starts_at AT TIME ZONE {bind(tz_name)})"
		clauses.append(f"{hour_expr} >= {int(start)} AND {hour_expr} < {int(end)}")
	if criteria.creators is not None:
		clauses.append(f"created_by = ANY({bind(sorted(criteria.creators))}::text[])")

	sql = f"SELECT {_EVENT_COLUMNS} FROM events WHERE " + " AND ".join(clauses) + " ORDER BY starts_at ASC"
	if criteria.limit is not None:
		sql += f" LIMIT {bind(criteria.limit)}"
	return sql, params


class PostgresEventRepository(EventRepository):
	"""Stores events in the `events` table; participants are a text[] column."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def create(self, event: Event) -> Event:
		row = await self._pool.fetchrow(
			f"""
			INSERT INTO events (
				id, name, description, activity_type, lat, lng, starts_at, ends_at,
				created_by, participants, capacity, visibility, created_at
			)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
			RETURNING {_EVENT_COLUMNS}
			""",
			event.id,
			event.name,
			event.description,
			event.activity_type,
			event.location.lat if event.location else None,
			event.location.lng if event.location else None,
			event.starts_at,
			event.ends_at,
			event.created_by,
			list(event.participants),
			event.capacity,
			event.visibility,
			event.created_at,
		)
		return Event.from_record(row)

	async def get(self, event_id: str) -> Optional[Event]:
		row = await self._pool.fetchrow(f"SELECT {_EVENT_COLUMNS} FROM events WHERE id = $1", str(event_id))
		return Event.from_record(row) if row else None

	async def search(self, criteria: EventCriteria) -> Sequence[Event]:
		sql, params = build_search_sql(criteria)
		rows = await self._pool.fetch(sql, *params)
		return [Event.from_record(row) for row in rows]

	async def join(self, event_id: str, user_id: str) -> Event:
		# Membership and capacity are re-checked by the UPDATE itself
		row = await self._pool.fetchrow(
			f"""
			UPDATE events
			SET participants = array_append(participants, $2)
			WHERE id = $1
				AND NOT ($2 = ANY(participants))
				AND cardinality(participants) < capacity
			RETURNING {_EVENT_COLUMNS}
			""",
			str(event_id),
			str(user_id),
		)
		if row is not None:
			return Event.from_record(row)
		raise _explain_join_failure(await self.get(event_id), str(user_id))

	async def leave(self, event_id: str, user_id: str) -> Optional[Event]:
		row = await self._pool.fetchrow(
			f"""
			UPDATE events
			SET participants = array_remove(participants, $2)
			WHERE id = $1
			RETURNING {_EVENT_COLUMNS}
			""",
			str(event_id),
			str(user_id),
		)
		return Event.from_record(row) if row else None

	async def list_created_by(self, user_id: str) -> Sequence[Event]:
		rows = await self._pool.fetch(
			f"SELECT {_EVENT_COLUMNS} FROM events WHERE created_by = $1 ORDER BY starts_at ASC",
			str(user_id),
		)
		return [Event.from_record(row) for row in rows]

	async def list_joined(self, user_id: str) -> Sequence[Event]:
		rows = await self._pool.fetch(
			f"SELECT {_EVENT_COLUMNS} FROM events WHERE $1 = ANY(participants) ORDER BY starts_at ASC",
			str(user_id),
		)
		return [Event.from_record(row) for row in rows]
