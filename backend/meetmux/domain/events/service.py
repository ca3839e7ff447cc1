"""Event lifecycle (create/join/leave) and the discovery query engine."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from meetmux.domain.connections.service import ConnectionGraph
from meetmux.domain.errors import AuthenticationRequired, NotFoundError, ValidationError
from meetmux.domain.events.models import Event
from meetmux.domain.events.query import CreatedByScope, DiscoveryQuery, EventCriteria
from meetmux.domain.events.repo import EventRepository
from meetmux.domain.spatial import SpatialIndex, coerce_point, events_index
from meetmux.domain.users.repo import UserRepository
from meetmux.obs import metrics as obs_metrics
from meetmux.settings import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def local_timezone() -> ZoneInfo:
	return ZoneInfo(settings.local_timezone)


def local_now() -> datetime:
	return datetime.now(local_timezone())


def _aware(moment: datetime) -> datetime:
	# Naive timestamps from clients are taken as UTC
	return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


class EventService:
	def __init__(
		self,
		repository: EventRepository,
		users: UserRepository,
		graph: ConnectionGraph,
		*,
		index: Optional[SpatialIndex] = None,
		clock: Clock = local_now,
	) -> None:
		self._repo = repository
		self._users = users
		self._graph = graph
		self._index = index
		self._clock = clock

	@property
	def index(self) -> SpatialIndex:
		return self._index or events_index()

	async def create(
		self,
		creator_id: str,
		*,
		name: str,
		activity_type: str,
		starts_at: datetime,
		ends_at: datetime,
		description: str = "",
		location: Optional[Dict[str, Any]] = None,
		capacity: Optional[int] = None,
	) -> Event:
		name = (name or "").strip()
		activity_type = (activity_type or "").strip()
		if not name or not activity_type:
			raise ValidationError("missing_fields")
		starts_at, ends_at = _aware(starts_at), _aware(ends_at)
		if starts_at >= ends_at:
			raise ValidationError("invalid_time_range")
		if capacity is None:
			capacity = settings.event_default_capacity
		if capacity < 1:
			raise ValidationError("invalid_capacity")
		point = None
		if location is not None:
			point = coerce_point(location.get("lat"), location.get("lng"))
			if point is None:
				raise ValidationError("invalid_coordinates")

		event = await self._repo.create(
			Event.new(
				name=name,
				activity_type=activity_type,
				starts_at=starts_at,
				ends_at=ends_at,
				created_by=creator_id,
				description=description or "",
				location=point,
				capacity=capacity,
			)
		)
		if point is not None:
			await self.index.upsert(event.id, point)
		logger.info("event created", extra={"event_id": event.id, "activity_type": event.activity_type})
		return event

	async def get(self, event_id: str) -> Event:
		event = await self._repo.get(event_id)
		if event is None:
			raise NotFoundError("event_not_found")
		return event

	async def join(self, event_id: str, user_id: str) -> Event:
		event = await self._repo.join(event_id, user_id)
		obs_metrics.inc_event_membership("join")
		return event

	async def leave(self, event_id: str, user_id: str) -> Event:
		"""Remove the user from participants; leaving when absent is a no-op."""
		event = await self._repo.leave(event_id, user_id)
		if event is None:
			raise NotFoundError("event_not_found")
		obs_metrics.inc_event_membership("leave")
		return event

	async def mine(self, user_id: str) -> Dict[str, List[Event]]:
		created = await self._repo.list_created_by(user_id)
		joined = await self._repo.list_joined(user_id)
		return {"created": list(created), "joined": list(joined)}

	def build_query(self, **params: Any) -> DiscoveryQuery:
		return DiscoveryQuery.from_params(now=self._clock(), **params)

	async def discover(self, query: DiscoveryQuery) -> List[Dict[str, Any]]:
		"""Public events matching every filter in `query`.

		With a center and radius, results are nearest first and carry
		`distance_m`; otherwise they are ordered by start time.
		"""
		limit = settings.discovery_limit
		creators = None
		if query.created_by is CreatedByScope.CONNECTIONS:
			if not query.requesting_user_id:
				raise AuthenticationRequired()
			peers = await self._graph.list_accepted(query.requesting_user_id)
			if not peers:
				obs_metrics.observe_discovery(query.created_by.value, query.is_spatial, 0)
				return []
			creators = frozenset(peers)

		distances: Dict[str, float] = {}
		if query.is_spatial:
			nearby = await self.index.within(query.center, query.radius_m)  # type: ignore[arg-type]
			for member, distance in nearby:
				distances[member] = distance
			if not distances:
				obs_metrics.observe_discovery(query.created_by.value, True, 0)
				return []

		criteria = EventCriteria.for_query(
			query,
			tz=local_timezone(),
			creators=creators,
			ids=frozenset(distances) if query.is_spatial else None,
			# Spatial results are re-ranked by distance before the cap applies
			limit=None if query.is_spatial else limit,
		)
		events = list(await self._repo.search(criteria))
		if query.is_spatial:
			events.sort(key=lambda e: (distances[e.id], e.starts_at))
		events = events[:limit]

		people = await self._users.get_many([e.created_by for e in events])
		results: List[Dict[str, Any]] = []
		for event in events:
			row = event.to_dict()
			creator = people.get(event.created_by)
			row["creator"] = creator.summary() if creator else None
			if query.is_spatial:
				row["distance_m"] = round(distances[event.id], 1)
			results.append(row)
		obs_metrics.observe_discovery(query.created_by.value, query.is_spatial, len(results))
		return results
