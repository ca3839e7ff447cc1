"""Typed discovery query and the storage-level criteria derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, FrozenSet, Optional, Tuple

from meetmux.domain.events.buckets import (
	DateRange,
	DateWindow,
	TimeOfDay,
	hour_range,
	resolve_date_window,
)
from meetmux.domain.events.models import VISIBILITY_PUBLIC, Event
from meetmux.domain.spatial.models import Point, coerce_point, coerce_positive


class CreatedByScope(str, Enum):
	ALL = "all"
	CONNECTIONS = "connections"

	@classmethod
	def parse(cls, raw: object) -> "CreatedByScope":
		if raw and str(raw).strip().lower() == cls.CONNECTIONS.value:
			return cls.CONNECTIONS
		return cls.ALL


@dataclass(frozen=True, slots=True)
class DiscoveryQuery:
	now: datetime
	activity_type: Optional[str] = None
	date_range: Optional[DateRange] = None
	time_of_day: Optional[TimeOfDay] = None
	created_by: CreatedByScope = CreatedByScope.ALL
	center: Optional[Point] = None
	radius_m: Optional[float] = None
	requesting_user_id: Optional[str] = None

	@property
	def is_spatial(self) -> bool:
		return self.center is not None and self.radius_m is not None

	@classmethod
	def from_params(
		cls,
		*,
		now: datetime,
		activity_type: Any = None,
		created_by: Any = None,
		time_of_day: Any = None,
		date_range: Any = None,
		lat: Any = None,
		lng: Any = None,
		radius: Any = None,
		requesting_user_id: Optional[str] = None,
	) -> "DiscoveryQuery":
		"""Build a query from raw query-string values.

		Malformed coordinates or radius leave the query non-spatial and
		unknown bucket names are dropped; neither is an error.
		"""
		center = coerce_point(lat, lng)
		radius_m = coerce_positive(radius)
		if center is None or radius_m is None:
			center, radius_m = None, None
		activity = str(activity_type).strip() if activity_type else None
		return cls(
			now=now,
			activity_type=activity or None,
			date_range=DateRange.parse(date_range),
			time_of_day=TimeOfDay.parse(time_of_day),
			created_by=CreatedByScope.parse(created_by),
			center=center,
			radius_m=radius_m,
			requesting_user_id=str(requesting_user_id) if requesting_user_id else None,
		)


@dataclass(frozen=True, slots=True)
class EventCriteria:
	"""Conjunction of non-spatial filters a repository can evaluate.

	`ids` carries the spatial stage's candidates; `creators` the accepted
	peers when scoped to connections. None means unconstrained for both.
	"""

	tz: tzinfo
	activity_type: Optional[str] = None
	window: Optional[DateWindow] = None
	hours: Optional[Tuple[int, int]] = None
	creators: Optional[FrozenSet[str]] = None
	ids: Optional[FrozenSet[str]] = None
	limit: Optional[int] = None
	visibility: str = field(default=VISIBILITY_PUBLIC)

	@classmethod
	def for_query(
		cls,
		query: DiscoveryQuery,
		*,
		tz: tzinfo,
		creators: Optional[FrozenSet[str]] = None,
		ids: Optional[FrozenSet[str]] = None,
		limit: Optional[int] = None,
	) -> "EventCriteria":
		return cls(
			tz=tz,
			activity_type=query.activity_type,
			window=resolve_date_window(query.date_range, query.now) if query.date_range else None,
			hours=hour_range(query.time_of_day) if query.time_of_day else None,
			creators=creators,
			ids=ids,
			limit=limit,
		)

	def matches(self, event: Event) -> bool:
		if event.visibility != self.visibility:
			return False
		if self.ids is not None and event.id not in self.ids:
			return False
		if self.activity_type is not None and event.activity_type != self.activity_type:
			return False
		if self.window is not None and not self.window.contains(event.starts_at):
			return False
		if self.hours is not None:
			start, end = self.hours
			if not start <= event.starts_at.astimezone(self.tz).hour < end:
				return False
		if self.creators is not None and event.created_by not in self.creators:
			return False
		return True
