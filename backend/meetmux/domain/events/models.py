"""Domain models for events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from meetmux.domain.spatial.models import Point

VISIBILITY_PUBLIC = "public"


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class Event:
	id: str
	name: str
	activity_type: str
	starts_at: datetime
	ends_at: datetime
	created_by: str
	description: str = ""
	location: Optional[Point] = None
	participants: list[str] = field(default_factory=list)
	capacity: int = 50
	visibility: str = VISIBILITY_PUBLIC
	created_at: datetime = field(default_factory=_utcnow)

	@classmethod
	def new(
		cls,
		*,
		name: str,
		activity_type: str,
		starts_at: datetime,
		ends_at: datetime,
		created_by: str,
		description: str = "",
		location: Optional[Point] = None,
		capacity: int = 50,
	) -> "Event":
		return cls(
			id=str(uuid4()),
			name=name,
			activity_type=activity_type,
			starts_at=starts_at,
			ends_at=ends_at,
			created_by=str(created_by),
			description=description,
			location=location,
			participants=[str(created_by)],
			capacity=capacity,
		)

	@classmethod
	def from_record(cls, record) -> "Event":
		lat = record.get("lat")
		lng = record.get("lng")
		return cls(
			id=str(record["id"]),
			name=record["name"],
			activity_type=record["activity_type"],
			starts_at=record["starts_at"],
			ends_at=record["ends_at"],
			created_by=str(record["created_by"]),
			description=record.get("description") or "",
			location=Point(lat=float(lat), lng=float(lng)) if lat is not None and lng is not None else None,
			participants=[str(p) for p in record.get("participants") or []],
			capacity=int(record["capacity"]),
			visibility=record["visibility"],
			created_at=record["created_at"],
		)

	@property
	def is_full(self) -> bool:
		return len(self.participants) >= self.capacity

	def has_participant(self, user_id: str) -> bool:
		return str(user_id) in self.participants

	def to_dict(self) -> dict[str, Any]:
		return {
			"id": self.id,
			"name": self.name,
			"description": self.description,
			"activity_type": self.activity_type,
			"location": self.location.to_dict() if self.location else None,
			"starts_at": self.starts_at,
			"ends_at": self.ends_at,
			"created_by": self.created_by,
			"participants": list(self.participants),
			"capacity": self.capacity,
			"visibility": self.visibility,
			"created_at": self.created_at,
		}
