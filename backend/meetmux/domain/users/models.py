"""Domain models for user records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from meetmux.domain.spatial.models import Point


class UserStatus(str, Enum):
	ONLINE = "online"
	OFFLINE = "offline"
	BUSY = "busy"
	AWAY = "away"


class LocationVisibility(str, Enum):
	"""Who may receive a user's location."""

	EVERYONE = "everyone"
	CONNECTIONS = "connections"
	PRIVATE = "private"


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class User:
	id: str
	name: str
	email: str = ""
	avatar_url: str = ""
	bio: str = ""
	interests: list[str] = field(default_factory=list)
	location: Optional[Point] = None
	status: UserStatus = UserStatus.OFFLINE
	is_online: bool = False
	location_visibility: LocationVisibility = LocationVisibility.EVERYONE
	last_seen: datetime = field(default_factory=_utcnow)
	created_at: datetime = field(default_factory=_utcnow)

	@classmethod
	def from_record(cls, record) -> "User":
		lat = record.get("lat")
		lng = record.get("lng")
		return cls(
			id=str(record["id"]),
			name=record["name"],
			email=record.get("email") or "",
			avatar_url=record.get("avatar_url") or "",
			bio=record.get("bio") or "",
			interests=list(record.get("interests") or []),
			location=Point(lat=float(lat), lng=float(lng)) if lat is not None and lng is not None else None,
			status=UserStatus(record["status"]),
			is_online=bool(record["is_online"]),
			location_visibility=LocationVisibility(record["location_visibility"]),
			last_seen=record["last_seen"],
			created_at=record["created_at"],
		)

	def summary(self) -> dict[str, str]:
		"""Minimal public fields embedded in other resources."""
		return {"id": self.id, "name": self.name, "avatar_url": self.avatar_url}
