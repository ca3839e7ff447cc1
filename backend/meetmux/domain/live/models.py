"""Live session snapshot types."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RouteProvider(str, Enum):
    OSRM = "osrm"
    MAPBOX = "mapbox"
    GOOGLE = "google"
    OTHER = "other"


@dataclass(slots=True)
class LiveLocation:
    user_id: str
    lat: float
    lng: float
    updated_at: datetime

    def to_json(self) -> str:
        return json.dumps(
            {"lat": self.lat, "lng": self.lng, "updated_at": self.updated_at.isoformat()},
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, user_id: str, raw: str) -> "LiveLocation":
        data = json.loads(raw)
        return cls(
            user_id=str(user_id),
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass(slots=True)
class Route:
    points: List[Dict[str, float]] = field(default_factory=list)
    provider: RouteProvider = RouteProvider.OSRM

    def to_json(self) -> str:
        return json.dumps({"points": self.points, "provider": self.provider.value}, separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> "Route":
        data = json.loads(raw)
        return cls(
            points=[{"lat": float(p["lat"]), "lng": float(p["lng"])} for p in data.get("points", [])],
            provider=RouteProvider(data.get("provider") or RouteProvider.OSRM.value),
        )


@dataclass(slots=True)
class LiveSession:
    session_id: str
    users: List[str]
    is_active: bool
    started_by: Optional[str]
    started_at: Optional[datetime]
    ended_at: Optional[datetime] = None
    live_locations: Dict[str, LiveLocation] = field(default_factory=dict)
    route: Optional[Route] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "users": list(self.users),
            "is_active": self.is_active,
            "started_by": self.started_by,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "live_locations": [
                {"user_id": loc.user_id, "lat": loc.lat, "lng": loc.lng, "updated_at": loc.updated_at}
                for loc in sorted(self.live_locations.values(), key=lambda loc: loc.updated_at)
            ],
            "route": (
                {"points": list(self.route.points), "provider": self.route.provider.value} if self.route else None
            ),
        }
