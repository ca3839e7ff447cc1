"""User status, location and nearby-people lookups."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, List, Optional

from meetmux.domain.errors import NotFoundError, ValidationError
from meetmux.domain.spatial import SpatialIndex, coerce_point, users_index
from meetmux.domain.spatial.models import coerce_positive
from meetmux.domain.users.models import LocationVisibility, User, UserStatus
from meetmux.domain.users.repo import UserRepository
from meetmux.obs import metrics as obs_metrics
from meetmux.settings import settings

if TYPE_CHECKING:  # pragma: no cover - type-only imports
	from meetmux.domain.connections.service import ConnectionGraph

logger = logging.getLogger(__name__)


def _now() -> datetime:
	return datetime.now(timezone.utc)


def serialize_user(user: User) -> dict[str, Any]:
	return {
		"id": user.id,
		"name": user.name,
		"email": user.email,
		"avatar_url": user.avatar_url,
		"bio": user.bio,
		"interests": list(user.interests),
		"location": user.location.to_dict() if user.location else None,
		"status": user.status.value,
		"is_online": user.is_online,
		"location_visibility": user.location_visibility.value,
		"last_seen": user.last_seen,
	}


class UserService:
	def __init__(
		self,
		repository: UserRepository,
		graph: "ConnectionGraph",
		index: Optional[SpatialIndex] = None,
	) -> None:
		self._repo = repository
		self._graph = graph
		self._index = index

	@property
	def index(self) -> SpatialIndex:
		# Resolved lazily so tests can swap the Redis client underneath
		return self._index or users_index()

	async def get_me(self, user_id: str) -> User:
		user = await self._repo.get(user_id)
		if user is None:
			raise NotFoundError("user_not_found")
		return user

	async def set_status(self, user_id: str, status: str) -> User:
		try:
			parsed = UserStatus(status)
		except ValueError:
			raise ValidationError("invalid_status") from None
		user = await self._repo.set_presence(
			user_id,
			status=parsed,
			is_online=parsed is UserStatus.ONLINE,
			last_seen=_now(),
		)
		if user is None:
			raise NotFoundError("user_not_found")
		obs_metrics.inc_presence(parsed.value)
		return user

	async def update_location(self, user_id: str, lat: Any, lng: Any) -> User:
		"""Write the point and its spatial entry; returns the row as written."""
		point = coerce_point(lat, lng)
		if point is None:
			raise ValidationError("invalid_coordinates")
		user = await self._repo.update_location(user_id, point, last_seen=_now())
		if user is None:
			raise NotFoundError("user_not_found")
		await self.index.upsert(user.id, point)
		return user

	async def nearby(
		self,
		user_id: str,
		*,
		lat: Any,
		lng: Any,
		radius_km: Any = None,
		interests_only: bool = False,
	) -> List[dict[str, Any]]:
		center = coerce_point(lat, lng)
		if center is None:
			raise ValidationError("invalid_coordinates")
		radius_km = coerce_positive(radius_km) or settings.nearby_default_radius_km
		me = await self._repo.get(user_id)
		if me is None:
			raise NotFoundError("user_not_found")

		candidates = await self.index.within(center, radius_km * 1000.0)
		candidates = [(member, dist) for member, dist in candidates if member != me.id]
		users = await self._repo.get_many([member for member, _ in candidates])
		peers: set[str] | None = None
		wanted = set(me.interests) if interests_only else set()

		rows: List[dict[str, Any]] = []
		for member, distance in candidates:
			user = users.get(member)
			if user is None or user.location is None:
				continue
			if user.location_visibility is LocationVisibility.PRIVATE:
				continue
			if user.location_visibility is LocationVisibility.CONNECTIONS:
				if peers is None:
					peers = set(await self._graph.list_accepted(me.id))
				if user.id not in peers:
					continue
			if wanted and not wanted.intersection(user.interests):
				continue
			rows.append(
				{
					**user.summary(),
					"bio": user.bio,
					"interests": list(user.interests),
					"location": user.location.to_dict(),
					"status": user.status.value,
					"is_online": user.is_online,
					"distance_m": round(distance, 1),
				}
			)
			if len(rows) >= settings.nearby_users_limit:
				break
		obs_metrics.observe_nearby(len(rows))
		return rows
