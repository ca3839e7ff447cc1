"""Redis GEO backed spatial index for users and events."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from meetmux.domain.spatial.models import Point
from meetmux.infra.redis import RedisProxy, redis_client

logger = logging.getLogger(__name__)

# Redis GEO cannot store points closer to the poles than this
GEO_MAX_LAT = 85.05112878
CANDIDATE_CAP = 5000

DistanceTuple = Tuple[str, float]


class SpatialIndex:
	"""Keeps one GEO member per entity id and answers radius queries nearest first."""

	def __init__(self, kind: str, client: RedisProxy | None = None) -> None:
		self.kind = kind
		self._client = client or redis_client

	@property
	def key(self) -> str:
		return f"geo:{self.kind}"

	async def upsert(self, member_id: str, point: Point) -> bool:
		if abs(point.lat) > GEO_MAX_LAT:
			logger.warning("spatial index skip kind=%s member=%s reason=polar", self.kind, member_id)
			await self.remove(member_id)
			return False
		await self._client.geoadd(self.key, {str(member_id): (point.lng, point.lat)})
		return True

	async def remove(self, member_id: str) -> None:
		# GEO sets are sorted sets under the hood
		await self._client.zrem(self.key, str(member_id))

	async def position(self, member_id: str) -> Optional[Point]:
		positions = await self._client.geopos(self.key, str(member_id))
		if not positions or positions[0] is None:
			return None
		lng, lat = positions[0]
		return Point(lat=float(lat), lng=float(lng))

	async def within(self, center: Point, radius_m: float, *, limit: int = CANDIDATE_CAP) -> List[DistanceTuple]:
		"""Return (member_id, distance_m) pairs inside the radius, nearest first."""
		if radius_m <= 0:
			return []
		results = await self._client.geosearch(
			self.key,
			longitude=center.lng,
			latitude=center.lat,
			radius=radius_m,
			unit="m",
			withdist=True,
			sort="ASC",
			count=limit,
		)
		return [(str(member), float(dist)) for member, dist in results]


def events_index() -> SpatialIndex:
	return SpatialIndex("events")


def users_index() -> SpatialIndex:
	return SpatialIndex("users")
