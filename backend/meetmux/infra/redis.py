"""Shared Redis client for the spatial index and live session store.

Modules import `redis_client` once; `set_redis_client` repoints the proxy
(fakeredis in tests) without touching those imports.
"""

from __future__ import annotations

import redis.asyncio as redis

from meetmux.settings import settings


class RedisProxy:
	"""Forwards every call to the current client; GEO helpers take our point shapes."""

	def __init__(self, client: redis.Redis):
		self._client: redis.Redis = client

	def set_client(self, client: redis.Redis) -> None:
		self._client = client

	@property
	def client(self) -> redis.Redis:
		return self._client

	async def geoadd(self, name, values, nx: bool = False, xx: bool = False, ch: bool = False):
		"""Accept {member: (lng, lat)} as well as the flat triplet list."""
		if isinstance(values, dict):
			flat: list = []
			for member, (lng, lat) in values.items():
				flat.extend([lng, lat, member])
			values = flat
		return await self._client.geoadd(name, values, nx=nx, xx=xx, ch=ch)  # type: ignore[arg-type]

	async def geosearch(self, name, **kwargs):
		"""Members as str; with `withdist`, (member, meters) pairs."""
		results = await self._client.geosearch(name, **kwargs)
		if not results:
			return []
		if kwargs.get("withdist"):
			return [(str(member), float(dist)) for member, dist in results]
		return [str(member) for member in results]

	def __getattr__(self, item):
		return getattr(self._client, item)


redis_client: RedisProxy = RedisProxy(redis.from_url(settings.redis_url, decode_responses=True))


def set_redis_client(client: redis.Redis) -> None:
	redis_client.set_client(client)
