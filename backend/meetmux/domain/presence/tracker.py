"""Channel-to-user bindings and privacy-aware presence fan-out."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from meetmux.domain.errors import NotFoundError, ValidationError
from meetmux.domain.users.models import LocationVisibility, UserStatus
from meetmux.domain.users.service import UserService
from meetmux.infra.realtime import Broadcaster, user_topic
from meetmux.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

PRESENCE_EVENT = "presence:update"
LOCATION_EVENT = "location-update"


class PresenceTracker:
	"""Tracks which user each channel speaks for.

	Events from a channel that has not authenticated yet are ignored
	without error; clients may send them before `auth` lands.
	"""

	def __init__(self, users: UserService, broadcaster: Callable[[], Broadcaster]) -> None:
		self._users = users
		self._broadcaster = broadcaster
		self._bindings: Dict[str, str] = {}

	def user_for(self, channel_id: str) -> Optional[str]:
		return self._bindings.get(channel_id)

	def channels_for(self, user_id: str) -> List[str]:
		return [channel for channel, bound in self._bindings.items() if bound == str(user_id)]

	async def authenticate(self, channel_id: str, user_id: str) -> None:
		user_id = str(user_id)
		try:
			await self._users.set_status(user_id, UserStatus.ONLINE.value)
		except NotFoundError:
			logger.warning("presence auth for unknown user", extra={"channel_id": channel_id})
			raise
		previous = self._bindings.get(channel_id)
		if previous and previous != user_id:
			await self._broadcaster().unsubscribe(channel_id, user_topic(previous))
		self._bindings[channel_id] = user_id
		await self._broadcaster().subscribe(channel_id, user_topic(user_id))
		await self._broadcaster().publish(PRESENCE_EVENT, {"userId": user_id, "isOnline": True})

	async def update_location(self, channel_id: str, lat: Any, lng: Any) -> None:
		user_id = self._bindings.get(channel_id)
		if user_id is None:
			return
		try:
			user = await self._users.update_location(user_id, lat, lng)
		except ValidationError:
			logger.warning("presence location ignored reason=invalid_coordinates", extra={"user_id": user_id})
			return
		# Visibility comes from the row the write returned, not a second read
		visibility = user.location_visibility
		point = user.location
		payload = {
			"userId": user_id,
			"lat": point.lat if point else None,
			"lng": point.lng if point else None,
			"ts": int(time.time() * 1000),
		}
		topic = user_topic(user_id) if visibility is LocationVisibility.PRIVATE else None
		obs_metrics.inc_location_update(visibility.value)
		await self._broadcaster().publish(LOCATION_EVENT, payload, topic=topic)

	async def disconnect(self, channel_id: str) -> None:
		user_id = self._bindings.pop(channel_id, None)
		if user_id is None:
			return
		await self._broadcaster().unsubscribe(channel_id, user_topic(user_id))
		# Runs to completion even if the handler awaiting it is cancelled,
		# so the offline row always lands before the offline broadcast
		await asyncio.shield(self._go_offline(user_id))

	async def _go_offline(self, user_id: str) -> None:
		try:
			await self._users.set_status(user_id, UserStatus.OFFLINE.value)
		except NotFoundError:
			logger.warning("presence offline for unknown user", extra={"user_id": user_id})
			return
		await self._broadcaster().publish(PRESENCE_EVENT, {"userId": user_id, "isOnline": False})
