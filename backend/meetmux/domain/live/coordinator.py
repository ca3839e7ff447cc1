"""Live session coordinator: start, push location, end, read."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional

from meetmux.domain.errors import LiveSessionNotFound, NotParticipant, ValidationError
from meetmux.domain.live.models import LiveLocation, LiveSession, Route, RouteProvider
from meetmux.domain.live.store import LiveSessionStore
from meetmux.domain.spatial.models import coerce_point
from meetmux.infra.realtime import Broadcaster, live_topic
from meetmux.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

STARTED_EVENT = "live:started"
LOCATION_EVENT = "live:location"
ENDED_EVENT = "live:ended"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _session_id(raw: Any) -> str:
    session_id = str(raw or "").strip()
    if not session_id or len(session_id) > 128:
        raise ValidationError("invalid_session_id")
    return session_id


class LiveSessionCoordinator:
    """Publishes by topic only; who listens is up to the broadcaster."""

    def __init__(
        self,
        store: LiveSessionStore,
        broadcaster: Callable[[], Broadcaster],
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._clock = clock

    async def start(
        self,
        session_id: Any,
        users: Iterable[Any],
        *,
        started_by: Optional[str],
        channel_id: Optional[str] = None,
    ) -> LiveSession:
        """Create the session or reactivate it with a fresh participant set."""
        session_id = _session_id(session_id)
        members: List[str] = []
        for raw in users or []:
            member = str(raw).strip()
            if member and member not in members:
                members.append(member)
        if started_by and started_by not in members:
            members.insert(0, str(started_by))
        if not members:
            raise ValidationError("missing_users")

        await self._store.upsert(session_id, members, started_by=started_by, now=self._clock())
        if channel_id:
            await self._broadcaster().subscribe(channel_id, live_topic(session_id))
        obs_metrics.inc_live_session("start")
        logger.info("live session started", extra={"session_id": session_id, "participants": len(members)})
        await self._broadcaster().publish(
            STARTED_EVENT, {"sessionId": session_id, "users": members}, topic=live_topic(session_id)
        )
        return await self.get(session_id)

    async def update_location(
        self,
        session_id: Any,
        user_id: str,
        lat: Any,
        lng: Any,
        *,
        channel_id: Optional[str] = None,
    ) -> LiveSession:
        session_id = _session_id(session_id)
        point = coerce_point(lat, lng)
        if point is None:
            raise ValidationError("invalid_coordinates")
        slot = LiveLocation(user_id=str(user_id), lat=point.lat, lng=point.lng, updated_at=self._clock())
        await self._store.put_location(session_id, slot)
        if channel_id:
            await self._broadcaster().subscribe(channel_id, live_topic(session_id))
        obs_metrics.inc_live_session("update")
        await self._broadcaster().publish(
            LOCATION_EVENT,
            {"userId": slot.user_id, "lat": slot.lat, "lng": slot.lng, "sessionId": session_id},
            topic=live_topic(session_id),
        )
        return await self.get(session_id)

    async def end(self, session_id: Any, *, actor_id: Optional[str] = None) -> LiveSession:
        session_id = _session_id(session_id)
        if actor_id is not None:
            await self._require_participant(session_id, actor_id)
        await self._store.mark_ended(session_id, now=self._clock())
        obs_metrics.inc_live_session("end")
        logger.info("live session ended", extra={"session_id": session_id})
        await self._broadcaster().publish(ENDED_EVENT, {"sessionId": session_id}, topic=live_topic(session_id))
        return await self.get(session_id)

    async def get(self, session_id: Any) -> LiveSession:
        session = await self._store.load(_session_id(session_id))
        if session is None:
            raise LiveSessionNotFound()
        return session

    async def set_route(
        self,
        session_id: Any,
        actor_id: str,
        points: Iterable[dict],
        provider: str = RouteProvider.OSRM.value,
    ) -> LiveSession:
        session_id = _session_id(session_id)
        await self._require_participant(session_id, actor_id)
        try:
            route_provider = RouteProvider(provider)
        except ValueError:
            raise ValidationError("invalid_provider") from None
        cleaned = []
        for raw in points or []:
            point = coerce_point(raw.get("lat"), raw.get("lng"))
            if point is None:
                raise ValidationError("invalid_coordinates")
            cleaned.append(point.to_dict())
        await self._store.set_route(session_id, Route(points=cleaned, provider=route_provider))
        return await self.get(session_id)

    async def _require_participant(self, session_id: str, user_id: str) -> LiveSession:
        session = await self.get(session_id)
        if str(user_id) not in session.users and session.started_by != str(user_id):
            raise NotParticipant()
        return session
