"""Redis persistence for live sessions.

Layout per session id:

- ``live:session:{id}``            hash with the session metadata
- ``live:session:{id}:users``      set of participant ids
- ``live:session:{id}:locations``  hash of user id -> JSON location slot

Keying slots by user id turns "replace my slot" into a single HSET, so
two pushes from one user can never leave two slots behind.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from redis.exceptions import WatchError

from meetmux.domain.errors import LiveSessionInactive, LiveSessionNotFound, LiveSlotContended, NotParticipant
from meetmux.domain.live.models import LiveLocation, LiveSession, Route
from meetmux.infra.redis import RedisProxy, redis_client
from meetmux.obs import metrics as obs_metrics
from meetmux.settings import settings

logger = logging.getLogger(__name__)

MAX_SLOT_ATTEMPTS = 5


def _meta_key(session_id: str) -> str:
    return f"live:session:{session_id}"


def _users_key(session_id: str) -> str:
    return f"live:session:{session_id}:users"


def _locations_key(session_id: str) -> str:
    return f"live:session:{session_id}:locations"


def _parse_ts(raw: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(raw) if raw else None


class LiveSessionStore:
    def __init__(self, client: RedisProxy | None = None, *, idle_seconds: Optional[int] = None) -> None:
        self._client = client or redis_client
        # 0 keeps sessions until ended; otherwise every write pushes expiry out
        self._idle_seconds = settings.live_session_idle_seconds if idle_seconds is None else idle_seconds

    async def _refresh_expiry(self, session_id: str) -> None:
        # Metadata and participants are WATCHed by every slot writer, so their
        # expiry is pushed out only once half the idle window has passed
        meta = _meta_key(session_id)
        remaining = await self._client.ttl(meta)
        # -2: the session is gone; nothing to keep alive
        if remaining == -2 or remaining > self._idle_seconds // 2:
            return
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.expire(meta, self._idle_seconds)
            pipe.expire(_users_key(session_id), self._idle_seconds)
            await pipe.execute()

    async def upsert(self, session_id: str, users: Iterable[str], *, started_by: Optional[str], now: datetime) -> None:
        """Create or reactivate a session, overwriting its participant set.

        Slots of users no longer in the set are dropped; the rest are kept.
        """
        members = [str(u) for u in users]
        locations = _locations_key(session_id)
        for _ in range(MAX_SLOT_ATTEMPTS):
            async with self._client.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(locations)
                    stale = [uid for uid in await pipe.hkeys(locations) if uid not in members]
                    pipe.multi()
                    pipe.hset(
                        _meta_key(session_id),
                        mapping={
                            "session_id": session_id,
                            "is_active": "1",
                            "started_by": started_by or "",
                            "started_at": now.isoformat(),
                            "ended_at": "",
                        },
                    )
                    pipe.delete(_users_key(session_id))
                    if members:
                        pipe.sadd(_users_key(session_id), *members)
                    if stale:
                        pipe.hdel(locations, *stale)
                    if self._idle_seconds > 0:
                        for key in (_meta_key(session_id), _users_key(session_id), locations):
                            pipe.expire(key, self._idle_seconds)
                    await pipe.execute()
                    return
                except WatchError:
                    logger.debug("live session upsert retry session=%s", session_id)
        raise LiveSlotContended()

    async def put_location(self, session_id: str, location: LiveLocation) -> None:
        """Replace `location.user_id`'s slot while the session is active.

        WATCH on the metadata and participant set makes the active and
        membership checks hold at the moment the slot is written; a
        concurrent end or restart aborts the MULTI and the check reruns.
        Only the locations key is written inside the transaction.
        """
        meta, members = _meta_key(session_id), _users_key(session_id)
        locations = _locations_key(session_id)
        for _ in range(MAX_SLOT_ATTEMPTS):
            async with self._client.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(meta, members)
                    if await pipe.hget(meta, "is_active") != "1":
                        raise LiveSessionInactive()
                    if not await pipe.sismember(members, location.user_id):
                        raise NotParticipant()
                    pipe.multi()
                    pipe.hset(locations, location.user_id, location.to_json())
                    if self._idle_seconds > 0:
                        pipe.expire(locations, self._idle_seconds)
                    await pipe.execute()
                    break
                except WatchError:
                    obs_metrics.inc_live_slot_retry()
                    logger.debug("live slot write retry session=%s", session_id)
        else:
            raise LiveSlotContended()
        if self._idle_seconds > 0:
            await self._refresh_expiry(session_id)

    async def mark_ended(self, session_id: str, *, now: datetime) -> None:
        meta = _meta_key(session_id)
        if not await self._client.exists(meta):
            raise LiveSessionNotFound()
        await self._client.hset(meta, mapping={"is_active": "0", "ended_at": now.isoformat()})

    async def set_route(self, session_id: str, route: Route) -> None:
        meta = _meta_key(session_id)
        if not await self._client.exists(meta):
            raise LiveSessionNotFound()
        await self._client.hset(meta, "route", route.to_json())

    async def load(self, session_id: str) -> Optional[LiveSession]:
        meta = await self._client.hgetall(_meta_key(session_id))
        if not meta:
            return None
        members = await self._client.smembers(_users_key(session_id))
        slots = await self._client.hgetall(_locations_key(session_id))
        return LiveSession(
            session_id=session_id,
            users=sorted(members),
            is_active=meta.get("is_active") == "1",
            started_by=meta.get("started_by") or None,
            started_at=_parse_ts(meta.get("started_at")),
            ended_at=_parse_ts(meta.get("ended_at")),
            live_locations={uid: LiveLocation.from_json(uid, raw) for uid, raw in slots.items()},
            route=Route.from_json(meta["route"]) if meta.get("route") else None,
        )
