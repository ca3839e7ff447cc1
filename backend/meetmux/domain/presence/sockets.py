"""Socket.IO namespace carrying presence and live session events."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Dict, Optional

import socketio

from meetmux.domain import container
from meetmux.domain.errors import DomainError
from meetmux.infra.auth import user_id_from_token
from meetmux.infra.errors import INTEGRITY_ERRORS, STORAGE_ERRORS
from meetmux.infra.realtime import InMemoryBroadcaster, SocketIOBroadcaster
from meetmux.obs import logging as obs_logging
from meetmux.obs import metrics as obs_metrics
from meetmux.settings import settings

logger = logging.getLogger(__name__)


def _header(scope: dict, name: str) -> Optional[str]:
    target = name.encode().lower()
    for key, value in scope.get("headers", []):
        if key.lower() == target:
            return value.decode()
    return None


def _payload(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


class RealtimeNamespace(socketio.AsyncNamespace):
    """Root namespace; event names such as `update-location` and `live:start`
    are dispatched to `on_update_location` and `on_live_start`."""

    def __init__(self, namespace: str = "/") -> None:
        super().__init__(namespace)
        # sid -> user id proven by the connect-time token, None when no token was sent
        self.tokens: Dict[str, Optional[str]] = {}

    async def trigger_event(self, event: str, *args):
        handler = event.replace(":", "_").replace("-", "_")
        return await super().trigger_event(handler, *args)

    async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
        obs_metrics.socket_connected(self.namespace)
        scope = environ.get("asgi.scope", environ)
        auth_payload = auth if isinstance(auth, dict) else {}
        token = auth_payload.get("token") or _header(scope, "authorization")
        token_user: Optional[str] = None
        if token:
            try:
                token_user = user_id_from_token(token)
            except ValueError:
                obs_metrics.socket_disconnected(self.namespace)
                raise ConnectionRefusedError("unauthorized") from None
        self.tokens[sid] = token_user
        logger.info("realtime connect sid=%s authenticated=%s", sid, token_user is not None)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        obs_metrics.socket_disconnected(self.namespace)
        self.tokens.pop(sid, None)
        await self._guard(sid, container.get_presence_tracker().disconnect(sid), reply=False)
        logger.info("realtime disconnect sid=%s", sid)

    async def on_auth(self, sid: str, data: Any = None) -> None:
        obs_metrics.socket_event(self.namespace, "auth")
        token_user = self.tokens.get(sid)
        user_id = str(_payload(data).get("userId") or token_user or "").strip()
        if not user_id:
            await self._warn(sid, "missing_user_id")
            return
        if token_user is None and not settings.is_dev():
            await self._warn(sid, "auth_required")
            return
        if token_user is not None and user_id != token_user:
            await self._warn(sid, "forbidden")
            return
        await self._guard(sid, container.get_presence_tracker().authenticate(sid, user_id))

    async def on_update_location(self, sid: str, data: Any = None) -> None:
        obs_metrics.socket_event(self.namespace, "update-location")
        body = _payload(data)
        tracker = container.get_presence_tracker()
        await self._guard(sid, tracker.update_location(sid, body.get("lat"), body.get("lng")))

    async def on_live_start(self, sid: str, data: Any = None) -> None:
        obs_metrics.socket_event(self.namespace, "live:start")
        user_id = container.get_presence_tracker().user_for(sid)
        if user_id is None:
            return
        body = _payload(data)
        users = body.get("users") if isinstance(body.get("users"), list) else []
        live = container.get_live_coordinator()
        await self._guard(sid, live.start(body.get("sessionId"), users, started_by=user_id, channel_id=sid))

    async def on_live_update(self, sid: str, data: Any = None) -> None:
        obs_metrics.socket_event(self.namespace, "live:update")
        user_id = container.get_presence_tracker().user_for(sid)
        if user_id is None:
            return
        body = _payload(data)
        live = container.get_live_coordinator()
        await self._guard(
            sid,
            live.update_location(body.get("sessionId"), user_id, body.get("lat"), body.get("lng"), channel_id=sid),
        )

    async def on_live_end(self, sid: str, data: Any = None) -> None:
        obs_metrics.socket_event(self.namespace, "live:end")
        user_id = container.get_presence_tracker().user_for(sid)
        if user_id is None:
            return
        live = container.get_live_coordinator()
        await self._guard(sid, live.end(_payload(data).get("sessionId"), actor_id=user_id))

    async def _guard(self, sid: str, action: Awaitable[Any], *, reply: bool = True) -> None:
        """Run a handler body; failures go back to this channel only."""
        tokens = obs_logging.bind_context(
            channel_id=sid, user_id=container.get_presence_tracker().user_for(sid)
        )
        try:
            await action
        except DomainError as exc:
            logger.info("realtime handler rejected reason=%s", exc.reason)
            if reply:
                await self._warn(sid, exc.reason)
        except INTEGRITY_ERRORS as exc:
            logger.warning("realtime handler constraint violation error=%s", type(exc).__name__)
            if reply:
                await self._warn(sid, "conflict")
        except STORAGE_ERRORS:
            logger.exception("realtime handler storage failure")
            if reply:
                await self._warn(sid, "storage_unavailable")
        finally:
            obs_logging.reset_context(tokens)

    async def _warn(self, sid: str, code: str) -> None:
        await self.emit("sys.warn", {"code": code}, room=sid)


def set_namespace(ns: RealtimeNamespace) -> None:
    """Route domain broadcasts through `ns`'s rooms."""
    container.set_broadcaster(SocketIOBroadcaster(ns))


def reset_namespace() -> None:
    container.set_broadcaster(InMemoryBroadcaster())
