"""Topic-based fan-out used by presence and live sessions.

Domain code publishes by topic id and never touches raw connections. The
transport owns the subscription registry: Socket.IO rooms in production,
an explicit topic -> channels map in the in-memory implementation.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, FrozenSet, List, Optional, Protocol, Set

import socketio

from meetmux.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class Broadcaster(Protocol):
    async def publish(self, event: str, payload: dict, *, topic: Optional[str] = None) -> None:
        """Deliver to every channel subscribed to `topic`, or to all channels when None."""
        ...

    async def subscribe(self, channel_id: str, topic: str) -> None:
        ...

    async def unsubscribe(self, channel_id: str, topic: str) -> None:
        ...


def user_topic(user_id: str) -> str:
    return f"user:{user_id}"


def live_topic(session_id: str) -> str:
    return f"live:{session_id}"


class SocketIOBroadcaster:
    """Broadcaster backed by a python-socketio namespace and its rooms."""

    def __init__(self, namespace: socketio.AsyncNamespace) -> None:
        self._namespace = namespace

    async def publish(self, event: str, payload: dict, *, topic: Optional[str] = None) -> None:
        obs_metrics.socket_event(self._namespace.namespace, event)
        await self._namespace.emit(event, payload, room=topic)

    async def subscribe(self, channel_id: str, topic: str) -> None:
        try:
            await self._namespace.enter_room(channel_id, topic)
        except ValueError:
            # Channel already gone; nothing to deliver to
            logger.debug("room attach failed sid=%s room=%s", channel_id, topic, exc_info=True)

    async def unsubscribe(self, channel_id: str, topic: str) -> None:
        try:
            await self._namespace.leave_room(channel_id, topic)
        except ValueError:
            pass


@dataclass(frozen=True, slots=True)
class Delivery:
    event: str
    payload: dict
    topic: Optional[str]
    # None means every channel
    recipients: Optional[FrozenSet[str]]

    def reaches(self, channel_id: str) -> bool:
        return self.recipients is None or channel_id in self.recipients


class InMemoryBroadcaster:
    """Records deliveries instead of sending them; used without a socket server and in tests."""

    def __init__(self, history: int = 500) -> None:
        self._topics: Dict[str, Set[str]] = {}
        self.deliveries: Deque[Delivery] = deque(maxlen=history)

    async def publish(self, event: str, payload: dict, *, topic: Optional[str] = None) -> None:
        recipients = None if topic is None else frozenset(self._topics.get(topic, ()))
        self.deliveries.append(Delivery(event=event, payload=dict(payload), topic=topic, recipients=recipients))

    async def subscribe(self, channel_id: str, topic: str) -> None:
        self._topics.setdefault(topic, set()).add(channel_id)

    async def unsubscribe(self, channel_id: str, topic: str) -> None:
        channels = self._topics.get(topic)
        if channels is None:
            return
        channels.discard(channel_id)
        if not channels:
            self._topics.pop(topic, None)

    def subscribers(self, topic: str) -> FrozenSet[str]:
        return frozenset(self._topics.get(topic, ()))

    def received_by(self, channel_id: str, event: Optional[str] = None) -> List[Delivery]:
        return [d for d in self.deliveries if d.reaches(channel_id) and (event is None or d.event == event)]

    def of(self, event: str) -> List[Delivery]:
        return [d for d in self.deliveries if d.event == event]
