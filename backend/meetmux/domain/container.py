"""Lightweight service container shared by the API and socket layers.

Repositories default to in-memory implementations; `configure_postgres`
swaps in the asyncpg-backed ones once the pool is up.
"""

from __future__ import annotations

from typing import Optional

import asyncpg

from meetmux.domain.connections.repo import (
    ConnectionRepository,
    InMemoryConnectionRepository,
    PostgresConnectionRepository,
)
from meetmux.domain.connections.service import ConnectionGraph
from meetmux.domain.events.repo import EventRepository, InMemoryEventRepository, PostgresEventRepository
from meetmux.domain.events.service import EventService
from meetmux.domain.live.coordinator import LiveSessionCoordinator
from meetmux.domain.live.store import LiveSessionStore
from meetmux.domain.presence.tracker import PresenceTracker
from meetmux.domain.users.repo import InMemoryUserRepository, PostgresUserRepository, UserRepository
from meetmux.domain.users.service import UserService
from meetmux.infra.realtime import Broadcaster, InMemoryBroadcaster

_pool: Optional[asyncpg.Pool] = None
_broadcaster: Broadcaster = InMemoryBroadcaster()
_user_repository: UserRepository = InMemoryUserRepository()
_connection_repository: ConnectionRepository = InMemoryConnectionRepository()
_event_repository: EventRepository = InMemoryEventRepository()
_graph: ConnectionGraph
_user_service: UserService
_event_service: EventService
_presence: PresenceTracker
_live: LiveSessionCoordinator


def _current_broadcaster() -> Broadcaster:
    return _broadcaster


def _wire() -> None:
    global _graph, _user_service, _event_service, _presence, _live
    _graph = ConnectionGraph(_connection_repository, _user_repository)
    _user_service = UserService(_user_repository, _graph)
    _event_service = EventService(_event_repository, _user_repository, _graph)
    _presence = PresenceTracker(_user_service, _current_broadcaster)
    _live = LiveSessionCoordinator(LiveSessionStore(), _current_broadcaster)


def configure_memory() -> None:
    """Reset every repository to a fresh in-memory instance (tests, local runs)."""
    global _pool, _user_repository, _connection_repository, _event_repository
    _pool = None
    _user_repository = InMemoryUserRepository()
    _connection_repository = InMemoryConnectionRepository()
    _event_repository = InMemoryEventRepository()
    _wire()


def configure_postgres(pool: asyncpg.Pool) -> None:
    global _pool, _user_repository, _connection_repository, _event_repository
    _pool = pool
    _user_repository = PostgresUserRepository(pool)
    _connection_repository = PostgresConnectionRepository(pool)
    _event_repository = PostgresEventRepository(pool)
    _wire()


def set_broadcaster(broadcaster: Broadcaster) -> None:
    global _broadcaster
    _broadcaster = broadcaster


def broadcaster() -> Broadcaster:
    return _broadcaster


def pool() -> Optional[asyncpg.Pool]:
    return _pool


def get_user_repository() -> UserRepository:
    return _user_repository


def get_connection_graph() -> ConnectionGraph:
    return _graph


def get_user_service() -> UserService:
    return _user_service


def get_event_service() -> EventService:
    return _event_service


def get_presence_tracker() -> PresenceTracker:
    return _presence


def get_live_coordinator() -> LiveSessionCoordinator:
    return _live


_wire()
