"""Connection graph between users."""

from meetmux.domain.connections.models import Connection, ConnectionStatus, RespondAction, pair_key
from meetmux.domain.connections.service import ConnectionGraph

__all__ = ["Connection", "ConnectionGraph", "ConnectionStatus", "RespondAction", "pair_key"]
