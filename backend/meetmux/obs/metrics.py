"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"meetmux_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"meetmux_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"meetmux_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"meetmux_socketio_events_total",
	"Socket.IO events handled per namespace",
	["namespace", "event"],
)

PRESENCE_TRANSITIONS = Counter(
	"meetmux_presence_transitions_total",
	"Presence online/offline transitions",
	["state"],
)

LOCATION_UPDATES = Counter(
	"meetmux_location_updates_total",
	"Location updates accepted over the channel",
	["visibility"],
)

DISCOVERY_QUERIES = Counter(
	"meetmux_discovery_queries_total",
	"Event discovery queries served",
	["scope", "spatial"],
)

DISCOVERY_RESULTS = Histogram(
	"meetmux_discovery_results",
	"Number of events returned per discovery query",
	buckets=(0, 1, 5, 10, 25, 50, 100, 200),
)

NEARBY_RESULTS = Histogram(
	"meetmux_nearby_users_results",
	"Number of users returned per nearby query",
	buckets=(0, 1, 5, 10, 25, 50, 100),
)

CONNECTION_TRANSITIONS = Counter(
	"meetmux_connection_transitions_total",
	"Connection edge transitions",
	["status"],
)

CONNECTION_REJECTS = Counter(
	"meetmux_connection_rejects_total",
	"Connection requests rejected before any state change",
	["reason"],
)

EVENT_MEMBERSHIP = Counter(
	"meetmux_event_membership_total",
	"Event create/join/leave operations",
	["action"],
)

LIVE_SESSION_EVENTS = Counter(
	"meetmux_live_session_events_total",
	"Live session lifecycle events",
	["action"],
)

LIVE_SLOT_RETRIES = Counter(
	"meetmux_live_slot_cas_retries_total",
	"Compare-and-set retries while writing live location slots",
)

REDIS_UP = Gauge("meetmux_redis_up", "Redis reachability (1 up, 0 down)")
POSTGRES_UP = Gauge("meetmux_postgres_up", "Postgres reachability (1 up, 0 down)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_presence(state: str) -> None:
	PRESENCE_TRANSITIONS.labels(state=state).inc()


def inc_location_update(visibility: str) -> None:
	LOCATION_UPDATES.labels(visibility=visibility).inc()


def observe_discovery(scope: str, spatial: bool, count: int) -> None:
	DISCOVERY_QUERIES.labels(scope=scope, spatial="yes" if spatial else "no").inc()
	DISCOVERY_RESULTS.observe(count)


def observe_nearby(count: int) -> None:
	NEARBY_RESULTS.observe(count)


def inc_connection(status: str) -> None:
	CONNECTION_TRANSITIONS.labels(status=status).inc()


def inc_connection_reject(reason: str) -> None:
	CONNECTION_REJECTS.labels(reason=reason).inc()


def inc_event_membership(action: str) -> None:
	EVENT_MEMBERSHIP.labels(action=action).inc()


def inc_live_session(action: str) -> None:
	LIVE_SESSION_EVENTS.labels(action=action).inc()


def inc_live_slot_retry() -> None:
	LIVE_SLOT_RETRIES.inc()


def mark_redis(ok: bool) -> None:
	REDIS_UP.set(1 if ok else 0)


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1 if ok else 0)
