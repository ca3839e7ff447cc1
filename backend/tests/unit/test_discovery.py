from datetime import datetime, timedelta, timezone

import pytest

from meetmux.domain import container
from meetmux.domain.errors import AuthenticationRequired
from meetmux.domain.events.query import CreatedByScope, DiscoveryQuery
from meetmux.settings import settings

P = {"lat": 45.5017, "lng": -73.5673}
NEAR = {"lat": 45.5107, "lng": -73.5673}  # ~1 km north
FAR = {"lat": 45.5917, "lng": -73.5673}  # ~10 km north


async def _create(creator: str, name: str, activity: str, starts_at: datetime, location=None):
	return await container.get_event_service().create(
		creator,
		name=name,
		activity_type=activity,
		starts_at=starts_at,
		ends_at=starts_at + timedelta(hours=2),
		location=location,
	)


def _query(**params) -> DiscoveryQuery:
	params.setdefault("now", datetime.now(timezone.utc))
	return DiscoveryQuery.from_params(**params)


async def _connect(a: str, b: str) -> None:
	graph = container.get_connection_graph()
	edge = await graph.send_request(a, b)
	await graph.respond(b, edge.id, "accept")


@pytest.mark.asyncio
async def test_activity_type_and_radius(make_user):
	await make_user("alice")
	await make_user("bob")
	soon = datetime.now(timezone.utc) + timedelta(hours=2)
	event = await _create("alice", "Hack night", "Tech", soon, P)
	service = container.get_event_service()

	tech = await service.discover(_query(activity_type="Tech", lat=P["lat"], lng=P["lng"], radius="5000", requesting_user_id="bob"))
	assert [row["id"] for row in tech] == [event.id]
	assert tech[0]["distance_m"] == pytest.approx(0.0, abs=1.0)

	food = await service.discover(_query(activity_type="Food", lat=P["lat"], lng=P["lng"], radius="5000"))
	assert food == []


@pytest.mark.asyncio
async def test_spatial_results_are_nearest_first_and_bounded(make_user):
	await make_user("alice")
	now = datetime.now(timezone.utc)
	later_close = await _create("alice", "Close", "Run", now + timedelta(hours=5), P)
	sooner_near = await _create("alice", "Near", "Run", now + timedelta(hours=1), NEAR)
	await _create("alice", "Far", "Run", now + timedelta(hours=1), FAR)
	await _create("alice", "Nowhere", "Run", now + timedelta(hours=1))

	rows = await container.get_event_service().discover(_query(lat=P["lat"], lng=P["lng"], radius=5000))

	assert [row["id"] for row in rows] == [later_close.id, sooner_near.id]
	assert rows[1]["distance_m"] == pytest.approx(1000, rel=0.05)
	assert all(row["distance_m"] <= 5000 for row in rows)


@pytest.mark.asyncio
async def test_without_center_sorted_by_start_and_no_distance(make_user):
	await make_user("alice")
	now = datetime.now(timezone.utc)
	third = await _create("alice", "Third", "Tech", now + timedelta(hours=3), FAR)
	first = await _create("alice", "First", "Tech", now + timedelta(hours=1))
	second = await _create("alice", "Second", "Tech", now + timedelta(hours=2), P)

	rows = await container.get_event_service().discover(_query())

	assert [row["id"] for row in rows] == [first.id, second.id, third.id]
	assert all("distance_m" not in row for row in rows)


@pytest.mark.asyncio
async def test_malformed_coordinates_are_treated_as_absent(make_user):
	await make_user("alice")
	event = await _create("alice", "Pinned", "Tech", datetime.now(timezone.utc) + timedelta(hours=1))

	rows = await container.get_event_service().discover(_query(lat="north", lng=P["lng"], radius="abc"))

	assert [row["id"] for row in rows] == [event.id]


@pytest.mark.asyncio
async def test_results_are_capped(make_user, monkeypatch):
	monkeypatch.setattr(settings, "discovery_limit", 3)
	await make_user("alice")
	now = datetime.now(timezone.utc)
	created = [await _create("alice", f"E{i}", "Tech", now + timedelta(hours=i + 1), P) for i in range(5)]

	plain = await container.get_event_service().discover(_query())
	spatial = await container.get_event_service().discover(_query(lat=P["lat"], lng=P["lng"], radius=1000))

	assert [row["id"] for row in plain] == [e.id for e in created[:3]]
	assert len(spatial) == 3


@pytest.mark.asyncio
async def test_connections_scope_requires_a_requester():
	query = _query(created_by="connections")
	assert query.created_by is CreatedByScope.CONNECTIONS
	with pytest.raises(AuthenticationRequired):
		await container.get_event_service().discover(query)


@pytest.mark.asyncio
async def test_connections_scope_with_no_peers_is_empty(make_user):
	await make_user("alice")
	await make_user("bob")
	await _create("alice", "Open", "Tech", datetime.now(timezone.utc) + timedelta(hours=1))

	rows = await container.get_event_service().discover(_query(created_by="connections", requesting_user_id="bob"))

	assert rows == []


@pytest.mark.asyncio
async def test_connections_scope_keeps_only_peer_events(make_user):
	for user_id in ("alice", "bob", "carol"):
		await make_user(user_id)
	await _connect("bob", "alice")
	soon = datetime.now(timezone.utc) + timedelta(hours=1)
	peer_event = await _create("alice", "Peer", "Tech", soon, P)
	await _create("carol", "Stranger", "Tech", soon, P)
	await _create("bob", "Own", "Tech", soon, P)

	rows = await container.get_event_service().discover(
		_query(created_by="connections", requesting_user_id="bob", lat=P["lat"], lng=P["lng"], radius=2000)
	)

	assert [row["id"] for row in rows] == [peer_event.id]
	assert rows[0]["creator"] == {"id": "alice", "name": "Alice", "avatar_url": ""}


@pytest.mark.asyncio
async def test_pending_connections_do_not_count(make_user):
	await make_user("alice")
	await make_user("bob")
	await container.get_connection_graph().send_request("bob", "alice")
	await _create("alice", "Peer", "Tech", datetime.now(timezone.utc) + timedelta(hours=1))

	rows = await container.get_event_service().discover(_query(created_by="connections", requesting_user_id="bob"))

	assert rows == []


@pytest.mark.asyncio
async def test_time_of_day_and_date_range(make_user, fixed_now):
	await make_user("alice")
	saturday_night = await _create("alice", "Late", "Music", datetime(2026, 10, 17, 22, 0, tzinfo=timezone.utc))
	await _create("alice", "Brunch", "Music", datetime(2026, 10, 17, 10, 0, tzinfo=timezone.utc))
	await _create("alice", "Weeknight", "Music", datetime(2026, 10, 15, 22, 0, tzinfo=timezone.utc))
	await _create("alice", "Small hours", "Music", datetime(2026, 10, 18, 2, 0, tzinfo=timezone.utc))

	service = container.get_event_service()
	rows = await service.discover(_query(now=fixed_now, time_of_day="night", date_range="weekend"))
	assert [row["id"] for row in rows] == [saturday_night.id]

	weekend = await service.discover(_query(now=fixed_now, date_range="weekend"))
	assert [row["name"] for row in weekend] == ["Brunch", "Late", "Small hours"]


@pytest.mark.asyncio
async def test_time_of_day_uses_local_timezone(make_user, fixed_now, monkeypatch):
	monkeypatch.setattr(settings, "local_timezone", "America/Toronto")
	await make_user("alice")
	# 23:00 UTC is 19:00 in Toronto during daylight saving time
	event = await _create("alice", "Dinner", "Food", datetime(2026, 10, 14, 23, 0, tzinfo=timezone.utc))

	service = container.get_event_service()
	assert [row["id"] for row in await service.discover(_query(now=fixed_now, time_of_day="evening"))] == [event.id]
	assert await service.discover(_query(now=fixed_now, time_of_day="night")) == []
