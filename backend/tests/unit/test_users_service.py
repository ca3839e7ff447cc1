import pytest

from meetmux.domain import container
from meetmux.domain.errors import NotFoundError, ValidationError
from meetmux.domain.users.models import LocationVisibility, UserStatus
from meetmux.settings import settings

CENTER = (45.5017, -73.5673)


async def _place(user_id: str, dlat: float = 0.0) -> None:
	await container.get_user_service().update_location(user_id, CENTER[0] + dlat, CENTER[1])


@pytest.mark.asyncio
async def test_status_controls_online_flag(make_user):
	await make_user("alice")
	service = container.get_user_service()

	online = await service.set_status("alice", "online")
	assert online.status is UserStatus.ONLINE and online.is_online
	busy = await service.set_status("alice", "busy")
	assert busy.status is UserStatus.BUSY and not busy.is_online

	with pytest.raises(ValidationError) as exc_info:
		await service.set_status("alice", "sleeping")
	assert exc_info.value.reason == "invalid_status"
	with pytest.raises(NotFoundError):
		await service.set_status("ghost", "online")


@pytest.mark.asyncio
async def test_location_update_writes_row_and_index(make_user):
	await make_user("alice")
	service = container.get_user_service()

	user = await service.update_location("alice", "45.5", "-73.5")

	assert user.location.lat == 45.5
	position = await service.index.position("alice")
	assert position.lat == pytest.approx(45.5, abs=1e-4)
	with pytest.raises(ValidationError):
		await service.update_location("alice", 91, 0)


@pytest.mark.asyncio
async def test_nearby_respects_visibility(make_user):
	await make_user("me")
	await make_user("open")
	await make_user("hidden", visibility=LocationVisibility.PRIVATE)
	await make_user("friend", visibility=LocationVisibility.CONNECTIONS)
	await make_user("acquaintance", visibility=LocationVisibility.CONNECTIONS)
	await make_user("distant")
	for user_id, dlat in (("me", 0), ("open", 0.002), ("hidden", 0.001), ("friend", 0.004), ("acquaintance", 0.003), ("distant", 0.2)):
		await _place(user_id, dlat)
	graph = container.get_connection_graph()
	edge = await graph.send_request("me", "friend")
	await graph.respond("friend", edge.id, "accept")

	rows = await container.get_user_service().nearby("me", lat=CENTER[0], lng=CENTER[1], radius_km="2")

	assert [row["id"] for row in rows] == ["open", "friend"]
	assert rows[0]["distance_m"] < rows[1]["distance_m"]


@pytest.mark.asyncio
async def test_nearby_interests_filter(make_user):
	await make_user("me", interests=["chess", "running"])
	await make_user("runner", interests=["running"])
	await make_user("painter", interests=["painting"])
	for user_id in ("me", "runner", "painter"):
		await _place(user_id, 0.001)
	service = container.get_user_service()

	everyone = await service.nearby("me", lat=CENTER[0], lng=CENTER[1])
	shared = await service.nearby("me", lat=CENTER[0], lng=CENTER[1], interests_only=True)

	assert {row["id"] for row in everyone} == {"runner", "painter"}
	assert [row["id"] for row in shared] == ["runner"]


@pytest.mark.asyncio
async def test_nearby_is_capped(make_user, monkeypatch):
	monkeypatch.setattr(settings, "nearby_users_limit", 2)
	await make_user("me")
	for i in range(4):
		await make_user(f"u{i}")
		await _place(f"u{i}", 0.001 * (i + 1))

	rows = await container.get_user_service().nearby("me", lat=CENTER[0], lng=CENTER[1])

	assert [row["id"] for row in rows] == ["u0", "u1"]
