import pytest

from meetmux.domain import container
from meetmux.domain.errors import NotFoundError
from meetmux.domain.users.models import LocationVisibility
from meetmux.infra.realtime import user_topic


@pytest.mark.asyncio
async def test_auth_binds_channel_and_announces(make_user, broadcaster):
	await make_user("alice")
	tracker = container.get_presence_tracker()

	await tracker.authenticate("sid-1", "alice")

	assert tracker.user_for("sid-1") == "alice"
	assert broadcaster.subscribers(user_topic("alice")) == {"sid-1"}
	update = broadcaster.of("presence:update")[-1]
	assert update.payload == {"userId": "alice", "isOnline": True}
	assert update.recipients is None
	assert (await container.get_user_service().get_me("alice")).is_online


@pytest.mark.asyncio
async def test_auth_for_unknown_user_fails(broadcaster):
	tracker = container.get_presence_tracker()
	with pytest.raises(NotFoundError):
		await tracker.authenticate("sid-1", "ghost")
	assert tracker.user_for("sid-1") is None
	assert broadcaster.of("presence:update") == []


@pytest.mark.asyncio
async def test_public_location_reaches_everyone(make_user, broadcaster):
	await make_user("alice")
	tracker = container.get_presence_tracker()
	await tracker.authenticate("sid-1", "alice")

	await tracker.update_location("sid-1", 45.5, -73.5)

	delivery = broadcaster.of("location-update")[-1]
	assert delivery.recipients is None
	assert delivery.payload["userId"] == "alice"
	assert (delivery.payload["lat"], delivery.payload["lng"]) == (45.5, -73.5)
	assert isinstance(delivery.payload["ts"], int)


@pytest.mark.asyncio
async def test_private_location_goes_to_own_channels_only(make_user, broadcaster):
	await make_user("alice", visibility=LocationVisibility.PRIVATE)
	await make_user("bob")
	tracker = container.get_presence_tracker()
	await tracker.authenticate("sid-a1", "alice")
	await tracker.authenticate("sid-a2", "alice")
	await tracker.authenticate("sid-b", "bob")

	await tracker.update_location("sid-a1", 45.5, -73.5)

	delivery = broadcaster.of("location-update")[-1]
	assert delivery.topic == user_topic("alice")
	assert delivery.recipients == {"sid-a1", "sid-a2"}
	assert broadcaster.received_by("sid-b", "location-update") == []
	assert sorted(tracker.channels_for("alice")) == ["sid-a1", "sid-a2"]


@pytest.mark.asyncio
async def test_events_from_unbound_channels_are_ignored(make_user, broadcaster):
	await make_user("alice")
	tracker = container.get_presence_tracker()

	await tracker.update_location("sid-x", 45.5, -73.5)
	await tracker.disconnect("sid-x")

	assert list(broadcaster.deliveries) == []
	assert (await container.get_user_service().get_me("alice")).location is None


@pytest.mark.asyncio
async def test_invalid_coordinates_are_dropped(make_user, broadcaster):
	await make_user("alice")
	tracker = container.get_presence_tracker()
	await tracker.authenticate("sid-1", "alice")

	await tracker.update_location("sid-1", "abc", None)

	assert broadcaster.of("location-update") == []


@pytest.mark.asyncio
async def test_disconnect_persists_offline_before_announcing(make_user, broadcaster, monkeypatch):
	await make_user("alice")
	tracker = container.get_presence_tracker()
	await tracker.authenticate("sid-1", "alice")
	users = container.get_user_service()
	seen = []
	original_publish = broadcaster.publish

	async def recording_publish(event, payload, *, topic=None):
		if event == "presence:update" and not payload["isOnline"]:
			seen.append((await users.get_me("alice")).is_online)
		await original_publish(event, payload, topic=topic)

	monkeypatch.setattr(broadcaster, "publish", recording_publish)

	await tracker.disconnect("sid-1")

	assert seen == [False]
	assert tracker.user_for("sid-1") is None
	assert broadcaster.subscribers(user_topic("alice")) == frozenset()
	assert (await users.get_me("alice")).status.value == "offline"
