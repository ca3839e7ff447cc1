from datetime import datetime, timedelta, timezone

import pytest

P = {"lat": 45.5017, "lng": -73.5673}


def _body(**overrides):
	starts = datetime.now(timezone.utc) + timedelta(hours=2)
	payload = {
		"name": "Hack night",
		"activityType": "Tech",
		"startsAt": starts.isoformat(),
		"endsAt": (starts + timedelta(hours=3)).isoformat(),
		"location": P,
	}
	payload.update(overrides)
	return payload


@pytest.mark.asyncio
async def test_create_and_discover(api_client, make_user):
	await make_user("alice")
	await make_user("bob")

	created = await api_client.post("/events", json=_body(), headers={"X-User-Id": "alice"})
	assert created.status_code == 201
	event = created.json()
	assert event["participants"] == ["alice"]
	assert event["activity_type"] == "Tech"

	params = {"activityType": "Tech", "lat": P["lat"], "lng": P["lng"], "radius": 5000}
	response = await api_client.get("/events", params=params, headers={"X-User-Id": "bob"})
	assert response.status_code == 200
	rows = response.json()
	assert [row["id"] for row in rows] == [event["id"]]
	assert rows[0]["creator"]["id"] == "alice"
	assert rows[0]["distance_m"] is not None

	params["activityType"] = "Food"
	assert (await api_client.get("/events", params=params)).json() == []


@pytest.mark.asyncio
async def test_discovery_ignores_malformed_numbers(api_client):
	await api_client.post("/events", json=_body(), headers={"X-User-Id": "alice"})
	response = await api_client.get("/events", params={"lat": "x", "lng": "y", "radius": "-1"})
	assert response.status_code == 200
	assert len(response.json()) == 1
	assert response.json()[0]["distance_m"] is None


@pytest.mark.asyncio
async def test_legacy_type_alias(api_client):
	await api_client.post("/events", json=_body(), headers={"X-User-Id": "alice"})
	assert len((await api_client.get("/events", params={"type": "Tech"})).json()) == 1
	assert (await api_client.get("/events", params={"type": "Food"})).json() == []


@pytest.mark.asyncio
async def test_connections_scope_needs_auth(api_client):
	response = await api_client.get("/events", params={"createdBy": "connections"})
	assert response.status_code == 401
	body = response.json()
	assert body["detail"] == "auth_required"
	assert body["request_id"]


@pytest.mark.asyncio
async def test_create_requires_auth_and_valid_times(api_client):
	assert (await api_client.post("/events", json=_body())).status_code == 401

	starts = datetime.now(timezone.utc)
	response = await api_client.post(
		"/events",
		json=_body(startsAt=starts.isoformat(), endsAt=(starts - timedelta(hours=1)).isoformat()),
		headers={"X-User-Id": "alice"},
	)
	assert response.status_code == 400
	assert response.json()["detail"] == "invalid_time_range"

	missing = await api_client.post("/events", json={"name": "x"}, headers={"X-User-Id": "alice"})
	assert missing.status_code == 422


@pytest.mark.asyncio
async def test_join_leave_and_mine(api_client):
	created = (await api_client.post("/events", json=_body(capacity=2), headers={"X-User-Id": "alice"})).json()
	event_id = created["id"]

	joined = await api_client.post(f"/events/{event_id}/join", headers={"X-User-Id": "bob"})
	assert joined.status_code == 200
	assert joined.json()["participants"] == ["alice", "bob"]

	again = await api_client.post(f"/events/{event_id}/join", headers={"X-User-Id": "bob"})
	assert again.status_code == 409
	assert again.json()["detail"] == "already_joined"

	full = await api_client.post(f"/events/{event_id}/join", headers={"X-User-Id": "carol"})
	assert full.status_code == 409
	assert full.json()["detail"] == "event_full"

	mine = (await api_client.get("/events/mine", headers={"X-User-Id": "bob"})).json()
	assert mine["created"] == []
	assert [e["id"] for e in mine["joined"]] == [event_id]

	left = await api_client.post(f"/events/{event_id}/leave", headers={"X-User-Id": "bob"})
	assert left.json()["participants"] == ["alice"]


@pytest.mark.asyncio
async def test_unknown_event_is_404(api_client):
	response = await api_client.get("/events/does-not-exist")
	assert response.status_code == 404
	assert response.json()["detail"] == "event_not_found"


@pytest.mark.asyncio
async def test_creator_without_profile_row_can_create(api_client):
	created = await api_client.post("/events", json=_body(), headers={"X-User-Id": "ghost"})

	assert created.status_code == 201
	assert created.json()["created_by"] == "ghost"
