import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def people(make_user):
	for user_id in ("alice", "bob", "carol"):
		await make_user(user_id)


@pytest.mark.asyncio
async def test_request_accept_and_list(api_client, people):
	sent = await api_client.post("/connections/request", json={"receiverId": "bob"}, headers={"X-User-Id": "alice"})
	assert sent.status_code == 201
	request_id = sent.json()["id"]
	assert sent.json()["status"] == "pending"

	incoming = (await api_client.get("/connections/requests", headers={"X-User-Id": "bob"})).json()
	assert [row["requester"]["id"] for row in incoming] == ["alice"]

	accepted = await api_client.post(
		"/connections/respond",
		json={"requestId": request_id, "action": "accept"},
		headers={"X-User-Id": "bob"},
	)
	assert accepted.status_code == 200
	assert accepted.json()["status"] == "accepted"

	for me, peer in (("alice", "bob"), ("bob", "alice")):
		rows = (await api_client.get("/connections", headers={"X-User-Id": me})).json()
		assert [row["user"]["id"] for row in rows] == [peer]


@pytest.mark.asyncio
async def test_duplicate_request_conflicts(api_client, people):
	headers = {"X-User-Id": "alice"}
	await api_client.post("/connections/request", json={"receiverId": "bob"}, headers=headers)
	again = await api_client.post("/connections/request", json={"receiverId": "bob"}, headers=headers)
	assert again.status_code == 409
	assert again.json()["detail"] == "already_pending"

	self_request = await api_client.post("/connections/request", json={"receiverId": "alice"}, headers=headers)
	assert self_request.status_code == 409
	assert self_request.json()["detail"] == "self_connection"


@pytest.mark.asyncio
async def test_non_receiver_is_forbidden(api_client, people):
	sent = await api_client.post("/connections/request", json={"receiverId": "bob"}, headers={"X-User-Id": "alice"})
	response = await api_client.post(
		"/connections/respond",
		json={"requestId": sent.json()["id"], "action": "accept"},
		headers={"X-User-Id": "carol"},
	)
	assert response.status_code == 403
	assert response.json()["detail"] == "not_receiver"


@pytest.mark.asyncio
async def test_unknown_action_and_request(api_client, people):
	bad_action = await api_client.post(
		"/connections/respond",
		json={"requestId": "x", "action": "maybe"},
		headers={"X-User-Id": "bob"},
	)
	assert bad_action.status_code == 422

	missing = await api_client.post(
		"/connections/respond",
		json={"requestId": "x", "action": "reject"},
		headers={"X-User-Id": "bob"},
	)
	assert missing.status_code == 404
	assert missing.json()["detail"] == "request_not_found"


@pytest.mark.asyncio
async def test_requests_need_authentication(api_client):
	response = await api_client.get("/connections")
	assert response.status_code == 401
