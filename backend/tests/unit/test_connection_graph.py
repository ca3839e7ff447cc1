import pytest
import pytest_asyncio

from meetmux.domain import container
from meetmux.domain.connections.models import ConnectionStatus, pair_key
from meetmux.domain.errors import (
	AlreadyConnected,
	AlreadyPending,
	NotFoundError,
	NotReceiver,
	RequestNotPending,
	SelfConnectionError,
)


@pytest_asyncio.fixture
async def people(make_user):
	for user_id in ("alice", "bob", "carol"):
		await make_user(user_id)


def test_pair_key_is_order_independent():
	assert pair_key("bob", "alice") == pair_key("alice", "bob") == "alice:bob"


@pytest.mark.asyncio
async def test_request_then_accept(people):
	graph = container.get_connection_graph()
	edge = await graph.send_request("alice", "bob")
	assert edge.status is ConnectionStatus.PENDING

	accepted = await graph.respond("bob", edge.id, "accept")

	assert accepted.status is ConnectionStatus.ACCEPTED
	assert await graph.list_accepted("alice") == ["bob"]
	assert await graph.list_accepted("bob") == ["alice"]
	assert await graph.is_connected("bob", "alice")


@pytest.mark.asyncio
async def test_self_and_unknown_receiver_rejected(people):
	graph = container.get_connection_graph()
	with pytest.raises(SelfConnectionError):
		await graph.send_request("alice", "alice")
	with pytest.raises(NotFoundError) as exc_info:
		await graph.send_request("alice", "nobody")
	assert exc_info.value.reason == "user_not_found"


@pytest.mark.asyncio
async def test_duplicate_pending_in_either_direction_conflicts(people):
	graph = container.get_connection_graph()
	await graph.send_request("alice", "bob")
	with pytest.raises(AlreadyPending):
		await graph.send_request("alice", "bob")
	with pytest.raises(AlreadyPending):
		await graph.send_request("bob", "alice")


@pytest.mark.asyncio
async def test_accepted_pair_cannot_be_requested_again(people):
	graph = container.get_connection_graph()
	edge = await graph.send_request("alice", "bob")
	await graph.respond("bob", edge.id, "accept")
	with pytest.raises(AlreadyConnected):
		await graph.send_request("bob", "alice")


@pytest.mark.asyncio
async def test_only_receiver_may_respond(people):
	graph = container.get_connection_graph()
	edge = await graph.send_request("alice", "bob")
	with pytest.raises(NotReceiver):
		await graph.respond("alice", edge.id, "accept")
	with pytest.raises(NotReceiver):
		await graph.respond("carol", edge.id, "reject")
	with pytest.raises(NotFoundError):
		await graph.respond("bob", "missing", "accept")


@pytest.mark.asyncio
async def test_responding_twice_fails(people):
	graph = container.get_connection_graph()
	edge = await graph.send_request("alice", "bob")
	await graph.respond("bob", edge.id, "reject")
	with pytest.raises(RequestNotPending):
		await graph.respond("bob", edge.id, "accept")


@pytest.mark.asyncio
async def test_rejected_pair_can_be_requested_again_with_one_edge(people):
	graph = container.get_connection_graph()
	first = await graph.send_request("alice", "bob")
	await graph.respond("bob", first.id, "reject")

	second = await graph.send_request("bob", "alice")

	assert second.id != first.id
	assert second.requester_id == "bob"
	repo = graph._repo
	current = await repo.find_pair("alice", "bob")
	assert current is not None and current.id == second.id
	assert await repo.get(first.id) is None
	assert await graph.list_accepted("alice") == []


@pytest.mark.asyncio
async def test_listings_carry_user_summaries(people):
	graph = container.get_connection_graph()
	edge = await graph.send_request("alice", "bob")
	await graph.send_request("carol", "bob")

	pending = await graph.list_pending("bob")
	assert sorted(row["requester"]["id"] for row in pending) == ["alice", "carol"]
	assert await graph.list_pending("alice") == []

	await graph.respond("bob", edge.id, "accept")
	connections = await graph.list_connections("alice")
	assert [row["user"]["name"] for row in connections] == ["Bob"]
	assert [row["requester"]["id"] for row in await graph.list_pending("bob")] == ["carol"]
