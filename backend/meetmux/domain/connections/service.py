"""Connection graph: request/accept/reject over unordered user pairs."""

from __future__ import annotations

import logging
from typing import List, Sequence

from meetmux.domain.connections.models import Connection, ConnectionStatus, RespondAction
from meetmux.domain.connections.repo import ConnectionRepository
from meetmux.domain.errors import (
	AlreadyConnected,
	AlreadyPending,
	NotFoundError,
	NotReceiver,
	RequestNotPending,
	SelfConnectionError,
)
from meetmux.domain.users.repo import UserRepository
from meetmux.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

# A writer that keeps replacing rejected edges under us is not worth chasing forever
_SEND_ATTEMPTS = 3


def _raise_for_live_edge(edge: Connection) -> None:
	if edge.status == ConnectionStatus.ACCEPTED:
		obs_metrics.inc_connection_reject("already_connected")
		raise AlreadyConnected()
	if edge.status == ConnectionStatus.PENDING:
		obs_metrics.inc_connection_reject("already_pending")
		raise AlreadyPending()


class ConnectionGraph:
	"""State machine for connection edges.

	At most one edge exists per unordered pair. A rejected edge may be
	superseded by a fresh pending request from either side; accepted edges
	are permanent.
	"""

	def __init__(self, repository: ConnectionRepository, users: UserRepository) -> None:
		self._repo = repository
		self._users = users

	async def send_request(self, requester_id: str, receiver_id: str) -> Connection:
		requester_id, receiver_id = str(requester_id), str(receiver_id)
		if requester_id == receiver_id:
			obs_metrics.inc_connection_reject("self_connection")
			raise SelfConnectionError()
		if await self._users.get(receiver_id) is None:
			obs_metrics.inc_connection_reject("unknown_receiver")
			raise NotFoundError("user_not_found")

		for _ in range(_SEND_ATTEMPTS):
			existing = await self._repo.find_pair(requester_id, receiver_id)
			if existing is not None:
				_raise_for_live_edge(existing)
			edge = Connection.new_request(requester_id, receiver_id)
			if await self._repo.replace_pair(edge, superseded_id=existing.id if existing else None):
				obs_metrics.inc_connection(edge.status.value)
				logger.info(
					"connection request sent",
					extra={"connection_id": edge.id, "requester_id": requester_id, "receiver_id": receiver_id},
				)
				return edge
		# Every attempt lost to a concurrent writer; report what is there now
		current = await self._repo.find_pair(requester_id, receiver_id)
		if current is not None:
			_raise_for_live_edge(current)
		obs_metrics.inc_connection_reject("contended")
		raise AlreadyPending()

	async def respond(self, actor_id: str, request_id: str, action: RespondAction | str) -> Connection:
		action = RespondAction(action)
		edge = await self._repo.get(request_id)
		if edge is None:
			raise NotFoundError("request_not_found")
		if edge.receiver_id != str(actor_id):
			obs_metrics.inc_connection_reject("not_receiver")
			raise NotReceiver()
		if edge.status != ConnectionStatus.PENDING:
			obs_metrics.inc_connection_reject("not_pending")
			raise RequestNotPending()
		updated = await self._repo.transition(
			edge.id, expected=ConnectionStatus.PENDING, target=action.target_status
		)
		if updated is None:
			# Someone resolved it between the read and the write
			obs_metrics.inc_connection_reject("not_pending")
			raise RequestNotPending()
		obs_metrics.inc_connection(updated.status.value)
		logger.info(
			"connection request answered",
			extra={"connection_id": updated.id, "status": updated.status.value},
		)
		return updated

	async def list_accepted(self, user_id: str) -> List[str]:
		"""Peer ids of every accepted edge touching `user_id`."""
		edges = await self._repo.list_for_user(user_id, ConnectionStatus.ACCEPTED)
		return [edge.peer_of(user_id) for edge in edges]

	async def is_connected(self, user_a: str, user_b: str) -> bool:
		edge = await self._repo.find_pair(user_a, user_b)
		return edge is not None and edge.status == ConnectionStatus.ACCEPTED

	async def list_connections(self, user_id: str) -> List[dict]:
		edges = await self._repo.list_for_user(user_id, ConnectionStatus.ACCEPTED)
		return await self._with_summaries(edges, lambda edge: edge.peer_of(user_id), "user")

	async def list_pending(self, user_id: str) -> List[dict]:
		edges = await self._repo.list_incoming(user_id, ConnectionStatus.PENDING)
		return await self._with_summaries(edges, lambda edge: edge.requester_id, "requester")

	async def _with_summaries(self, edges: Sequence[Connection], pick, label: str) -> List[dict]:
		users = await self._users.get_many([pick(edge) for edge in edges])
		rows: List[dict] = []
		for edge in edges:
			other = users.get(pick(edge))
			rows.append(
				{
					"id": edge.id,
					"status": edge.status.value,
					"requester_id": edge.requester_id,
					"receiver_id": edge.receiver_id,
					"created_at": edge.created_at,
					"updated_at": edge.updated_at,
					label: other.summary() if other else None,
				}
			)
		return rows
