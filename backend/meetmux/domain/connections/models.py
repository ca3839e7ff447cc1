"""Domain models for connection edges."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4


class ConnectionStatus(str, Enum):
	"""Edge states; `accepted` and `rejected` are terminal."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"


class RespondAction(str, Enum):
	ACCEPT = "accept"
	REJECT = "reject"

	@property
	def target_status(self) -> ConnectionStatus:
		return ConnectionStatus.ACCEPTED if self is RespondAction.ACCEPT else ConnectionStatus.REJECTED


def pair_key(user_a: str, user_b: str) -> str:
	"""Key of the unordered pair; at most one edge exists per key."""
	low, high = sorted((str(user_a), str(user_b)))
	return f"{low}:{high}"


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class Connection:
	id: str
	requester_id: str
	receiver_id: str
	status: ConnectionStatus
	created_at: datetime = field(default_factory=_utcnow)
	updated_at: datetime = field(default_factory=_utcnow)

	@classmethod
	def new_request(cls, requester_id: str, receiver_id: str) -> "Connection":
		return cls(
			id=str(uuid4()),
			requester_id=str(requester_id),
			receiver_id=str(receiver_id),
			status=ConnectionStatus.PENDING,
		)

	@classmethod
	def from_record(cls, record) -> "Connection":
		return cls(
			id=str(record["id"]),
			requester_id=str(record["requester_id"]),
			receiver_id=str(record["receiver_id"]),
			status=ConnectionStatus(record["status"]),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
		)

	@property
	def key(self) -> str:
		return pair_key(self.requester_id, self.receiver_id)

	def involves(self, user_id: str) -> bool:
		return str(user_id) in (self.requester_id, self.receiver_id)

	def peer_of(self, user_id: str) -> str:
		return self.receiver_id if self.requester_id == str(user_id) else self.requester_id
