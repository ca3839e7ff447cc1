"""Domain-level exceptions shared by discovery, connections and live sessions."""

from __future__ import annotations


class DomainError(Exception):
	"""Base class for request-scoped domain failures."""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class ValidationError(DomainError):
	reason = "invalid_request"


class AuthorizationError(DomainError):
	reason = "forbidden"


class AuthenticationRequired(AuthorizationError):
	reason = "auth_required"


class ConflictError(DomainError):
	reason = "conflict"


class NotFoundError(DomainError):
	reason = "not_found"


# connections


class SelfConnectionError(ConflictError):
	reason = "self_connection"


class AlreadyConnected(ConflictError):
	reason = "already_connected"


class AlreadyPending(ConflictError):
	reason = "already_pending"


class RequestNotPending(ConflictError):
	reason = "not_pending"


class NotReceiver(AuthorizationError):
	reason = "not_receiver"


# events


class AlreadyJoined(ConflictError):
	reason = "already_joined"


class EventFull(ConflictError):
	reason = "event_full"


# live sessions


class LiveSessionNotFound(NotFoundError):
	reason = "session_not_found"


class LiveSessionInactive(ConflictError):
	reason = "no_active_session"


class LiveSlotContended(ConflictError):
	reason = "slot_contended"


class NotParticipant(AuthorizationError):
	reason = "not_participant"
