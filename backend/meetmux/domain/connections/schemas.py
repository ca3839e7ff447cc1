"""Pydantic schemas for connection requests."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from meetmux.domain.users.schemas import UserSummary


class ConnectionRequestBody(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	receiver_id: str = Field(..., alias="receiverId", min_length=1)


class ConnectionRespondBody(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	request_id: str = Field(..., alias="requestId", min_length=1)
	action: Literal["accept", "reject"]


class ConnectionOut(BaseModel):
	id: str
	requester_id: str
	receiver_id: str
	status: Literal["pending", "accepted", "rejected"]
	created_at: datetime
	updated_at: datetime


class ConnectionWithPeer(ConnectionOut):
	user: Optional[UserSummary] = None


class PendingRequest(ConnectionOut):
	requester: Optional[UserSummary] = None
