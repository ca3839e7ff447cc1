"""Pydantic schemas for event payloads."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from meetmux.domain.users.schemas import LocationOut, UserSummary


class EventCreateRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	name: str = Field(..., min_length=1, max_length=200)
	description: str = Field(default="", max_length=4000)
	activity_type: str = Field(..., alias="activityType", min_length=1, max_length=80)
	location: Optional[LocationOut] = None
	starts_at: datetime = Field(..., alias="startsAt")
	ends_at: datetime = Field(..., alias="endsAt")
	capacity: Optional[int] = Field(default=None, ge=1, le=10000)


class EventOut(BaseModel):
	id: str
	name: str
	description: str = ""
	activity_type: str
	location: Optional[LocationOut] = None
	starts_at: datetime
	ends_at: datetime
	created_by: str
	participants: List[str]
	capacity: int
	visibility: str
	created_at: datetime


class DiscoveredEvent(EventOut):
	creator: Optional[UserSummary] = None
	distance_m: Optional[float] = None


class MyEvents(BaseModel):
	created: List[EventOut]
	joined: List[EventOut]
