"""Pydantic schemas for user payloads."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class UserSummary(BaseModel):
	id: str
	name: str
	avatar_url: str = ""


class LocationOut(BaseModel):
	lat: float
	lng: float


class UserOut(BaseModel):
	id: str
	name: str
	email: str = ""
	avatar_url: str = ""
	bio: str = ""
	interests: List[str] = Field(default_factory=list)
	location: Optional[LocationOut] = None
	status: Literal["online", "offline", "busy", "away"]
	is_online: bool
	location_visibility: Literal["everyone", "connections", "private"]
	last_seen: datetime


class NearbyUser(UserSummary):
	bio: str = ""
	interests: List[str] = Field(default_factory=list)
	location: LocationOut
	status: Literal["online", "offline", "busy", "away"]
	is_online: bool
	distance_m: float


class StatusUpdateRequest(BaseModel):
	status: Literal["online", "offline", "busy", "away"]


class LocationUpdateRequest(BaseModel):
	lat: float = Field(..., ge=-90, le=90)
	lng: float = Field(..., ge=-180, le=180)
