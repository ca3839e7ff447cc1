"""Pydantic schemas for live session payloads."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from meetmux.domain.users.schemas import LocationOut


class LiveStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", min_length=1, max_length=128)
    users: List[str] = Field(default_factory=list)


class LiveLocationRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RouteRequest(BaseModel):
    points: List[LocationOut] = Field(default_factory=list)
    provider: Literal["osrm", "mapbox", "google", "other"] = "osrm"


class LiveLocationOut(BaseModel):
    user_id: str
    lat: float
    lng: float
    updated_at: datetime


class RouteOut(BaseModel):
    points: List[LocationOut]
    provider: str


class LiveSessionOut(BaseModel):
    session_id: str
    users: List[str]
    is_active: bool
    started_by: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    live_locations: List[LiveLocationOut]
    route: Optional[RouteOut] = None
