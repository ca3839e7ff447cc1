"""REST surface for events and discovery."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from meetmux.domain import container
from meetmux.domain.events.models import Event
from meetmux.domain.events.schemas import DiscoveredEvent, EventCreateRequest, EventOut, MyEvents
from meetmux.infra.auth import AuthenticatedUser, get_current_user, get_optional_user

router = APIRouter(prefix="/events")


def _out(event: Event) -> EventOut:
	return EventOut.model_validate(event.to_dict())


@router.get("", response_model=List[DiscoveredEvent])
async def discover_events(
	activity_type: Optional[str] = Query(default=None, alias="activityType"),
	legacy_type: Optional[str] = Query(default=None, alias="type"),
	created_by: Optional[str] = Query(default=None, alias="createdBy"),
	time_of_day: Optional[str] = Query(default=None, alias="timeOfDay"),
	date_range: Optional[str] = Query(default=None, alias="dateRange"),
	lat: Optional[str] = Query(default=None),
	lng: Optional[str] = Query(default=None),
	radius: Optional[str] = Query(default=None, description="Search radius in meters"),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> List[dict]:
	service = container.get_event_service()
	query = service.build_query(
		activity_type=activity_type or legacy_type,
		created_by=created_by,
		time_of_day=time_of_day,
		date_range=date_range,
		lat=lat,
		lng=lng,
		radius=radius,
		requesting_user_id=auth_user.id if auth_user else None,
	)
	return await service.discover(query)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
async def create_event(
	payload: EventCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> EventOut:
	event = await container.get_event_service().create(
		auth_user.id,
		name=payload.name,
		activity_type=payload.activity_type,
		starts_at=payload.starts_at,
		ends_at=payload.ends_at,
		description=payload.description,
		location=payload.location.model_dump() if payload.location else None,
		capacity=payload.capacity,
	)
	return _out(event)


@router.get("/mine", response_model=MyEvents)
async def my_events(auth_user: AuthenticatedUser = Depends(get_current_user)) -> MyEvents:
	mine = await container.get_event_service().mine(auth_user.id)
	return MyEvents(
		created=[_out(e) for e in mine["created"]],
		joined=[_out(e) for e in mine["joined"]],
	)


@router.get("/{event_id}", response_model=EventOut)
async def get_event(event_id: str) -> EventOut:
	return _out(await container.get_event_service().get(event_id))


@router.post("/{event_id}/join", response_model=EventOut)
async def join_event(event_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> EventOut:
	return _out(await container.get_event_service().join(event_id, auth_user.id))


@router.post("/{event_id}/leave", response_model=EventOut)
async def leave_event(event_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> EventOut:
	return _out(await container.get_event_service().leave(event_id, auth_user.id))
