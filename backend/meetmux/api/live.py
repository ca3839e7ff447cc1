"""REST surface for live location sessions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from meetmux.domain import container
from meetmux.domain.live.schemas import LiveLocationRequest, LiveSessionOut, LiveStartRequest, RouteRequest
from meetmux.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/live")


@router.post("/start", response_model=LiveSessionOut, status_code=status.HTTP_201_CREATED)
async def start_session(
	payload: LiveStartRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	session = await container.get_live_coordinator().start(
		payload.session_id, payload.users, started_by=auth_user.id
	)
	return session.to_dict()


@router.put("/{session_id}/location", response_model=LiveSessionOut)
async def push_location(
	session_id: str,
	payload: LiveLocationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	session = await container.get_live_coordinator().update_location(
		session_id, auth_user.id, payload.lat, payload.lng
	)
	return session.to_dict()


@router.put("/{session_id}/route", response_model=LiveSessionOut)
async def set_route(
	session_id: str,
	payload: RouteRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	session = await container.get_live_coordinator().set_route(
		session_id,
		auth_user.id,
		[point.model_dump() for point in payload.points],
		payload.provider,
	)
	return session.to_dict()


@router.post("/{session_id}/end", response_model=LiveSessionOut)
async def end_session(session_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	session = await container.get_live_coordinator().end(session_id, actor_id=auth_user.id)
	return session.to_dict()


@router.get("/{session_id}", response_model=LiveSessionOut)
async def get_session(session_id: str, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	session = await container.get_live_coordinator().get(session_id)
	return session.to_dict()
