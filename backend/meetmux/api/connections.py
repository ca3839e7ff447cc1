"""REST surface for connection requests."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from meetmux.domain import container
from meetmux.domain.connections.models import Connection
from meetmux.domain.connections.schemas import (
	ConnectionOut,
	ConnectionRequestBody,
	ConnectionRespondBody,
	ConnectionWithPeer,
	PendingRequest,
)
from meetmux.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/connections")


def _out(edge: Connection) -> ConnectionOut:
	return ConnectionOut(
		id=edge.id,
		requester_id=edge.requester_id,
		receiver_id=edge.receiver_id,
		status=edge.status.value,
		created_at=edge.created_at,
		updated_at=edge.updated_at,
	)


@router.post("/request", response_model=ConnectionOut, status_code=status.HTTP_201_CREATED)
async def send_request(
	payload: ConnectionRequestBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ConnectionOut:
	edge = await container.get_connection_graph().send_request(auth_user.id, payload.receiver_id)
	return _out(edge)


@router.post("/respond", response_model=ConnectionOut)
async def respond(
	payload: ConnectionRespondBody,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ConnectionOut:
	edge = await container.get_connection_graph().respond(auth_user.id, payload.request_id, payload.action)
	return _out(edge)


@router.get("", response_model=List[ConnectionWithPeer])
async def list_connections(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[dict]:
	return await container.get_connection_graph().list_connections(auth_user.id)


@router.get("/requests", response_model=List[PendingRequest])
async def list_requests(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[dict]:
	return await container.get_connection_graph().list_pending(auth_user.id)
