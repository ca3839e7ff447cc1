"""REST surface for the caller's profile, status, location and nearby people."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from meetmux.domain import container
from meetmux.domain.errors import ValidationError
from meetmux.domain.users.schemas import LocationUpdateRequest, NearbyUser, StatusUpdateRequest, UserOut
from meetmux.domain.users.service import serialize_user
from meetmux.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/users")


@router.get("/me", response_model=UserOut)
async def get_me(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	return serialize_user(await container.get_user_service().get_me(auth_user.id))


@router.put("/status", response_model=UserOut)
async def set_status(
	payload: StatusUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	return serialize_user(await container.get_user_service().set_status(auth_user.id, payload.status))


@router.put("/location", response_model=UserOut)
async def update_location(
	payload: LocationUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	user = await container.get_user_service().update_location(auth_user.id, payload.lat, payload.lng)
	return serialize_user(user)


@router.get("/nearby", response_model=List[NearbyUser])
async def nearby_users(
	lat: Optional[str] = Query(default=None),
	lng: Optional[str] = Query(default=None),
	radius_km: Optional[str] = Query(default=None, alias="radiusKm"),
	interests_only: Optional[str] = Query(default=None, alias="interestsOnly"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dict]:
	if lat is None or lng is None:
		raise ValidationError("lat_lng_required")
	return await container.get_user_service().nearby(
		auth_user.id,
		lat=lat,
		lng=lng,
		radius_km=radius_km,
		interests_only=(interests_only or "").strip().lower() in {"1", "true", "yes"},
	)
