"""Geographic point helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

@dataclass(frozen=True, slots=True)
class Point:
	lat: float
	lng: float

	def to_dict(self) -> dict[str, float]:
		return {"lat": self.lat, "lng": self.lng}


def _finite(value: Any) -> Optional[float]:
	if value is None or isinstance(value, bool):
		return None
	try:
		number = float(value)
	except (TypeError, ValueError):
		return None
	if not math.isfinite(number):
		return None
	return number


def coerce_point(lat: Any, lng: Any) -> Optional[Point]:
	"""Return a Point for valid coordinates, None for anything malformed or out of range."""
	lat_f = _finite(lat)
	lng_f = _finite(lng)
	if lat_f is None or lng_f is None:
		return None
	if not -90.0 <= lat_f <= 90.0 or not -180.0 <= lng_f <= 180.0:
		return None
	return Point(lat=lat_f, lng=lng_f)


def coerce_positive(value: Any) -> Optional[float]:
	number = _finite(value)
	if number is None or number <= 0:
		return None
	return number

