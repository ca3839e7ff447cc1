"""Spatial index exports."""

from .index import SpatialIndex, events_index, users_index  # noqa: F401
from .models import Point, coerce_point  # noqa: F401
