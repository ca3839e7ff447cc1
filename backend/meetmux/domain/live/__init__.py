"""Live location sharing sessions."""

from .models import LiveLocation, LiveSession, Route, RouteProvider  # noqa: F401
