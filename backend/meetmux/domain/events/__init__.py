"""Events and discovery."""

from .buckets import DateRange, TimeOfDay, resolve_date_window  # noqa: F401
from .models import Event  # noqa: F401
from .query import CreatedByScope, DiscoveryQuery, EventCriteria  # noqa: F401
