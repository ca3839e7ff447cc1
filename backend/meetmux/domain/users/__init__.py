"""User records, status and nearby-people lookups."""

from meetmux.domain.users.models import LocationVisibility, User, UserStatus

__all__ = ["LocationVisibility", "User", "UserStatus"]
