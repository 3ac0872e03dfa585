"""Pydantic models for xcommunity."""

from xcommunity.models.profile import Profile
from xcommunity.models.cookie import CookieRecord
from xcommunity.models.result import HarvestResult, SettledReason

__all__ = [
    "Profile",
    "CookieRecord",
    "HarvestResult",
    "SettledReason",
]
