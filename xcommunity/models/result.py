"""Harvest run summary model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SettledReason(str, Enum):
    """Why the discovery loop stopped."""
    STAGNATION = "stagnation"
    SCROLL_CAP = "scroll_cap"


class HarvestResult(BaseModel):
    """Summary of a single scrape run."""

    total_profiles: int
    new_profiles: int
    refreshed_profiles: int = 0
    skipped_rows: int = 0
    degraded_profiles: int = 0
    images_downloaded: int = 0
    images_failed: int = 0
    scrolls: int = 0
    checkpoints: int = 0
    settled_reason: SettledReason | None = None
    started_at: datetime
    duration_ms: float
