"""xcommunity - X community member scraper."""

from xcommunity.models.profile import Profile
from xcommunity.models.cookie import CookieRecord
from xcommunity.models.result import HarvestResult
from xcommunity.config import ScraperConfig
from xcommunity.core.store import CollectionStore
from xcommunity.core.session import SessionStore
from xcommunity.core.orchestrator import Harvester, ScrapeOrchestrator
from xcommunity.core.exporter import to_json, to_dicts, save_profiles, load_profiles

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "Harvester",
    "ScrapeOrchestrator",
    "ScraperConfig",
    "CollectionStore",
    "SessionStore",
    # Models
    "Profile",
    "CookieRecord",
    "HarvestResult",
    # Export utilities
    "to_json",
    "to_dicts",
    "save_profiles",
    "load_profiles",
    "__version__",
]
