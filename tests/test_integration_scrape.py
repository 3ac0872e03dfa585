"""
Integration tests - live scraping of the configured community.

These need a real session captured with `xcommunity login` and should be run
sparingly to avoid rate limiting.

Run with: pytest tests/test_integration_scrape.py -m integration -v
"""

from pathlib import Path

import pytest

from xcommunity.config import ScraperConfig
from xcommunity.core.browser import open_member_page
from xcommunity.core.orchestrator import ScrapeOrchestrator
from xcommunity.core.session import SessionStore
from xcommunity.core.store import CollectionStore

# Mark all tests in this module as integration tests (slow, requires internet)
pytestmark = pytest.mark.integration


@pytest.fixture
def live_config(tmp_path) -> ScraperConfig:
    config = ScraperConfig(
        output_path=str(tmp_path / "universe.json"),
        pfp_dir=str(tmp_path / "pfp"),
        max_scrolls=3,
        stagnation_threshold=2,
    )
    if not Path(config.session_path).exists():
        pytest.skip(f"No session at {config.session_path}; run `xcommunity login`")
    return config


@pytest.mark.asyncio
async def test_first_screen_of_members(live_config):
    """A short live run collects unique profiles with handles and names."""
    cookies = SessionStore(live_config.session_path).load()
    store = CollectionStore(live_config.output_path)
    store.load()

    async with open_member_page(live_config, cookies) as page:
        result = await ScrapeOrchestrator(live_config, store).run(page)

    assert result.total_profiles > 0
    profiles = store.profiles()
    assert len({p.handle for p in profiles}) == len(profiles)
    assert all(p.handle for p in profiles)
    # Most rows should produce a hover card
    assert sum(p.followers is not None for p in profiles) >= len(profiles) // 2
