"""Pipeline orchestrator - coordinates discovery, extraction, downloads, checkpoints."""

from datetime import datetime
from typing import Protocol

from xcommunity.config import ScraperConfig, UpdatePolicy
from xcommunity.core.browser import open_member_page
from xcommunity.core.discovery import DiscoveryState, ScrapeSession, ScrollDiscoveryLoop
from xcommunity.core.images import ImageFetcher
from xcommunity.core.parser import HoverCard, MemberRow, extract_profile
from xcommunity.core.session import SessionStore
from xcommunity.core.store import CollectionStore
from xcommunity.core.waiting import pause
from xcommunity.exceptions import DownloadError, ExtractionError
from xcommunity.logging import bind_run_context, clear_run_context, configure_logging, get_logger
from xcommunity.models.cookie import CookieRecord
from xcommunity.models.profile import Profile
from xcommunity.models.result import HarvestResult


class RowElement(Protocol):
    """A live member row on the page, with the handle read when it was listed."""

    handle: str | None

    async def snapshot(self) -> MemberRow: ...

    async def hover_avatar(self) -> None: ...

    async def move_pointer_past(self) -> None: ...


class MemberPage(Protocol):
    """The community member list as seen by the orchestrator."""

    async def row_elements(self) -> list[RowElement]: ...

    async def visible_handles(self) -> list[str]: ...

    async def reset_pointer(self) -> None: ...

    async def hover_card(self, timeout_ms: int, handle: str | None = None) -> HoverCard | None: ...

    async def scroll_viewport(self) -> None: ...


class ScrapeOrchestrator:
    """
    Walks the member list row by row until the feed settles.

    Rows are handled strictly one at a time: the page has a single hover card
    node, so concurrent hovers would race on it.
    """

    def __init__(
        self,
        config: ScraperConfig,
        store: CollectionStore,
        images: ImageFetcher | None = None,
    ):
        self.config = config
        self.store = store
        self.images = images
        self._log = get_logger("orchestrator")

    def new_session(self) -> ScrapeSession:
        loop = ScrollDiscoveryLoop(
            stagnation_threshold=self.config.stagnation_threshold,
            max_scrolls=self.config.max_scrolls,
        )
        return ScrapeSession(
            store=self.store,
            loop=loop,
            max_row_attempts=self.config.max_row_attempts,
            refresh_existing=self.config.update_policy == UpdatePolicy.REPLACE,
        )

    async def run(self, page: MemberPage, session: ScrapeSession | None = None) -> HarvestResult:
        """
        Scrape until the discovery loop settles, then write a final checkpoint.

        Args:
            page: Member list to scrape
            session: Pre-built session (a fresh one is created if None)

        Returns:
            HarvestResult summary

        Raises:
            StorageError: A checkpoint could not be written
        """
        session = session or self.new_session()
        loop = session.loop
        start = datetime.now()
        self._log.info("harvest_start", known_profiles=self.store.size())

        while not loop.settled:
            if loop.state == DiscoveryState.SCANNING:
                await self.scan(page, session)
                loop.scan_complete()
            else:
                fresh = await self.scroll(page, session)
                state = loop.scroll_complete(len(fresh))
                self._log.debug(
                    "scrolled",
                    scrolls=loop.scrolls,
                    fresh_handles=len(fresh),
                    stagnant_scrolls=loop.stagnant_scrolls,
                    state=state.value,
                )

        self.store.checkpoint()
        session.checkpoints += 1

        duration_ms = (datetime.now() - start).total_seconds() * 1000
        result = HarvestResult(
            total_profiles=self.store.size(),
            new_profiles=session.new_profiles,
            refreshed_profiles=session.refreshed_profiles,
            skipped_rows=session.skipped_rows,
            degraded_profiles=session.degraded_profiles,
            images_downloaded=session.images_downloaded,
            images_failed=session.images_failed,
            scrolls=loop.scrolls,
            checkpoints=session.checkpoints,
            settled_reason=loop.settled_reason,
            started_at=start,
            duration_ms=duration_ms,
        )
        self._log.info(
            "harvest_complete",
            total_profiles=result.total_profiles,
            new_profiles=result.new_profiles,
            scrolls=result.scrolls,
            settled_reason=result.settled_reason.value if result.settled_reason else None,
            duration_ms=duration_ms,
        )
        return result

    async def scan(self, page: MemberPage, session: ScrapeSession) -> int:
        """
        Process every unprocessed row currently rendered.

        Rows are re-read by index on each step because the list is
        virtualized and element handles go stale as rows are processed.

        Returns:
            Number of profiles recorded during this pass
        """
        recorded = 0
        index = 0
        while True:
            try:
                rows = await page.row_elements()
            except ExtractionError as e:
                self._log.warning("rows_unavailable", error=str(e))
                break
            if index >= len(rows):
                break
            row = rows[index]
            index += 1

            handle = row.handle
            if not session.should_process(handle):
                continue
            try:
                snapshot = await row.snapshot()
                profile = await self.process_row(page, row, snapshot, session)
            except ExtractionError as e:
                session.record_failure(handle)
                self._log.warning("row_skipped", handle=handle, error=str(e))
                continue

            if profile is None:
                continue
            if self.record(profile, session):
                recorded += 1
        return recorded

    async def scroll(self, page: MemberPage, session: ScrapeSession) -> list[str]:
        """Scroll one viewport and return the unprocessed handles now visible."""
        try:
            await page.scroll_viewport()
        except ExtractionError as e:
            # Counts as a stagnant scroll
            self._log.warning("scroll_failed", error=str(e))
            return []
        await pause(self.config.scroll_settle_ms)
        return session.fresh_handles(await page.visible_handles())

    async def process_row(
        self,
        page: MemberPage,
        row: RowElement,
        snapshot: MemberRow,
        session: ScrapeSession,
    ) -> Profile | None:
        """Hover a row, read its card and download its avatar."""
        handle = snapshot.get_handle()

        await page.reset_pointer()
        await pause(self.config.dehover_settle_ms)
        await row.hover_avatar()
        await pause(self.config.hover_settle_ms)

        card = await page.hover_card(self.config.hover_timeout_ms, handle)
        if card is None:
            self._log.warning("hover_card_missing", handle=handle)

        profile = extract_profile(snapshot, card)

        await row.move_pointer_past()
        await pause(self.config.dehover_settle_ms)

        if profile is None:
            return None
        if card is None:
            session.degraded_profiles += 1

        if profile.pfp_url and self.images is not None:
            try:
                await self.images.fetch(profile.pfp_url, profile.handle)
                session.images_downloaded += 1
            except DownloadError as e:
                session.images_failed += 1
                self._log.warning("avatar_download_failed", handle=profile.handle, error=str(e))

        return profile

    def record(self, profile: Profile, session: ScrapeSession) -> bool:
        """Store a profile and checkpoint every ``checkpoint_every`` changes."""
        existed = self.store.has(profile.handle)
        changed = self.store.upsert(profile)
        session.mark_processed(profile.handle)
        if not changed:
            return False

        if existed:
            session.refreshed_profiles += 1
            self._log.info("profile_refreshed", handle=profile.handle)
        else:
            session.new_profiles += 1
            self._log.info(
                "profile_collected",
                handle=profile.handle,
                followers=profile.followers,
                total=self.store.size(),
            )

        session.changes_since_checkpoint += 1
        if session.changes_since_checkpoint >= self.config.checkpoint_every:
            self.store.checkpoint()
            session.checkpoints += 1
            session.changes_since_checkpoint = 0
        return True


class Harvester:
    """
    Production composition: session cookies, Playwright browser, scrape run.

    Example:
        async with Harvester(ScraperConfig()) as harvester:
            result = await harvester.run()
            print(result.total_profiles)
    """

    def __init__(self, config: ScraperConfig | None = None):
        self.config = config or ScraperConfig()
        # Loggers bound before configuration keep structlog defaults
        configure_logging(self.config)
        self.sessions = SessionStore(self.config.session_path)
        self.store = CollectionStore(self.config.output_path, self.config.update_policy)
        self._images: ImageFetcher | None = None
        self._cookies: list[CookieRecord] = []
        self._log = get_logger("harvester")

    async def __aenter__(self) -> "Harvester":
        bind_run_context(self.config)
        try:
            # Fail before launching a browser when there is nothing to log in with
            self._cookies = self.sessions.load()
            self._log.info("session_loaded", cookies=len(self._cookies))
            self.store.load()
            if self.config.download_images:
                self._images = ImageFetcher(
                    self.config.pfp_dir,
                    timeout_s=self.config.image_timeout_s,
                )
                await self._images.open()
        except BaseException:
            clear_run_context()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        clear_run_context()
        if self._images:
            await self._images.close()

    async def run(self) -> HarvestResult:
        orchestrator = ScrapeOrchestrator(self.config, self.store, self._images)
        async with open_member_page(self.config, self._cookies) as page:
            return await orchestrator.run(page)
