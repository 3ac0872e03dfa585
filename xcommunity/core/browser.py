"""Playwright-backed member list page and interactive login."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    ElementHandle,
    Page,
    Error as PlaywrightError,
)

from xcommunity.config import ScraperConfig
from xcommunity.core.parser import (
    AVATAR_TESTID_PREFIX,
    SELECTORS,
    HtmlHoverCard,
    HtmlMemberRow,
)
from xcommunity.core.session import SessionStore
from xcommunity.core.waiting import pause, wait_for
from xcommunity.exceptions import ExtractionError, PageLoadError, SessionError
from xcommunity.logging import get_logger
from xcommunity.models.cookie import CookieRecord


# Common user agents for rotation
USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
]

# URL fragments that mean the browser reached a logged-in page
LOGGED_IN_PATTERNS = ["/home", "/explore", "/notifications", "/messages"]

# URL fragments of the login flow itself
LOGIN_FLOW_PATTERNS = ["/i/flow/", "/login"]

_ROW_HANDLES_JS = """
(cells, prefix) => cells.map(cell => {
    const avatar = cell.querySelector(`[data-testid^="${prefix}"]`);
    return avatar ? avatar.getAttribute("data-testid").slice(prefix.length) : "";
})
"""

_VISIBLE_HANDLES_JS = """
(prefix) => Array.from(document.querySelectorAll(`[data-testid^="${prefix}"]`))
    .map(el => (el.getAttribute('data-testid') || '').slice(prefix.length))
    .filter(Boolean)
"""


def is_logged_in_url(url: str) -> bool:
    """True when ``url`` is an X page only reachable after logging in."""
    if any(p in url for p in LOGIN_FLOW_PATTERNS):
        return False
    if "x.com" not in url and "twitter.com" not in url:
        return False
    return any(p in url for p in LOGGED_IN_PATTERNS)


@asynccontextmanager
async def launch_context(config: ScraperConfig, headless: bool | None = None) -> AsyncIterator[BrowserContext]:
    """
    Launch Chromium and yield an isolated browser context.

    Args:
        config: Scraper configuration (viewport, user agent, proxy)
        headless: Override ``config.headless``
    """
    async with async_playwright() as p:
        launch_options = {"headless": config.headless if headless is None else headless}
        if config.proxy_url:
            launch_options["proxy"] = {"server": config.proxy_url}

        browser: Browser = await p.chromium.launch(**launch_options)
        try:
            context_options = {
                "viewport": {"width": config.viewport_width, "height": config.viewport_height},
                "user_agent": config.user_agent or USER_AGENTS[0],
            }
            context: BrowserContext = await browser.new_context(**context_options)
            yield context
        finally:
            await browser.close()


class PlaywrightRow:
    """RowElement over a live ``UserCell`` element handle."""

    def __init__(self, page: Page, element: ElementHandle, handle: str | None = None):
        self._page = page
        self._element = element
        self.handle = handle

    async def snapshot(self) -> HtmlMemberRow:
        try:
            html = await self._element.evaluate("el => el.outerHTML")
        except PlaywrightError as e:
            raise ExtractionError(f"Row detached before it could be read: {e}") from e
        return HtmlMemberRow(html)

    async def hover_avatar(self) -> None:
        try:
            avatar = await self._element.query_selector(SELECTORS["avatar_container"])
            if avatar is None:
                raise ExtractionError("Row has no avatar to hover")
            await avatar.hover()
        except PlaywrightError as e:
            raise ExtractionError(f"Could not hover avatar: {e}") from e

    async def move_pointer_past(self) -> None:
        """Move the pointer just right of the row so its hover card closes."""
        try:
            box = await self._element.bounding_box()
            if box:
                await self._page.mouse.move(box["x"] + box["width"] + 50, box["y"])
        except PlaywrightError as e:
            raise ExtractionError(f"Could not move pointer off row: {e}") from e


class PlaywrightMemberPage:
    """MemberPage over a Playwright page showing the community member list."""

    def __init__(self, page: Page):
        self._page = page
        self._log = get_logger("browser")

    async def row_elements(self) -> list[PlaywrightRow]:
        try:
            elements = await self._page.query_selector_all(SELECTORS["user_cell"])
            handles = await self._page.eval_on_selector_all(
                SELECTORS["user_cell"], _ROW_HANDLES_JS, AVATAR_TESTID_PREFIX
            )
        except PlaywrightError as e:
            raise ExtractionError(f"Could not list member rows: {e}") from e
        if len(handles) != len(elements):
            # The list re-rendered between the two reads
            handles = [None] * len(elements)
        return [
            PlaywrightRow(self._page, el, handle or None)
            for el, handle in zip(elements, handles)
        ]

    async def visible_handles(self) -> list[str]:
        try:
            return await self._page.evaluate(_VISIBLE_HANDLES_JS, AVATAR_TESTID_PREFIX)
        except PlaywrightError as e:
            self._log.warning("visible_handles_failed", error=str(e))
            return []

    async def reset_pointer(self) -> None:
        try:
            await self._page.mouse.move(0, 0)
        except PlaywrightError as e:
            raise ExtractionError(f"Could not reset pointer: {e}") from e

    async def hover_card(self, timeout_ms: int, handle: str | None = None) -> HtmlHoverCard | None:
        async def current_card() -> HtmlHoverCard | None:
            try:
                element = await self._page.query_selector(SELECTORS["hover_card"])
                if element is None:
                    return None
                html = await element.evaluate("el => el.outerHTML")
            except PlaywrightError:
                # Card re-rendered between query and read, poll again
                return None
            card = HtmlHoverCard(html)
            if handle and not card.shows_handle(handle):
                # Previous row's card still open
                return None
            return card

        return await wait_for(current_card, timeout_ms, interval_ms=100, backoff=1.5, max_interval_ms=500)

    async def scroll_viewport(self) -> None:
        try:
            await self._page.evaluate("() => window.scrollBy(0, window.innerHeight)")
        except PlaywrightError as e:
            raise ExtractionError(f"Could not scroll: {e}") from e


async def goto_member_list(page: Page, config: ScraperConfig) -> None:
    """
    Open the community member list and wait for the first rows.

    Raises:
        PageLoadError: No member rows appeared (often an expired session)
    """
    try:
        await page.goto(config.community_url, wait_until="domcontentloaded", timeout=config.browser_timeout_ms)
        await page.wait_for_selector(SELECTORS["user_cell"], timeout=config.browser_timeout_ms)
    except PlaywrightError as e:
        raise PageLoadError(
            f"No member rows at {config.community_url}. "
            "The session may have expired; run `xcommunity login` again."
        ) from e


@asynccontextmanager
async def open_member_page(
    config: ScraperConfig,
    cookies: list[CookieRecord],
) -> AsyncIterator[PlaywrightMemberPage]:
    """
    Launch a browser with the stored session and yield the member list page.

    Raises:
        SessionError: The browser rejected the stored cookies
        PageLoadError: The member list never rendered
    """
    log = get_logger("browser")
    async with launch_context(config) as context:
        try:
            await context.add_cookies([c.to_playwright() for c in cookies])
        except PlaywrightError as e:
            raise SessionError(f"Stored cookies were rejected by the browser: {e}") from e

        page = await context.new_page()
        await goto_member_list(page, config)
        log.info("member_list_open", url=config.community_url)
        yield PlaywrightMemberPage(page)


async def capture_session(config: ScraperConfig, store: SessionStore | None = None) -> int:
    """
    Open a headed browser on the login page and save cookies once logged in.

    Polls the page URL until it looks logged in or ``login_timeout_s``
    elapses; on timeout the cookies are saved anyway in case detection
    missed a successful login.

    Returns:
        Number of cookies saved

    Raises:
        SessionError: No cookies were available to save
    """
    store = store or SessionStore(config.session_path)
    log = get_logger("login")

    async with launch_context(config, headless=False) as context:
        page = await context.new_page()
        await page.goto(config.login_url)
        log.info("login_waiting", url=config.login_url, timeout_s=config.login_timeout_s)

        logged_in = await wait_for(
            lambda: is_logged_in_url(page.url),
            timeout_ms=config.login_timeout_s * 1000,
            interval_ms=1000,
        )
        if logged_in:
            log.info("login_detected", url=page.url)
            # Post-login cookies are set by a few trailing requests
            await pause(3000)
        else:
            log.warning("login_not_detected", url=page.url)

        cookies = await context.cookies()

    if not cookies:
        raise SessionError("The browser holds no cookies; log in before the timeout.")

    path = store.save(cookies)
    log.info("session_saved", path=str(path), cookies=len(cookies))
    return len(cookies)
