"""
Playwright implementation of the page automation surface.

This module handles the browser side: launching a context suited to
high-resolution galleries, loading the page, pulling DOM snapshots,
scrolling and relaying network responses.
"""

from contextlib import asynccontextmanager
from typing import List

from playwright.async_api import Page, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
from pydantic import ValidationError

from galleryharvest.core.config import Config
from galleryharvest.core.logging import get_logger
from galleryharvest.harvester.models import Observation
from galleryharvest.harvester.snapshot import FORCE_INTERSECTING_JS, MIN_TILE_PX, SNAPSHOT_MEDIA_JS
from galleryharvest.harvester.surface import NavigationError, ResponseCallback

logger = get_logger(__name__)

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/127 Safari/537.36"
)

SCROLL_HEIGHT_JS = "()=>(document.scrollingElement||document.documentElement).scrollHeight|0"


@asynccontextmanager
async def gallery_page(pw, config: Config):
    """
    Open a Chromium page configured for harvesting.

    Large viewport and 2x scale so galleries pick their biggest renditions;
    IntersectionObserver is forced so lazy tiles render without being on screen.

    Args:
        pw: Started async_playwright instance
        config: Harvest configuration

    Yields:
        Playwright Page
    """
    browser = await pw.chromium.launch(headless=config.headless)
    context = await browser.new_context(
        viewport={"width": config.viewport_width, "height": config.viewport_height},
        device_scale_factor=config.device_scale_factor,
        user_agent=DESKTOP_USER_AGENT,
    )
    await context.add_init_script(FORCE_INTERSECTING_JS)
    try:
        yield await context.new_page()
    finally:
        await context.close()
        await browser.close()


class PlaywrightSurface:
    """
    PageSurface backed by a Playwright async Page.

    Example:
        >>> async with gallery_page(pw, config) as page:
        ...     surface = PlaywrightSurface(page, nav_timeout_ms=config.nav_timeout_ms)
        ...     await surface.navigate(config.target_url)
    """

    def __init__(self, page: Page, nav_timeout_ms: int = 120_000):
        self._page = page
        self._nav_timeout_ms = nav_timeout_ms

    async def navigate(self, url: str) -> None:
        try:
            resp = await self._page.goto(url, wait_until="domcontentloaded", timeout=self._nav_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(f"Timed out loading {url} after {self._nav_timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}") from e

        if resp is not None and resp.status >= 400:
            raise NavigationError(f"{url} returned HTTP {resp.status}")

    async def snapshot_visible_media(self) -> List[Observation]:
        try:
            items = await self._page.evaluate(SNAPSHOT_MEDIA_JS, MIN_TILE_PX)
        except PlaywrightError as e:
            # Usually a context destroyed by a client-side route change; next step retries
            logger.warning(f"DOM snapshot failed: {e}")
            return []

        out: List[Observation] = []
        for item in items or []:
            try:
                out.append(Observation.from_dom(item))
            except ValidationError:
                continue
        return out

    async def scroll_by(self, px: int) -> None:
        await self._page.mouse.wheel(0, px)

    async def wait(self, ms: int) -> None:
        await self._page.wait_for_timeout(ms)

    def on_network_response(self, callback: ResponseCallback) -> None:
        self._page.on("response", callback)

    async def current_scroll_height(self) -> int:
        try:
            return await self._page.evaluate(SCROLL_HEIGHT_JS)
        except PlaywrightError:
            return 0
