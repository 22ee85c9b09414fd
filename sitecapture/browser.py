"""Playwright-backed browser session shared by every navigation in a run.

The pipeline only talks to :class:`BrowserSession`, which exposes the four
operations it needs from a browser engine:

    async with launch_session(BrowserSettings()) as session:
        await session.open("https://example.com", timeout=30)
        title = await session.evaluate("() => document.title")
        await session.screenshot("page.png", full_page=True)

The session is closed when the context manager exits, whether the run
succeeded or not.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

from playwright.async_api import Browser, BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import BrowserSettings
from .errors import ExtractionError, NavigationError, WriteError

LOGGER = logging.getLogger(__name__)

# Hides the usual automation fingerprints before any page script runs.
STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
window.chrome = { runtime: {} };
if (window.navigator.permissions) {
    const originalQuery = window.navigator.permissions.query;
    window.navigator.permissions.query = (parameters) => (
        parameters.name === 'notifications'
            ? Promise.resolve({ state: Notification.permission })
            : originalQuery(parameters)
    );
}
"""

AUTO_SCROLL_SCRIPT = """
async ([distance, interval, returnToTop]) => {
    await new Promise((resolve) => {
        let totalHeight = 0;
        const timer = setInterval(() => {
            const scrollHeight = document.body.scrollHeight;
            window.scrollBy(0, distance);
            totalHeight += distance;
            if (totalHeight >= scrollHeight) {
                clearInterval(timer);
                if (returnToTop) {
                    window.scrollTo(0, 0);
                }
                resolve();
            }
        }, interval);
    });
}
"""


class BrowserSession:
    """A single browser page reused serially across navigations."""

    def __init__(
        self,
        page: Page,
        *,
        browser: Optional[Browser] = None,
        context: Optional[BrowserContext] = None,
    ) -> None:
        self.page = page
        self._browser = browser
        self._context = context
        self._closed = False

    @property
    def url(self) -> str:
        return self.page.url or ""

    async def open(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        wait_until: str = "networkidle",
        settle_delay: float = 0.0,
    ) -> str:
        """Navigate to ``url`` and wait for network idle.

        Args:
            url: Page to load.
            timeout: Maximum seconds to wait for the load condition.
            wait_until: Playwright load condition.
            settle_delay: Extra seconds to let dynamic content settle.

        Returns:
            The final URL after redirects.

        Raises:
            NavigationError: If the page times out or cannot be reached.
        """
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightTimeoutError as exc:
            LOGGER.debug("Timed out loading %s after %.0fs", url, timeout)
            raise NavigationError(url, exc) from exc
        except PlaywrightError as exc:
            raise NavigationError(url, exc) from exc

        if settle_delay:
            await self.wait(settle_delay)
        return self.url

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run ``script`` in the page and return its JSON-serializable result."""
        try:
            if arg is None:
                return await self.page.evaluate(script)
            return await self.page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise ExtractionError(f"In-page evaluation failed: {exc}") from exc

    async def screenshot(
        self,
        path: Union[str, Path],
        *,
        full_page: bool = True,
    ) -> Path:
        """Capture the page as a PNG file at ``path``."""
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(target), full_page=full_page, type="png")
        except OSError as exc:
            raise WriteError(target, exc) from exc
        except PlaywrightError as exc:
            raise ExtractionError(f"Screenshot failed: {exc}") from exc
        return target

    async def is_visible(self, selector: str) -> bool:
        """Return True if the first element matching ``selector`` is visible."""
        try:
            element = await self.page.query_selector(selector)
            if element is None:
                return False
            return await element.is_visible()
        except PlaywrightError as exc:
            LOGGER.debug("Visibility check for %s failed: %s", selector, exc)
            return False

    async def wait(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._browser is not None:
            await self._browser.close()
        elif self._context is not None:
            await self._context.close()
        else:
            await self.page.close()


async def auto_scroll(
    session: BrowserSession,
    *,
    step: int = 200,
    interval_ms: int = 50,
    return_to_top: bool = True,
) -> None:
    """Scroll through the page to trigger lazy-loaded content."""
    await session.evaluate(AUTO_SCROLL_SCRIPT, [step, interval_ms, return_to_top])


@asynccontextmanager
async def launch_session(settings: BrowserSettings) -> AsyncIterator[BrowserSession]:
    """Launch Chromium and yield a configured :class:`BrowserSession`."""
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=settings.headless,
            args=list(settings.launch_args),
        )
        session: Optional[BrowserSession] = None
        try:
            context = await browser.new_context(
                viewport={
                    "width": settings.viewport_width,
                    "height": settings.viewport_height,
                },
                device_scale_factor=settings.device_scale_factor,
                user_agent=settings.user_agent,
                extra_http_headers=dict(settings.extra_headers),
            )
            if settings.stealth:
                await context.add_init_script(STEALTH_INIT_SCRIPT)
            page = await context.new_page()
            session = BrowserSession(page, browser=browser, context=context)
            LOGGER.debug(
                "Browser launched (headless=%s, viewport=%dx%d)",
                settings.headless,
                settings.viewport_width,
                settings.viewport_height,
            )
            yield session
        finally:
            if session is not None:
                await session.close()
            else:
                await browser.close()
