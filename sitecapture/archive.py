"""Daily archive capture of the target homepage.

Saves a full-page and a viewport screenshot under a year/month folder,
together with a JSON file describing the page at capture time::

    archives/2025/July/14 July 2025.png
    archives/2025/July/14 July 2025-viewport.png
    archives/2025/July/14 July 2025-data.json
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import urlparse

import tldextract

from .browser import BrowserSession, auto_scroll, launch_session
from .config import ARCHIVE_CONTENT_SELECTORS, POPUP_SELECTORS, ArchiveConfig
from .output import write_json

LOGGER = logging.getLogger(__name__)

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

PAGE_INFO_SCRIPT = """
() => {
    const meta = document.querySelector('meta[name="description"]');
    return {
        title: document.title || '',
        url: window.location.href,
        description: (meta && meta.content) || 'N/A',
        headings: Array.from(document.querySelectorAll('h1, h2, h3'))
            .slice(0, 10)
            .map(h => ({ tag: h.tagName, text: (h.textContent || '').trim() })),
        links: document.querySelectorAll('a[href]').length,
        images: document.querySelectorAll('img').length,
    };
}
"""

INTERACTIVE_SCRIPT = """
() => ({
    buttons: document.querySelectorAll('button').length,
    inputs: document.querySelectorAll('input').length,
    forms: document.querySelectorAll('form').length,
    clickable_elements: document.querySelectorAll(
        '[onclick], .clickable, [role="button"]'
    ).length,
})
"""

NAV_LINKS_SCRIPT = """
(limit) => Array.from(document.querySelectorAll('nav a, header a, .menu a'))
    .slice(0, limit)
    .map(a => ({ text: (a.textContent || '').trim(), href: a.href }))
"""

ALL_LINKS_SCRIPT = """
() => Array.from(document.querySelectorAll('a[href]'))
    .map(a => ({ text: (a.textContent || '').trim(), href: a.href }))
"""

MAIN_CONTENT_PROBE_SCRIPT = """
(selectors) => {
    for (const selector of selectors) {
        const element = document.querySelector(selector);
        if (element) {
            const text = (element.textContent || '').trim();
            return {
                found: true,
                selector: selector,
                text_length: text.length,
                preview: text.substring(0, 200) + '...',
            };
        }
    }
    return { found: false };
}
"""


@dataclass(frozen=True)
class ArchivePaths:
    """Files written by one archive capture."""

    screenshot: Path
    viewport: Path
    data: Path


@dataclass
class ArchiveCapture:
    """Outcome of an archive capture."""

    paths: ArchivePaths
    data: Dict[str, Any] = field(default_factory=dict)


def archive_paths(root: Union[str, Path], when: datetime) -> ArchivePaths:
    """Build ``<root>/<year>/<Month>/<day> <Month> <year>`` artifact paths."""
    month = MONTH_NAMES[when.month - 1]
    folder = Path(root) / str(when.year) / month
    stem = f"{when.day} {month} {when.year}"
    return ArchivePaths(
        screenshot=folder / f"{stem}.png",
        viewport=folder / f"{stem}-viewport.png",
        data=folder / f"{stem}-data.json",
    )


def _normalize_host(host: Optional[str]) -> str:
    """Normalize hostname by removing port and lowercasing."""
    if not host:
        return ""
    return host.split(":")[0].lower()


@lru_cache(maxsize=256)
def _registrable_domain(host: str) -> Optional[str]:
    """Extract the registrable domain from a hostname."""
    if not host:
        return None
    extracted = tldextract.extract(host)
    if not extracted.domain or not extracted.suffix:
        return host
    return f"{extracted.domain}.{extracted.suffix}"


def classify_links(
    links: Iterable[Dict[str, Any]], page_url: str
) -> Dict[str, List[Dict[str, str]]]:
    """Split links with text into internal and external by registrable domain."""
    page_domain = _registrable_domain(_normalize_host(urlparse(page_url).netloc))
    internal: List[Dict[str, str]] = []
    external: List[Dict[str, str]] = []
    for entry in links:
        text = str((entry or {}).get("text") or "").strip()
        href = str((entry or {}).get("href") or "").strip()
        if not text or not href:
            continue
        host = _normalize_host(urlparse(href).netloc)
        if not host:
            continue
        bucket = internal if _registrable_domain(host) == page_domain else external
        bucket.append({"text": text, "href": href})
    return {"internal": internal, "external": external}


async def _visible_popups(session: BrowserSession) -> List[str]:
    visible = []
    for selector in POPUP_SELECTORS:
        if await session.is_visible(selector):
            LOGGER.info("Found visible element: %s", selector)
            visible.append(selector)
    return visible


async def capture_archive_async(
    config: Optional[ArchiveConfig] = None,
    *,
    session: Optional[BrowserSession] = None,
    now: Optional[datetime] = None,
) -> ArchiveCapture:
    """Capture today's homepage screenshots and page data.

    Args:
        config: Archive settings; defaults to :class:`ArchiveConfig`.
        session: Optional open session, closed when the capture ends.
        now: Capture time; defaults to the current local time.

    Returns:
        ArchiveCapture with the written paths and the collected data.

    Raises:
        NavigationError: If the homepage cannot be loaded.
        ExtractionError: If an in-page evaluation fails.
        WriteError: If an artifact cannot be written.
    """
    config = config or ArchiveConfig()
    when = now or datetime.now()
    paths = archive_paths(config.archive_root, when)
    LOGGER.info("Capturing homepage to: %s", paths.screenshot)

    async with AsyncExitStack() as stack:
        if session is None:
            session = await stack.enter_async_context(launch_session(config.browser))
        else:
            stack.push_async_callback(session.close)

        LOGGER.info("Navigating to %s", config.target_url)
        await session.open(
            config.target_url,
            timeout=config.navigation_timeout,
            settle_delay=config.settle_delay,
        )

        page_info = await session.evaluate(PAGE_INFO_SCRIPT)
        LOGGER.info("Page title: %s", page_info.get("title"))
        LOGGER.info(
            "Links: %s, images: %s, headings: %d",
            page_info.get("links"),
            page_info.get("images"),
            len(page_info.get("headings") or []),
        )

        interactive = await session.evaluate(INTERACTIVE_SCRIPT)
        LOGGER.info(
            "Buttons: %s, inputs: %s, forms: %s",
            interactive.get("buttons"),
            interactive.get("inputs"),
            interactive.get("forms"),
        )

        nav_links = await session.evaluate(NAV_LINKS_SCRIPT, 5) or []
        for number, link in enumerate(nav_links, 1):
            LOGGER.info("  %d. %s -> %s", number, link.get("text"), link.get("href"))

        link_groups = classify_links(
            await session.evaluate(ALL_LINKS_SCRIPT) or [], session.url
        )

        LOGGER.info("Scrolling to reveal lazy-loaded content...")
        await auto_scroll(
            session,
            step=config.scroll_step,
            interval_ms=config.scroll_interval_ms,
            return_to_top=False,
        )

        popups = await _visible_popups(session)

        main_content = await session.evaluate(
            MAIN_CONTENT_PROBE_SCRIPT, list(ARCHIVE_CONTENT_SELECTORS)
        )
        if main_content.get("found"):
            LOGGER.info(
                "Main content found in %s (%s characters)",
                main_content.get("selector"),
                main_content.get("text_length"),
            )

        await session.evaluate("() => window.scrollTo(0, 0)")
        await session.wait(config.after_scroll_delay)

        await session.screenshot(paths.screenshot, full_page=True)
        LOGGER.info("Main screenshot saved: %s", paths.screenshot)
        await session.screenshot(paths.viewport, full_page=False)
        LOGGER.info("Viewport screenshot saved: %s", paths.viewport)

    data: Dict[str, Any] = {
        "capture_date": when.astimezone(timezone.utc).isoformat(),
        "page_info": page_info,
        "interactive_elements": interactive,
        "navigation_links": nav_links,
        "links": {
            "internal": len(link_groups["internal"]),
            "external": len(link_groups["external"]),
        },
        "visible_popups": popups,
        "main_content": main_content,
    }
    write_json(paths.data, data)
    LOGGER.info("Page data saved: %s", paths.data)
    return ArchiveCapture(paths=paths, data=data)


def capture_archive(config: Optional[ArchiveConfig] = None) -> ArchiveCapture:
    """Synchronous wrapper for capture_archive_async."""
    return asyncio.run(capture_archive_async(config))
