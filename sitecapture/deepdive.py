"""Deep dive into the target homepage and a sample of its internal pages.

One run writes a timestamped folder::

    deep-dive-output/2025-07-14T08-00-00/
        01-page-analysis.json       headings, interactive and media counts, metadata
        01-homepage-initial.png
        02-after-scroll.png
        03-links.json               internal and external links
        04-subpage-1.png            first few internal pages
        04-subpage-1-data.json
        05-structured-content.json  main content, paragraphs, images, metadata
        06-performance.json         navigation timing

A subpage that cannot be captured is logged and skipped. Homepage failures
propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .archive import ALL_LINKS_SCRIPT, classify_links
from .browser import BrowserSession, auto_scroll, launch_session
from .config import DEEP_DIVE_CONTENT_SELECTORS, SUBPAGE_CONTENT_SELECTOR, DeepDiveConfig
from .errors import CaptureError
from .output import discard_file, write_json

LOGGER = logging.getLogger(__name__)

PAGE_ANALYSIS_SCRIPT = """
() => {
    const info = (selector) => {
        const elements = Array.from(document.querySelectorAll(selector));
        return {
            count: elements.length,
            samples: elements.slice(0, 3).map(el => ({
                text: (el.textContent || '').trim().substring(0, 50),
                classes: typeof el.className === 'string' ? el.className : '',
                id: el.id || '',
            })),
        };
    };
    const meta = (query) => {
        const element = document.querySelector(query);
        return (element && element.content) || null;
    };
    return {
        url: window.location.href,
        title: document.title || '',
        structure: {
            headings: { h1: info('h1'), h2: info('h2'), h3: info('h3') },
            interactive: {
                buttons: info('button'),
                links: info('a[href]'),
                inputs: info('input'),
                forms: info('form'),
            },
            media: {
                images: document.querySelectorAll('img').length,
                videos: document.querySelectorAll('video').length,
            },
        },
        metadata: {
            description: meta('meta[name="description"]'),
            viewport: meta('meta[name="viewport"]'),
            og_title: meta('meta[property="og:title"]'),
            og_image: meta('meta[property="og:image"]'),
        },
    };
}
"""

SUBPAGE_SCRIPT = """
(selector) => {
    const h1 = document.querySelector('h1');
    const main = document.querySelector(selector);
    return {
        title: document.title || '',
        url: window.location.href,
        h1: h1 ? (h1.textContent || '').trim() : null,
        main_content: main ? (main.textContent || '').trim().substring(0, 200) : null,
    };
}
"""

STRUCTURED_CONTENT_SCRIPT = """
(selectors) => {
    const text = (el) => (el.textContent || '').trim();
    const meta = (query) => {
        const element = document.querySelector(query);
        return (element && element.content) || null;
    };
    let mainContent = null;
    for (const selector of selectors) {
        const element = document.querySelector(selector);
        if (element) {
            mainContent = {
                selector: selector,
                text: text(element),
                html: element.innerHTML.substring(0, 500),
            };
            break;
        }
    }
    const headings = (tag) => Array.from(document.querySelectorAll(tag)).map(text);
    return {
        main_content: mainContent,
        all_text: text(document.body).substring(0, 1000),
        paragraphs: Array.from(document.querySelectorAll('p'))
            .map(text)
            .filter(value => value.length > 20)
            .slice(0, 10),
        headings: { h1: headings('h1'), h2: headings('h2'), h3: headings('h3') },
        images: Array.from(document.querySelectorAll('img'))
            .slice(0, 10)
            .map(img => ({ src: img.src, alt: img.alt, width: img.width, height: img.height })),
        metadata: {
            title: document.title || '',
            description: meta('meta[name="description"]'),
            keywords: meta('meta[name="keywords"]'),
            og_title: meta('meta[property="og:title"]'),
            og_description: meta('meta[property="og:description"]'),
            og_image: meta('meta[property="og:image"]'),
        },
    };
}
"""

PERFORMANCE_SCRIPT = """
() => {
    const entry = performance.getEntriesByType('navigation')[0];
    if (!entry) {
        return null;
    }
    return {
        load_time: Math.round(entry.loadEventEnd - entry.startTime),
        dom_content_loaded: Math.round(entry.domContentLoadedEventEnd - entry.startTime),
        response_time: Math.round(entry.responseEnd - entry.requestStart),
        transfer_size: entry.transferSize,
        resources: performance.getEntriesByType('resource').length,
    };
}
"""


@dataclass
class SubpageCapture:
    """One sampled internal page."""

    number: int
    text: str
    href: str
    success: bool
    screenshot: Optional[Path] = None
    data_path: Optional[Path] = None
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class DeepDiveReport:
    """Outcome of a deep-dive run."""

    output_dir: Path
    files: List[Path] = field(default_factory=list)
    analysis: Dict[str, Any] = field(default_factory=dict)
    links: Dict[str, List[Dict[str, str]]] = field(default_factory=dict)
    subpages: List[SubpageCapture] = field(default_factory=list)
    structured_content: Dict[str, Any] = field(default_factory=dict)
    performance: Optional[Dict[str, Any]] = None


def deep_dive_directory(root: Union[str, Path], when: datetime) -> Path:
    """Directory for one deep-dive run, keyed by timestamp."""
    return Path(root) / when.strftime("%Y-%m-%dT%H-%M-%S")


def select_subpages(
    internal: List[Dict[str, str]], current_url: str, limit: int
) -> List[Dict[str, str]]:
    """First ``limit`` distinct internal links other than the current page."""
    current = current_url.rstrip("/")
    selected: List[Dict[str, str]] = []
    seen = set()
    for link in internal:
        href = link["href"]
        key = href.rstrip("/")
        if key == current or key in seen:
            continue
        seen.add(key)
        selected.append(link)
        if len(selected) >= limit:
            break
    return selected


async def _capture_subpage(
    session: BrowserSession,
    config: DeepDiveConfig,
    out_dir: Path,
    number: int,
    link: Dict[str, str],
) -> SubpageCapture:
    screenshot = out_dir / f"04-subpage-{number}.png"
    data_path = out_dir / f"04-subpage-{number}-data.json"
    LOGGER.info("  Visiting: %s", link["text"])
    LOGGER.info("  URL: %s", link["href"])
    try:
        await session.open(
            link["href"],
            timeout=config.subpage_timeout,
            settle_delay=config.subpage_delay,
        )
        data = await session.evaluate(SUBPAGE_SCRIPT, SUBPAGE_CONTENT_SELECTOR) or {}
        LOGGER.info("  Title: %s", data.get("title"))
        LOGGER.info("  H1: %s", data.get("h1") or "N/A")
        await session.screenshot(screenshot, full_page=True)
        write_json(data_path, data)
    except CaptureError as exc:
        LOGGER.warning("  Could not visit subpage: %s", exc)
        discard_file(screenshot)
        return SubpageCapture(
            number=number,
            text=link["text"],
            href=link["href"],
            success=False,
            error=str(exc),
        )
    LOGGER.info("  Subpage %d captured", number)
    return SubpageCapture(
        number=number,
        text=link["text"],
        href=link["href"],
        success=True,
        screenshot=screenshot,
        data_path=data_path,
        data=data,
    )


async def deep_dive_async(
    config: Optional[DeepDiveConfig] = None,
    *,
    session: Optional[BrowserSession] = None,
    now: Optional[datetime] = None,
) -> DeepDiveReport:
    """Analyse the homepage, sample its internal pages and record timings.

    Args:
        config: Deep-dive settings; defaults to :class:`DeepDiveConfig`.
        session: Optional open session, closed when the run ends.
        now: Run time used for the output folder name.

    Raises:
        NavigationError: If the homepage cannot be loaded.
        ExtractionError: If a homepage evaluation fails.
        WriteError: If an artifact cannot be written.
    """
    config = config or DeepDiveConfig()
    out_dir = deep_dive_directory(config.output_root, now or datetime.now())
    report = DeepDiveReport(output_dir=out_dir)
    LOGGER.info("Output directory: %s", out_dir)

    async with AsyncExitStack() as stack:
        if session is None:
            session = await stack.enter_async_context(launch_session(config.browser))
        else:
            stack.push_async_callback(session.close)

        LOGGER.info("Step 1: loading homepage and analysing structure")
        await session.open(config.target_url, timeout=config.navigation_timeout)
        report.analysis = await session.evaluate(PAGE_ANALYSIS_SCRIPT) or {}
        structure = report.analysis.get("structure", {})
        LOGGER.info("  Title: %s", report.analysis.get("title"))
        LOGGER.info(
            "  H1 headings: %s, buttons: %s, links: %s, images: %s",
            structure.get("headings", {}).get("h1", {}).get("count"),
            structure.get("interactive", {}).get("buttons", {}).get("count"),
            structure.get("interactive", {}).get("links", {}).get("count"),
            structure.get("media", {}).get("images"),
        )
        report.files.append(write_json(out_dir / "01-page-analysis.json", report.analysis))
        report.files.append(
            await session.screenshot(out_dir / "01-homepage-initial.png", full_page=True)
        )

        LOGGER.info("Step 2: scrolling to reveal lazy-loaded content")
        await auto_scroll(
            session, step=config.scroll_step, interval_ms=config.scroll_interval_ms
        )
        await session.wait(config.after_scroll_delay)
        report.files.append(
            await session.screenshot(out_dir / "02-after-scroll.png", full_page=True)
        )

        LOGGER.info("Step 3: extracting and categorising links")
        home_url = session.url
        report.links = classify_links(
            await session.evaluate(ALL_LINKS_SCRIPT) or [], home_url
        )
        LOGGER.info(
            "  Internal: %d, external: %d",
            len(report.links["internal"]),
            len(report.links["external"]),
        )
        report.files.append(write_json(out_dir / "03-links.json", report.links))

        LOGGER.info("Step 4: exploring subpages")
        targets = select_subpages(report.links["internal"], home_url, config.subpage_limit)
        for number, link in enumerate(targets, 1):
            subpage = await _capture_subpage(session, config, out_dir, number, link)
            report.subpages.append(subpage)
            if subpage.success:
                report.files.extend([subpage.screenshot, subpage.data_path])

        LOGGER.info("Step 5: extracting structured content from the homepage")
        await session.open(config.target_url, timeout=config.navigation_timeout)
        report.structured_content = (
            await session.evaluate(
                STRUCTURED_CONTENT_SCRIPT, list(DEEP_DIVE_CONTENT_SELECTORS)
            )
            or {}
        )
        report.files.append(
            write_json(out_dir / "05-structured-content.json", report.structured_content)
        )

        LOGGER.info("Step 6: reading navigation timing")
        report.performance = await session.evaluate(PERFORMANCE_SCRIPT)
        if report.performance:
            LOGGER.info("  Page load time: %sms", report.performance.get("load_time"))
        report.files.append(write_json(out_dir / "06-performance.json", report.performance))

    LOGGER.info("=" * 60)
    LOGGER.info("DEEP DIVE COMPLETE")
    LOGGER.info("All results saved to: %s", out_dir)
    for path in report.files:
        LOGGER.info("  %s", path.name)
    return report


def deep_dive(config: Optional[DeepDiveConfig] = None) -> DeepDiveReport:
    """Synchronous wrapper for deep_dive_async."""
    return asyncio.run(deep_dive_async(config))
