"""Fixed settings for the crawl and archive runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from crawl4ai.markdown_generation_strategy import DefaultMarkdownGenerator

LOGGER = logging.getLogger(__name__)

TARGET_URL = "https://www.ideabrowser.com/"

# Container whose anchors are crawled
CONTAINER_SELECTOR = "#main-wrapper"

# Candidate content regions, explicit containers first. The stripped body is
# the final fallback when none of them match.
CONTENT_SELECTORS: List[str] = [
    "main",
    "article",
    "[role='main']",
    ".content",
    ".main-content",
    ".main",
    "#content",
]

# Non-content elements removed from the cloned body before conversion
EXCLUDED_SELECTORS: List[str] = [
    "script",
    "style",
    "nav",
    "header",
    "footer",
    ".nav",
    ".menu",
    ".sidebar",
]

# Probed on the archive run to report the main content region
ARCHIVE_CONTENT_SELECTORS: List[str] = [
    "main",
    "article",
    "[role='main']",
    ".content",
    "#content",
]

# Tried in order for the structured content of the deep-dive run
DEEP_DIVE_CONTENT_SELECTORS: List[str] = [
    ".idea",
    ".main-content",
    "main",
    "article",
    "[role='main']",
]

# Text preview region on visited subpages
SUBPAGE_CONTENT_SELECTOR = "main, article, .content"

# Elements that usually indicate an overlay covering the page
POPUP_SELECTORS: List[str] = [
    "[class*='modal']",
    "[class*='popup']",
    "[class*='cookie']",
    "[class*='banner']",
    "[role='dialog']",
]

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

EXTRA_HEADERS: Dict[str, str] = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

LAUNCH_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
]


@dataclass
class BrowserSettings:
    """Launch and context options for the shared browser session."""

    headless: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    device_scale_factor: float = 1.0
    user_agent: str = USER_AGENT
    extra_headers: Dict[str, str] = field(default_factory=lambda: dict(EXTRA_HEADERS))
    launch_args: List[str] = field(default_factory=lambda: list(LAUNCH_ARGS))
    stealth: bool = True


@dataclass
class CrawlConfig:
    """Settings for the first-section crawl."""

    target_url: str = TARGET_URL
    container_selector: str = CONTAINER_SELECTOR
    output_root: Path = Path("first-section-crawl")
    navigation_timeout: float = 30.0
    settle_delay: float = 2.0
    scroll_step: int = 200
    scroll_interval_ms: int = 50
    after_scroll_delay: float = 1.0
    browser: BrowserSettings = field(default_factory=BrowserSettings)


@dataclass
class ArchiveConfig:
    """Settings for the daily homepage archive capture."""

    target_url: str = TARGET_URL
    archive_root: Path = Path("archives")
    navigation_timeout: float = 30.0
    settle_delay: float = 3.0
    scroll_step: int = 100
    scroll_interval_ms: int = 100
    after_scroll_delay: float = 0.5
    browser: BrowserSettings = field(
        default_factory=lambda: BrowserSettings(device_scale_factor=2.0, stealth=False)
    )


@dataclass
class DeepDiveConfig:
    """Settings for the homepage deep dive and its subpage sample."""

    target_url: str = TARGET_URL
    output_root: Path = Path("deep-dive-output")
    navigation_timeout: float = 30.0
    subpage_timeout: float = 15.0
    subpage_limit: int = 3
    subpage_delay: float = 1.0
    scroll_step: int = 200
    scroll_interval_ms: int = 100
    after_scroll_delay: float = 1.0
    browser: BrowserSettings = field(
        default_factory=lambda: BrowserSettings(stealth=False)
    )


def build_markdown_generator() -> DefaultMarkdownGenerator:
    """Markdown generator that converts a content fragment verbatim."""
    return DefaultMarkdownGenerator(
        options={
            "citations": False,
            "body_width": 0,
            "ignore_images": False,
            "single_line_break": False,
        },
    )
