"""Headless-browser capture of a single website.

This package drives one browser session through a fixed sequence of
steps. It supports:

- Crawling the links of one homepage container into Markdown documents
  with full-page screenshots, an index and a results list
- A dated archive capture of the homepage with page-analysis data
- A deep dive into the homepage: structure analysis, link inventory,
  a sample of internal pages and navigation timing

Example usage:

    from sitecapture import CrawlConfig, crawl_first_section

    report = crawl_first_section(CrawlConfig())
    for result in report.results:
        print(result.link.text, result.success, result.output_file or result.error)

    from sitecapture import capture_archive

    capture = capture_archive()
    print(capture.paths.screenshot)
"""

from __future__ import annotations

from .archive import ArchiveCapture, capture_archive, capture_archive_async
from .browser import BrowserSession, launch_session
from .config import ArchiveConfig, BrowserSettings, CrawlConfig, DeepDiveConfig
from .deepdive import DeepDiveReport, SubpageCapture, deep_dive, deep_dive_async
from .document import CrawlResult, Heading, Link, LinkExtraction, PageCapture
from .errors import (
    CaptureError,
    ContainerNotFound,
    CrawlAbortedError,
    ExtractionError,
    NavigationError,
    WriteError,
)
from .index import render_index, write_index, write_results
from .links import extract_links
from .markdown import compose_page_markdown, html_to_markdown
from .pipeline import (
    CrawlRunReport,
    CrawlState,
    crawl_first_section,
    crawl_first_section_async,
)
from .render import extract_main_content, render_capture

__all__ = [
    # Data types
    "Link",
    "Heading",
    "PageCapture",
    "CrawlResult",
    "LinkExtraction",
    "CrawlRunReport",
    "CrawlState",
    # Errors
    "CaptureError",
    "NavigationError",
    "ContainerNotFound",
    "ExtractionError",
    "WriteError",
    "CrawlAbortedError",
    # Config
    "CrawlConfig",
    "ArchiveConfig",
    "DeepDiveConfig",
    "BrowserSettings",
    # Browser
    "BrowserSession",
    "launch_session",
    # Pipeline stages
    "extract_links",
    "extract_main_content",
    "render_capture",
    "html_to_markdown",
    "compose_page_markdown",
    "render_index",
    "write_index",
    "write_results",
    # Runs
    "crawl_first_section",
    "crawl_first_section_async",
    "capture_archive",
    "capture_archive_async",
    "ArchiveCapture",
    "deep_dive",
    "deep_dive_async",
    "DeepDiveReport",
    "SubpageCapture",
]
