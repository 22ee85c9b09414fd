"""Sequential crawl of the links found in one container of the homepage.

The run moves through a fixed sequence of states::

    IDLE -> FETCHING_INDEX -> EXTRACTING_LINKS -> VISITING_LINK* -> WRITING_INDEX -> DONE

Failures while visiting a link are recorded in that link's
:class:`CrawlResult` and the loop moves on. Failures before the first link
is visited (browser launch, homepage load, missing container) end the run
in ``ABORTED`` and raise :class:`CrawlAbortedError`.

Example usage:

    from sitecapture.config import CrawlConfig
    from sitecapture.pipeline import crawl_first_section

    report = crawl_first_section(CrawlConfig())
    print(report.stats)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .browser import BrowserSession, auto_scroll, launch_session
from .config import CrawlConfig
from .document import CrawlResult, Link
from .errors import CaptureError, CrawlAbortedError
from .index import INDEX_FILENAME, RESULTS_FILENAME, write_index, write_results
from .links import extract_links
from .markdown import compose_page_markdown, html_to_markdown
from .output import artifact_stem, discard_file, prepare_run_directory, write_text
from .render import render_capture

LOGGER = logging.getLogger(__name__)

CONTAINER_HTML_FILENAME = "main-wrapper.html"

Converter = Callable[[str, str], str]
Clock = Callable[[], datetime]


class CrawlState(str, Enum):
    IDLE = "idle"
    FETCHING_INDEX = "fetching_index"
    EXTRACTING_LINKS = "extracting_links"
    VISITING_LINK = "visiting_link"
    WRITING_INDEX = "writing_index"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class CrawlRunReport:
    """Outcome of a complete crawl run."""

    output_dir: Path
    results: List[CrawlResult] = field(default_factory=list)
    state: CrawlState = CrawlState.IDLE
    index_path: Optional[Path] = None
    results_path: Optional[Path] = None
    stats: Dict[str, Any] = field(default_factory=dict)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _image_ref(stem: str) -> str:
    return f"images/{stem}.png"


def _error_message(exc: BaseException) -> str:
    return str(exc).strip() or type(exc).__name__


class FirstSectionCrawler:
    """Drives one crawl run over a single shared browser session."""

    def __init__(
        self,
        config: CrawlConfig,
        *,
        convert: Converter = html_to_markdown,
        clock: Clock = _utcnow,
    ) -> None:
        self.config = config
        self.convert = convert
        self.clock = clock
        self.state = CrawlState.IDLE

    def _enter(self, state: CrawlState) -> None:
        LOGGER.debug("Crawl state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _abort(self, exc: BaseException) -> CrawlAbortedError:
        failed_in = self.state.value
        self._enter(CrawlState.ABORTED)
        LOGGER.error("Fatal error during %s: %s", failed_in, exc)
        return CrawlAbortedError(failed_in, exc)

    async def run(self, session: Optional[BrowserSession] = None) -> CrawlRunReport:
        """Execute the crawl.

        Args:
            session: Optional already-open session. When omitted a browser
                is launched from ``config.browser``. Either way the session
                is closed when the run ends.

        Returns:
            CrawlRunReport with one result per extracted link.

        Raises:
            CrawlAbortedError: If setup fails before any link is visited.
        """
        started = self.clock()

        async with AsyncExitStack() as stack:
            try:
                if session is None:
                    session = await stack.enter_async_context(
                        launch_session(self.config.browser)
                    )
                else:
                    stack.push_async_callback(session.close)
                out_dir = prepare_run_directory(self.config.output_root, started)
                LOGGER.info("Output directory: %s", out_dir)
                links = await self._discover_links(session, out_dir)
            except CrawlAbortedError:
                raise
            except Exception as exc:
                raise self._abort(exc) from exc

            report = CrawlRunReport(output_dir=out_dir)

            self._enter(CrawlState.VISITING_LINK)
            for number, link in enumerate(links, 1):
                result = await self._visit(session, number, len(links), link, out_dir)
                report.results.append(result)

        self._enter(CrawlState.WRITING_INDEX)
        report.index_path = write_index(
            out_dir / INDEX_FILENAME,
            report.results,
            source_url=self.config.target_url,
            generated_at=started,
        )
        report.results_path = write_results(out_dir / RESULTS_FILENAME, report.results)

        report.stats = {
            "total_links": len(report.results),
            "successful": sum(1 for r in report.results if r.success),
            "failed": sum(1 for r in report.results if not r.success),
        }
        self._enter(CrawlState.DONE)
        report.state = self.state
        _log_summary(report)
        return report

    async def _discover_links(
        self, session: BrowserSession, out_dir: Path
    ) -> List[Link]:
        self._enter(CrawlState.FETCHING_INDEX)
        LOGGER.info("Loading homepage %s", self.config.target_url)
        await session.open(
            self.config.target_url,
            timeout=self.config.navigation_timeout,
            settle_delay=self.config.settle_delay,
        )

        self._enter(CrawlState.EXTRACTING_LINKS)
        selector = self.config.container_selector
        LOGGER.info("Extracting links from %s", selector)
        extraction = await extract_links(session, selector)

        if extraction.missing is not None:
            if extraction.available_containers:
                LOGGER.info("Available sections on page:")
                for element_id, tag in extraction.available_containers:
                    LOGGER.info("  #%s <%s>", element_id, tag.lower())
            raise self._abort(extraction.missing)

        if extraction.container_html:
            html_path = write_text(
                out_dir / CONTAINER_HTML_FILENAME, extraction.container_html
            )
            LOGGER.info("Saved %s HTML to: %s", selector, html_path)

        links = extraction.links
        LOGGER.info("Found %d links in %s", len(links), selector)
        for number, link in enumerate(links, 1):
            LOGGER.info("  %d. %s -> %s", number, link.text, link.href)
        if not links:
            LOGGER.warning("No links found in %s", selector)
        return links

    async def _visit(
        self,
        session: BrowserSession,
        number: int,
        total: int,
        link: Link,
        out_dir: Path,
    ) -> CrawlResult:
        LOGGER.info("=" * 60)
        LOGGER.info("Processing %d/%d: %s", number, total, link.text)
        stem = artifact_stem(number, link.text)
        try:
            return await self._capture_link(session, stem, link, out_dir)
        except CaptureError as exc:
            LOGGER.error("  Error processing link: %s", exc)
            error = _error_message(exc)
        except Exception as exc:
            LOGGER.exception("  Unexpected error processing %s", link.href)
            error = _error_message(exc)
        # Screenshots exist only for links that were captured successfully
        discard_file(out_dir / _image_ref(stem))
        return CrawlResult.failed(link, error)

    async def _capture_link(
        self,
        session: BrowserSession,
        stem: str,
        link: Link,
        out_dir: Path,
    ) -> CrawlResult:
        config = self.config
        image_ref = _image_ref(stem)
        document_name = f"{stem}.md"

        LOGGER.info("  Navigating to: %s", link.href)
        await session.open(
            link.href,
            timeout=config.navigation_timeout,
            settle_delay=config.settle_delay,
        )

        LOGGER.info("  Scrolling to reveal content...")
        await auto_scroll(
            session, step=config.scroll_step, interval_ms=config.scroll_interval_ms
        )
        await session.wait(config.after_scroll_delay)

        LOGGER.info("  Taking screenshot...")
        await session.screenshot(out_dir / image_ref, full_page=True)

        LOGGER.info("  Extracting content...")
        capture = await render_capture(session, link, image_ref)

        LOGGER.info("  Converting to Markdown...")
        body = self.convert(capture.content_html, capture.url)
        document = compose_page_markdown(capture, body, image_ref)
        write_text(out_dir / document_name, document)
        LOGGER.info("  Saved: %s", document_name)

        return CrawlResult.succeeded(
            link,
            url=capture.url,
            output_file=document_name,
            title=capture.title,
            screenshot_file=image_ref,
            meta_description=capture.meta_description,
        )


def _log_summary(report: CrawlRunReport) -> None:
    stats = report.stats
    LOGGER.info("=" * 60)
    LOGGER.info("CRAWL COMPLETE")
    LOGGER.info("Output directory: %s", report.output_dir)
    LOGGER.info(
        "Results: %d total, %d successful, %d failed",
        stats.get("total_links", 0),
        stats.get("successful", 0),
        stats.get("failed", 0),
    )
    LOGGER.info("Files created:")
    LOGGER.info("  %s - index with all links", INDEX_FILENAME)
    LOGGER.info("  %d markdown files", stats.get("successful", 0))
    LOGGER.info("  %d screenshots in images/", stats.get("successful", 0))
    LOGGER.info("  %s - processing results", RESULTS_FILENAME)


async def crawl_first_section_async(
    config: Optional[CrawlConfig] = None,
    *,
    session: Optional[BrowserSession] = None,
    convert: Converter = html_to_markdown,
    clock: Clock = _utcnow,
) -> CrawlRunReport:
    """Crawl every link in the configured container of the target homepage."""
    crawler = FirstSectionCrawler(config or CrawlConfig(), convert=convert, clock=clock)
    return await crawler.run(session)


def crawl_first_section(config: Optional[CrawlConfig] = None) -> CrawlRunReport:
    """Synchronous wrapper for crawl_first_section_async."""
    return asyncio.run(crawl_first_section_async(config))
