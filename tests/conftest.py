"""Shared fixtures and strict test-accounting guardrails."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import pytest

from sitecapture import archive, browser, deepdive, links, render
from sitecapture.errors import NavigationError


@dataclass
class FakePage:
    """Canned content served by :class:`FakeSession` for one URL."""

    html: str = "<html><body></body></html>"
    title: str = ""
    description: str = ""
    container: Optional[Dict[str, Any]] = None
    ids: List[List[str]] = field(default_factory=list)
    snapshot_fails: bool = False
    links: Optional[List[Dict[str, str]]] = None


class FakeSession:
    """In-memory stand-in for :class:`sitecapture.browser.BrowserSession`."""

    def __init__(
        self,
        pages: Dict[str, FakePage],
        *,
        timeouts: Optional[Set[str]] = None,
        visible: Optional[Set[str]] = None,
    ) -> None:
        self.pages = pages
        self.timeouts = set(timeouts or ())
        self.visible = set(visible or ())
        self.current = ""
        self.visited: List[str] = []
        self.screenshots: List[Dict[str, Any]] = []
        self.closed = False

    @property
    def url(self) -> str:
        return self.current

    async def open(self, url, *, timeout=30.0, wait_until="networkidle", settle_delay=0.0):
        self.visited.append(url)
        if url in self.timeouts:
            raise NavigationError(url, TimeoutError(f"Timeout {int(timeout * 1000)}ms exceeded."))
        if url not in self.pages:
            raise NavigationError(url, ConnectionError("net::ERR_NAME_NOT_RESOLVED"))
        self.current = url
        return url

    async def evaluate(self, script, arg=None):
        page = self.pages[self.current]
        if script == links.CONTAINER_LINKS_SCRIPT:
            return page.container
        if script == links.AVAILABLE_CONTAINERS_SCRIPT:
            return page.ids[:arg]
        if script == render.SNAPSHOT_SCRIPT:
            if page.snapshot_fails:
                return None
            return {
                "title": page.title,
                "url": self.current,
                "description": page.description,
                "html": page.html,
            }
        if script == browser.AUTO_SCROLL_SCRIPT:
            return None
        if script == archive.PAGE_INFO_SCRIPT:
            return {
                "title": page.title,
                "url": self.current,
                "description": page.description or "N/A",
                "headings": [{"tag": "H1", "text": "Idea of the Day"}],
                "links": 3,
                "images": 1,
            }
        if script == archive.INTERACTIVE_SCRIPT:
            return {"buttons": 2, "inputs": 1, "forms": 1, "clickable_elements": 0}
        if script == archive.NAV_LINKS_SCRIPT:
            return [{"text": "Home", "href": self.current}][:arg]
        if script == archive.ALL_LINKS_SCRIPT:
            if page.links is not None:
                return list(page.links)
            return [
                {"text": "Home", "href": self.current},
                {"text": "Pricing", "href": "https://www.ideabrowser.com/pricing"},
                {"text": "Twitter", "href": "https://twitter.com/ideabrowser"},
            ]
        if script == archive.MAIN_CONTENT_PROBE_SCRIPT:
            return {"found": True, "selector": "main", "text_length": 42, "preview": "..."}
        if script == deepdive.PAGE_ANALYSIS_SCRIPT:
            return {
                "url": self.current,
                "title": page.title,
                "structure": {
                    "headings": {"h1": {"count": 1, "samples": []}},
                    "interactive": {"buttons": {"count": 2, "samples": []}},
                    "media": {"images": 1, "videos": 0},
                },
                "metadata": {"description": page.description or None},
            }
        if script == deepdive.SUBPAGE_SCRIPT:
            return {
                "title": page.title,
                "url": self.current,
                "h1": page.title or None,
                "main_content": f"{arg} text",
            }
        if script == deepdive.STRUCTURED_CONTENT_SCRIPT:
            return {
                "main_content": {"selector": arg[0], "text": "Idea", "html": "<p>Idea</p>"},
                "paragraphs": [],
            }
        if script == deepdive.PERFORMANCE_SCRIPT:
            return {"load_time": 1200, "dom_content_loaded": 800, "response_time": 90}
        return None

    async def screenshot(self, path, *, full_page=True):
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"\x89PNG fake")
        self.screenshots.append({"path": target, "full_page": full_page, "url": self.current})
        return target

    async def is_visible(self, selector):
        return selector in self.visible

    async def wait(self, seconds):
        return None

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_page():
    return FakePage


@pytest.fixture
def fake_session_factory():
    return FakeSession


@dataclass
class _TestAccounting:
    deselected: int = 0
    skipped: int = 0
    xfailed: int = 0
    xpassed: int = 0


_ACCOUNTING = _TestAccounting()


def pytest_deselected(items):  # pragma: no cover - pytest hook
    _ACCOUNTING.deselected += len(items)


def pytest_runtest_logreport(report):  # pragma: no cover - pytest hook
    if report.when not in {"setup", "call"}:
        return

    if getattr(report, "wasxfail", False):
        if report.outcome == "skipped":
            _ACCOUNTING.xfailed += 1
        elif report.outcome == "passed":
            _ACCOUNTING.xpassed += 1
        return

    if report.outcome == "skipped":
        _ACCOUNTING.skipped += 1


def pytest_sessionfinish(session, exitstatus):  # pragma: no cover - pytest hook
    violations = [
        f"{name}={count}"
        for name, count in (
            ("deselected", _ACCOUNTING.deselected),
            ("skipped", _ACCOUNTING.skipped),
            ("xfailed", _ACCOUNTING.xfailed),
            ("xpassed", _ACCOUNTING.xpassed),
        )
        if count
    ]
    if not violations:
        return

    reporter = session.config.pluginmanager.get_plugin("terminalreporter")
    if reporter:
        reporter.write_sep(
            "=",
            f"Test accounting violations detected ({', '.join(violations)})",
        )
        reporter.write_line("Skipped, deselected and xfail tests are not allowed.")

    session.exitstatus = 1
