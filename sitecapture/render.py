"""Extract the primary content region and outline of a loaded page."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .browser import BrowserSession
from .config import CONTENT_SELECTORS, EXCLUDED_SELECTORS
from .document import Heading, Link, PageCapture
from .errors import ExtractionError

LOGGER = logging.getLogger(__name__)

BODY_FALLBACK = "body"

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

SNAPSHOT_SCRIPT = """
() => {
    const meta = document.querySelector('meta[name="description"]');
    return {
        title: document.title || '',
        url: window.location.href,
        description: (meta && meta.content) || '',
        html: document.documentElement.outerHTML,
    };
}
"""


def _strip_non_content(root: BeautifulSoup, excluded: Sequence[str]) -> None:
    for tag in root.select(", ".join(excluded)):
        if tag.decomposed:
            continue
        tag.decompose()


def extract_main_content(
    html: str,
    selectors: Sequence[str] = CONTENT_SELECTORS,
    excluded: Sequence[str] = EXCLUDED_SELECTORS,
) -> Tuple[str, str]:
    """Locate the primary content region of a page.

    Non-content elements are removed from a copy of the body, then each
    selector is tried in order and the first match wins. When nothing
    matches, the whole stripped body is used. This is a heuristic and may
    pick an unintended region on unusual markup.

    Returns:
        ``(selector, inner_html)`` where selector is ``"body"`` for the
        fallback.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    body_source = soup.body if soup.body is not None else soup
    body = BeautifulSoup(body_source.decode_contents(), "html.parser")
    _strip_non_content(body, excluded)

    for selector in selectors:
        match = body.select_one(selector)
        if match is not None:
            return selector, match.decode_contents()
    return BODY_FALLBACK, body.decode_contents()


def heading_outline(html: str) -> List[Heading]:
    """Return every non-empty h1-h6 of the document in order."""
    soup = BeautifulSoup(html or "", "html.parser")
    outline: List[Heading] = []
    for tag in soup.find_all(_HEADING_TAGS):
        text = tag.get_text(" ", strip=True)
        if not text:
            continue
        outline.append(Heading(level=int(tag.name[1]), text=text))
    return outline


def first_h1(headings: Sequence[Heading]) -> str:
    for heading in headings:
        if heading.level == 1:
            return heading.text
    return ""


async def snapshot_page(session: BrowserSession) -> Dict[str, Any]:
    """Read title, final URL, meta description and HTML from the page."""
    data: Optional[Dict[str, Any]] = await session.evaluate(SNAPSHOT_SCRIPT)
    if not isinstance(data, dict):
        raise ExtractionError("Page snapshot returned no data")
    return data


async def render_capture(
    session: BrowserSession, link: Link, screenshot_path: str
) -> PageCapture:
    """Build a :class:`PageCapture` for the page currently loaded."""
    data = await snapshot_page(session)
    html = str(data.get("html") or "")
    selector, content_html = extract_main_content(html)
    headings = heading_outline(html)
    LOGGER.debug("Content region for %s: %s", link.href, selector)

    return PageCapture(
        link=link,
        title=str(data.get("title") or "").strip(),
        url=str(data.get("url") or link.href),
        headings=tuple(headings),
        content_html=content_html,
        screenshot_path=screenshot_path,
        h1=first_h1(headings),
        meta_description=str(data.get("description") or "").strip(),
        content_selector=selector,
    )
