"""Read the anchors of a designated container on a loaded page."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .browser import BrowserSession
from .document import Link, LinkExtraction
from .errors import ContainerNotFound

LOGGER = logging.getLogger(__name__)

# Returns null when the container is absent. Class attributes are removed
# from a clone so the saved container HTML carries structure only.
CONTAINER_LINKS_SCRIPT = """
(selector) => {
    const container = document.querySelector(selector);
    if (!container) {
        return null;
    }
    const links = Array.from(container.querySelectorAll('a[href]')).map(a => ({
        text: (a.textContent || '').trim(),
        href: a.href,
        title: a.title || (a.textContent || '').trim(),
    }));
    const clone = container.cloneNode(true);
    clone.querySelectorAll('*').forEach(el => el.removeAttribute('class'));
    return { links, html: clone.innerHTML };
}
"""

AVAILABLE_CONTAINERS_SCRIPT = """
(limit) => Array.from(document.querySelectorAll('[id]'))
    .slice(0, limit)
    .map(el => [el.id, el.tagName])
"""


def dedupe_links(raw_links: Iterable[Dict[str, Any]]) -> List[Link]:
    """Keep anchors with text and href, first occurrence of each href wins."""
    seen: set[str] = set()
    links: List[Link] = []
    for entry in raw_links:
        text = str((entry or {}).get("text") or "").strip()
        href = str((entry or {}).get("href") or "").strip()
        if not text or not href:
            continue
        if href in seen:
            continue
        seen.add(href)
        title = str((entry or {}).get("title") or "").strip() or text
        links.append(Link(text=text, href=href, title=title))
    return links


async def list_available_containers(
    session: BrowserSession, limit: int = 20
) -> List[Tuple[str, str]]:
    """List ``(id, tag)`` pairs of id-bearing elements for diagnostics."""
    rows = await session.evaluate(AVAILABLE_CONTAINERS_SCRIPT, limit) or []
    return [(str(row[0]), str(row[1])) for row in rows]


async def extract_links(session: BrowserSession, selector: str) -> LinkExtraction:
    """Extract links from the container matched by ``selector``.

    A missing container is not an error: the result carries no links and
    its ``missing`` attribute holds a :class:`ContainerNotFound`.

    Raises:
        ExtractionError: If the in-page evaluation throws.
    """
    data: Optional[Dict[str, Any]] = await session.evaluate(
        CONTAINER_LINKS_SCRIPT, selector
    )

    if data is None:
        missing = ContainerNotFound(selector)
        LOGGER.warning("%s", missing)
        available = await list_available_containers(session)
        return LinkExtraction(missing=missing, available_containers=available)

    links = dedupe_links(data.get("links") or [])
    LOGGER.debug(
        "Container %s: %d anchors, %d unique links",
        selector,
        len(data.get("links") or []),
        len(links),
    )
    return LinkExtraction(links=links, container_html=str(data.get("html") or ""))
