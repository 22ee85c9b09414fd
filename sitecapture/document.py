"""Data structures produced while crawling and capturing pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ContainerNotFound


@dataclass(slots=True, frozen=True)
class Link:
    """Anchor collected from the designated container."""

    text: str
    href: str
    title: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"text": self.text, "href": self.href, "title": self.title or self.text}


@dataclass(slots=True, frozen=True)
class Heading:
    """One entry of a page heading outline."""

    level: int
    text: str


@dataclass(slots=True, frozen=True)
class PageCapture:
    """Everything captured for one visited link."""

    link: Link
    title: str
    url: str
    headings: Tuple[Heading, ...]
    content_html: str
    screenshot_path: str
    h1: str = ""
    meta_description: str = ""
    content_selector: str = "body"


@dataclass(slots=True)
class CrawlResult:
    """Outcome of visiting a single link.

    Use :meth:`succeeded` and :meth:`failed` to build instances; they keep
    ``output_file`` and ``error`` mutually exclusive.
    """

    link: Link
    success: bool
    url: str
    output_file: Optional[str] = None
    error: Optional[str] = None
    title: str = ""
    screenshot_file: Optional[str] = None
    meta_description: str = ""

    @classmethod
    def succeeded(
        cls,
        link: Link,
        *,
        url: str,
        output_file: str,
        title: str = "",
        screenshot_file: Optional[str] = None,
        meta_description: str = "",
    ) -> "CrawlResult":
        if not output_file:
            raise ValueError("A successful result requires an output file")
        return cls(
            link=link,
            success=True,
            url=url,
            output_file=output_file,
            title=title,
            screenshot_file=screenshot_file,
            meta_description=meta_description,
        )

    @classmethod
    def failed(cls, link: Link, error: str) -> "CrawlResult":
        message = (error or "").strip()
        if not message:
            raise ValueError("A failed result requires an error message")
        return cls(link=link, success=False, url=link.href, error=message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to the JSON shape written to results.json."""
        data: Dict[str, Any] = {
            "success": self.success,
            "link": self.link.text,
            "url": self.url,
        }
        if self.success:
            data["filename"] = self.output_file
            data["title"] = self.title
            if self.screenshot_file:
                data["screenshot"] = self.screenshot_file
        else:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class LinkExtraction:
    """Links read from a container, or the signal that it was missing."""

    links: List[Link] = field(default_factory=list)
    container_html: str = ""
    missing: Optional[ContainerNotFound] = None
    available_containers: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.missing is None
