"""Exception hierarchy for the capture pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class CaptureError(Exception):
    """Base class for every error raised by the capture pipeline."""


class NavigationError(CaptureError):
    """Raised when a URL cannot be loaded (timeout or connection failure)."""

    def __init__(self, url: str, cause: Optional[BaseException] = None) -> None:
        self.url = url
        self.cause = cause
        reason = _describe(cause) if cause is not None else "unknown error"
        super().__init__(f"Navigation to {url} failed: {reason}")


class ContainerNotFound(CaptureError):
    """Signals that the expected container element is absent from the page."""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"Could not find {selector} element")


class ExtractionError(CaptureError):
    """Raised when an in-page evaluation throws."""


class WriteError(CaptureError):
    """Raised when an output file cannot be written."""

    def __init__(self, path: Union[str, Path], cause: Optional[BaseException] = None) -> None:
        self.path = Path(path)
        self.cause = cause
        reason = _describe(cause) if cause is not None else "unknown error"
        super().__init__(f"Failed to write {self.path}: {reason}")


class CrawlAbortedError(CaptureError):
    """Raised when a setup-level failure stops the whole run."""

    def __init__(self, state: str, cause: BaseException) -> None:
        self.state = state
        self.cause = cause
        super().__init__(f"Crawl aborted during {state}: {cause}")


def _describe(cause: BaseException) -> str:
    message = str(cause).strip()
    name = type(cause).__name__
    if not message:
        return name
    # Playwright timeouts carry the word only in their class name.
    if "timeout" in name.lower() and "timeout" not in message.lower():
        return f"{name}: {message}"
    return message
