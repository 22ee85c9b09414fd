"""File naming and writing helpers for run artifacts."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Union

from .errors import WriteError

LOGGER = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_DASH_RUNS = re.compile(r"-+")

MAX_SLUG_LENGTH = 50


def safe_filename(text: str, fallback: str = "link") -> str:
    """Turn link text into a filesystem-safe slug.

    Text without any ASCII letters or digits yields ``fallback``.
    """
    slug = _NON_ALNUM.sub("-", text or "")
    slug = _DASH_RUNS.sub("-", slug).lower().strip("-")
    slug = slug[:MAX_SLUG_LENGTH].rstrip("-")
    return slug or fallback


def artifact_stem(number: int, text: str) -> str:
    """Name shared by a link's document and screenshot, e.g. ``03-pricing``."""
    return f"{number:02d}-{safe_filename(text)}"


def run_directory(root: Union[str, Path], when: datetime) -> Path:
    """Directory for one crawl run, keyed by calendar date."""
    return Path(root) / when.strftime("%Y-%m-%d")


def prepare_run_directory(root: Union[str, Path], when: datetime) -> Path:
    """Create the run directory and its ``images`` subdirectory."""
    out_dir = run_directory(root, when)
    images = out_dir / "images"
    try:
        images.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WriteError(images, exc) from exc
    return out_dir


def write_text(path: Union[str, Path], content: str) -> Path:
    """Write UTF-8 text, raising WriteError on failure."""
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise WriteError(target, exc) from exc
    LOGGER.debug("Wrote %s", target)
    return target


def write_json(path: Union[str, Path], payload: Any) -> Path:
    """Write pretty-printed JSON with a trailing newline."""
    return write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


def discard_file(path: Union[str, Path]) -> None:
    """Remove a partial artifact, logging instead of raising on failure."""
    target = Path(path)
    try:
        target.unlink(missing_ok=True)
    except OSError as exc:
        LOGGER.warning("Could not remove %s: %s", target, exc)
