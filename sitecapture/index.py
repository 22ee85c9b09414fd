"""Summary document and machine-readable results for a crawl run."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Sequence, Union

from .document import CrawlResult
from .output import write_json, write_text

LOGGER = logging.getLogger(__name__)

INDEX_FILENAME = "INDEX.md"
RESULTS_FILENAME = "results.json"


def render_index(
    results: Sequence[CrawlResult],
    *,
    source_url: str,
    generated_at: datetime,
) -> str:
    """Render the index document listing every result in visitation order.

    The timestamp is an argument rather than read from the clock, so the
    same inputs always render the same bytes.
    """
    lines: List[str] = [
        "# Main Wrapper Links Crawl",
        "",
        f"**Date:** {generated_at.isoformat()}",
        "",
        f"**Source:** {source_url}",
        "",
        f"**Total Links Found:** {len(results)}",
        "",
        "---",
        "",
        "## Links",
        "",
    ]

    for number, result in enumerate(results, 1):
        text = result.link.text
        if result.success:
            lines.append(f"### {number}. [{text}]({result.output_file})")
            lines.append("")
            lines.append(f"- **URL:** {result.url}")
            lines.append(f"- **Title:** {result.title}")
            if result.meta_description:
                lines.append(f"- **Description:** {result.meta_description}")
            if result.screenshot_file:
                lines.append("")
                lines.append(f"![Preview]({result.screenshot_file})")
        else:
            lines.append(f"### {number}. {text} ⚠️ ERROR")
            lines.append("")
            lines.append(f"- **URL:** {result.url}")
            lines.append(f"- **Error:** {result.error}")
        lines.append("")
        lines.append("---")
        lines.append("")

    return "\n".join(lines)


def write_index(
    path: Union[str, Path],
    results: Sequence[CrawlResult],
    *,
    source_url: str,
    generated_at: datetime,
) -> Path:
    """Write the index document, raising WriteError on failure."""
    content = render_index(results, source_url=source_url, generated_at=generated_at)
    target = write_text(path, content)
    LOGGER.info("Index file saved: %s", target)
    return target


def write_results(path: Union[str, Path], results: Sequence[CrawlResult]) -> Path:
    """Write results.json, one object per result in visitation order."""
    target = write_json(path, [result.to_dict() for result in results])
    LOGGER.debug("Wrote %d results to %s", len(results), target)
    return target
