"""HTML to Markdown conversion and per-page document composition."""

from __future__ import annotations

import logging
from typing import List

from .config import build_markdown_generator
from .document import PageCapture

LOGGER = logging.getLogger(__name__)


def html_to_markdown(html: str, base_url: str = "") -> str:
    """Convert an HTML fragment to Markdown with ATX headings."""
    if not (html or "").strip():
        return ""
    generator = build_markdown_generator()
    generated = generator.generate_markdown(
        html,
        base_url=base_url,
        options=generator.options,
        citations=False,
    )
    return (getattr(generated, "raw_markdown", "") or "").strip()


def compose_page_markdown(
    capture: PageCapture, body_markdown: str, image_ref: str
) -> str:
    """Build the Markdown document written for one visited link.

    Layout: title, URL and source link, optional description, the
    screenshot, the converted content, then an indented outline of every
    heading on the page.
    """
    link_text = capture.link.text
    lines: List[str] = []

    lines.append(f"# {capture.title or link_text}")
    lines.append("")
    lines.append(f"**URL:** {capture.url}")
    lines.append("")
    lines.append(f"**Source Link:** {link_text}")
    lines.append("")
    if capture.meta_description:
        lines.append(f"**Description:** {capture.meta_description}")
        lines.append("")
    lines.append("---")
    lines.append("")

    lines.append("## Screenshot")
    lines.append("")
    lines.append(f"![{link_text}]({image_ref})")
    lines.append("")
    lines.append("---")
    lines.append("")

    if capture.h1:
        lines.append(f"## {capture.h1}")
        lines.append("")

    lines.append("## Content")
    lines.append("")
    lines.append(body_markdown.strip())
    lines.append("")
    lines.append("---")
    lines.append("")

    if capture.headings:
        lines.append("## Page Structure")
        lines.append("")
        for heading in capture.headings:
            indent = "  " * max(0, heading.level - 1)
            lines.append(f"{indent}- {heading.text}")
        lines.append("")

    return "\n".join(lines) + "\n"
