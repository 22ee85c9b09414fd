"""Command-line entry points for the crawl, archive and deep-dive runs.

The commands take no arguments: the target site and output locations are
fixed in :mod:`sitecapture.config`. ``-v`` only raises the log level.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError

from .archive import capture_archive_async
from .config import ArchiveConfig, CrawlConfig, DeepDiveConfig
from .deepdive import deep_dive_async
from .errors import CaptureError, CrawlAbortedError
from .pipeline import crawl_first_section_async


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_args(prog: str, description: str, argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def crawl_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the first-section crawl."""
    args = _parse_args(
        "sitecapture-crawl",
        "Crawl the links of the homepage container into Markdown and screenshots.",
        argv,
    )
    _setup_logging(args.verbose)

    config = CrawlConfig()
    try:
        asyncio.run(crawl_first_section_async(config))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except CrawlAbortedError as exc:
        logging.error("%s", exc)
        return 1
    except CaptureError as exc:
        logging.error("Fatal error: %s", exc)
        return 1
    return 0


def archive_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the daily homepage archive."""
    args = _parse_args(
        "sitecapture-archive",
        "Capture dated homepage screenshots and page data.",
        argv,
    )
    _setup_logging(args.verbose)

    config = ArchiveConfig()
    try:
        capture = asyncio.run(capture_archive_async(config))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except (CaptureError, PlaywrightError) as exc:
        logging.error("Script failed: %s", exc)
        return 1
    logging.info("Archive complete: %s", capture.paths.screenshot)
    return 0


def deepdive_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the homepage deep dive."""
    args = _parse_args(
        "sitecapture-deepdive",
        "Analyse the homepage, sample its internal pages and record timings.",
        argv,
    )
    _setup_logging(args.verbose)

    config = DeepDiveConfig()
    try:
        report = asyncio.run(deep_dive_async(config))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except (CaptureError, PlaywrightError) as exc:
        logging.error("Deep dive failed: %s", exc)
        return 1
    logging.info("Deep dive complete: %s", report.output_dir)
    return 0


if __name__ == "__main__":
    sys.exit(crawl_main())
