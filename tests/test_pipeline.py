"""Tests for sitecapture.pipeline module."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from sitecapture.config import CrawlConfig
from sitecapture.errors import ContainerNotFound, CrawlAbortedError, NavigationError
from sitecapture.pipeline import (
    CrawlRunReport,
    CrawlState,
    FirstSectionCrawler,
    crawl_first_section_async,
)

HOME = "https://x.com/"
STARTED = datetime(2025, 7, 14, 8, 0, tzinfo=timezone.utc)


def _clock():
    return STARTED


def _config(tmp_path) -> CrawlConfig:
    return CrawlConfig(
        target_url=HOME,
        output_root=tmp_path,
        settle_delay=0,
        after_scroll_delay=0,
    )


def _article(title: str) -> str:
    return (
        f"<html><head><title>{title}</title></head><body>"
        f"<nav>menu</nav><main><h1>{title}</h1><p>{title} body</p></main>"
        "</body></html>"
    )


@pytest.fixture
def site(fake_page):
    return {
        HOME: fake_page(
            title="Home",
            container={
                "links": [
                    {"text": "A", "href": "https://x.com/a"},
                    {"text": "B", "href": "https://x.com/b"},
                    {"text": "C", "href": "https://x.com/c"},
                ],
                "html": "<a href='/a'>A</a><a href='/b'>B</a><a href='/c'>C</a>",
            },
        ),
        "https://x.com/a": fake_page(html=_article("Page A"), title="Page A"),
        "https://x.com/b": fake_page(html=_article("Page B"), title="Page B"),
        "https://x.com/c": fake_page(html=_article("Page C"), title="Page C"),
    }


async def _run(tmp_path, session, convert=lambda html, base_url: "converted body"):
    return await crawl_first_section_async(
        _config(tmp_path), session=session, convert=convert, clock=_clock
    )


class TestTimeoutScenario:
    @pytest.mark.asyncio
    async def test_one_timeout_does_not_abort_batch(
        self, tmp_path, site, fake_session_factory
    ):
        session = fake_session_factory(site, timeouts={"https://x.com/b"})

        report = await _run(tmp_path, session)

        assert isinstance(report, CrawlRunReport)
        assert report.state is CrawlState.DONE
        assert [r.link.text for r in report.results] == ["A", "B", "C"]
        assert [r.success for r in report.results] == [True, False, True]

        failed = report.results[1]
        assert failed.output_file is None
        assert "Timeout" in failed.error
        assert failed.url == "https://x.com/b"

        for result in (report.results[0], report.results[2]):
            assert result.output_file
            assert result.error is None

        assert report.stats == {"total_links": 3, "successful": 2, "failed": 1}

    @pytest.mark.asyncio
    async def test_artifacts_on_disk(self, tmp_path, site, fake_session_factory):
        session = fake_session_factory(site, timeouts={"https://x.com/b"})

        report = await _run(tmp_path, session)
        out_dir = tmp_path / "2025-07-14"

        assert report.output_dir == out_dir
        assert (out_dir / "01-a.md").is_file()
        assert (out_dir / "images" / "01-a.png").is_file()
        assert (out_dir / "03-c.md").is_file()
        assert (out_dir / "images" / "03-c.png").is_file()
        assert not (out_dir / "02-b.md").exists()
        assert not (out_dir / "images" / "02-b.png").exists()
        assert (out_dir / "main-wrapper.html").read_text(encoding="utf-8").startswith("<a")

        document = (out_dir / "01-a.md").read_text(encoding="utf-8")
        assert document.startswith("# Page A\n")
        assert "converted body" in document
        assert "![A](images/01-a.png)" in document

        index = (out_dir / "INDEX.md").read_text(encoding="utf-8")
        assert index.index("[A](01-a.md)") < index.index("B ⚠️ ERROR") < index.index("[C](03-c.md)")

        results = json.loads((out_dir / "results.json").read_text(encoding="utf-8"))
        assert [item["link"] for item in results] == ["A", "B", "C"]
        assert results[1]["success"] is False

    @pytest.mark.asyncio
    async def test_each_link_visited_once_in_order(
        self, tmp_path, site, fake_session_factory
    ):
        session = fake_session_factory(site, timeouts={"https://x.com/b"})

        await _run(tmp_path, session)

        assert session.visited == [
            HOME,
            "https://x.com/a",
            "https://x.com/b",
            "https://x.com/c",
        ]
        assert [shot["url"] for shot in session.screenshots] == [
            "https://x.com/a",
            "https://x.com/c",
        ]
        assert all(shot["full_page"] for shot in session.screenshots)
        assert session.closed is True


class TestCrawlLoop:
    @pytest.mark.asyncio
    async def test_duplicate_hrefs_collapsed(self, tmp_path, site, fake_session_factory):
        site[HOME].container["links"].append({"text": "A dup", "href": "https://x.com/a"})
        session = fake_session_factory(site)

        report = await _run(tmp_path, session)

        assert len(report.results) == 3
        assert session.visited.count("https://x.com/a") == 1

    @pytest.mark.asyncio
    async def test_converter_failure_isolated(self, tmp_path, site, fake_session_factory):
        def convert(html, base_url):
            if "Page B" in html:
                raise RuntimeError("converter exploded")
            return "ok"

        session = fake_session_factory(site)

        report = await _run(tmp_path, session, convert=convert)
        images = tmp_path / "2025-07-14" / "images"

        assert [r.success for r in report.results] == [True, False, True]
        assert report.results[1].error == "converter exploded"
        assert (images / "01-a.png").is_file()
        assert not (images / "02-b.png").exists()
        assert sorted(p.name for p in images.iterdir()) == ["01-a.png", "03-c.png"]

    @pytest.mark.asyncio
    async def test_render_failure_removes_screenshot(
        self, tmp_path, site, fake_session_factory
    ):
        site["https://x.com/b"].snapshot_fails = True
        session = fake_session_factory(site)

        report = await _run(tmp_path, session)

        assert report.results[1].success is False
        assert len(session.screenshots) == 3
        assert not (tmp_path / "2025-07-14" / "images" / "02-b.png").exists()

    @pytest.mark.asyncio
    async def test_converter_receives_page_url(self, tmp_path, site, fake_session_factory):
        calls = []

        def convert(html, base_url):
            calls.append(base_url)
            return "ok"

        await _run(tmp_path, fake_session_factory(site), convert=convert)

        assert calls == ["https://x.com/a", "https://x.com/b", "https://x.com/c"]

    @pytest.mark.asyncio
    async def test_unreachable_link(self, tmp_path, site, fake_session_factory):
        site[HOME].container["links"].append({"text": "Gone", "href": "https://gone.invalid/"})
        session = fake_session_factory(site)

        report = await _run(tmp_path, session)

        assert len(report.results) == 4
        assert report.results[-1].success is False
        assert "gone.invalid" in report.results[-1].error

    @pytest.mark.asyncio
    async def test_zero_links(self, tmp_path, fake_page, fake_session_factory):
        site = {HOME: fake_page(container={"links": [], "html": ""})}
        session = fake_session_factory(site)

        report = await _run(tmp_path, session)

        assert report.state is CrawlState.DONE
        assert report.results == []
        assert report.results_path.read_text(encoding="utf-8") == "[]\n"
        assert "**Total Links Found:** 0" in report.index_path.read_text(encoding="utf-8")
        assert not (report.output_dir / "main-wrapper.html").exists()

    @pytest.mark.asyncio
    async def test_rerun_rewrites_identical_index(self, tmp_path, site, fake_session_factory):
        first = await _run(tmp_path, fake_session_factory(site))
        first_bytes = first.index_path.read_bytes()

        second = await _run(tmp_path, fake_session_factory(site))

        assert second.index_path.read_bytes() == first_bytes


class TestSetupFailures:
    @pytest.mark.asyncio
    async def test_missing_container_aborts(self, tmp_path, fake_page, fake_session_factory):
        site = {HOME: fake_page(container=None, ids=[["root", "DIV"]])}
        session = fake_session_factory(site)
        crawler = FirstSectionCrawler(_config(tmp_path), clock=_clock)

        with pytest.raises(CrawlAbortedError) as excinfo:
            await crawler.run(session)

        assert isinstance(excinfo.value.cause, ContainerNotFound)
        assert excinfo.value.state == "extracting_links"
        assert crawler.state is CrawlState.ABORTED
        assert session.closed is True
        assert not (tmp_path / "2025-07-14" / "results.json").exists()

    @pytest.mark.asyncio
    async def test_homepage_timeout_aborts(self, tmp_path, site, fake_session_factory):
        session = fake_session_factory(site, timeouts={HOME})

        with pytest.raises(CrawlAbortedError) as excinfo:
            await _run(tmp_path, session)

        assert isinstance(excinfo.value.cause, NavigationError)
        assert excinfo.value.state == "fetching_index"
        assert session.visited == [HOME]
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_launch_failure_aborts(self, tmp_path):
        @asynccontextmanager
        async def broken_launch(settings):
            raise RuntimeError("browser executable not found")
            yield  # pragma: no cover

        with patch("sitecapture.pipeline.launch_session", broken_launch):
            with pytest.raises(CrawlAbortedError, match="browser executable not found"):
                await crawl_first_section_async(_config(tmp_path), clock=_clock)

    @pytest.mark.asyncio
    async def test_launches_session_when_none_given(
        self, tmp_path, site, fake_session_factory
    ):
        session = fake_session_factory(site)
        launched = []

        @asynccontextmanager
        async def fake_launch(settings):
            launched.append(settings)
            try:
                yield session
            finally:
                await session.close()

        with patch("sitecapture.pipeline.launch_session", fake_launch):
            report = await crawl_first_section_async(
                _config(tmp_path), convert=lambda html, base_url: "x", clock=_clock
            )

        assert len(launched) == 1
        assert report.state is CrawlState.DONE
        assert session.closed is True
