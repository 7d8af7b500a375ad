from __future__ import annotations

import asyncio
from dataclasses import replace

from result import Err, Ok

from pageweight.config.defaults import default_config
from pageweight.config.schema import ManualCmsEstimate
from pageweight.models.analysis import (
    AnalysisErrorCode,
    AnalysisResult,
    PublishedBreakdown,
    PublishedData,
    PublishedResource,
)
from pageweight.models.enums import AnalysisMode, Breakpoint, ResourceType
from pageweight.services.analyzer import AnalysisSession, run_analysis, select_pages
from pageweight.services.published import PublishedSiteError
from tests.source_mock import MemorySource, StaticPublishedSource, cms_node, frame, image_node

CFG = default_config()


def _source() -> MemorySource:
    return (
        MemorySource()
        .add_page("home", frame("root", image_node("hero", 400, 400, actual=(2000, 2000), fmt="png")), "Home")
        .add_page("about", frame("root"), "About")
    )


def _run(source: MemorySource, **kwargs) -> AnalysisResult:
    config = kwargs.pop("config", CFG)
    return asyncio.run(run_analysis(source, config, **kwargs))


def test_run_analysis_builds_snapshot() -> None:
    result = _run(_source())
    assert isinstance(result, Ok)
    snapshot = result.unwrap()
    assert snapshot.mode is AnalysisMode.CANVAS
    assert [p.page.id for p in snapshot.pages] == ["home", "about"]
    assert snapshot.all_recommendations
    assert snapshot.published_data is None


def test_design_and_excluded_pages_are_skipped() -> None:
    source = _source().add_page("ds", frame("root"), "Design System").add_page("old", frame("root"), "Old")
    config = replace(CFG, excluded_page_ids=["old"])
    snapshot = _run(source, config=config).unwrap()
    assert [p.page.id for p in snapshot.pages] == ["home", "about"]


def test_design_pages_kept_when_filter_disabled() -> None:
    pages = asyncio.run(_source().add_page("ds", frame("root"), "Components").list_pages())
    config = replace(CFG, exclude_design_pages=False)
    assert [p.id for p in select_pages(pages, config)] == ["home", "about", "ds"]


def test_enumeration_failure_is_fatal() -> None:
    source = _source()
    source.fail_pages = True
    result = _run(source)
    assert isinstance(result, Err)
    assert result.unwrap_err().code is AnalysisErrorCode.ENUMERATION_FAILED


def test_no_pages_is_an_error() -> None:
    result = _run(MemorySource().add_page("ds", frame("root"), "Design"))
    assert isinstance(result, Err)
    assert result.unwrap_err().code is AnalysisErrorCode.NO_PAGES


def test_page_tree_failure_names_the_page() -> None:
    source = _source()
    source.fail_tree_for.add("about")
    error = _run(source).unwrap_err()
    assert error.code is AnalysisErrorCode.ENUMERATION_FAILED
    assert error.page_id == "about"


class _BrokenTreeSource(MemorySource):
    async def page_tree(self, page_id, breakpoint):
        raise RuntimeError("corrupt node tree")


def test_unexpected_error_becomes_internal_err() -> None:
    source = _BrokenTreeSource().add_page("home", frame("root"), "Home")
    result = _run(source)
    assert isinstance(result, Err)
    error = result.unwrap_err()
    assert error.code is AnalysisErrorCode.INTERNAL
    assert "corrupt node tree" in error.message


def test_unexpected_enumeration_error_is_fatal() -> None:
    class _Exploding(MemorySource):
        async def list_pages(self):
            raise ValueError("bad export")

    error = _run(_Exploding()).unwrap_err()
    assert error.code is AnalysisErrorCode.ENUMERATION_FAILED
    assert error.message == "bad export"


def test_collection_failure_becomes_warning() -> None:
    source = _source()
    source.fail_collections = True
    snapshot = _run(source).unwrap()
    assert any("collections" in w.lower() for w in snapshot.warnings)


def test_cancel_check_stops_scan() -> None:
    result = _run(_source(), cancel_check=lambda: True)
    assert isinstance(result, Err)
    assert result.unwrap_err().code is AnalysisErrorCode.CANCELLED


def test_progress_reports_each_page() -> None:
    events: list[tuple[str, int, int]] = []
    _run(_source(), progress_callback=lambda name, done, total: events.append((name, done, total)))
    assert events == [("Home", 0, 2), ("About", 1, 2), ("", 2, 2)]


def test_manual_estimates_skip_detected_collections() -> None:
    source = _source().add_collection("blog", "Blog")
    source.add_page("posts", frame("root", cms_node("cover", "blog")), "Posts")
    config = replace(
        CFG,
        manual_cms_estimates=[
            ManualCmsEstimate(id="1", collection_name="Blog", image_count=3),
            ManualCmsEstimate(id="2", collection_name="Team", image_count=2),
        ],
    )
    snapshot = _run(source, config=config).unwrap()
    impact = snapshot.cms_bandwidth_impact
    assert impact is not None
    assert {c.collection_name for c in impact.collections} == {"Blog", "Team"}
    assert snapshot.cms_assets_count == 2


def test_published_failure_leaves_data_empty_with_warning() -> None:
    source = _source().publish("https://site.example.com/")
    published = StaticPublishedSource(error=PublishedSiteError("503"))
    snapshot = _run(source, mode=AnalysisMode.PUBLISHED, published_source=published).unwrap()
    assert snapshot.published_data is None
    assert snapshot.published_url == "https://site.example.com/"
    assert any("published" in w.lower() for w in snapshot.warnings)


def test_unpublished_site_is_a_warning() -> None:
    snapshot = _run(_source(), mode=AnalysisMode.PUBLISHED, published_source=StaticPublishedSource()).unwrap()
    assert snapshot.published_data is None
    assert snapshot.warnings


def test_published_mode_detects_cms_only_images() -> None:
    resources = (
        PublishedResource("https://cdn.example.com/images/hero.png", ResourceType.IMAGE, 90_000),
        PublishedResource("https://cdn.example.com/blog/launch/cover.jpg", ResourceType.IMAGE, 150_000),
    )
    data = PublishedData(
        url="https://site.example.com/",
        total_bytes=240_000,
        breakdown=PublishedBreakdown(images=240_000),
        resources=resources,
    )
    source = _source().publish("https://site.example.com/")
    published = StaticPublishedSource(data)
    snapshot = _run(source, mode=AnalysisMode.PUBLISHED, published_source=published).unwrap()
    assert published.calls == ["https://site.example.com/"]
    assert snapshot.published_data == data
    assert snapshot.cms_assets_count == 1
    assert snapshot.cms_assets_bytes == 150_000


def test_session_discards_superseded_scan() -> None:
    async def scenario() -> tuple[AnalysisResult, AnalysisResult, AnalysisSession]:
        session = AnalysisSession()
        slow = _source()
        slow.gate = asyncio.Event()
        fast = MemorySource().add_page("only", frame("root"), "Only")

        stale_task = asyncio.create_task(session.run(slow, CFG))
        await asyncio.sleep(0)
        latest = await session.run(fast, CFG)
        slow.gate.set()
        stale = await stale_task
        return stale, latest, session

    stale, latest, session = asyncio.run(scenario())
    assert isinstance(stale, Err)
    assert stale.unwrap_err().code is AnalysisErrorCode.SUPERSEDED
    assert isinstance(latest, Ok)
    assert session.snapshot is not None
    assert [p.page.id for p in session.snapshot.pages] == ["only"]


def test_session_keeps_previous_snapshot_on_failure() -> None:
    async def scenario() -> tuple[AnalysisResult, AnalysisSession]:
        session = AnalysisSession()
        await session.run(_source(), CFG)
        broken = _source()
        broken.fail_pages = True
        return await session.run(broken, CFG), session

    result, session = asyncio.run(scenario())
    assert isinstance(result, Err)
    assert session.snapshot is not None
    assert session.snapshot.total_pages == 2
    assert session.generation == 2


def test_tree_per_breakpoint_is_requested() -> None:
    source = _source()
    source.set_tree("about", Breakpoint.MOBILE, frame("root", image_node("m", 300, 300)))
    snapshot = _run(source).unwrap()
    about = snapshot.pages[1]
    assert len(about.breakpoints.mobile.assets) == 1
    assert about.breakpoints.desktop.assets == ()
