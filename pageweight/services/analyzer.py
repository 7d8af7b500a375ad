from __future__ import annotations

import httpx
from result import Err, Ok

from pageweight.config.schema import AppConfig
from pageweight.models.analysis import (
    AnalysisError,
    AnalysisErrorCode,
    AnalysisResult,
    CancelCheck,
    PageAnalysis,
    ProgressCallback,
    ProjectAnalysis,
    PublishedData,
)
from pageweight.models.asset import CmsAsset, PageRef
from pageweight.models.enums import AnalysisMode, Breakpoint, ResourceType
from pageweight.models.source import CmsCollection, SourceNode
from pageweight.source._base import AssetSource, PublishedSource, SourceError
from pageweight.services.cms import detect_published_cms_assets, manual_estimates_to_assets
from pageweight.services.logs import ScanLog, scan_logger
from pageweight.services.page_analyzer import analyze_page
from pageweight.services.project import aggregate_project, page_cms_assets
from pageweight.services.published import HttpPublishedSource, PublishedSiteError


def is_design_page(page: PageRef, prefixes: list[str]) -> bool:
    name = page.name.strip().lower()
    return bool(name) and any(name.startswith(prefix) for prefix in prefixes)


def select_pages(pages: list[PageRef], config: AppConfig) -> list[PageRef]:
    excluded = set(config.excluded_page_ids)
    selected = []
    for page in pages:
        if page.id in excluded:
            continue
        if config.exclude_design_pages and is_design_page(page, config.design_page_prefixes):
            continue
        selected.append(page)
    return selected


def _cancelled() -> AnalysisResult:
    return Err(AnalysisError(code=AnalysisErrorCode.CANCELLED, message="Analysis cancelled"))


def _canvas_urls(pages: list[PageAnalysis]) -> set[str]:
    urls: set[str] = set()
    for page in pages:
        for _, data in page.breakpoints.items():
            urls.update(asset.url for asset in data.assets if asset.url)
    return urls


async def _published(
    source: AssetSource,
    published_source: PublishedSource | None,
    log: ScanLog,
    warnings: list[str],
) -> tuple[str | None, PublishedData | None]:
    try:
        url = await source.published_url()
    except SourceError as exc:
        log.warning("Could not resolve published url: %s", exc)
        warnings.append(f"Could not resolve published url: {exc}")
        return None, None
    if not url:
        warnings.append("Site is not published; published analysis skipped")
        return None, None

    analyzer = published_source if published_source is not None else HttpPublishedSource(log=log)
    try:
        return url, await analyzer.analyze(url)
    except (httpx.HTTPError, PublishedSiteError) as exc:
        log.warning("Published site analysis failed: %s", exc)
        warnings.append(f"Published site analysis failed: {exc}")
        return url, None


async def run_analysis(
    source: AssetSource,
    config: AppConfig,
    *,
    mode: AnalysisMode = AnalysisMode.CANVAS,
    published_source: PublishedSource | None = None,
    progress_callback: ProgressCallback | None = None,
    cancel_check: CancelCheck | None = None,
    log: ScanLog | None = None,
) -> AnalysisResult:
    """Scan every page of *source* and build a project snapshot.

    Enumeration failures are fatal and come back as ``Err``. Missing CMS
    collections and an unreachable published site only add warnings. Any
    other exception is reported as an ``internal`` error.
    """
    log = log or scan_logger()
    try:
        return await _analyze(
            source,
            config,
            mode=mode,
            published_source=published_source,
            progress_callback=progress_callback,
            cancel_check=cancel_check,
            log=log,
        )
    except Exception as exc:  # noqa: BLE001
        log.exception("Analysis failed")
        return Err(AnalysisError(code=AnalysisErrorCode.INTERNAL, message=f"Analysis failed: {exc}"))


async def _analyze(
    source: AssetSource,
    config: AppConfig,
    *,
    mode: AnalysisMode,
    published_source: PublishedSource | None,
    progress_callback: ProgressCallback | None,
    cancel_check: CancelCheck | None,
    log: ScanLog,
) -> AnalysisResult:
    warnings: list[str] = []

    try:
        all_pages = await source.list_pages()
    except Exception as exc:  # noqa: BLE001
        log.error("Page enumeration failed: %s", exc)
        return Err(AnalysisError(code=AnalysisErrorCode.ENUMERATION_FAILED, message=str(exc)))

    pages = select_pages(all_pages, config)
    if not pages:
        return Err(AnalysisError(code=AnalysisErrorCode.NO_PAGES, message="No pages to analyze"))
    log.info("Analyzing %d of %d pages", len(pages), len(all_pages))

    try:
        collections: list[CmsCollection] = await source.cms_collections()
    except Exception as exc:  # noqa: BLE001
        log.warning("CMS collections unavailable: %s", exc)
        warnings.append(f"CMS collections unavailable: {exc}")
        collections = []
    by_id = {collection.id: collection for collection in collections}

    analyses: list[PageAnalysis] = []
    for index, page in enumerate(pages):
        if cancel_check is not None and cancel_check():
            return _cancelled()
        if progress_callback is not None:
            progress_callback(page.name, index, len(pages))

        trees: dict[Breakpoint, SourceNode] = {}
        for breakpoint in Breakpoint:
            try:
                trees[breakpoint] = await source.page_tree(page.id, breakpoint)
            except SourceError as exc:
                log.error("Page %s failed at %s: %s", page.id, breakpoint.value, exc)
                return Err(
                    AnalysisError(
                        code=AnalysisErrorCode.ENUMERATION_FAILED,
                        message=f"Could not read page {page.name or page.id}: {exc}",
                        page_id=page.id,
                    )
                )
        analyses.append(analyze_page(page, trees, config, by_id, log))

    if cancel_check is not None and cancel_check():
        return _cancelled()
    if progress_callback is not None:
        progress_callback("", len(pages), len(pages))

    extra_cms: list[CmsAsset] = []
    published_url: str | None = None
    published: PublishedData | None = None
    if mode is AnalysisMode.PUBLISHED:
        published_url, published = await _published(source, published_source, log, warnings)
        if published is not None:
            images = [r for r in published.resources if r.type is ResourceType.IMAGE]
            detected = detect_published_cms_assets(images, _canvas_urls(analyses))
            log.info("Detected %d CMS-only images on the published site", len(detected))
            extra_cms.extend(detected)

    auto_detected = {asset.collection_name for asset in (*page_cms_assets(analyses), *extra_cms)}
    extra_cms.extend(manual_estimates_to_assets(config.manual_cms_estimates, auto_detected, config))

    snapshot = aggregate_project(
        analyses,
        mode=mode,
        config=config,
        cms_assets=extra_cms,
        published=published,
        published_url=published_url,
        warnings=warnings,
    )
    log.info(
        "Scan complete: %d pages, %d recommendations",
        snapshot.total_pages,
        len(snapshot.all_recommendations),
    )
    return Ok(snapshot)


class AnalysisSession:
    """Holds the last completed snapshot.

    Each run gets a generation number; a run that finishes after a newer one
    started is discarded, and a failed run keeps the previous snapshot.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._snapshot: ProjectAnalysis | None = None

    @property
    def snapshot(self) -> ProjectAnalysis | None:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    async def run(
        self,
        source: AssetSource,
        config: AppConfig,
        *,
        mode: AnalysisMode = AnalysisMode.CANVAS,
        published_source: PublishedSource | None = None,
        progress_callback: ProgressCallback | None = None,
        cancel_check: CancelCheck | None = None,
    ) -> AnalysisResult:
        self._generation += 1
        generation = self._generation

        def stale() -> bool:
            if generation != self._generation:
                return True
            return cancel_check is not None and cancel_check()

        result = await run_analysis(
            source,
            config,
            mode=mode,
            published_source=published_source,
            progress_callback=progress_callback,
            cancel_check=stale,
            log=scan_logger(generation),
        )
        if generation != self._generation:
            return Err(
                AnalysisError(
                    code=AnalysisErrorCode.SUPERSEDED,
                    message=f"Scan {generation} superseded by scan {self._generation}",
                )
            )
        if isinstance(result, Ok):
            self._snapshot = result.unwrap()
        return result
