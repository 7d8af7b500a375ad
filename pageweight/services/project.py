from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from pageweight.config.schema import AppConfig
from pageweight.models.analysis import (
    BreakpointSet,
    PageAnalysis,
    ProjectAnalysis,
    PublishedData,
    Recommendation,
    SavingsSet,
    SavingsSummary,
)
from pageweight.models.asset import Asset, CmsAsset
from pageweight.models.enums import AnalysisMode, Breakpoint, CmsStatus
from pageweight.services.breakdown import merge_breakpoints
from pageweight.services.cms import cms_bandwidth_impact
from pageweight.services.recommendations import dedupe_recommendations, recommend, total_savings


def cap_savings(raw: int, total: int, ratio: float) -> SavingsSummary:
    """Clamp a summed savings figure to ``ratio`` of the bytes it came from."""
    cap = max(0, int(round(total * ratio)))
    return SavingsSummary(raw_bytes=raw, reported_bytes=min(raw, cap), cap_bytes=cap)


def breakpoint_recommendations(
    pages: Sequence[PageAnalysis],
    breakpoint: Breakpoint,
    config: AppConfig,
) -> list[Recommendation]:
    recs: list[Recommendation] = []
    for page in pages:
        data = page.breakpoints.get(breakpoint)
        recs.extend(recommend(data.assets, config, page=page.page, breakpoint=breakpoint))
    return dedupe_recommendations(recs)


def summarize_savings(
    recs_by_breakpoint: Mapping[Breakpoint, Iterable[Recommendation]],
    totals: BreakpointSet,
    cap_ratio: float,
) -> SavingsSet:
    """Per-breakpoint savings totals, capped against that breakpoint's size.

    Only the aggregate is capped; the recommendation records keep their own
    savings figures.
    """
    summaries = {
        breakpoint.value: cap_savings(
            total_savings(recs_by_breakpoint.get(breakpoint, ())),
            totals.get(breakpoint).total_bytes,
            cap_ratio,
        )
        for breakpoint in Breakpoint
    }
    return SavingsSet(**summaries)


def page_cms_assets(pages: Iterable[PageAnalysis]) -> list[CmsAsset]:
    """One CMS asset per (page, node), taken from the first breakpoint it appears on."""
    seen: set[tuple[str, str]] = set()
    found: list[CmsAsset] = []
    for page in pages:
        for _, data in page.breakpoints.items():
            for asset in data.assets:
                if not isinstance(asset, CmsAsset):
                    continue
                key = (page.page.id, asset.node_id)
                if key in seen:
                    continue
                seen.add(key)
                found.append(asset)
    return found


def aggregate_project(
    pages: Sequence[PageAnalysis],
    *,
    mode: AnalysisMode,
    config: AppConfig,
    cms_assets: Iterable[CmsAsset] = (),
    published: PublishedData | None = None,
    published_url: str | None = None,
    unresolved: Iterable[Asset] = (),
    warnings: Iterable[str] = (),
) -> ProjectAnalysis:
    """Fold page analyses into a project snapshot.

    Pure: the same inputs always give an equal snapshot.
    """
    overall = BreakpointSet(
        mobile=merge_breakpoints(page.breakpoints.mobile for page in pages),
        tablet=merge_breakpoints(page.breakpoints.tablet for page in pages),
        desktop=merge_breakpoints(page.breakpoints.desktop for page in pages),
    )

    all_recs = dedupe_recommendations(rec for page in pages for rec in page.recommendations)
    savings = summarize_savings(
        {bp: breakpoint_recommendations(pages, bp, config) for bp in Breakpoint},
        overall,
        config.savings_cap_ratio,
    )

    cms = [*page_cms_assets(pages), *cms_assets]
    missing = [asset for page in pages for asset in page.unresolved_assets]
    missing.extend(unresolved)

    return ProjectAnalysis(
        mode=mode,
        pages=tuple(pages),
        total_pages=len(pages),
        overall_breakpoints=overall,
        all_recommendations=tuple(all_recs),
        savings=savings,
        cms_assets_count=len(cms),
        cms_assets_bytes=sum(asset.estimated_bytes for asset in cms),
        cms_assets_not_found=sum(1 for asset in cms if asset.status is CmsStatus.NOT_FOUND),
        has_manual_cms_estimates=any(asset.is_manual_estimate for asset in cms),
        cms_bandwidth_impact=cms_bandwidth_impact(cms, config.traffic),
        published_url=published_url or (published.url if published is not None else None),
        published_data=published,
        unresolved_assets=tuple(missing),
        warnings=tuple(warnings),
    )
