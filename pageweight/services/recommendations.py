from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import replace
from typing import TypeAlias

from pageweight.config.schema import AppConfig
from pageweight.models.analysis import Recommendation
from pageweight.models.asset import Asset, CmsAsset, Dimensions, ImageAsset, PageRef, VectorAsset
from pageweight.models.enums import Breakpoint, Priority, RecommendationType
from pageweight.services.estimator import estimate_dimensions_bytes, normalize_format
from pageweight.services.formatting import format_bytes

_RecKey: TypeAlias = tuple[str, RecommendationType]


def priority_for(savings: int, current: int, config: AppConfig) -> Priority:
    ratio = savings / current if current > 0 else 0.0
    if savings >= config.high_savings_bytes or (
        ratio >= config.high_savings_ratio and savings >= config.medium_savings_bytes
    ):
        return Priority.HIGH
    if savings >= config.medium_savings_bytes or ratio >= config.medium_savings_ratio:
        return Priority.MEDIUM
    return Priority.LOW


def optimal_dimensions(asset: ImageAsset, config: AppConfig) -> Dimensions | None:
    """Retina-sized box for the rendered size, keeping the source aspect ratio."""
    rendered = asset.dimensions
    source = asset.source_dimensions
    if not rendered.is_valid or not source.is_valid:
        return None
    width = max(1, min(math.ceil(rendered.width * config.retina_factor), config.max_optimal_width))
    height = max(1, math.ceil(width * source.height / source.width))
    return Dimensions(width, height)


class _Builder:
    def __init__(
        self,
        asset: Asset,
        config: AppConfig,
        page: PageRef | None,
        breakpoint: Breakpoint | None,
    ) -> None:
        self.asset = asset
        self.config = config
        self.page = page if page is not None else asset.page
        self.breakpoint = breakpoint if breakpoint is not None else asset.breakpoint

    def build(
        self,
        rec_type: RecommendationType,
        savings: float,
        description: str,
        actionable: str,
        optimal: Dimensions | None = None,
        priority: Priority | None = None,
    ) -> Recommendation | None:
        current = self.asset.estimated_bytes
        if not math.isfinite(savings):
            return None
        clamped = min(current, max(0, int(round(savings))))
        if clamped <= 0:
            return None
        return Recommendation(
            id=f"{rec_type.value}-{self.asset.asset_key}",
            type=rec_type,
            priority=priority or priority_for(clamped, current, self.config),
            node_id=self.asset.node_id,
            node_name=self.asset.name,
            asset_key=self.asset.asset_key,
            current_bytes=current,
            potential_savings=clamped,
            description=description,
            actionable=actionable,
            url=self.asset.url,
            page=self.page,
            breakpoint=self.breakpoint,
            is_cms_asset=self.asset.is_cms_asset,
            optimal_width=int(optimal.width) if optimal is not None else None,
            optimal_height=int(optimal.height) if optimal is not None else None,
        )


def _raster_recommendations(asset: ImageAsset | CmsAsset, builder: _Builder, config: AppConfig) -> list[Recommendation]:
    recs: list[Recommendation] = []
    current = asset.estimated_bytes
    fmt = normalize_format(asset.format)

    oversized: Recommendation | None = None
    if isinstance(asset, ImageAsset) and asset.actual_dimensions is not None and asset.actual_dimensions.is_valid:
        optimal = optimal_dimensions(asset, config)
        source = asset.actual_dimensions
        if optimal is not None and source.width > optimal.width * (1 + config.oversize_tolerance):
            source_bytes = estimate_dimensions_bytes(source, fmt, config=config, breakpoint=asset.breakpoint)
            optimal_bytes = estimate_dimensions_bytes(optimal, fmt, config=config)
            oversized = builder.build(
                RecommendationType.OVERSIZED,
                source_bytes - optimal_bytes,
                f"Image is {int(source.width)}x{int(source.height)}px but renders at "
                f"{int(asset.dimensions.width)}x{int(asset.dimensions.height)}px ({format_bytes(current)})",
                f"Resize to {int(optimal.width)}x{int(optimal.height)}px (2x rendered size)",
                optimal=optimal,
            )
            if oversized is not None:
                recs.append(oversized)

    ratio = config.format_savings.get(fmt)
    format_rec: Recommendation | None = None
    if ratio is not None and current >= config.format_min_bytes:
        remaining = current - (oversized.potential_savings if oversized is not None else 0)
        pct = int(round(ratio * 100))
        format_rec = builder.build(
            RecommendationType.FORMAT,
            remaining * ratio,
            f"{fmt.upper()} image could use a modern format ({format_bytes(current)})",
            f"Replace with AVIF/WebP for roughly {pct}% smaller file",
        )
        if format_rec is not None:
            recs.append(format_rec)

    if oversized is None and format_rec is None and current > config.compression_min_bytes:
        compression = builder.build(
            RecommendationType.COMPRESSION,
            current * config.compression_ratio,
            f"Image could benefit from compression ({format_bytes(current)})",
            "Re-encode with lossy compression (Squoosh, ImageOptim or similar)",
        )
        if compression is not None:
            recs.append(compression)

    return recs


def _vector_recommendation(asset: VectorAsset, builder: _Builder, config: AppConfig) -> Recommendation | None:
    size = asset.estimated_bytes
    if size < config.svg_min_bytes:
        return None
    is_large = size >= config.svg_large_bytes
    expensive = asset.has_expensive_features
    if not is_large and not expensive:
        return None

    if expensive and is_large:
        priority = Priority.MEDIUM
        description = f"Large SVG with expensive features ({format_bytes(size)})"
        actionable = "Simplify filters and masks or swap for an optimized raster image; run through SVGO first"
    elif expensive:
        priority = Priority.LOW
        description = "SVG contains expensive features (filters, masks or embedded images)"
        actionable = "Simplify filters, masks or embedded images"
    else:
        priority = Priority.MEDIUM if size > 4 * config.svg_large_bytes else Priority.LOW
        description = f"Large SVG illustration ({format_bytes(size)})"
        actionable = "Run through SVGO to strip metadata, reduce path precision and minify markup"

    return builder.build(
        RecommendationType.COMPRESSION,
        size * config.svg_savings_ratio,
        description,
        actionable,
        priority=priority,
    )


def recommend(
    assets: Iterable[Asset],
    config: AppConfig,
    *,
    page: PageRef | None = None,
    breakpoint: Breakpoint | None = None,
) -> list[Recommendation]:
    """Classify each asset into zero or more recommendations, ranked."""
    recs: list[Recommendation] = []
    for asset in assets:
        if asset.estimated_bytes <= 0:
            continue
        builder = _Builder(asset, config, page, breakpoint)
        if isinstance(asset, VectorAsset):
            rec = _vector_recommendation(asset, builder, config)
            if rec is not None:
                recs.append(rec)
        elif isinstance(asset, CmsAsset):
            # a manual estimate is a placeholder, not a measured file
            if not asset.is_manual_estimate:
                recs.extend(_raster_recommendations(asset, builder, config))
        else:
            recs.extend(_raster_recommendations(asset, builder, config))
    return dedupe_recommendations(recs)


def sort_recommendations(recs: Iterable[Recommendation]) -> list[Recommendation]:
    return sorted(
        recs,
        key=lambda r: (r.priority.rank, -r.potential_savings, r.node_name, r.asset_key, r.type.value),
    )


def dedupe_recommendations(recs: Iterable[Recommendation]) -> list[Recommendation]:
    """Collapse records for the same asset and type into one.

    The record with the largest savings wins; the pages it was seen on are
    merged, so an asset reused across pages is counted once.
    """
    merged: dict[_RecKey, Recommendation] = {}
    pages: dict[_RecKey, dict[str, PageRef]] = {}
    for rec in recs:
        key = (rec.asset_key, rec.type)
        seen = pages.setdefault(key, {})
        for ref in rec.used_in_pages or ((rec.page,) if rec.page is not None else ()):
            seen.setdefault(ref.id, ref)
        existing = merged.get(key)
        if existing is None or rec.potential_savings > existing.potential_savings:
            merged[key] = rec

    return sort_recommendations(
        replace(rec, used_in_pages=tuple(pages[key].values())) for key, rec in merged.items()
    )


def total_savings(recs: Iterable[Recommendation]) -> int:
    return sum(rec.potential_savings for rec in recs)
