from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pageweight.models.analysis import TrafficModel


@dataclass(slots=True)
class ManualCmsEstimate:
    id: str
    collection_name: str
    image_count: int = 1
    avg_width: float = 1200
    avg_height: float = 800
    format: str = "jpeg"
    estimated_bytes: int | None = None


@dataclass(slots=True)
class AppConfig:
    # byte estimation
    assume_cdn_optimization: bool = False
    source_ratios: dict[str, float] = field(default_factory=dict)
    optimized_ratios: dict[str, float] = field(default_factory=dict)
    unknown_image_bytes: int = 100 * 1024
    default_svg_bytes: int = 3 * 1024
    retina_threshold_px: int = 400
    base_overhead_bytes: int = 48 * 1024
    font_families: float = 2.5
    bytes_per_font: int = 20 * 1024
    cms_default_bytes: int = 200 * 1024
    # recommendation rules
    retina_factor: float = 2.0
    max_optimal_width: int = 1920
    oversize_tolerance: float = 0.1
    format_min_bytes: int = 100 * 1024
    format_savings: dict[str, float] = field(default_factory=dict)
    compression_min_bytes: int = 150 * 1024
    compression_ratio: float = 0.25
    svg_min_bytes: int = 10 * 1024
    svg_large_bytes: int = 50 * 1024
    svg_savings_ratio: float = 0.2
    high_savings_bytes: int = 500 * 1024
    high_savings_ratio: float = 0.5
    medium_savings_bytes: int = 100 * 1024
    medium_savings_ratio: float = 0.25
    savings_cap_ratio: float = 0.9
    # CMS traffic model
    monthly_visits: int = 10_000
    pages_per_visit: float = 1.0
    items_per_page: int = 10
    # scan scope
    excluded_page_ids: list[str] = field(default_factory=list)
    exclude_design_pages: bool = True
    design_page_prefixes: list[str] = field(default_factory=list)
    manual_cms_estimates: list[ManualCmsEstimate] = field(default_factory=list)
    top_count: int = 10

    @property
    def traffic(self) -> TrafficModel:
        return TrafficModel(
            monthly_visits=self.monthly_visits,
            pages_per_visit=self.pages_per_visit,
            items_per_page=self.items_per_page,
        )

    def compression_ratios(self) -> dict[str, float]:
        return self.optimized_ratios if self.assume_cdn_optimization else self.source_ratios

    def to_dict(self) -> dict[str, Any]:
        return {
            "assumeCdnOptimization": self.assume_cdn_optimization,
            "sourceRatios": dict(self.source_ratios),
            "optimizedRatios": dict(self.optimized_ratios),
            "unknownImageBytes": self.unknown_image_bytes,
            "defaultSvgBytes": self.default_svg_bytes,
            "retinaThresholdPx": self.retina_threshold_px,
            "baseOverheadBytes": self.base_overhead_bytes,
            "fontFamilies": self.font_families,
            "bytesPerFont": self.bytes_per_font,
            "cmsDefaultBytes": self.cms_default_bytes,
            "retinaFactor": self.retina_factor,
            "maxOptimalWidth": self.max_optimal_width,
            "oversizeTolerance": self.oversize_tolerance,
            "formatMinBytes": self.format_min_bytes,
            "formatSavings": dict(self.format_savings),
            "compressionMinBytes": self.compression_min_bytes,
            "compressionRatio": self.compression_ratio,
            "svgMinBytes": self.svg_min_bytes,
            "svgLargeBytes": self.svg_large_bytes,
            "svgSavingsRatio": self.svg_savings_ratio,
            "highSavingsBytes": self.high_savings_bytes,
            "highSavingsRatio": self.high_savings_ratio,
            "mediumSavingsBytes": self.medium_savings_bytes,
            "mediumSavingsRatio": self.medium_savings_ratio,
            "savingsCapRatio": self.savings_cap_ratio,
            "monthlyVisits": self.monthly_visits,
            "pagesPerVisit": self.pages_per_visit,
            "itemsPerPage": self.items_per_page,
            "excludedPageIds": self.excluded_page_ids,
            "excludeDesignPages": self.exclude_design_pages,
            "designPagePrefixes": self.design_page_prefixes,
            "manualCmsEstimates": [_estimate_to_dict(item) for item in self.manual_cms_estimates],
            "topCount": self.top_count,
        }


def _estimate_to_dict(estimate: ManualCmsEstimate) -> dict[str, Any]:
    return {
        "id": estimate.id,
        "collectionName": estimate.collection_name,
        "imageCount": estimate.image_count,
        "avgWidth": estimate.avg_width,
        "avgHeight": estimate.avg_height,
        "format": estimate.format,
        "estimatedBytes": estimate.estimated_bytes,
    }


def _estimate_from_dict(payload: dict[str, Any]) -> ManualCmsEstimate:
    raw_bytes = payload.get("estimatedBytes")
    return ManualCmsEstimate(
        id=str(payload["id"]),
        collection_name=str(payload["collectionName"]),
        image_count=max(1, int(payload.get("imageCount", 1))),
        avg_width=float(payload.get("avgWidth", 1200)),
        avg_height=float(payload.get("avgHeight", 800)),
        format=str(payload.get("format", "jpeg")).lower(),
        estimated_bytes=max(0, int(raw_bytes)) if raw_bytes is not None else None,
    )


def _ratios(raw: Any, fallback: dict[str, float]) -> dict[str, float]:
    if not isinstance(raw, dict):
        return dict(fallback)
    merged = dict(fallback)
    for key, value in raw.items():
        merged[str(key).lower()] = min(1.0, max(0.0, float(value)))
    return merged


def _ratio(value: Any) -> float:
    return min(1.0, max(0.0, float(value)))


def from_dict(data: dict[str, Any], defaults: AppConfig) -> AppConfig:
    return AppConfig(
        assume_cdn_optimization=bool(data.get("assumeCdnOptimization", defaults.assume_cdn_optimization)),
        source_ratios=_ratios(data.get("sourceRatios"), defaults.source_ratios),
        optimized_ratios=_ratios(data.get("optimizedRatios"), defaults.optimized_ratios),
        unknown_image_bytes=max(0, int(data.get("unknownImageBytes", defaults.unknown_image_bytes))),
        default_svg_bytes=max(0, int(data.get("defaultSvgBytes", defaults.default_svg_bytes))),
        retina_threshold_px=max(0, int(data.get("retinaThresholdPx", defaults.retina_threshold_px))),
        base_overhead_bytes=max(0, int(data.get("baseOverheadBytes", defaults.base_overhead_bytes))),
        font_families=max(0.0, float(data.get("fontFamilies", defaults.font_families))),
        bytes_per_font=max(0, int(data.get("bytesPerFont", defaults.bytes_per_font))),
        cms_default_bytes=max(0, int(data.get("cmsDefaultBytes", defaults.cms_default_bytes))),
        retina_factor=max(1.0, float(data.get("retinaFactor", defaults.retina_factor))),
        max_optimal_width=max(1, int(data.get("maxOptimalWidth", defaults.max_optimal_width))),
        oversize_tolerance=_ratio(data.get("oversizeTolerance", defaults.oversize_tolerance)),
        format_min_bytes=max(0, int(data.get("formatMinBytes", defaults.format_min_bytes))),
        format_savings=_ratios(data.get("formatSavings"), defaults.format_savings),
        compression_min_bytes=max(0, int(data.get("compressionMinBytes", defaults.compression_min_bytes))),
        compression_ratio=_ratio(data.get("compressionRatio", defaults.compression_ratio)),
        svg_min_bytes=max(0, int(data.get("svgMinBytes", defaults.svg_min_bytes))),
        svg_large_bytes=max(0, int(data.get("svgLargeBytes", defaults.svg_large_bytes))),
        svg_savings_ratio=_ratio(data.get("svgSavingsRatio", defaults.svg_savings_ratio)),
        high_savings_bytes=max(0, int(data.get("highSavingsBytes", defaults.high_savings_bytes))),
        high_savings_ratio=_ratio(data.get("highSavingsRatio", defaults.high_savings_ratio)),
        medium_savings_bytes=max(0, int(data.get("mediumSavingsBytes", defaults.medium_savings_bytes))),
        medium_savings_ratio=_ratio(data.get("mediumSavingsRatio", defaults.medium_savings_ratio)),
        savings_cap_ratio=_ratio(data.get("savingsCapRatio", defaults.savings_cap_ratio)),
        monthly_visits=max(0, int(data.get("monthlyVisits", defaults.monthly_visits))),
        pages_per_visit=max(0.0, float(data.get("pagesPerVisit", defaults.pages_per_visit))),
        items_per_page=max(0, int(data.get("itemsPerPage", defaults.items_per_page))),
        excluded_page_ids=[str(x) for x in data.get("excludedPageIds", defaults.excluded_page_ids)],
        exclude_design_pages=bool(data.get("excludeDesignPages", defaults.exclude_design_pages)),
        design_page_prefixes=[str(x).lower() for x in data.get("designPagePrefixes", defaults.design_page_prefixes)],
        manual_cms_estimates=[_estimate_from_dict(x) for x in data["manualCmsEstimates"]]
        if "manualCmsEstimates" in data
        else list(defaults.manual_cms_estimates),
        top_count=max(1, int(data.get("topCount", defaults.top_count))),
    )
