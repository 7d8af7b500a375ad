from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from result import Result

from pageweight.models.asset import Asset, PageRef
from pageweight.models.enums import (
    AnalysisMode,
    Breakpoint,
    CodeAssetType,
    Priority,
    RecommendationType,
    ResourceType,
)

ProgressCallback = Callable[[str, int, int], None]
CancelCheck = Callable[[], bool]


@dataclass(slots=True, frozen=True)
class BreakdownData:
    images: int = 0
    svg: int = 0
    fonts: int = 0
    html_css: int = 0

    @property
    def total(self) -> int:
        return self.images + self.svg + self.fonts + self.html_css


@dataclass(slots=True, frozen=True)
class BreakpointData:
    total_bytes: int
    breakdown: BreakdownData
    assets: tuple[Asset, ...] = ()


@dataclass(slots=True, frozen=True)
class BreakpointSet:
    mobile: BreakpointData
    tablet: BreakpointData
    desktop: BreakpointData

    def get(self, breakpoint: Breakpoint) -> BreakpointData:
        return getattr(self, breakpoint.value)

    def items(self) -> Iterator[tuple[Breakpoint, BreakpointData]]:
        for breakpoint in Breakpoint:
            yield breakpoint, self.get(breakpoint)


@dataclass(slots=True, frozen=True)
class Recommendation:
    id: str
    type: RecommendationType
    priority: Priority
    node_id: str
    node_name: str
    asset_key: str
    current_bytes: int
    potential_savings: int
    description: str
    actionable: str
    url: str | None = None
    page: PageRef | None = None
    breakpoint: Breakpoint | None = None
    is_cms_asset: bool = False
    optimal_width: int | None = None
    optimal_height: int | None = None
    used_in_pages: tuple[PageRef, ...] = ()


@dataclass(slots=True, frozen=True)
class PageAnalysis:
    page: PageRef
    breakpoints: BreakpointSet
    total_assets: int
    recommendations: tuple[Recommendation, ...] = ()
    unresolved_assets: tuple[Asset, ...] = ()


@dataclass(slots=True, frozen=True)
class SavingsSummary:
    raw_bytes: int
    reported_bytes: int
    cap_bytes: int

    @property
    def capped(self) -> bool:
        return self.reported_bytes < self.raw_bytes


@dataclass(slots=True, frozen=True)
class SavingsSet:
    mobile: SavingsSummary
    tablet: SavingsSummary
    desktop: SavingsSummary

    def get(self, breakpoint: Breakpoint) -> SavingsSummary:
        return getattr(self, breakpoint.value)

    def items(self) -> Iterator[tuple[Breakpoint, SavingsSummary]]:
        for breakpoint in Breakpoint:
            yield breakpoint, self.get(breakpoint)


@dataclass(slots=True, frozen=True)
class TrafficModel:
    monthly_visits: int = 10_000
    pages_per_visit: float = 1.0
    items_per_page: int = 10

    @property
    def monthly_pageviews(self) -> float:
        return self.monthly_visits * self.pages_per_visit


@dataclass(slots=True, frozen=True)
class CollectionImpact:
    collection_id: str
    collection_name: str
    asset_count: int
    total_bytes: int
    manual_estimates: int = 0


@dataclass(slots=True, frozen=True)
class CmsBandwidthImpact:
    total_cms_bytes: int
    avg_file_size: float
    traffic: TrafficModel
    monthly_bandwidth: int
    collections: tuple[CollectionImpact, ...] = ()


@dataclass(slots=True, frozen=True)
class PublishedResource:
    url: str
    type: ResourceType
    actual_bytes: int


@dataclass(slots=True, frozen=True)
class PublishedBreakdown:
    images: int = 0
    css: int = 0
    js: int = 0
    fonts: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.images + self.css + self.js + self.fonts + self.other


@dataclass(slots=True, frozen=True)
class CodeAsset:
    url: str
    type: CodeAssetType
    source: str
    is_lazy_loaded: bool = False
    estimated_bytes: int | None = None


@dataclass(slots=True, frozen=True)
class CustomCodeReport:
    assets: tuple[CodeAsset, ...]
    total_estimated_bytes: int
    first_load_bytes: int
    has_custom_code: bool
    warnings: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class PublishedData:
    url: str
    total_bytes: int
    breakdown: PublishedBreakdown
    resources: tuple[PublishedResource, ...] = ()
    custom_code: CustomCodeReport | None = None


@dataclass(slots=True, frozen=True)
class ProjectAnalysis:
    mode: AnalysisMode
    pages: tuple[PageAnalysis, ...]
    total_pages: int
    overall_breakpoints: BreakpointSet
    all_recommendations: tuple[Recommendation, ...]
    savings: SavingsSet | None = None
    cms_assets_count: int = 0
    cms_assets_bytes: int = 0
    cms_assets_not_found: int = 0
    has_manual_cms_estimates: bool = False
    cms_bandwidth_impact: CmsBandwidthImpact | None = None
    published_url: str | None = None
    published_data: PublishedData | None = None
    unresolved_assets: tuple[Asset, ...] = ()
    warnings: tuple[str, ...] = ()


class AnalysisErrorCode(str, Enum):
    ENUMERATION_FAILED = "enumeration_failed"
    NO_PAGES = "no_pages"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"
    INTERNAL = "internal"


@dataclass(slots=True, frozen=True)
class AnalysisError:
    code: AnalysisErrorCode
    message: str
    page_id: str | None = None


AnalysisResult = Result[ProjectAnalysis, AnalysisError]
