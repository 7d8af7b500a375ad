from __future__ import annotations

from enum import Enum


class Breakpoint(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"

    @property
    def width(self) -> int:
        return _WIDTHS[self]

    @property
    def pixel_density(self) -> float:
        return _DENSITIES[self]


_WIDTHS: dict[Breakpoint, int] = {
    Breakpoint.MOBILE: 375,
    Breakpoint.TABLET: 768,
    Breakpoint.DESKTOP: 1440,
}

_DENSITIES: dict[Breakpoint, float] = {
    Breakpoint.MOBILE: 2.0,
    Breakpoint.TABLET: 2.0,
    Breakpoint.DESKTOP: 1.5,
}


class AssetKind(str, Enum):
    IMAGE = "image"
    SVG = "svg"


class RecommendationType(str, Enum):
    OVERSIZED = "oversized"
    FORMAT = "format"
    COMPRESSION = "compression"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


class AnalysisMode(str, Enum):
    CANVAS = "canvas"
    PUBLISHED = "published"


class CmsStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ESTIMATED = "estimated"


class ResourceType(str, Enum):
    IMAGE = "image"
    CSS = "css"
    JS = "js"
    FONT = "font"
    OTHER = "other"


class CodeAssetType(str, Enum):
    IMAGE = "image"
    FONT = "font"
    VIDEO = "video"
    AUDIO = "audio"
    OTHER = "other"
