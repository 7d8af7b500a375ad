from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TypeAlias

from pageweight.models.enums import AssetKind, Breakpoint, CmsStatus


@dataclass(slots=True, frozen=True)
class Dimensions:
    width: float
    height: float

    @property
    def is_valid(self) -> bool:
        return (
            math.isfinite(self.width)
            and math.isfinite(self.height)
            and self.width > 0
            and self.height > 0
        )


@dataclass(slots=True, frozen=True)
class PageRef:
    id: str
    name: str
    slug: str | None = None
    url: str | None = None


@dataclass(slots=True, frozen=True)
class AssetBase:
    node_id: str
    name: str
    estimated_bytes: int
    dimensions: Dimensions
    visible: bool = True
    url: str | None = None
    page: PageRef | None = None
    breakpoint: Breakpoint | None = None
    unresolved_reason: str | None = None

    @property
    def kind(self) -> AssetKind:
        return AssetKind.IMAGE

    @property
    def is_cms_asset(self) -> bool:
        return False

    @property
    def asset_key(self) -> str:
        """Identity used to recognise the same physical asset across pages."""
        return self.url or self.node_id


@dataclass(slots=True, frozen=True)
class ImageAsset(AssetBase):
    actual_dimensions: Dimensions | None = None
    format: str | None = None
    image_asset_id: str | None = None
    is_background: bool = False

    @property
    def asset_key(self) -> str:
        return self.image_asset_id or self.url or self.node_id

    @property
    def source_dimensions(self) -> Dimensions:
        if self.actual_dimensions is not None and self.actual_dimensions.is_valid:
            return self.actual_dimensions
        return self.dimensions


@dataclass(slots=True, frozen=True)
class VectorAsset(AssetBase):
    markup: str | None = None
    has_expensive_features: bool = False

    @property
    def kind(self) -> AssetKind:
        return AssetKind.SVG

    @property
    def asset_key(self) -> str:
        # inline vector markup has no url; only the node identifies it
        return self.node_id


@dataclass(slots=True, frozen=True)
class CmsAsset(AssetBase):
    collection_id: str = "unknown"
    collection_name: str = "Unknown"
    item_id: str | None = None
    format: str | None = None
    is_manual_estimate: bool = False
    manual_estimate_note: str | None = None
    status: CmsStatus = CmsStatus.FOUND
    is_dynamic: bool = False
    image_count: int = 1

    @property
    def is_cms_asset(self) -> bool:
        return True


Asset: TypeAlias = ImageAsset | VectorAsset | CmsAsset
