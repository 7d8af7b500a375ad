from __future__ import annotations

from collections.abc import Iterable

from pageweight.models.analysis import BreakdownData, BreakpointData
from pageweight.models.asset import Asset
from pageweight.models.enums import AssetKind


def aggregate(assets: Iterable[Asset], *, base_overhead: int = 0, fonts: int = 0) -> BreakpointData:
    """Sum visible assets by kind and add the fixed overhead buckets.

    The reduction is a plain sum, so the result does not depend on input order.
    """
    images = 0
    svg = 0
    kept: list[Asset] = []
    for asset in assets:
        if not asset.visible:
            continue
        kept.append(asset)
        size = max(0, asset.estimated_bytes)
        if asset.kind is AssetKind.SVG:
            svg += size
        else:
            images += size

    breakdown = BreakdownData(
        images=images,
        svg=svg,
        fonts=max(0, fonts),
        html_css=max(0, base_overhead),
    )
    return BreakpointData(total_bytes=breakdown.total, breakdown=breakdown, assets=tuple(kept))


def merge_breakpoints(items: Iterable[BreakpointData]) -> BreakpointData:
    images = svg = fonts = html_css = 0
    assets: list[Asset] = []
    for item in items:
        images += item.breakdown.images
        svg += item.breakdown.svg
        fonts += item.breakdown.fonts
        html_css += item.breakdown.html_css
        assets.extend(item.assets)
    breakdown = BreakdownData(images=images, svg=svg, fonts=fonts, html_css=html_css)
    return BreakpointData(total_bytes=breakdown.total, breakdown=breakdown, assets=tuple(assets))
