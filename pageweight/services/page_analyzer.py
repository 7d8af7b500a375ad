from __future__ import annotations

import math
from collections.abc import Iterator, Mapping

from pageweight.config.schema import AppConfig
from pageweight.models.analysis import BreakpointData, BreakpointSet, PageAnalysis
from pageweight.models.asset import Asset, CmsAsset, Dimensions, ImageAsset, PageRef, VectorAsset
from pageweight.models.enums import AssetKind, Breakpoint, CmsStatus
from pageweight.models.source import CmsBinding, CmsCollection, ImageRef, SourceNode
from pageweight.services.breakdown import aggregate
from pageweight.services.estimator import (
    base_overhead,
    detect_format,
    estimate_bytes,
    font_weight,
    manual_estimate,
    normalize_format,
)
from pageweight.services.logs import ScanLog, scan_logger
from pageweight.services.recommendations import dedupe_recommendations, recommend

EXPENSIVE_SVG_FEATURES = (
    "<filter",
    "<mask",
    "<clippath",
    "<pattern",
    "<image",
    "fegaussianblur",
    "fedropshadow",
    "fecolormatrix",
    "fecomposite",
    "filter:url",
    "mask:url",
)


def has_expensive_svg_features(markup: str | None) -> bool:
    if not markup:
        return False
    content = markup.lower()
    return any(feature in content for feature in EXPENSIVE_SVG_FEATURES)


def iter_visible(root: SourceNode) -> Iterator[SourceNode]:
    """Depth-first, document order. Hidden nodes prune their whole subtree."""
    stack = [root]
    while stack:
        node = stack.pop()
        if not node.visible:
            continue
        yield node
        stack.extend(reversed(node.children))


def _side(value: float | None) -> float:
    if value is None or not math.isfinite(value) or value < 0:
        return 0.0
    return float(value)


def _rendered(node: SourceNode) -> Dimensions:
    return Dimensions(_side(node.width), _side(node.height))


def _measured(image: ImageRef) -> Dimensions | None:
    if image.width is None or image.height is None:
        return None
    dims = Dimensions(_side(image.width), _side(image.height))
    return dims if dims.is_valid else None


def _image_format(image: ImageRef) -> str:
    if image.format:
        return normalize_format(image.format)
    return detect_format(image.url)


def _image_bytes(
    node: SourceNode,
    image: ImageRef,
    fmt: str,
    breakpoint: Breakpoint,
    config: AppConfig,
) -> int:
    actual = _measured(image)
    if actual is not None:
        width, height = actual.width, actual.height
    else:
        width, height = node.width, node.height
    return estimate_bytes(AssetKind.IMAGE, width, height, fmt, config=config, breakpoint=breakpoint)


def _cms_asset(
    node: SourceNode,
    binding: CmsBinding,
    page: PageRef,
    breakpoint: Breakpoint,
    config: AppConfig,
    collections: Mapping[str, CmsCollection],
    log: ScanLog,
) -> CmsAsset:
    collection = collections.get(binding.collection_id)
    unresolved = None
    if collection is None:
        unresolved = f"CMS collection {binding.collection_id!r} could not be resolved"
        log.warning("Node %s: %s", node.id, unresolved)

    image = node.image or node.background_image
    measured = _measured(image) if image is not None else None
    url = image.url if image is not None else None
    fmt = _image_format(image) if image is not None else "unknown"

    if image is not None and url and measured is not None:
        size = _image_bytes(node, image, fmt, breakpoint, config)
        is_manual = False
        note = None
        status = CmsStatus.FOUND
    else:
        size, note = manual_estimate(config, "CMS image source could not be read")
        is_manual = True
        status = CmsStatus.NOT_FOUND
        log.debug("Node %s: using manual CMS estimate of %d bytes", node.id, size)

    field = f" → {binding.field_name}" if binding.field_name else ""
    name = collection.name if collection is not None else binding.collection_id
    return CmsAsset(
        node_id=node.id,
        name=node.name or f"CMS: {name}{field}",
        estimated_bytes=size,
        dimensions=_rendered(node),
        visible=True,
        url=url,
        page=page,
        breakpoint=breakpoint,
        unresolved_reason=unresolved,
        collection_id=binding.collection_id,
        collection_name=name,
        item_id=None if binding.dynamic else binding.item_id,
        format=fmt,
        is_manual_estimate=is_manual,
        manual_estimate_note=note,
        status=status,
        is_dynamic=binding.dynamic,
    )


def extract_asset(
    node: SourceNode,
    page: PageRef,
    breakpoint: Breakpoint,
    config: AppConfig,
    collections: Mapping[str, CmsCollection],
    log: ScanLog,
) -> Asset | None:
    if node.cms is not None and not node.is_svg:
        if node.image is None and node.background_image is None and node.children:
            # collection list container; its image children carry their own bindings
            return None
        return _cms_asset(node, node.cms, page, breakpoint, config, collections, log)

    if node.is_svg:
        return VectorAsset(
            node_id=node.id,
            name=node.name or "Unnamed",
            estimated_bytes=estimate_bytes(
                AssetKind.SVG, node.width, node.height, "svg", config=config, markup=node.svg
            ),
            dimensions=_rendered(node),
            page=page,
            breakpoint=breakpoint,
            markup=node.svg,
            has_expensive_features=has_expensive_svg_features(node.svg),
        )

    image = node.image or node.background_image
    if image is None or not (image.url or image.id):
        return None

    fmt = _image_format(image)
    return ImageAsset(
        node_id=node.id,
        name=node.name or "Unnamed",
        estimated_bytes=_image_bytes(node, image, fmt, breakpoint, config),
        dimensions=_rendered(node),
        url=image.url,
        page=page,
        breakpoint=breakpoint,
        actual_dimensions=_measured(image),
        format=fmt,
        image_asset_id=image.id,
        is_background=node.image is None,
    )


def analyze_page_breakpoint(
    page: PageRef,
    root: SourceNode,
    breakpoint: Breakpoint,
    config: AppConfig,
    collections: Mapping[str, CmsCollection] | None = None,
    log: ScanLog | None = None,
    font_families: float | None = None,
) -> tuple[BreakpointData, list[Asset]]:
    """Collect one page's visible assets at *breakpoint* and total them.

    Returns the breakpoint data and the assets whose page or collection could
    not be resolved; those are left out of the totals.
    """
    log = log or scan_logger()
    collections = collections or {}
    assets: list[Asset] = []
    unresolved: list[Asset] = []
    seen_dynamic: set[tuple[str, str]] = set()

    for node in iter_visible(root):
        asset = extract_asset(node, page, breakpoint, config, collections, log)
        if asset is None:
            continue
        if isinstance(asset, CmsAsset) and asset.is_dynamic and node.cms is not None:
            key = (asset.collection_id, node.cms.template_id or node.id)
            if key in seen_dynamic:
                continue
            seen_dynamic.add(key)
        if asset.unresolved_reason is not None:
            unresolved.append(asset)
            continue
        assets.append(asset)

    data = aggregate(
        assets,
        base_overhead=base_overhead(config),
        fonts=font_weight(config, font_families),
    )
    return data, unresolved


def analyze_page(
    page: PageRef,
    trees: Mapping[Breakpoint, SourceNode],
    config: AppConfig,
    collections: Mapping[str, CmsCollection] | None = None,
    log: ScanLog | None = None,
    font_families: float | None = None,
) -> PageAnalysis:
    log = log or scan_logger()
    results: dict[Breakpoint, BreakpointData] = {}
    unresolved: list[Asset] = []
    recommendations = []
    identities: set[str] = set()

    for breakpoint in Breakpoint:
        data, missing = analyze_page_breakpoint(
            page,
            trees[breakpoint],
            breakpoint,
            config,
            collections,
            log,
            font_families,
        )
        results[breakpoint] = data
        unresolved.extend(missing)
        identities.update(asset.asset_key for asset in data.assets)
        recommendations.extend(recommend(data.assets, config, page=page, breakpoint=breakpoint))

    page_recs = dedupe_recommendations(recommendations)
    log.debug(
        "Page %s: %d assets, %d recommendations",
        page.name or page.id,
        len(identities),
        len(page_recs),
    )
    return PageAnalysis(
        page=page,
        breakpoints=BreakpointSet(
            mobile=results[Breakpoint.MOBILE],
            tablet=results[Breakpoint.TABLET],
            desktop=results[Breakpoint.DESKTOP],
        ),
        total_assets=len(identities),
        recommendations=tuple(page_recs),
        unresolved_assets=tuple(unresolved),
    )
