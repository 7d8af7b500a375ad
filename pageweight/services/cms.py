from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from urllib.parse import urlparse

from pageweight.config.schema import AppConfig, ManualCmsEstimate
from pageweight.models.analysis import CmsBandwidthImpact, CollectionImpact, PublishedResource, TrafficModel
from pageweight.models.asset import CmsAsset, Dimensions
from pageweight.models.enums import AssetKind, CmsStatus
from pageweight.services.estimator import detect_format, estimate_bytes

_IMAGE_ID_RE = re.compile(r"images/([a-zA-Z0-9]+)\.(?:png|jpe?g|webp|gif|avif)", re.IGNORECASE)
_ASSET_REF_RE = re.compile(r"asset-reference,([a-zA-Z0-9]+)")

# path segment patterns whose next segment names the collection
_COLLECTION_SEGMENTS = ("blog", "posts", "articles", "news", "blog-images", "post-images")

_COLLECTION_HINTS = (
    ("blog", "Blog"),
    ("post", "Posts"),
    ("article", "Articles"),
    ("news", "News"),
    ("product", "Products"),
    ("team", "Team"),
    ("testimonial", "Testimonials"),
)


def slugify_collection(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower()) or "unknown"


def manual_estimates_to_assets(
    estimates: Iterable[ManualCmsEstimate],
    auto_detected: set[str],
    config: AppConfig,
) -> list[CmsAsset]:
    """Turn user-entered CMS estimates into assets.

    Collections already detected automatically are skipped so they are not
    counted twice.
    """
    assets: list[CmsAsset] = []
    for index, estimate in enumerate(estimates):
        if estimate.collection_name in auto_detected:
            continue
        per_image = estimate_bytes(
            AssetKind.IMAGE,
            estimate.avg_width,
            estimate.avg_height,
            estimate.format,
            config=config,
        )
        total = estimate.estimated_bytes if estimate.estimated_bytes is not None else per_image * estimate.image_count
        assets.append(
            CmsAsset(
                node_id=f"manual-cms-{estimate.id}-{index}",
                name=f"CMS (Manual): {estimate.collection_name}",
                estimated_bytes=max(0, total),
                dimensions=Dimensions(estimate.avg_width, estimate.avg_height),
                collection_id=slugify_collection(estimate.collection_name),
                collection_name=estimate.collection_name,
                format=estimate.format,
                is_manual_estimate=True,
                manual_estimate_note=f"{estimate.image_count} images estimated",
                status=CmsStatus.ESTIMATED,
                image_count=estimate.image_count,
            )
        )
    return assets


def cms_bandwidth_impact(assets: Sequence[CmsAsset], traffic: TrafficModel) -> CmsBandwidthImpact | None:
    """Project CMS asset weight onto a monthly traffic volume.

    Each pageview loads ``items_per_page`` collection items, one image each.
    Manual estimates stand in for ``image_count`` images.
    """
    if not assets:
        return None

    groups: dict[str, list[CmsAsset]] = {}
    for asset in assets:
        groups.setdefault(asset.collection_id, []).append(asset)

    collections = tuple(
        CollectionImpact(
            collection_id=collection_id,
            collection_name=items[0].collection_name,
            asset_count=sum(item.image_count for item in items),
            total_bytes=sum(item.estimated_bytes for item in items),
            manual_estimates=sum(1 for item in items if item.is_manual_estimate),
        )
        for collection_id, items in sorted(groups.items())
    )
    total = sum(item.total_bytes for item in collections)
    images = sum(item.asset_count for item in collections)
    avg = total / images if images > 0 else 0.0
    monthly = avg * traffic.items_per_page * traffic.monthly_pageviews
    return CmsBandwidthImpact(
        total_cms_bytes=total,
        avg_file_size=avg,
        traffic=traffic,
        monthly_bandwidth=int(round(monthly)),
        collections=collections,
    )


def collection_name_from_url(url: str) -> str:
    lowered = url.lower()
    segments = [s for s in urlparse(lowered).path.split("/") if s]
    for idx, segment in enumerate(segments[:-1]):
        if segment in _COLLECTION_SEGMENTS:
            return " ".join(word.capitalize() for word in segments[idx + 1].split("-"))

    for hint, name in _COLLECTION_HINTS:
        if f"/{hint}" in lowered or f"{hint}-" in lowered:
            return name
    return "CMS Collection"


def normalize_image_url(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.netloc}{parsed.path}".lower().rstrip("/")


def image_id_from_url(url: str) -> str | None:
    match = _IMAGE_ID_RE.search(url) or _ASSET_REF_RE.search(url)
    return match.group(1) if match else None


def _path_of(url: str) -> str:
    return urlparse(url).path.lower().rstrip("/")


def _matches_canvas(url: str, canvas_urls: Iterable[str]) -> bool:
    normalized = normalize_image_url(url)
    path = _path_of(url)
    image_id = image_id_from_url(url)
    for canvas_url in canvas_urls:
        if normalized == normalize_image_url(canvas_url):
            return True
        canvas_path = _path_of(canvas_url)
        if path and canvas_path and (path in canvas_path or canvas_path in path):
            return True
        if image_id is not None and image_id == image_id_from_url(canvas_url):
            return True
    return False


def estimate_dimensions_from_bytes(size: int) -> Dimensions:
    # assumes a JPEG-like 0.1 bytes per pixel and a 4:3 aspect ratio
    side = math.sqrt(size / 0.1) if size > 0 else 0.0
    return Dimensions(round(side), round(side * 0.75))


def detect_published_cms_assets(
    published_images: Iterable[PublishedResource],
    canvas_urls: set[str],
) -> list[CmsAsset]:
    """Images served by the published site that no canvas node references."""
    assets: list[CmsAsset] = []
    for resource in published_images:
        if resource.actual_bytes <= 0:
            continue
        if _matches_canvas(resource.url, canvas_urls):
            continue
        name = collection_name_from_url(resource.url)
        assets.append(
            CmsAsset(
                node_id=f"cms-published-{len(assets)}",
                name=f"CMS: {name}",
                estimated_bytes=resource.actual_bytes,
                dimensions=estimate_dimensions_from_bytes(resource.actual_bytes),
                url=resource.url,
                collection_id=slugify_collection(name),
                collection_name=name,
                format=detect_format(resource.url),
                status=CmsStatus.FOUND,
            )
        )
    return assets
