from __future__ import annotations

import math
from urllib.parse import parse_qs, urlparse

from pageweight.config.schema import AppConfig
from pageweight.models.asset import Dimensions
from pageweight.models.enums import AssetKind, Breakpoint

BYTES_PER_PIXEL = 4

_KNOWN_FORMATS = ("jpeg", "png", "webp", "avif", "svg", "gif", "bmp", "tiff")
_ALIASES = {"jpg": "jpeg", "tif": "tiff", "svg+xml": "svg"}


def normalize_format(fmt: str | None) -> str:
    if not fmt:
        return "unknown"
    value = fmt.strip().lower().lstrip(".")
    value = _ALIASES.get(value, value)
    return value if value in _KNOWN_FORMATS else "unknown"


def detect_format(url: str | None) -> str:
    """Best-effort format tag for an image URL."""
    if not url:
        return "unknown"

    if url.startswith("data:image/"):
        mime = url[len("data:image/") :].split(";", 1)[0].split(",", 1)[0]
        return normalize_format(mime)

    parsed = urlparse(url)
    ext = parsed.path.rsplit(".", 1)[-1] if "." in parsed.path.rsplit("/", 1)[-1] else ""
    fmt = normalize_format(ext)
    if fmt != "unknown":
        return fmt

    query = parse_qs(parsed.query)
    for key in ("format", "f", "fm"):
        if key in query:
            fmt = normalize_format(query[key][0])
            if fmt != "unknown":
                return fmt

    lowered = url.lower()
    for candidate in ("webp", "avif", "png"):
        if f"/{candidate}" in lowered or f"_{candidate}" in lowered:
            return candidate
    return "unknown"


def _valid_side(value: float) -> bool:
    return math.isfinite(value) and value >= 0


def estimate_bytes(
    kind: AssetKind,
    width: float | None,
    height: float | None,
    fmt: str | None = None,
    *,
    config: AppConfig,
    markup: str | None = None,
    breakpoint: Breakpoint | None = None,
) -> int:
    """Estimate the transferred size of one visual asset.

    Raster images scale with pixel area and a per-format compression ratio.
    Small images are scaled by the breakpoint's pixel density, since the host
    serves retina variants for them. Vector graphics are sized from their
    markup and ignore render size.

    Missing or invalid dimensions give ``config.unknown_image_bytes``; a
    zero-area image gives 0. The result is always a finite int >= 0.
    """
    if kind is AssetKind.SVG:
        if markup:
            return len(markup.encode("utf-8"))
        return config.default_svg_bytes

    if width is None or height is None or not (_valid_side(width) and _valid_side(height)):
        return config.unknown_image_bytes
    if width == 0 or height == 0:
        return 0

    scaled_w, scaled_h = width, height
    threshold = config.retina_threshold_px
    if breakpoint is not None and width < threshold and height < threshold:
        scaled_w *= breakpoint.pixel_density
        scaled_h *= breakpoint.pixel_density

    ratios = config.compression_ratios()
    ratio = ratios.get(normalize_format(fmt), ratios.get("unknown", 0.25))
    estimate = scaled_w * scaled_h * BYTES_PER_PIXEL * ratio
    if not math.isfinite(estimate) or estimate < 0:
        return config.unknown_image_bytes
    return int(round(estimate))


def estimate_dimensions_bytes(
    dimensions: Dimensions | None,
    fmt: str | None,
    *,
    config: AppConfig,
    breakpoint: Breakpoint | None = None,
) -> int:
    if dimensions is None:
        return config.unknown_image_bytes
    return estimate_bytes(
        AssetKind.IMAGE,
        dimensions.width,
        dimensions.height,
        fmt,
        config=config,
        breakpoint=breakpoint,
    )


def manual_estimate(config: AppConfig, reason: str) -> tuple[int, str]:
    """Fallback estimate for assets whose source cannot be read."""
    return config.cms_default_bytes, f"Estimated: {reason}"


def base_overhead(config: AppConfig) -> int:
    return config.base_overhead_bytes


def font_weight(config: AppConfig, families: float | None = None) -> int:
    count = config.font_families if families is None else max(0.0, families)
    return int(round(count * config.bytes_per_font))
