from __future__ import annotations

from pageweight.config.schema import AppConfig


def default_config() -> AppConfig:
    # Share of raw RGBA bytes left after encoding, per source format.
    source_ratios = {
        "jpeg": 0.12,
        "png": 0.35,
        "webp": 0.08,
        "avif": 0.06,
        "svg": 0.05,
        "gif": 0.25,
        "bmp": 1.0,
        "tiff": 0.5,
        "unknown": 0.25,
    }

    # Same, when the host CDN re-encodes images to WebP/AVIF on publish.
    optimized_ratios = {
        "jpeg": 0.07,
        "png": 0.09,
        "webp": 0.07,
        "avif": 0.06,
        "svg": 0.05,
        "gif": 0.13,
        "bmp": 0.09,
        "tiff": 0.09,
        "unknown": 0.08,
    }

    # Expected reduction from converting a legacy format to WebP/AVIF.
    format_savings = {
        "png": 0.6,
        "jpeg": 0.3,
        "gif": 0.5,
        "bmp": 0.9,
        "tiff": 0.8,
    }

    design_page_prefixes = [
        "design",
        "component",
        "template",
        "style",
        "system",
        "library",
        "atoms",
        "molecules",
        "organisms",
        "patterns",
        "ui kit",
        "ds-",
    ]

    return AppConfig(
        source_ratios=source_ratios,
        optimized_ratios=optimized_ratios,
        format_savings=format_savings,
        design_page_prefixes=design_page_prefixes,
    )
