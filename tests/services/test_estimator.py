from __future__ import annotations

import math

import pytest

from pageweight.config.defaults import default_config
from pageweight.models.asset import Dimensions
from pageweight.models.enums import AssetKind, Breakpoint
from pageweight.services.estimator import (
    base_overhead,
    detect_format,
    estimate_bytes,
    estimate_dimensions_bytes,
    font_weight,
    manual_estimate,
    normalize_format,
)

CFG = default_config()


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://cdn.example.com/a/photo.JPG", "jpeg"),
        ("https://cdn.example.com/a/photo.png?width=200", "png"),
        ("https://images.example.com/abc?fm=webp&w=400", "webp"),
        ("https://images.example.com/abc?format=avif", "avif"),
        ("data:image/svg+xml;base64,PHN2Zz4=", "svg"),
        ("https://cdn.example.com/blob/12345", "unknown"),
        (None, "unknown"),
    ],
)
def test_detect_format(url: str | None, expected: str) -> None:
    assert detect_format(url) == expected


def test_normalize_format_aliases() -> None:
    assert normalize_format("JPG") == "jpeg"
    assert normalize_format(".tif") == "tiff"
    assert normalize_format("heic") == "unknown"
    assert normalize_format(None) == "unknown"


def test_raster_estimate_uses_area_and_format_ratio() -> None:
    size = estimate_bytes(AssetKind.IMAGE, 1000, 500, "png", config=CFG)
    assert size == round(1000 * 500 * 4 * CFG.source_ratios["png"])


def test_png_estimate_exceeds_webp_for_same_box() -> None:
    png = estimate_bytes(AssetKind.IMAGE, 800, 600, "png", config=CFG)
    webp = estimate_bytes(AssetKind.IMAGE, 800, 600, "webp", config=CFG)
    assert png > webp > 0


def test_small_images_scale_by_pixel_density() -> None:
    plain = estimate_bytes(AssetKind.IMAGE, 100, 100, "png", config=CFG)
    mobile = estimate_bytes(AssetKind.IMAGE, 100, 100, "png", config=CFG, breakpoint=Breakpoint.MOBILE)
    assert mobile == round(plain * Breakpoint.MOBILE.pixel_density**2)


def test_large_images_are_not_density_scaled() -> None:
    plain = estimate_bytes(AssetKind.IMAGE, 1200, 800, "jpeg", config=CFG)
    mobile = estimate_bytes(AssetKind.IMAGE, 1200, 800, "jpeg", config=CFG, breakpoint=Breakpoint.MOBILE)
    assert plain == mobile


def test_svg_estimate_uses_markup_length() -> None:
    markup = "<svg>" + "x" * 1000 + "</svg>"
    assert estimate_bytes(AssetKind.SVG, 10, 10, config=CFG, markup=markup) == len(markup.encode())
    assert estimate_bytes(AssetKind.SVG, 10, 10, config=CFG) == CFG.default_svg_bytes


def test_svg_estimate_ignores_render_size() -> None:
    markup = "<svg><path d='M0 0'/></svg>"
    small = estimate_bytes(AssetKind.SVG, 10, 10, config=CFG, markup=markup)
    large = estimate_bytes(AssetKind.SVG, 2000, 2000, config=CFG, markup=markup)
    assert small == large


@pytest.mark.parametrize(
    ("width", "height"),
    [(None, 100), (100, None), (math.nan, 100), (100, math.inf), (-5, 100)],
)
def test_invalid_dimensions_fall_back_to_floor(width: float | None, height: float | None) -> None:
    assert estimate_bytes(AssetKind.IMAGE, width, height, "png", config=CFG) == CFG.unknown_image_bytes


def test_zero_area_is_zero_bytes() -> None:
    assert estimate_bytes(AssetKind.IMAGE, 0, 300, "png", config=CFG) == 0


def test_estimate_dimensions_bytes_handles_missing() -> None:
    assert estimate_dimensions_bytes(None, "png", config=CFG) == CFG.unknown_image_bytes
    dims = Dimensions(640, 480)
    assert estimate_dimensions_bytes(dims, "png", config=CFG) == estimate_bytes(
        AssetKind.IMAGE, 640, 480, "png", config=CFG
    )


def test_manual_estimate_is_flagged_with_note() -> None:
    size, note = manual_estimate(CFG, "source unreadable")
    assert size == CFG.cms_default_bytes
    assert "source unreadable" in note


def test_overhead_and_fonts() -> None:
    assert base_overhead(CFG) == 48 * 1024
    assert font_weight(CFG) == round(2.5 * 20 * 1024)
    assert font_weight(CFG, 0) == 0
