from __future__ import annotations

from pageweight.models.analysis import CodeAsset
from pageweight.models.enums import CodeAssetType
from pageweight.services.code_assets import (
    build_custom_code_report,
    bundle_has_custom_code,
    data_url_size,
    estimate_code_asset_size,
    extract_code_assets,
    is_asset_url,
)

BASE = "https://site.example.com/"


def test_extracts_fetched_and_assigned_assets() -> None:
    js = """
    const hero = new Image(); hero.src = "/media/hero.webp";
    fetch("https://cdn.example.com/fonts/brand.woff2");
    el.src = "/media/intro.mp4";
    """
    assets = {a.url: a for a in extract_code_assets(js, BASE)}
    assert assets["https://site.example.com/media/hero.webp"].type is CodeAssetType.IMAGE
    assert assets["https://cdn.example.com/fonts/brand.woff2"].type is CodeAssetType.FONT
    assert assets["https://site.example.com/media/intro.mp4"].type is CodeAssetType.VIDEO


def test_api_and_json_urls_are_ignored() -> None:
    js = 'fetch("https://api.example.com/api/items"); fetch("https://site.example.com/data.json");'
    assert extract_code_assets(js, BASE) == []
    assert not is_asset_url("https://site.example.com/graphql")
    assert is_asset_url("https://site.example.com/a.png")


def test_lazy_loading_context_is_detected() -> None:
    js = (
        'const io = new IntersectionObserver(() => { img.src = "/lazy/photo.jpg" });'
        + " " * 300
        + 'img2.src = "/eager/banner.jpg";'
    )
    assets = {a.url.rsplit("/", 1)[-1]: a for a in extract_code_assets(js, BASE)}
    assert assets["photo.jpg"].is_lazy_loaded
    assert not assets["banner.jpg"].is_lazy_loaded


def test_duplicate_references_are_reported_once() -> None:
    js = 'a.src = "/x/logo.png"; b.src = "/x/logo.png";'
    assert len(extract_code_assets(js, BASE)) == 1


def test_custom_code_heuristic() -> None:
    assert not bundle_has_custom_code("(()=>{var a=1})()")
    assert bundle_has_custom_code("export const Widget = () => null")
    assert bundle_has_custom_code("x" * 60_000)


def test_fallback_sizes() -> None:
    assert estimate_code_asset_size(CodeAssetType.IMAGE) == 200 * 1024
    assert estimate_code_asset_size(CodeAssetType.VIDEO) == 2 * 1024 * 1024


def test_data_url_size() -> None:
    assert data_url_size("data:image/png;base64,AAAA") == 3
    assert data_url_size("data:image/png;base64,") == 0


def test_first_load_excludes_lazy_assets() -> None:
    assets = [
        CodeAsset("https://a/1.png", CodeAssetType.IMAGE, "", is_lazy_loaded=False, estimated_bytes=1000),
        CodeAsset("https://a/2.png", CodeAssetType.IMAGE, "", is_lazy_loaded=True, estimated_bytes=5000),
        CodeAsset("https://a/1.png", CodeAssetType.IMAGE, "", is_lazy_loaded=False, estimated_bytes=1000),
    ]
    report = build_custom_code_report(assets, has_custom_code=True, warnings=["w"])
    assert len(report.assets) == 2
    assert report.total_estimated_bytes == 6000
    assert report.first_load_bytes == 1000
    assert report.warnings == ("w",)
