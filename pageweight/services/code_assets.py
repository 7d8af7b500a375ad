from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urljoin

from pageweight.models.analysis import CodeAsset, CustomCodeReport
from pageweight.models.enums import CodeAssetType

_IMG = r"jpg|jpeg|png|webp|gif|svg|avif"
_FONT = r"woff|woff2|ttf|otf|eot"
_VIDEO = r"mp4|webm|ogg|mov"
_AUDIO = r"mp3|wav|ogg|aac"

_PATTERNS: dict[CodeAssetType, tuple[re.Pattern[str], ...]] = {
    CodeAssetType.IMAGE: tuple(
        re.compile(p, re.IGNORECASE)
        for p in (
            rf"fetch\(['\"]([^'\"]+\.(?:{_IMG}))['\"]\)",
            rf"new\s+Image\(\)[^;]*\.src\s*=\s*['\"]([^'\"]+\.(?:{_IMG}))['\"]",
            rf"\.src\s*=\s*['\"]([^'\"]+\.(?:{_IMG}))['\"]",
            rf"import\(['\"]([^'\"]+\.(?:{_IMG}))['\"]\)",
            rf"require\(['\"]([^'\"]+\.(?:{_IMG}))['\"]\)",
            rf"url\(['\"]([^'\"]+\.(?:{_IMG}))['\"]\)",
        )
    ),
    CodeAssetType.FONT: tuple(
        re.compile(p, re.IGNORECASE)
        for p in (
            rf"fetch\(['\"]([^'\"]+\.(?:{_FONT}))['\"]\)",
            rf"new\s+FontFace\([^,]+,\s*['\"]([^'\"]+\.(?:{_FONT}))['\"]",
            rf"@font-face[^}}]*url\(['\"]([^'\"]+\.(?:{_FONT}))['\"]\)",
            rf"import\(['\"]([^'\"]+\.(?:{_FONT}))['\"]\)",
            rf"require\(['\"]([^'\"]+\.(?:{_FONT}))['\"]\)",
        )
    ),
    CodeAssetType.VIDEO: tuple(
        re.compile(p, re.IGNORECASE)
        for p in (
            rf"fetch\(['\"]([^'\"]+\.(?:{_VIDEO}))['\"]\)",
            rf"\.src\s*=\s*['\"]([^'\"]+\.(?:{_VIDEO}))['\"]",
            rf"import\(['\"]([^'\"]+\.(?:{_VIDEO}))['\"]\)",
        )
    ),
    CodeAssetType.AUDIO: tuple(
        re.compile(p, re.IGNORECASE)
        for p in (
            rf"fetch\(['\"]([^'\"]+\.(?:{_AUDIO}))['\"]\)",
            rf"\.src\s*=\s*['\"]([^'\"]+\.(?:{_AUDIO}))['\"]",
            rf"import\(['\"]([^'\"]+\.(?:{_AUDIO}))['\"]\)",
        )
    ),
    CodeAssetType.OTHER: tuple(
        re.compile(p, re.IGNORECASE)
        for p in (
            r"fetch\(['\"](https?://[^'\"]+)['\"]\)",
            r"import\(['\"](https?://[^'\"]+)['\"]\)",
            r"require\(['\"](https?://[^'\"]+)['\"]\)",
        )
    ),
}

_ASSET_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".webp", ".gif", ".svg", ".avif",
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
    ".mp4", ".webm", ".ogg", ".mov",
    ".mp3", ".wav", ".aac",
)  # fmt: skip

_LAZY_RE = re.compile(r"lazy|onScroll|IntersectionObserver|requestIdleCallback")
_LAZY_WINDOW = 100

_FALLBACK_SIZES: dict[CodeAssetType, int] = {
    CodeAssetType.IMAGE: 200 * 1024,
    CodeAssetType.FONT: 50 * 1024,
    CodeAssetType.VIDEO: 2 * 1024 * 1024,
    CodeAssetType.AUDIO: 500 * 1024,
    CodeAssetType.OTHER: 100 * 1024,
}

CUSTOM_CODE_MIN_LENGTH = 50_000
_CUSTOM_CODE_RE = re.compile(r"export\s+(?:const|function|class)|module\.exports|fetch\(['\"]https?://")


def is_asset_url(url: str) -> bool:
    if "/api/" in url or "/graphql" in url or url.endswith(".json"):
        return False
    lowered = url.lower()
    return any(ext in lowered for ext in _ASSET_EXTENSIONS)


def bundle_has_custom_code(js: str) -> bool:
    """Heuristic: a platform runtime bundle is small and has no user code patterns."""
    return len(js) > CUSTOM_CODE_MIN_LENGTH or _CUSTOM_CODE_RE.search(js) is not None


def extract_code_assets(js: str, base_url: str) -> list[CodeAsset]:
    """Find assets a script loads at runtime, deduplicated by URL."""
    assets: list[CodeAsset] = []
    seen: set[str] = set()
    for asset_type, patterns in _PATTERNS.items():
        for pattern in patterns:
            for match in pattern.finditer(js):
                url = match.group(1)
                if url in seen or not is_asset_url(url):
                    continue
                seen.add(url)
                if not url.startswith(("http://", "https://", "data:")):
                    url = urljoin(base_url, url)
                window = js[max(0, match.start() - _LAZY_WINDOW) : match.start() + _LAZY_WINDOW]
                assets.append(
                    CodeAsset(
                        url=url,
                        type=asset_type,
                        source=match.group(0)[:100],
                        is_lazy_loaded=_LAZY_RE.search(window) is not None,
                    )
                )
    return assets


def estimate_code_asset_size(asset_type: CodeAssetType) -> int:
    return _FALLBACK_SIZES.get(asset_type, _FALLBACK_SIZES[CodeAssetType.OTHER])


def data_url_size(url: str) -> int:
    # base64 payload is ~4/3 of the binary size
    _, _, payload = url.partition(",")
    return int(round(len(payload) * 0.75)) if payload else 0


def build_custom_code_report(
    assets: Iterable[CodeAsset],
    *,
    has_custom_code: bool,
    warnings: Iterable[str] = (),
) -> CustomCodeReport:
    unique: dict[str, CodeAsset] = {}
    for asset in assets:
        unique[asset.url] = asset
    items = tuple(unique.values())
    total = sum(asset.estimated_bytes or 0 for asset in items)
    first_load = sum(asset.estimated_bytes or 0 for asset in items if not asset.is_lazy_loaded)
    return CustomCodeReport(
        assets=items,
        total_estimated_bytes=total,
        first_load_bytes=first_load,
        has_custom_code=has_custom_code,
        warnings=tuple(warnings),
    )
