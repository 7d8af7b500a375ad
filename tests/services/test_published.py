from __future__ import annotations

import asyncio

import httpx
import pytest

from pageweight.models.analysis import PublishedData
from pageweight.models.enums import ResourceType
from pageweight.services.published import HttpPublishedSource, PublishedSiteError, collect_resource_urls

SITE = "https://site.example.com/"

HTML = """
<html>
  <head>
    <link rel="stylesheet" href="/style.css">
    <link rel="icon" href="/favicon.ico">
    <script src="/app.js"></script>
  </head>
  <body>
    <img src="/img/hero.png" srcset="/img/hero.png 1x, /img/hero@2x.png 2x">
    <div style="background-image: url('/img/bg.jpg')"></div>
    <picture><source srcset="/img/pic.avif 800w"></picture>
  </body>
</html>
"""

BUNDLE = 'export const Widget = () => fetch("/fonts/brand.woff2");'

SIZES = {
    "/style.css": 500,
    "/app.js": 2000,
    "/img/hero.png": 10_000,
    "/img/hero@2x.png": 20_000,
    "/img/bg.jpg": 3000,
    "/img/pic.avif": 4000,
}


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if request.method == "GET" and path == "/":
        return httpx.Response(200, text=HTML)
    if request.method == "GET" and path == "/app.js":
        return httpx.Response(200, text=BUNDLE)
    if request.method == "HEAD" and path in SIZES:
        return httpx.Response(200, headers={"content-length": str(SIZES[path])})
    return httpx.Response(404)


def _analyze(handler) -> PublishedData:
    async def go() -> PublishedData:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await HttpPublishedSource(client=client).analyze(SITE)

    return asyncio.run(go())


def test_collect_resource_urls_finds_all_reference_kinds() -> None:
    refs = dict(collect_resource_urls(HTML, SITE))
    assert refs == {
        "https://site.example.com/img/hero.png": ResourceType.IMAGE,
        "https://site.example.com/img/hero@2x.png": ResourceType.IMAGE,
        "https://site.example.com/img/bg.jpg": ResourceType.IMAGE,
        "https://site.example.com/img/pic.avif": ResourceType.IMAGE,
        "https://site.example.com/style.css": ResourceType.CSS,
        "https://site.example.com/app.js": ResourceType.JS,
    }


def test_analyze_measures_resources_and_custom_code() -> None:
    data = _analyze(_handler)
    assert data.url == SITE
    assert data.breakdown.images == 37_000
    assert data.breakdown.css == 500
    assert data.breakdown.js == 2000
    # font size unknown to HEAD, so the fallback estimate is used
    assert data.breakdown.fonts == 50 * 1024
    assert data.total_bytes == data.breakdown.total
    assert data.custom_code is not None
    assert data.custom_code.has_custom_code
    (asset,) = data.custom_code.assets
    assert asset.url == "https://site.example.com/fonts/brand.woff2"


def test_unsized_resources_are_dropped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, text='<img src="/a.png"><img src="/b.png">')
        if request.url.path == "/a.png":
            return httpx.Response(200, headers={"content-length": "700"})
        return httpx.Response(200)

    data = _analyze(handler)
    assert [r.url for r in data.resources] == ["https://site.example.com/a.png"]
    assert data.custom_code is None


def test_failed_html_fetch_raises() -> None:
    with pytest.raises(PublishedSiteError):
        _analyze(lambda request: httpx.Response(503))
