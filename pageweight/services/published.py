from __future__ import annotations

import asyncio
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from pageweight.models.analysis import CodeAsset, CustomCodeReport, PublishedBreakdown, PublishedData, PublishedResource
from pageweight.models.enums import CodeAssetType, ResourceType
from pageweight.services.code_assets import (
    build_custom_code_report,
    bundle_has_custom_code,
    data_url_size,
    estimate_code_asset_size,
    extract_code_assets,
)
from pageweight.services.logs import ScanLog, scan_logger

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; pageweight/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

TIMEOUT = 15.0

_CSS_URL_RE = re.compile(r"url\(['\"]?([^'\"()]+)['\"]?\)")


class PublishedSiteError(Exception):
    """The published site's HTML could not be fetched."""


def _srcset_urls(srcset: str) -> list[str]:
    urls = []
    for candidate in srcset.split(","):
        parts = candidate.strip().split()
        if parts:
            urls.append(parts[0])
    return urls


def collect_resource_urls(html: str, base_url: str) -> list[tuple[str, ResourceType]]:
    """Resource references in page order, absolute and de-duplicated."""
    soup = BeautifulSoup(html, "lxml")
    found: dict[str, ResourceType] = {}

    def add(raw: str | None, kind: ResourceType) -> None:
        if not raw:
            return
        raw = raw.strip()
        url = raw if raw.startswith("data:") else urljoin(base_url, raw)
        found.setdefault(url, kind)

    for img in soup.find_all("img"):
        add(img.get("src"), ResourceType.IMAGE)
        for url in _srcset_urls(img.get("srcset") or ""):
            add(url, ResourceType.IMAGE)

    for el in soup.find_all(style=True):
        style = el.get("style") or ""
        if "background" not in style:
            continue
        match = _CSS_URL_RE.search(style)
        if match:
            add(match.group(1), ResourceType.IMAGE)

    for source in soup.select("picture source[srcset]"):
        for url in _srcset_urls(source.get("srcset") or ""):
            add(url, ResourceType.IMAGE)

    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if "stylesheet" in [r.lower() for r in rel]:
            add(link.get("href"), ResourceType.CSS)

    for script in soup.find_all("script", src=True):
        add(script.get("src"), ResourceType.JS)

    return list(found.items())


def _resource_type(asset_type: CodeAssetType) -> ResourceType:
    if asset_type is CodeAssetType.IMAGE:
        return ResourceType.IMAGE
    if asset_type is CodeAssetType.FONT:
        return ResourceType.FONT
    return ResourceType.OTHER


def build_breakdown(resources: list[PublishedResource]) -> PublishedBreakdown:
    totals = {kind: 0 for kind in ResourceType}
    for resource in resources:
        totals[resource.type] += resource.actual_bytes
    return PublishedBreakdown(
        images=totals[ResourceType.IMAGE],
        css=totals[ResourceType.CSS],
        js=totals[ResourceType.JS],
        fonts=totals[ResourceType.FONT],
        other=totals[ResourceType.OTHER],
    )


class HttpPublishedSource:
    """Measures a published site by fetching its HTML and sizing every resource."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = TIMEOUT,
        log: ScanLog | None = None,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._log = log or scan_logger()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(headers=HEADERS, follow_redirects=True, timeout=self._timeout) as client:
            yield client

    async def analyze(self, url: str) -> PublishedData:
        async with self._session() as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise PublishedSiteError(f"Failed to fetch {url}: {exc}") from exc

            html = response.text
            self._log.info("Fetched %s (%d chars of HTML)", url, len(html))
            refs = collect_resource_urls(html, url)

            sizes = await asyncio.gather(*(self._resource_size(client, ref) for ref, _ in refs))
            resources = [
                PublishedResource(url=ref, type=kind, actual_bytes=size)
                for (ref, kind), size in zip(refs, sizes)
                if size > 0
            ]

            scripts = [r.url for r in resources if r.type is ResourceType.JS]
            custom_code = await self._analyze_scripts(client, url, scripts) if scripts else None

        if custom_code is not None:
            known = {r.url for r in resources}
            for asset in custom_code.assets:
                if asset.estimated_bytes and asset.url not in known:
                    resources.append(
                        PublishedResource(
                            url=asset.url,
                            type=_resource_type(asset.type),
                            actual_bytes=asset.estimated_bytes,
                        )
                    )

        breakdown = build_breakdown(resources)
        return PublishedData(
            url=url,
            total_bytes=breakdown.total,
            breakdown=breakdown,
            resources=tuple(resources),
            custom_code=custom_code,
        )

    async def _resource_size(self, client: httpx.AsyncClient, url: str) -> int:
        if url.startswith("data:"):
            return data_url_size(url)
        try:
            response = await client.head(url)
        except httpx.HTTPError as exc:
            self._log.debug("HEAD %s failed: %s", url, exc)
            return 0
        if response.is_error:
            self._log.debug("HEAD %s returned %d", url, response.status_code)
            return 0
        value = response.headers.get("content-length")
        return int(value) if value and value.isdigit() else 0

    async def _analyze_scripts(self, client: httpx.AsyncClient, base_url: str, scripts: list[str]) -> CustomCodeReport:
        assets: list[CodeAsset] = []
        warnings: list[str] = []
        has_custom_code = False

        for script_url in scripts:
            try:
                response = await client.get(script_url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                warnings.append(f"Could not fetch JavaScript bundle {script_url}: {exc}")
                continue

            js = response.text
            if not bundle_has_custom_code(js):
                warnings.append(f"No custom code detected in {script_url}")
                continue
            has_custom_code = True

            found = extract_code_assets(js, base_url)
            for asset in found:
                size = await self._resource_size(client, asset.url)
                assets.append(
                    CodeAsset(
                        url=asset.url,
                        type=asset.type,
                        source=asset.source,
                        is_lazy_loaded=asset.is_lazy_loaded,
                        estimated_bytes=size if size > 0 else estimate_code_asset_size(asset.type),
                    )
                )
            if found:
                warnings.append(f"Found {len(found)} dynamically loaded asset(s) in {script_url}")

        return build_custom_code_report(assets, has_custom_code=has_custom_code, warnings=warnings)
