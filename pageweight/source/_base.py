from __future__ import annotations

from typing import Protocol

from pageweight.models.analysis import PublishedData
from pageweight.models.asset import PageRef
from pageweight.models.enums import Breakpoint
from pageweight.models.source import CmsCollection, SourceNode


class SourceError(Exception):
    """The host could not enumerate pages or nodes."""


class AssetSource(Protocol):
    async def list_pages(self) -> list[PageRef]: ...

    async def page_tree(self, page_id: str, breakpoint: Breakpoint) -> SourceNode: ...

    async def cms_collections(self) -> list[CmsCollection]: ...

    async def published_url(self) -> str | None: ...


class PublishedSource(Protocol):
    async def analyze(self, url: str) -> PublishedData: ...
