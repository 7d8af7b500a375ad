from __future__ import annotations

import json
from typing import Any

from pageweight.models.asset import PageRef
from pageweight.models.enums import Breakpoint
from pageweight.models.source import CmsBinding, CmsCollection, ImageRef, SourceNode
from pageweight.services.fs import DEFAULT_FS, FileSystem
from pageweight.source._base import SourceError


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _count(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise SourceError(f"Invalid {field}: {value!r}")
    try:
        count = int(value)
    except (TypeError, ValueError) as exc:
        raise SourceError(f"Invalid {field}: {value!r}") from exc
    return max(0, count)


def _image(data: Any) -> ImageRef | None:
    if not isinstance(data, dict):
        return None
    return ImageRef(
        id=data.get("id"),
        url=data.get("url"),
        width=_number(data.get("width")),
        height=_number(data.get("height")),
        format=data.get("format"),
    )


def _binding(data: Any) -> CmsBinding | None:
    if not isinstance(data, dict) or not data.get("collectionId"):
        return None
    return CmsBinding(
        collection_id=str(data["collectionId"]),
        item_id=data.get("itemId"),
        field_name=data.get("fieldName"),
        dynamic=bool(data.get("dynamic", False)),
        template_id=data.get("templateId"),
    )


def parse_node(data: dict[str, Any]) -> SourceNode:
    """Build a node tree from its export form. Iterative, so deep trees are fine."""
    root = _node(data)
    stack = [(root, data)]
    while stack:
        node, raw = stack.pop()
        for child_raw in raw.get("children") or []:
            if not isinstance(child_raw, dict):
                continue
            child = _node(child_raw)
            node.children.append(child)
            stack.append((child, child_raw))
    return root


def _node(data: dict[str, Any]) -> SourceNode:
    if "id" not in data:
        raise SourceError("Node without an id")
    return SourceNode(
        id=str(data["id"]),
        name=str(data.get("name") or ""),
        type=str(data.get("type") or "frame"),
        width=_number(data.get("width")),
        height=_number(data.get("height")),
        visible=bool(data.get("visible", True)),
        image=_image(data.get("image")),
        background_image=_image(data.get("backgroundImage")),
        svg=data.get("svg"),
        cms=_binding(data.get("cms")),
    )


class JsonProjectSource:
    """Reads a project export: pages with per-breakpoint node trees, CMS
    collections and the published url.

    A page may carry ``breakpoints`` keyed by breakpoint name, a single
    ``tree`` used for every breakpoint, or both (``tree`` fills the gaps).
    """

    def __init__(self, path: str, fs: FileSystem = DEFAULT_FS) -> None:
        self._path = path
        self._fs = fs
        self._document: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._document is not None:
            return self._document
        resolved = self._fs.expanduser(self._path)
        if not self._fs.exists(resolved):
            raise SourceError(f"Project file not found: {resolved}")
        try:
            payload = json.loads(self._fs.read_text(resolved))
        except (OSError, ValueError) as exc:
            raise SourceError(f"Failed reading project at {resolved}: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("pages"), list):
            raise SourceError(f"Project at {resolved} must be a JSON object with a 'pages' list")
        self._document = payload
        return payload

    def _page(self, page_id: str) -> dict[str, Any]:
        for page in self._load()["pages"]:
            if isinstance(page, dict) and str(page.get("id")) == page_id:
                return page
        raise SourceError(f"Unknown page: {page_id}")

    async def list_pages(self) -> list[PageRef]:
        pages = []
        for raw in self._load()["pages"]:
            if not isinstance(raw, dict) or "id" not in raw:
                continue
            pages.append(
                PageRef(
                    id=str(raw["id"]),
                    name=str(raw.get("name") or ""),
                    slug=raw.get("slug"),
                    url=raw.get("url"),
                )
            )
        return pages

    async def page_tree(self, page_id: str, breakpoint: Breakpoint) -> SourceNode:
        page = self._page(page_id)
        trees = page.get("breakpoints") or {}
        tree = trees.get(breakpoint.value) if isinstance(trees, dict) else None
        if tree is None:
            tree = page.get("tree")
        if not isinstance(tree, dict):
            raise SourceError(f"Page {page_id} has no node tree for {breakpoint.value}")
        return parse_node(tree)

    async def cms_collections(self) -> list[CmsCollection]:
        collections = []
        for raw in self._load().get("collections") or []:
            if not isinstance(raw, dict) or "id" not in raw:
                continue
            collections.append(
                CmsCollection(
                    id=str(raw["id"]),
                    name=str(raw.get("name") or raw["id"]),
                    item_count=_count(raw.get("itemCount", 0), "itemCount"),
                )
            )
        return collections

    async def published_url(self) -> str | None:
        url = self._load().get("publishedUrl")
        return str(url) if url else None
