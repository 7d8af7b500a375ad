from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class ImageRef:
    """An image fill as reported by the host, with its measured pixel size."""

    id: str | None
    url: str | None
    width: float | None = None
    height: float | None = None
    format: str | None = None


@dataclass(slots=True, frozen=True)
class CmsBinding:
    collection_id: str
    item_id: str | None = None
    field_name: str | None = None
    dynamic: bool = False
    template_id: str | None = None


@dataclass(slots=True, frozen=True)
class CmsCollection:
    id: str
    name: str
    item_count: int = 0


@dataclass(slots=True)
class SourceNode:
    id: str
    name: str
    type: str = "frame"
    width: float | None = None
    height: float | None = None
    visible: bool = True
    image: ImageRef | None = None
    background_image: ImageRef | None = None
    svg: str | None = None
    cms: CmsBinding | None = None
    children: list[SourceNode] = field(default_factory=list)

    @property
    def is_svg(self) -> bool:
        return self.type.lower() in ("svg", "svgnode", "vector")
