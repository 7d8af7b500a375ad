from __future__ import annotations

from pageweight.models.asset import Dimensions, ImageAsset, VectorAsset
from pageweight.services.breakdown import aggregate, merge_breakpoints


def _image(node_id: str, size: int, visible: bool = True) -> ImageAsset:
    return ImageAsset(
        node_id=node_id, name=node_id, estimated_bytes=size, dimensions=Dimensions(10, 10), visible=visible
    )


def _vector(node_id: str, size: int) -> VectorAsset:
    return VectorAsset(node_id=node_id, name=node_id, estimated_bytes=size, dimensions=Dimensions(10, 10))


def test_aggregate_sums_by_kind_and_adds_overhead() -> None:
    data = aggregate([_image("a", 100), _vector("b", 30), _image("c", 50)], base_overhead=1000, fonts=200)
    assert data.breakdown.images == 150
    assert data.breakdown.svg == 30
    assert data.breakdown.fonts == 200
    assert data.breakdown.html_css == 1000
    assert data.total_bytes == 1380
    assert [a.node_id for a in data.assets] == ["a", "b", "c"]


def test_aggregate_drops_invisible_assets() -> None:
    data = aggregate([_image("a", 100), _image("hidden", 999, visible=False)])
    assert data.total_bytes == 100
    assert len(data.assets) == 1


def test_aggregate_is_order_independent() -> None:
    assets = [_image("a", 100), _vector("b", 30), _image("c", 50)]
    forward = aggregate(assets, base_overhead=10)
    backward = aggregate(list(reversed(assets)), base_overhead=10)
    assert forward.total_bytes == backward.total_bytes
    assert forward.breakdown == backward.breakdown


def test_empty_aggregate_is_overhead_only() -> None:
    data = aggregate([], base_overhead=48 * 1024, fonts=0)
    assert data.total_bytes == 48 * 1024
    assert data.assets == ()


def test_merge_breakpoints_sums_totals() -> None:
    first = aggregate([_image("a", 100)], base_overhead=10)
    second = aggregate([_vector("b", 20)], base_overhead=10)
    merged = merge_breakpoints([first, second])
    assert merged.total_bytes == first.total_bytes + second.total_bytes
    assert merged.breakdown.html_css == 20
    assert len(merged.assets) == 2
