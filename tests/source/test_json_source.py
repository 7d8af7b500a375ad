from __future__ import annotations

import asyncio
import json

import pytest
from result import Ok

from pageweight.config.defaults import default_config
from pageweight.models.enums import Breakpoint
from pageweight.services.analyzer import run_analysis
from pageweight.source import JsonProjectSource, SourceError
from tests.fs_mock import MemoryFileSystem

PROJECT = {
    "publishedUrl": "https://site.example.com/",
    "collections": [{"id": "blog", "name": "Blog", "itemCount": 12}],
    "pages": [
        {
            "id": "home",
            "name": "Home",
            "slug": "/",
            "tree": {
                "id": "root",
                "name": "Desktop",
                "width": 1440,
                "height": 900,
                "children": [
                    {
                        "id": "hero",
                        "name": "Hero",
                        "width": 1440,
                        "height": 600,
                        "image": {"id": "img-1", "url": "https://cdn.example.com/hero.png", "width": 2880, "height": 1200},
                    },
                    {"id": "logo", "type": "SVG", "svg": "<svg/>", "width": 24, "height": 24},
                    {"id": "hidden", "visible": False, "width": "n/a"},
                ],
            },
            "breakpoints": {"mobile": {"id": "root-m", "width": 375, "height": 800}},
        },
        {"id": "posts", "name": "Posts", "tree": {"id": "root", "cms": {"collectionId": "blog", "dynamic": True}}},
        {"name": "no id"},
    ],
}


def _source(content: str | None = None) -> JsonProjectSource:
    fs = MemoryFileSystem().add_file("/project.json", content=content if content is not None else json.dumps(PROJECT))
    return JsonProjectSource("/project.json", fs=fs)


def test_list_pages_skips_entries_without_id() -> None:
    pages = asyncio.run(_source().list_pages())
    assert [(p.id, p.name, p.slug) for p in pages] == [("home", "Home", "/"), ("posts", "Posts", None)]


def test_page_tree_prefers_breakpoint_specific_tree() -> None:
    source = _source()
    mobile = asyncio.run(source.page_tree("home", Breakpoint.MOBILE))
    desktop = asyncio.run(source.page_tree("home", Breakpoint.DESKTOP))
    assert mobile.id == "root-m"
    assert desktop.id == "root"
    hero, logo, hidden = desktop.children
    assert hero.image is not None and hero.image.width == 2880
    assert logo.is_svg
    assert not hidden.visible
    assert hidden.width is None


def test_cms_binding_is_parsed() -> None:
    tree = asyncio.run(_source().page_tree("posts", Breakpoint.TABLET))
    assert tree.cms is not None
    assert tree.cms.collection_id == "blog"
    assert tree.cms.dynamic


def test_collections_and_published_url() -> None:
    source = _source()
    (collection,) = asyncio.run(source.cms_collections())
    assert (collection.id, collection.name, collection.item_count) == ("blog", "Blog", 12)
    assert asyncio.run(source.published_url()) == "https://site.example.com/"


def test_unknown_page_raises_source_error() -> None:
    with pytest.raises(SourceError):
        asyncio.run(_source().page_tree("nope", Breakpoint.DESKTOP))


def test_missing_file_raises_source_error() -> None:
    source = JsonProjectSource("/missing.json", fs=MemoryFileSystem())
    with pytest.raises(SourceError):
        asyncio.run(source.list_pages())


@pytest.mark.parametrize("content", ["not json", "[]", '{"pages": {}}'])
def test_malformed_project_raises_source_error(content: str) -> None:
    with pytest.raises(SourceError):
        asyncio.run(_source(content).list_pages())


@pytest.mark.parametrize("count", ["many", None, True, [3]])
def test_invalid_collection_item_count_raises_source_error(count: object) -> None:
    project = {**PROJECT, "collections": [{"id": "blog", "name": "Blog", "itemCount": count}]}
    with pytest.raises(SourceError):
        asyncio.run(_source(json.dumps(project)).cms_collections())


def test_numeric_string_item_count_is_accepted() -> None:
    project = {**PROJECT, "collections": [{"id": "blog", "itemCount": "7"}, {"id": "team", "itemCount": -2}]}
    blog, team = asyncio.run(_source(json.dumps(project)).cms_collections())
    assert (blog.name, blog.item_count) == ("blog", 7)
    assert team.item_count == 0


def test_bad_item_count_only_warns_during_analysis() -> None:
    project = {**PROJECT, "collections": [{"id": "blog", "name": "Blog", "itemCount": "many"}]}
    result = asyncio.run(run_analysis(_source(json.dumps(project)), default_config()))
    assert isinstance(result, Ok)
    assert any("itemCount" in w for w in result.unwrap().warnings)
