from __future__ import annotations

from pageweight.source._base import AssetSource, PublishedSource, SourceError
from pageweight.source.json_source import JsonProjectSource