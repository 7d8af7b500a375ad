from __future__ import annotations

import itertools
import logging
from collections.abc import MutableMapping
from typing import Any

LOGGER_NAME = "pageweight"

_scan_ids = itertools.count(1)


class ScanLog(logging.LoggerAdapter):
    """Logger bound to one scan; every record is prefixed with the scan id."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        kwargs.setdefault("extra", {}).update(extra)
        return f"[scan {extra.get('scan')}] {msg}", kwargs


def scan_logger(scan_id: int | None = None) -> ScanLog:
    sid = next(_scan_ids) if scan_id is None else scan_id
    return ScanLog(logging.getLogger(LOGGER_NAME), {"scan": sid})
