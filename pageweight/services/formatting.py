from __future__ import annotations

import math

from pageweight.models.analysis import BreakpointSet
from pageweight.models.enums import Breakpoint

UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]

# bytes per second
NETWORK_SPEEDS: dict[str, float] = {
    "3g": 1.5 * 1024 * 1024 / 8,
    "4g": 10 * 1024 * 1024 / 8,
}

DEVICE_DISTRIBUTION: dict[Breakpoint, float] = {
    Breakpoint.MOBILE: 0.55,
    Breakpoint.TABLET: 0.15,
    Breakpoint.DESKTOP: 0.30,
}


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(UNITS) - 1:
        value /= 1024.0
        unit += 1
    if unit == 0:
        return f"{int(value)} {UNITS[unit]}"
    return f"{value:.1f} {UNITS[unit]}"


def relative_bar(size: int, total: int, width: int = 16) -> str:
    if width <= 0 or total <= 0:
        return ""
    ratio = min(1.0, max(0.0, size / total))
    filled = int(round(ratio * width))
    return "█" * filled + "░" * max(0, width - filled)


def load_time(size: int, network: str = "4g") -> float:
    if size <= 0:
        return 0.0
    return size / NETWORK_SPEEDS[network]


def format_load_time(seconds: float) -> str:
    if not math.isfinite(seconds) or seconds <= 0:
        return "<1ms"
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds % 60:.0f}s"


def device_weighted_bytes(breakpoints: BreakpointSet) -> int:
    """Total weighted by a typical mobile/tablet/desktop traffic split."""
    return int(round(sum(data.total_bytes * DEVICE_DISTRIBUTION[bp] for bp, data in breakpoints.items())))
