from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pageweight.models.analysis import ProjectAnalysis, Recommendation
from pageweight.models.asset import Asset
from pageweight.models.enums import Breakpoint, Priority
from pageweight.services.formatting import (
    device_weighted_bytes,
    format_bytes,
    format_load_time,
    load_time,
    relative_bar,
)

_PRIORITY_STYLE = {
    Priority.HIGH: "bold red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "dim",
}


def _page_label(rec: Recommendation) -> str:
    pages = rec.used_in_pages or ((rec.page,) if rec.page is not None else ())
    if not pages:
        return ""
    first = pages[0].name or pages[0].id
    return first if len(pages) == 1 else f"{first} +{len(pages) - 1}"


def top_assets(snapshot: ProjectAnalysis, breakpoint: Breakpoint, top_n: int) -> list[Asset]:
    """Largest distinct assets at *breakpoint* across all pages."""
    largest: dict[str, Asset] = {}
    for asset in snapshot.overall_breakpoints.get(breakpoint).assets:
        current = largest.get(asset.asset_key)
        if current is None or asset.estimated_bytes > current.estimated_bytes:
            largest[asset.asset_key] = asset
    ranked = sorted(largest.values(), key=lambda a: (-a.estimated_bytes, a.name, a.asset_key))
    return ranked[:top_n]


def render_summary(console: Console, snapshot: ProjectAnalysis) -> None:
    table = Table(title="Estimated Page Weight", header_style="bold cyan")
    table.add_column("Breakpoint")
    table.add_column("Images", justify="right")
    table.add_column("SVG", justify="right")
    table.add_column("Fonts", justify="right")
    table.add_column("HTML/CSS", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("")
    table.add_column("4G", justify="right")
    table.add_column("Savings", justify="right")

    largest = max((data.total_bytes for _, data in snapshot.overall_breakpoints.items()), default=0)
    for breakpoint, data in snapshot.overall_breakpoints.items():
        savings = snapshot.savings.get(breakpoint) if snapshot.savings is not None else None
        saved = ""
        if savings is not None:
            saved = format_bytes(savings.reported_bytes)
            if savings.capped:
                saved += " [dim](capped)[/dim]"
        table.add_row(
            f"{breakpoint.value} ({breakpoint.width}px)",
            format_bytes(data.breakdown.images),
            format_bytes(data.breakdown.svg),
            format_bytes(data.breakdown.fonts),
            format_bytes(data.breakdown.html_css),
            f"[bold]{format_bytes(data.total_bytes)}[/bold]",
            relative_bar(data.total_bytes, largest),
            format_load_time(load_time(data.total_bytes, "4g")),
            saved,
        )

    table.add_section()
    weighted = device_weighted_bytes(snapshot.overall_breakpoints)
    table.add_row("[bold]Device weighted[/bold]", "", "", "", "", f"[bold]{format_bytes(weighted)}[/bold]", "", "", "")
    table.add_row(f"[bold]{snapshot.total_pages:,}[/bold] pages", "", "", "", "", "", "", "", "")
    console.print(table)


def render_pages(console: Console, snapshot: ProjectAnalysis, breakpoint: Breakpoint) -> None:
    table = Table(title=f"Pages ({breakpoint.value})", header_style="bold cyan")
    table.add_column("Page")
    table.add_column("Assets", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Recommendations", justify="right")
    for page in snapshot.pages:
        data = page.breakpoints.get(breakpoint)
        table.add_row(
            escape(page.page.name or page.page.id),
            f"{page.total_assets:,}",
            format_bytes(data.total_bytes),
            f"{len(page.recommendations):,}",
        )
    console.print(table)


def render_top_assets(console: Console, snapshot: ProjectAnalysis, breakpoint: Breakpoint, top_n: int) -> None:
    table = Table(title=f"Largest Assets ({breakpoint.value})", header_style="bold yellow")
    table.add_column("Asset")
    table.add_column("Kind", justify="center")
    table.add_column("Rendered", justify="right")
    table.add_column("Page")
    table.add_column("Size", justify="right")
    for asset in top_assets(snapshot, breakpoint, top_n):
        dims = asset.dimensions
        kind = "CMS" if asset.is_cms_asset else asset.kind.value.upper()
        table.add_row(
            escape(asset.name),
            kind,
            f"{int(dims.width)}x{int(dims.height)}" if dims.is_valid else "-",
            escape(asset.page.name) if asset.page is not None else "",
            format_bytes(asset.estimated_bytes),
        )
    console.print(table)


def render_recommendations(console: Console, recs: list[Recommendation], top_n: int) -> None:
    table = Table(title="Recommendations", header_style="bold yellow")
    table.add_column("Priority", justify="center")
    table.add_column("Type")
    table.add_column("Asset")
    table.add_column("Pages")
    table.add_column("Current", justify="right")
    table.add_column("Savings", justify="right")
    table.add_column("Action")
    for rec in recs[:top_n]:
        style = _PRIORITY_STYLE[rec.priority]
        table.add_row(
            f"[{style}]{rec.priority.value}[/]",
            rec.type.value,
            escape(rec.node_name),
            escape(_page_label(rec)),
            format_bytes(rec.current_bytes),
            format_bytes(rec.potential_savings),
            escape(rec.actionable),
        )
    console.print(table)


def render_cms(console: Console, snapshot: ProjectAnalysis) -> None:
    impact = snapshot.cms_bandwidth_impact
    if impact is None:
        return
    table = Table(title="CMS Bandwidth Impact", header_style="bold magenta")
    table.add_column("Collection")
    table.add_column("Assets", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Manual", justify="right")
    for item in impact.collections:
        table.add_row(
            escape(item.collection_name),
            f"{item.asset_count:,}",
            format_bytes(item.total_bytes),
            f"{item.manual_estimates:,}" if item.manual_estimates else "",
        )
    table.add_section()
    table.add_row("[bold]Average file[/bold]", "", format_bytes(int(impact.avg_file_size)), "")
    traffic = impact.traffic
    table.add_row(
        f"[bold]Monthly[/bold] ({traffic.monthly_visits:,} visits x {traffic.pages_per_visit:g} pages"
        f" x {traffic.items_per_page} items)",
        "",
        f"[bold]{format_bytes(impact.monthly_bandwidth)}[/bold]",
        "",
    )
    console.print(table)
    if snapshot.cms_assets_not_found:
        console.print(
            f"[yellow]{snapshot.cms_assets_not_found:,} CMS images could not be read; manual estimates used.[/]"
        )


def render_published(console: Console, snapshot: ProjectAnalysis) -> None:
    data = snapshot.published_data
    if data is None:
        return
    table = Table(title=f"Published Site: {escape(data.url)}", header_style="bold green")
    table.add_column("Resources")
    table.add_column("Bytes", justify="right")
    table.add_column("")
    breakdown = data.breakdown
    for label, size in (
        ("Images", breakdown.images),
        ("CSS", breakdown.css),
        ("JavaScript", breakdown.js),
        ("Fonts", breakdown.fonts),
        ("Other", breakdown.other),
    ):
        table.add_row(label, format_bytes(size), relative_bar(size, data.total_bytes))
    table.add_section()
    table.add_row("[bold]Total[/bold]", f"[bold]{format_bytes(data.total_bytes)}[/bold]", "")
    custom = data.custom_code
    if custom is not None and custom.assets:
        table.add_section()
        table.add_row(f"Custom code assets ({len(custom.assets)})", format_bytes(custom.total_estimated_bytes), "")
        table.add_row("Custom code, first load", format_bytes(custom.first_load_bytes), "")
    console.print(table)


def render_warnings(console: Console, snapshot: ProjectAnalysis) -> None:
    for warning in snapshot.warnings:
        console.print(f"[yellow]{escape(warning)}[/]")
    if snapshot.unresolved_assets:
        console.print(f"[red]{len(snapshot.unresolved_assets):,} assets could not be resolved[/red]")
