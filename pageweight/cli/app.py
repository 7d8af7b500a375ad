from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from result import Err

from pageweight.config.defaults import default_config
from pageweight.config.loader import load_config, sample_config_json
from pageweight.models.analysis import AnalysisResult
from pageweight.models.enums import AnalysisMode, Breakpoint
from pageweight.services.analyzer import run_analysis
from pageweight.services.logs import LOGGER_NAME
from pageweight.services.summary import (
    render_cms,
    render_pages,
    render_published,
    render_recommendations,
    render_summary,
    render_top_assets,
    render_warnings,
)
from pageweight.source import JsonProjectSource

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG if verbose else logging.WARNING)


def run(
    project_json: Annotated[str | None, typer.Argument(help="Project export JSON to analyze.")] = None,
    mode: Annotated[
        AnalysisMode,
        typer.Option("--mode", "-m", help="canvas: estimate from nodes; published: also measure the live site."),
    ] = AnalysisMode.CANVAS,
    top: Annotated[int | None, typer.Option("--top", help="Number of rows in asset and recommendation tables.")] = None,
    breakpoint: Annotated[
        Breakpoint, typer.Option("--breakpoint", "-b", help="Breakpoint for the page and asset tables.")
    ] = Breakpoint.DESKTOP,
    sample_config: Annotated[bool, typer.Option("--sample-config", help="Print sample config JSON.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log scan details.")] = False,
) -> None:
    if sample_config:
        console.print(sample_config_json())
        raise typer.Exit(0)

    if project_json is None:
        console.print("[red]A project JSON file is required.[/]")
        raise typer.Exit(1)

    _configure_logging(verbose)

    config_result = load_config()
    if isinstance(config_result, Err):
        console.print(f"[yellow]{config_result.unwrap_err()} Using defaults.[/]")
        config = default_config()
    else:
        config = config_result.unwrap()

    if top is not None:
        config = replace(config, top_count=max(1, top))

    source = JsonProjectSource(project_json)
    with console.status("[bold #8abeb7]Analyzing pages...[/]") as status:

        def on_progress(page_name: str, done: int, total: int) -> None:
            label = escape(page_name) if page_name else "Aggregating"
            status.update(f"[bold #8abeb7]{label}[/] [dim]({done}/{total})[/]")

        result: AnalysisResult = asyncio.run(run_analysis(source, config, mode=mode, progress_callback=on_progress))

    if isinstance(result, Err):
        error = result.unwrap_err()
        console.print(f"[red]Analysis failed ({error.code.value}): {escape(error.message)}[/]")
        raise typer.Exit(1)
    snapshot = result.unwrap()

    render_summary(console, snapshot)
    render_pages(console, snapshot, breakpoint)
    render_top_assets(console, snapshot, breakpoint, config.top_count)
    render_recommendations(console, list(snapshot.all_recommendations), config.top_count)
    render_cms(console, snapshot)
    render_published(console, snapshot)
    render_warnings(console, snapshot)


def cli() -> None:
    typer.run(run)


if __name__ == "__main__":
    cli()
