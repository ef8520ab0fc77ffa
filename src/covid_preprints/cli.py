"""
Command line interface powered by Typer.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import httpx
import pandas as pd
import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .aggregation import build_aggregates, repository_totals
from .dataset import DATASET_NAME, dataset_path, read_dataset, to_frame, write_aggregates, write_dataset
from .errors import ConfigError, ProviderFetchFailure
from .logs import setup_logging
from .models import HarvestReport
from .pipeline import PROVIDER_HARVESTS, ProviderHarvest, ProviderResult, merge
from .reporting import render_cli_report, render_summary, write_html_report
from .settings import DEFAULT_START_DATE, HarvestSettings, parse_iso_date

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()
logger = logging.getLogger(__name__)

ENV_PREFIX = "COVID_PREPRINTS_"


def _parse_date_option(value: str, name: str) -> date:
    try:
        return parse_iso_date(value, name)
    except ConfigError as error:
        raise typer.BadParameter(str(error)) from error


async def _harvest_with_progress(settings: HarvestSettings) -> List[ProviderResult]:
    async with httpx.AsyncClient(
        timeout=settings.timeout,
        headers={"User-Agent": settings.user_agent},
    ) as client:
        progress = Progress(
            SpinnerColumn(style="green"),
            TextColumn("{task.description}", justify="left"),
            BarColumn(bar_width=24, style="cyan"),
            TextColumn("{task.completed}/{task.total}", style="cyan"),
            TimeElapsedColumn(),
            transient=True,
            console=console,
        )

        async def run_provider(name: str, harvest: ProviderHarvest) -> Tuple[str, ProviderResult]:
            return name, await harvest(client, settings)

        tasks = [
            asyncio.create_task(run_provider(name, harvest)) for name, harvest in PROVIDER_HARVESTS
        ]

        completed: Dict[str, ProviderResult] = {}
        with progress:
            task_id = progress.add_task("Harvesting providers…", total=len(tasks))
            try:
                for coro in asyncio.as_completed(tasks):
                    name, result = await coro
                    completed[name] = result
                    progress.update(task_id, advance=1, description=f"{name} ✓")
            except ProviderFetchFailure:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        return [completed[name] for name, _ in PROVIDER_HARVESTS]


def _publish(
    frame: pd.DataFrame,
    output_dir: Path,
    start: date,
    cutoff: date,
    min_count: int,
    weeks: int,
    options: Dict[str, str],
    report: Optional[HarvestReport] = None,
) -> None:
    aggregates = build_aggregates(frame, start, cutoff, min_count)
    totals = repository_totals(frame, min_count)
    write_aggregates(aggregates, output_dir)

    render_cli_report(console, totals, aggregates["week"], options, weeks=weeks)
    destination = write_html_report(
        totals,
        aggregates,
        output_dir / f"{DATASET_NAME}_report.html",
        options,
        report=report,
    )
    console.print(f"[green]Report saved to[/green] {destination}")


@app.command()
def harvest(
    cutoff: str = typer.Option(
        ...,
        "--cutoff",
        "-c",
        envvar=f"{ENV_PREFIX}CUTOFF",
        help="Last posted date (inclusive, YYYY-MM-DD) kept in the dataset.",
    ),
    start: str = typer.Option(
        DEFAULT_START_DATE.isoformat(),
        "--start",
        envvar=f"{ENV_PREFIX}START",
        help="First date queried from the providers.",
    ),
    min_count: int = typer.Option(
        100,
        "--min-count",
        min=0,
        envvar=f"{ENV_PREFIX}MIN_COUNT",
        help="Repositories with fewer preprints are grouped as 'Other' in aggregates.",
    ),
    mailto: Optional[str] = typer.Option(
        None,
        "--mailto",
        envvar=f"{ENV_PREFIX}MAILTO",
        help="Contact address sent to Crossref's polite pool.",
        show_default=False,
    ),
    output_dir: Path = typer.Option(
        Path("data"),
        "--output-dir",
        "-o",
        envvar=f"{ENV_PREFIX}OUTPUT_DIR",
        help="Directory receiving the dataset, aggregates and HTML report.",
    ),
    timeout: float = typer.Option(30.0, "--timeout", min=1.0, help="HTTP timeout in seconds."),
    concurrency: int = typer.Option(
        8, "--concurrency", min=1, help="Parallel landing-page fetches for date correction."
    ),
    arxiv_limit: int = typer.Option(10000, "--arxiv-limit", min=1, help="Maximum arXiv results."),
    arxiv_delay: float = typer.Option(
        3.0, "--arxiv-delay", min=0.0, help="Seconds between arXiv API pages."
    ),
    page_size: int = typer.Option(1000, "--page-size", min=1, max=1000, help="Records per API page."),
    correct_dates: bool = typer.Option(
        True,
        "--correct-dates/--no-correct-dates",
        help="Re-date SSRN records from their landing pages.",
    ),
    weeks: int = typer.Option(8, "--weeks", min=0, help="Recent weeks shown in the console table."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
) -> None:
    """
    Harvest all providers and write the merged COVID-19 preprint dataset.
    """

    setup_logging(log_level, console=console)
    try:
        settings = HarvestSettings(
            cutoff=_parse_date_option(cutoff, "cutoff"),
            start_date=_parse_date_option(start, "start"),
            min_count=min_count,
            mailto=mailto,
            timeout=timeout,
            concurrency=concurrency,
            arxiv_limit=arxiv_limit,
            arxiv_delay=arxiv_delay,
            page_size=page_size,
            output_dir=output_dir,
            correct_dates=correct_dates,
        )
    except ConfigError as error:
        raise typer.BadParameter(str(error)) from error

    console.print(
        f"[bold]Harvesting[/bold] {len(PROVIDER_HARVESTS)} providers from "
        f"{settings.start_date.isoformat()} to {settings.cutoff.isoformat()}…"
    )

    try:
        results = asyncio.run(_harvest_with_progress(settings))
    except ProviderFetchFailure as error:
        console.print(f"[red]Harvest aborted:[/red] {error}")
        raise typer.Exit(1) from error

    report = HarvestReport(cutoff=settings.cutoff, providers=[provider for _, provider in results])
    merged = merge(
        (preprints for preprints, _ in results), settings.cutoff, report, start=settings.start_date
    )
    destination = write_dataset(merged, settings.output_dir)

    render_summary(console, report)
    console.print(f"[green]Dataset saved to[/green] {destination}")

    options = {
        "Range": f"{settings.start_date.isoformat()} to {settings.cutoff.isoformat()}",
        "Other bucket": f"fewer than {settings.min_count}",
        "Preprints": str(report.total),
    }
    _publish(
        to_frame(merged),
        settings.output_dir,
        settings.start_date,
        settings.cutoff,
        settings.min_count,
        weeks,
        options,
        report=report,
    )


@app.command()
def report(
    dataset: Optional[Path] = typer.Option(
        None,
        "--dataset",
        "-d",
        help="Merged dataset CSV; defaults to the one inside --output-dir.",
        show_default=False,
    ),
    output_dir: Path = typer.Option(
        Path("data"),
        "--output-dir",
        "-o",
        envvar=f"{ENV_PREFIX}OUTPUT_DIR",
        help="Directory receiving the aggregates and HTML report.",
    ),
    cutoff: Optional[str] = typer.Option(
        None,
        "--cutoff",
        "-c",
        envvar=f"{ENV_PREFIX}CUTOFF",
        help="Last date covered by the aggregates; defaults to the newest preprint.",
        show_default=False,
    ),
    start: str = typer.Option(
        DEFAULT_START_DATE.isoformat(), "--start", envvar=f"{ENV_PREFIX}START", help="First aggregated date."
    ),
    min_count: int = typer.Option(
        100,
        "--min-count",
        min=0,
        envvar=f"{ENV_PREFIX}MIN_COUNT",
        help="Repositories with fewer preprints are grouped as 'Other'.",
    ),
    weeks: int = typer.Option(8, "--weeks", min=0, help="Recent weeks shown in the console table."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
) -> None:
    """
    Rebuild aggregates and reports from an existing dataset without fetching.
    """

    setup_logging(log_level, console=console)
    source = dataset or dataset_path(output_dir)
    if not source.exists():
        console.print(f"[red]Dataset not found:[/red] {source}")
        raise typer.Exit(1)

    frame = read_dataset(source)
    start_date = _parse_date_option(start, "start")
    if cutoff is not None:
        cutoff_date = _parse_date_option(cutoff, "cutoff")
    elif not frame.empty:
        cutoff_date = frame["posted_date"].max().date()
    else:
        cutoff_date = start_date
    if cutoff_date < start_date:
        raise typer.BadParameter("cutoff must not be before start")

    logger.info("Loaded %d preprints from %s", len(frame), source)
    options = {
        "Dataset": str(source),
        "Range": f"{start_date.isoformat()} to {cutoff_date.isoformat()}",
        "Other bucket": f"fewer than {min_count}",
        "Preprints": str(len(frame)),
    }
    _publish(frame, output_dir, start_date, cutoff_date, min_count, weeks, options)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
