"""
Rendering utilities for CLI and HTML reports.
"""

from __future__ import annotations

from datetime import datetime, timezone
from html import escape
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

import pandas as pd
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import HarvestReport


SUMMARY_COLUMNS = (
    ("Fetched", "fetched"),
    ("Malformed", "malformed"),
    ("Off-topic", "off_topic"),
    ("Unclassified", "unclassified"),
    ("Version dups", "version_duplicates"),
    ("Title dups", "title_duplicates"),
    ("Re-dated", "dates_corrected"),
    ("Undated", "dates_unresolved"),
    ("Kept", "output"),
)


def _ascii_plot(totals: pd.Series, width: int = 24) -> list[str]:
    if totals.empty:
        return []
    max_count = int(totals.max()) or 1
    label_width = max(len(str(label)) for label in totals.index)
    lines: list[str] = []
    for repository, count in totals.items():
        count = int(count)
        length = int(round((count / max_count) * width)) if count else 0
        bar = "█" * max(length, 1 if count else 0)
        lines.append(
            f"{repository:<{label_width}} | {bar:<{width}} {count} preprint{'s' if count != 1 else ''}"
        )
    return lines


def _summary_rows(report: HarvestReport) -> list[list[str]]:
    rows: list[list[str]] = []
    for provider in report.providers:
        rows.append([provider.provider] + [str(getattr(provider, attr)) for _, attr in SUMMARY_COLUMNS])
    return rows


def _recent_weeks(weekly: pd.DataFrame, weeks: int) -> pd.DataFrame:
    if weeks <= 0:
        return weekly
    return weekly.tail(weeks)


def render_summary(console: Console, report: HarvestReport) -> None:
    """
    Print per-provider stage counts and the merge outcome.
    """

    table = Table(
        box=box.SIMPLE_HEAD,
        header_style="bold cyan",
        padding=(0, 1),
        title="Harvest summary",
    )
    table.add_column("Provider", style="magenta", no_wrap=True)
    for heading, _ in SUMMARY_COLUMNS:
        table.add_column(heading, justify="right", style="cyan")
    for row in _summary_rows(report):
        table.add_row(*row)
    console.print(table)

    bullet = "✦"
    console.print(Text(f"{bullet} Cutoff: {report.cutoff.isoformat()}", style="cyan"))
    console.print(Text(f"{bullet} Undated rows excluded: {report.undated_excluded}", style="cyan"))
    console.print(Text(f"{bullet} Rows before start excluded: {report.before_start_excluded}", style="cyan"))
    console.print(Text(f"{bullet} Rows after cutoff excluded: {report.after_cutoff_excluded}", style="cyan"))
    console.print(Text(f"{bullet} Preprints in dataset: {report.total}", style="bold green"))
    console.print()


def render_cli_report(
    console: Console,
    totals: pd.Series,
    weekly: pd.DataFrame,
    options: Mapping[str, str] | None = None,
    weeks: int = 8,
) -> None:
    """
    Print repository totals as a bar plot followed by recent weekly counts.
    """

    options = options or {}
    console.print(Text("COVID-19 preprints by repository", style="bold green"))
    for key, value in options.items():
        console.print(Text(f"✦ {key}: {value}", style="cyan"))
    console.print()

    if totals.empty:
        console.print(Text("No preprints matched the filters.", style="yellow"))
        return

    for line in _ascii_plot(totals):
        console.print(Text(line, style="green"))
    console.print()

    recent = _recent_weeks(weekly, weeks)
    table = Table(
        show_lines=False,
        box=box.SIMPLE_HEAD,
        header_style="bold cyan",
        padding=(0, 1),
        title=f"Weekly counts (last {len(recent)} week{'s' if len(recent) != 1 else ''})",
    )
    table.add_column("Week of", style="green", no_wrap=True)
    for column in recent.columns:
        table.add_column(str(column), justify="right", style="cyan")
    for week, row in recent.iterrows():
        table.add_row(week.strftime("%Y-%m-%d"), *(str(int(value)) for value in row))
    console.print(table)


def _html_table(table: pd.DataFrame, index_label: str) -> str:
    header = "".join(f"<th>{escape(str(column))}</th>" for column in table.columns)
    body: list[str] = []
    for index, row in table.iterrows():
        cells = "".join(f"<td>{int(value)}</td>" for value in row)
        body.append(f"<tr><th>{escape(index.strftime('%Y-%m-%d'))}</th>{cells}</tr>")
    return (
        "<table>"
        f"<thead><tr><th>{escape(index_label)}</th>{header}</tr></thead>"
        f"<tbody>{''.join(body)}</tbody>"
        "</table>"
    )


def _html_summary(report: HarvestReport) -> str:
    header = "".join(f"<th>{escape(heading)}</th>" for heading, _ in SUMMARY_COLUMNS)
    rows = "".join(
        "<tr>" + "".join(f"<td>{escape(cell)}</td>" for cell in row) + "</tr>"
        for row in _summary_rows(report)
    )
    return (
        "<section class=\"summary\"><h2>Harvest summary</h2>"
        f"<table><thead><tr><th>Provider</th>{header}</tr></thead><tbody>{rows}</tbody></table>"
        f"<p>Undated rows excluded: {report.undated_excluded} · "
        f"rows before start excluded: {report.before_start_excluded} · "
        f"rows after cutoff excluded: {report.after_cutoff_excluded}</p>"
        "</section>"
    )


def write_html_report(
    totals: pd.Series,
    aggregates: Dict[str, pd.DataFrame],
    output_path: Path,
    options: Mapping[str, str] | None = None,
    report: Optional[HarvestReport] = None,
) -> Path:
    """
    Generate a standalone HTML report with totals, weekly and cumulative tables.
    """

    output_path.parent.mkdir(parents=True, exist_ok=True)

    generated = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    options = options or {}
    meta_list = "".join(f"<li>✦ {escape(key)}: {escape(value)}</li>" for key, value in options.items())

    plot = escape("\n".join(_ascii_plot(totals))) or "No preprints matched the filters."
    sections: Sequence[str] = (
        f"<section class=\"summary\"><h2>Preprints by repository</h2><pre class=\"summary-plot\">{plot}</pre></section>",
        _html_summary(report) if report is not None else "",
        f"<section><h2>Weekly counts</h2>{_html_table(aggregates['week'], 'Week of')}</section>",
        f"<section><h2>Cumulative counts</h2>{_html_table(aggregates['cumulative'], 'Date')}</section>",
    )

    html = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <title>COVID-19 Preprints Report</title>
    <style>
        :root {{
            --bg: #040404;
            --text: #7fffb3;
            --accent: #00ff90;
            --muted: #3ddc84;
            --border: rgba(0, 255, 144, 0.35);
        }}
        body {{
            margin: 0 auto;
            padding: 2.5rem 1.5rem;
            max-width: 1100px;
            background: var(--bg);
            color: var(--text);
            font-family: "IBM Plex Mono", "SFMono-Regular", Menlo, Consolas, "Liberation Mono", monospace;
        }}
        h1, h2 {{
            color: var(--accent);
        }}
        .meta-list {{
            list-style: none;
            padding: 0;
            color: var(--muted);
        }}
        .summary-plot {{
            padding: 1rem;
            border: 1px solid var(--border);
            border-radius: 0.6rem;
            white-space: pre;
        }}
        section {{
            margin-bottom: 2rem;
            overflow-x: auto;
        }}
        table {{
            border-collapse: collapse;
            font-size: 0.8rem;
        }}
        th, td {{
            padding: 0.2rem 0.6rem;
            border-bottom: 1px solid var(--border);
            text-align: right;
        }}
        footer {{
            margin-top: 2rem;
            font-size: 0.85rem;
            color: var(--muted);
        }}
    </style>
</head>
<body>
    <header>
        <h1>COVID-19 Preprints</h1>
        <ul class="meta-list">
            {meta_list}
            <li>✦ Generated: {generated}</li>
        </ul>
    </header>
    <main>
        {''.join(sections)}
    </main>
    <footer>
        Sources: Crossref, DataCite, arXiv.
    </footer>
</body>
</html>
"""

    output_path.write_text(html, encoding="utf-8")
    return output_path
