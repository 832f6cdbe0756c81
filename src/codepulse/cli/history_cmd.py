"""codepulse history command."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from codepulse.core.errors import RecordStoreFailure
from codepulse.core.output import console, density_color, progress_bar
from codepulse.history.tracker import HistoryTracker


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Export as JSON")
@click.option("--days", type=int, default=90, help="Number of days of history")
def history(as_json: bool, days: int):
    """Show pattern density history over time.

    Every `codepulse scan` appends one entry.
    """
    try:
        tracker = HistoryTracker(Path.cwd())
        entries = tracker.get_trend(days=days)
        alerts = tracker.get_regression_alerts(days=days)
    except RecordStoreFailure as exc:
        console.print(f"\n  [red]Error loading history: {exc}[/red]\n")
        sys.exit(1)

    if not entries:
        console.print("\n  No history data yet. Run `codepulse scan` to start tracking.\n")
        return

    if as_json:
        output = [
            {
                "date": e.scanned_at.isoformat(),
                "fingerprint": e.fingerprint,
                "version": e.version,
                "archetype": e.archetype,
                "moduleCount": e.module_count,
                "totalLines": e.total_lines,
                "aggregatePatternDensity": e.aggregate_density,
                "issues": e.total_issues,
            }
            for e in entries
        ]
        click.echo(json.dumps(output, indent=2))
        return

    console.print("\n  [bold]CodePulse Density History[/bold]\n")

    for entry in entries[-20:]:  # Show last 20
        bar = progress_bar(entry.aggregate_density, width=40)
        date_str = entry.scanned_at.strftime("%Y-%m-%d %H:%M")
        color = density_color(entry.aggregate_density)
        console.print(
            f"  {date_str}  {bar} [{color}]{entry.aggregate_density:.2f}[/{color}]"
            f"  [dim]{entry.archetype}, {entry.total_issues} issues[/dim]"
        )

    if len(entries) >= 2:
        first = entries[0].aggregate_density
        last = entries[-1].aggregate_density
        delta = last - first
        delta_str = f"+{delta:.2f}" if delta >= 0 else f"{delta:.2f}"
        console.print(f"\n  Trend: {first:.2f} -> {last:.2f} ({delta_str})")

    for alert in alerts:
        console.print(
            f"  [red]Regression[/red] {alert.date:%Y-%m-%d %H:%M}: "
            f"{alert.from_density:.2f} -> {alert.to_density:.2f} ({alert.delta:+.2f})"
            f"  [dim]{alert.fingerprint}[/dim]"
        )

    console.print()
