"""codepulse scan command."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from codepulse.core.config import CodePulseConfig, ensure_gitignore, get_state_dir, load_config
from codepulse.core.errors import InvalidConfig, RecordStoreFailure
from codepulse.core.models import ProgressEvent, ScanResult, Severity
from codepulse.core.output import console, get_progress, print_scan_result
from codepulse.fix.prompts import render_bundle
from codepulse.history.tracker import HistoryTracker
from codepulse.scanner.engine import NullStageTimer, ScanOrchestrator, SleepStageTimer
from codepulse.scanner.source import DirectorySourceProvider

logger = logging.getLogger(__name__)


def load_project_config(project_path: Path) -> CodePulseConfig:
    """Load codepulse.toml, exiting with a message if it holds invalid values."""
    try:
        return load_config(project_path)
    except InvalidConfig as exc:
        console.print(f"\n  [red]Invalid configuration: {exc}[/red]\n")
        sys.exit(2)


def build_orchestrator(
    project_path: Path,
    config: CodePulseConfig,
    paced: bool = False,
) -> ScanOrchestrator:
    provider = DirectorySourceProvider(project_path, config.scan.extensions, config.exclude)
    if paced:
        timer = SleepStageTimer(config.scan.module_delay, config.scan.stage_delay)
    else:
        timer = NullStageTimer()
    return ScanOrchestrator(provider, config, timer=timer)


def run_scan(
    project_path: Path,
    config: CodePulseConfig,
    paced: bool = False,
    show_progress: bool = True,
) -> ScanResult:
    """Run one scan of *project_path*, optionally drawing a progress bar."""
    orchestrator = build_orchestrator(project_path, config, paced)
    if not show_progress:
        return asyncio.run(orchestrator.scan())

    with get_progress() as progress:
        task = progress.add_task("Scanning...", total=100)

        def on_progress(event: ProgressEvent) -> None:
            label = event.current_path or event.stage.value.capitalize()
            progress.update(task, completed=event.progress, description=label)

        return asyncio.run(orchestrator.scan(on_progress=on_progress))


@click.command()
@click.argument(
    "target",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--json", "as_json", is_flag=True, help="Print the scan result as JSON")
@click.option("--bundle", is_flag=True, help="Print one combined fix prompt for high-priority issues")
@click.option("--heal", "submit_heal", is_flag=True, help="Submit detected issues to the self-heal loop")
@click.option(
    "--fail-on",
    type=click.Choice([s.value for s in Severity]),
    default=None,
    help="Exit non-zero if any issue is at least this severe (for CI)",
)
@click.option("--paced", is_flag=True, help="Pace the pipeline with the configured delays")
def scan(target: Path, as_json: bool, bundle: bool, submit_heal: bool, fail_on: str | None, paced: bool):
    """Scan a source tree and report its pattern density, archetype and issues.

    TARGET is the project directory (default: current directory).
    """
    project_path = target.resolve()
    config = load_project_config(project_path)

    # First run detection
    state_dir = get_state_dir(project_path)
    first_run_marker = state_dir / ".initialized"
    if not first_run_marker.exists():
        ensure_gitignore(project_path)
        if not as_json:
            console.print("\n  [bold]CodePulse[/bold] first run detected.")
            console.print("  Created .codepulse/ directory and added it to .gitignore.\n")
        first_run_marker.touch()

    result = run_scan(project_path, config, paced=paced, show_progress=not as_json)

    if config.store.record_history:
        try:
            HistoryTracker(project_path).record(result)
        except RecordStoreFailure as exc:
            logger.warning("Scan history not recorded: %s", exc)

    if as_json:
        click.echo(result.to_json())
    else:
        print_scan_result(result)

    if bundle:
        click.echo(render_bundle(result.issues))

    if submit_heal:
        from codepulse.cli.heal_cmd import submit_issues
        submit_issues(project_path, config, result, quiet=as_json)

    if fail_on:
        floor = Severity(fail_on).rank
        failing = [i for i in result.issues if i.severity.rank >= floor]
        if failing:
            if not as_json:
                console.print(
                    f"\n  [red]{len(failing)} issue(s) at or above {fail_on} severity.[/red]"
                )
            sys.exit(1)
