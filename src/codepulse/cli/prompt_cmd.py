"""codepulse prompt command."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from codepulse.cli.scan_cmd import load_project_config, run_scan
from codepulse.core.output import console


@click.command()
@click.argument("issue_id")
@click.argument(
    "target",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
def prompt(issue_id: str, target: Path):
    """Print the remediation prompt for ISSUE_ID.

    Rescans TARGET (default: current directory) so the prompt reflects the
    current code. Issue ids are shown in the `codepulse scan` report.
    """
    project_path = target.resolve()
    config = load_project_config(project_path)
    result = run_scan(project_path, config, show_progress=False)

    issue = result.issue(issue_id)
    if issue is None:
        console.print(f"\n  [red]No issue {issue_id!r} in the current scan.[/red]")
        if result.issues:
            console.print("  Known issues:")
            for known in result.issues:
                console.print(f"    {known.id}")
        console.print()
        sys.exit(1)

    click.echo(issue.remediation_prompt)
