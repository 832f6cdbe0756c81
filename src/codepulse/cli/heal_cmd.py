"""codepulse heal commands."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from codepulse.core.config import CodePulseConfig, get_state_dir
from codepulse.core.errors import (
    FixNotFound,
    InvalidConfig,
    InvalidTransition,
    RecordStoreFailure,
)
from codepulse.core.models import FixCandidate, ScanResult
from codepulse.core.output import console, format_candidate, print_heal_stats
from codepulse.heal.audit import HealAuditLog
from codepulse.heal.controller import SelfHealController
from codepulse.heal.store import SQLiteFixStore

FIXES_DIRNAME = "fixes"


def fix_exporter(project_path: Path):
    """Apply effect that drops the fix request where a coding agent can pick it up."""
    fixes_dir = get_state_dir(project_path) / FIXES_DIRNAME

    def export(candidate: FixCandidate) -> None:
        fixes_dir.mkdir(exist_ok=True)
        (fixes_dir / f"{candidate.id}.md").write_text(candidate.fix_prompt, encoding="utf-8")

    return export


def build_controller(project_path: Path, config: CodePulseConfig) -> SelfHealController:
    """Controller over the project's store, using saved heal settings when there are any."""
    store = SQLiteFixStore(project_path, encrypt=config.store.encrypt_payloads)
    heal_config = store.load_config() or config.heal
    return SelfHealController(
        store,
        heal_config,
        apply_effect=fix_exporter(project_path),
        audit=HealAuditLog(project_path),
    )


def submit_issues(
    project_path: Path,
    config: CodePulseConfig,
    result: ScanResult,
    quiet: bool = False,
) -> None:
    """Hand a scan's issues to the self-heal controller and report what happened."""
    try:
        controller = build_controller(project_path, config)
        created = asyncio.run(_restore_and_detect(controller, result))
    except RecordStoreFailure as exc:
        console.print(f"\n  [red]Self-heal failed: {exc}[/red]")
        if exc.fix_ids:
            console.print(f"  [dim]Not tracked: {', '.join(exc.fix_ids)}[/dim]")
        sys.exit(1)

    if quiet:
        return
    applied = [c for c in created if c.status.is_applied]
    console.print(
        f"\n  [bold]Self-heal:[/bold] {len(created)} new fix candidate(s), "
        f"{len(applied)} auto-applied."
    )
    for candidate in created:
        console.print(format_candidate(candidate))
    console.print()


async def _restore_and_detect(controller: SelfHealController, result: ScanResult):
    await controller.restore()
    return await controller.detect_issues(result.issues)


def _controller() -> SelfHealController:
    from codepulse.cli.scan_cmd import load_project_config

    project_path = Path.cwd()
    try:
        controller = build_controller(project_path, load_project_config(project_path))
        asyncio.run(controller.restore())
    except RecordStoreFailure as exc:
        console.print(f"\n  [red]Cannot open fix store: {exc}[/red]\n")
        sys.exit(1)
    return controller


def _save_settings(controller: SelfHealController) -> None:
    try:
        controller.store.save_config(controller.config)
    except RecordStoreFailure as exc:
        console.print(f"  [red]Settings not saved: {exc}[/red]")
        sys.exit(1)


@click.group()
def heal():
    """Self-heal loop: review, apply and reject tracked fixes."""
    pass


@heal.command()
def stats():
    """Show aggregate self-heal statistics."""
    controller = _controller()
    try:
        heal_stats = asyncio.run(controller.fetch_stats())
    except RecordStoreFailure as exc:
        console.print(f"\n  [red]Cannot load statistics: {exc}[/red]\n")
        sys.exit(1)
    config = controller.config
    print_heal_stats(heal_stats, config.enabled, config.auto_apply_threshold)


@heal.command(name="list")
@click.option("--pending", "pending_only", is_flag=True, help="Only show fixes awaiting a decision")
def list_fixes(pending_only: bool):
    """List tracked fix candidates."""
    controller = _controller()
    candidates = controller.pending if pending_only else controller.candidates
    if not candidates:
        console.print("\n  No fix candidates tracked. Run `codepulse scan --heal` first.\n")
        return
    console.print()
    for candidate in candidates:
        console.print(format_candidate(candidate))
    console.print()


@heal.command()
@click.argument("fix_id")
def show(fix_id: str):
    """Print the fix request for FIX_ID."""
    controller = _controller()
    try:
        candidate = controller.get(fix_id)
    except FixNotFound as exc:
        console.print(f"\n  [red]{exc}[/red]\n")
        sys.exit(1)
    click.echo(candidate.fix_prompt)


@heal.command()
@click.argument("fix_id")
def apply(fix_id: str):
    """Mark FIX_ID as applied and export its fix request."""
    controller = _controller()
    try:
        candidate = asyncio.run(controller.apply_fix(fix_id))
    except (FixNotFound, InvalidTransition, RecordStoreFailure) as exc:
        console.print(f"\n  [red]{exc}[/red]\n")
        sys.exit(1)
    console.print(f"\n  [green]✅ {candidate.id}[/green]  {candidate.status.value}\n")


@heal.command()
@click.argument("fix_id")
def reject(fix_id: str):
    """Reject FIX_ID so it is never applied."""
    controller = _controller()
    try:
        candidate = asyncio.run(controller.reject_fix(fix_id))
    except (FixNotFound, InvalidTransition, RecordStoreFailure) as exc:
        console.print(f"\n  [red]{exc}[/red]\n")
        sys.exit(1)
    console.print(f"\n  [yellow]{candidate.id}[/yellow]  rejected\n")


@heal.command()
def toggle():
    """Turn automatic application on or off."""
    controller = _controller()
    enabled = controller.toggle_enabled()
    _save_settings(controller)
    state = "[green]enabled[/green]" if enabled else "[dim]disabled[/dim]"
    console.print(f"\n  Auto-apply {state}\n")


@heal.command()
@click.argument("value", type=float)
def threshold(value: float):
    """Set the auto-apply confidence threshold (0.70 - 0.99)."""
    controller = _controller()
    try:
        config = controller.set_config(auto_apply_threshold=value)
    except InvalidConfig as exc:
        console.print(f"\n  [red]{exc}[/red]\n")
        sys.exit(2)
    _save_settings(controller)
    console.print(f"\n  Auto-apply threshold set to {config.auto_apply_threshold:.2f}\n")


@heal.command()
@click.option("--last", "last_n", type=int, default=20, help="Number of entries to show")
@click.option(
    "--action",
    type=click.Choice(["auto_apply", "manual_apply", "reject"]),
    default=None,
    help="Only show one kind of action",
)
def audit(last_n: int, action: str | None):
    """Show the self-heal audit log."""
    log = HealAuditLog(Path.cwd())
    entries = log.read_entries(last_n=last_n, action=action)
    if not entries:
        console.print("\n  No self-heal actions recorded yet.\n")
        return

    console.print("\n  [bold]Self-Heal Audit Log[/bold]\n")
    for entry in entries:
        result = entry["result"]
        color = "green" if result == "success" else "red"
        console.print(
            f"  {entry['timestamp']}  {entry['action']:<13} {entry['fix_id']}  "
            f"[dim]{entry['path']}[/dim]  {entry['confidence']}  [{color}]{result}[/{color}]"
        )
    console.print()
