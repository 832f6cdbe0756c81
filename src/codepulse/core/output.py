"""Rich terminal formatting for CodePulse output."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from codepulse.core.models import (
    Category,
    FixCandidate,
    FixStatus,
    HealStats,
    Issue,
    ScanResult,
    Severity,
)

console = Console()
error_console = Console(stderr=True)


SEVERITY_ICONS = {
    Severity.CRITICAL: "[red bold]●[/red bold]",
    Severity.HIGH: "[red]●[/red]",
    Severity.MEDIUM: "[yellow]●[/yellow]",
    Severity.LOW: "[blue]●[/blue]",
}

STATUS_COLORS = {
    FixStatus.PROPOSED: "dim",
    FixStatus.GENERATED: "cyan",
    FixStatus.AUTO_APPLIED: "green",
    FixStatus.APPLIED_MANUALLY: "green",
    FixStatus.REJECTED: "red",
}

CATEGORY_LABELS = {
    Category.CORE: "Core",
    Category.DOMAIN_A: "Domain A",
    Category.DOMAIN_B: "Domain B",
    Category.UI: "UI",
    Category.UTILITY: "Utility",
    Category.TYPE_DEFS: "Type defs",
    Category.HOOKS: "Hooks",
    Category.STORES: "Stores",
    Category.PAGES: "Pages",
}


def score_color(score: int) -> str:
    """Return color name based on a 0-100 score."""
    if score >= 80:
        return "green"
    elif score >= 60:
        return "yellow"
    return "red"


def density_color(density: float) -> str:
    if density >= 0.5:
        return "green"
    elif density >= 0.3:
        return "yellow"
    return "red"


def progress_bar(fraction: float, width: int = 10, color: str | None = None) -> str:
    """Create a text-based bar for a value in [0, 1]."""
    filled = round(max(0.0, min(1.0, fraction)) * width)
    empty = width - filled
    color = color or density_color(fraction)
    return f"[{color}]{'█' * filled}{'░' * empty}[/{color}]"


def format_issue(issue: Issue) -> str:
    """Format a single issue for terminal output."""
    icon = SEVERITY_ICONS.get(issue.severity, "●")
    location = f"  [dim]{issue.subject_path}[/dim]" if issue.subject_path else ""
    return (
        f"  {icon} {issue.title}{location}\n"
        f"     {issue.remediation}  [dim]({issue.impact_summary})[/dim]\n"
        f"     Prompt: codepulse prompt {issue.id}"
    )


def print_scan_result(result: ScanResult, top_modules: int = 10) -> None:
    """Print the scan report card to terminal."""
    density = result.aggregate_pattern_density
    color = density_color(density)

    lines = []
    lines.append("")
    lines.append(f"  Fingerprint:  [bold]{result.fingerprint}[/bold]")
    lines.append(f"  Archetype:    [bold]{result.archetype}[/bold]  [dim]{result.archetype_description}[/dim]")
    lines.append(f"  Density:      {progress_bar(density)}  [{color}]{density:.0%}[/{color}]")
    if result.prediction is not None:
        lines.append(
            f"  Prediction:   {result.prediction.outcome} "
            f"({result.prediction.confidence:.0%} confidence)"
        )
    lines.append("")

    for category, share in result.category_profile.items():
        if share <= 0:
            continue
        label = CATEGORY_LABELS[category]
        lines.append(f"  {label:<12} {progress_bar(share, color='cyan')}  {share:.0%}")
    lines.append("")

    for module in result.modules[:top_modules]:
        lines.append(
            f"  {module.path:<48} {module.category.value:<9} "
            f"{module.lines_of_code:>5} loc  {module.complexity.value:<8} "
            f"[{density_color(module.pattern_density)}]{module.pattern_density:.2f}"
            f"[/{density_color(module.pattern_density)}]"
        )
    if result.module_count > top_modules:
        lines.append(f"  [dim]... {result.module_count - top_modules} more modules[/dim]")
    lines.append("")

    if result.issues:
        for issue in result.issues:
            lines.append(format_issue(issue))
            lines.append("")
    else:
        lines.append("  [green]No issues detected.[/green]")
        lines.append("")

    lines.append(
        f"  {result.count_by_severity(Severity.CRITICAL)} critical | "
        f"{result.count_by_severity(Severity.HIGH)} high | "
        f"{result.count_by_severity(Severity.MEDIUM)} medium | "
        f"{result.count_by_severity(Severity.LOW)} low"
    )
    lines.append("")
    lines.append(
        f"  {result.total_lines:,} lines | "
        f"{result.module_count} modules | "
        f"{len(result.skipped_paths)} unreadable"
    )

    console.print(Panel(
        "\n".join(lines),
        title=f"[bold]CodePulse Scan  v{result.version}[/bold]",
        border_style=color,
        padding=(0, 1),
    ))


def format_candidate(candidate: FixCandidate) -> str:
    color = STATUS_COLORS[candidate.status]
    icon = SEVERITY_ICONS.get(candidate.severity, "●")
    location = f"  [dim]{candidate.subject_path}[/dim]" if candidate.subject_path else ""
    return (
        f"  {icon} [{color}]{candidate.status.value:<15}[/{color}] "
        f"{candidate.confidence:.0%}  {candidate.id}{location}"
    )


def print_heal_stats(stats: HealStats, enabled: bool, threshold: float) -> None:
    """Print the self-heal summary panel."""
    color = score_color(stats.health_score)
    state = "[green]enabled[/green]" if enabled else "[dim]disabled[/dim]"

    lines = []
    lines.append("")
    lines.append(f"  Health Score:  [{color}]{stats.health_score}/100[/{color}]")
    lines.append(f"  Auto-apply:    {state}  (threshold {threshold:.2f})")
    lines.append("")
    lines.append(f"  Tracked issues      {stats.total_issues}")
    lines.append(f"  Unresolved          {stats.unresolved_issues}")
    lines.append(f"  Critical open       {stats.critical_issues}")
    lines.append(f"  Pending fixes       {stats.pending_fixes}")
    lines.append(f"  Applied fixes       {stats.applied_fixes}")
    lines.append(f"  High confidence     {stats.high_confidence_fixes}")
    lines.append(f"  Rejected            {stats.rejected_fixes}")

    if stats.recent_runs:
        lines.append("")
        lines.append("  [bold]Recent runs[/bold]")
        for run in stats.recent_runs[:5]:
            lines.append(
                f"  {run.started_at:%Y-%m-%d %H:%M}  {run.issues_detected} issues, "
                f"{run.candidates_created} new, {run.auto_applied} auto-applied  [dim]{run.status}[/dim]"
            )

    console.print(Panel(
        "\n".join(lines),
        title="[bold]CodePulse Self-Heal[/bold]",
        border_style=color,
        padding=(0, 1),
    ))


def get_progress() -> Progress:
    """Create a progress instance for scanning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
    )
