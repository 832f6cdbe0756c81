"""Remediation prompt rendering.

Every function here is a pure string builder over already-computed issue
data: nothing is re-measured. Three shapes are produced:

* a per-issue prompt, self-contained and ready to paste into an assistant,
* a bundle grouping every high/critical issue by type,
* a fix request, the payload attached to a self-heal fix candidate.
"""

from __future__ import annotations

import posixpath
from typing import Sequence

from codepulse.core.models import Issue, IssueType, Severity

IMPACT_PER_ISSUE = 8

GROUP_TITLES = {
    IssueType.LOW_DENSITY: "Low Pattern Density",
    IssueType.COMPLEXITY_HOTSPOT: "Complexity Hotspots",
    IssueType.MISSING_COVERAGE: "Missing Domain Coverage",
    IssueType.REFACTOR_NEEDED: "Structural Refactoring",
}

IMPLEMENTATION_INSTRUCTIONS = (
    "## Implementation Instructions\n"
    "\n"
    "1. Address the sections in the order listed; each one can be merged on its own.\n"
    "2. Preserve all existing functionality and public exports.\n"
    "3. Keep every new module under 200 lines.\n"
    "4. Add or update tests for each module you touch.\n"
    "5. Re-run the analysis afterwards to confirm the issues are resolved."
)


def _sibling(path: str, kind: str) -> str:
    """Companion file name for a module: its type definitions or its tests."""
    directory, name = posixpath.split(path)
    stem, dot, ext = name.partition(".")
    if ext == "py":
        companion = f"test_{stem}.py" if kind == "test" else f"{stem}_{kind}s.py"
    else:
        companion = f"{stem}.{kind}s.{ext}" if kind == "type" else f"{stem}.{kind}.{ext}"
        if not dot:
            companion = f"{stem}.{kind}"
    return posixpath.join(directory, companion) if directory else companion


def _percent(value: float | None) -> str:
    return f"{round((value or 0.0) * 100)}%"


def render_issue_prompt(issue: Issue) -> str:
    """A short, self-contained instruction for one issue."""
    path = issue.subject_path

    if issue.type == IssueType.LOW_DENSITY:
        return (
            f'In the file "{path}" (pattern density {_percent(issue.metric)}), raise its '
            f"integration with the core signature system.\n\n"
            f"{issue.remediation}\n\n"
            "Import the needed pieces from the core package rather than re-implementing "
            "them, and keep all existing exports working."
        )

    if issue.type == IssueType.COMPLEXITY_HOTSPOT:
        lines = int(issue.metric or 0)
        return (
            f'Refactor the file "{path}" ({lines} lines) to reduce complexity:\n\n'
            f'1. Extract all type definitions into "{_sibling(path or "", "type")}"\n\n'
            "2. Move helper and utility functions to a dedicated utils module in the "
            "same directory\n\n"
            f'3. Create a test file "{_sibling(path or "", "test")}" with unit tests for '
            "the main functions\n\n"
            "4. Split the remaining code into 3-4 focused modules, each under 200 lines\n\n"
            "Maintain all existing functionality and exports."
        )

    if issue.type == IssueType.MISSING_COVERAGE:
        return (
            f"{issue.title}.\n\n"
            f"{issue.description}\n\n"
            f"{issue.remediation}\n\n"
            "Extend the core signature types instead of duplicating them, and register "
            "the new adapter next to the existing ones."
        )

    return (
        f"{issue.title}: the measured ratio is {_percent(issue.metric)}.\n\n"
        f"{issue.remediation}\n\n"
        "Ensure backward compatibility with every existing domain adapter."
    )


def render_bundle(issues: Sequence[Issue]) -> str:
    """One prompt covering every high and critical issue, grouped by type."""
    bundled = [i for i in issues if i.severity in (Severity.HIGH, Severity.CRITICAL)]
    if not bundled:
        return "No high-priority issues detected. Nothing to bundle."

    groups: dict[IssueType, list[Issue]] = {}
    for issue in bundled:
        groups.setdefault(issue.type, []).append(issue)

    parts = [f"# Remediation Bundle: {len(bundled)} high-priority issues"]
    for number, (issue_type, members) in enumerate(groups.items(), start=1):
        section = [f"## {number}. {GROUP_TITLES[issue_type]} ({len(members)})"]
        for issue in members:
            section.append(f"### {issue.title}")
            if issue.subject_path:
                section.append(f"- File: {issue.subject_path}")
            section.append(f"- Problem: {issue.description}")
            fix_lines = issue.remediation.splitlines() or [""]
            section.append(f"- Fix: {fix_lines[0]}")
            section.extend(f"  {line}" for line in fix_lines[1:])
            section.append(f"- Impact: {issue.impact_summary}")
        parts.append("\n".join(section))

    parts.append(IMPLEMENTATION_INSTRUCTIONS)
    parts.append(
        f"Estimated aggregate impact: +{IMPACT_PER_ISSUE * len(bundled)}% "
        f"codebase health across {len(bundled)} issues"
    )
    return "\n\n".join(parts)


def render_fix_request(issue: Issue, confidence: float) -> str:
    """Fix payload attached to a self-heal candidate."""
    prompt = issue.remediation_prompt or render_issue_prompt(issue)
    return (
        "## Code Issue Fix Request\n\n"
        f"**File:** {issue.subject_path or '(project-wide)'}\n"
        f"**Issue:** {issue.title}. {issue.description}\n"
        f"**Confidence:** {confidence * 100:.0f}%\n\n"
        "### Instructions:\n"
        "1. Analyze the issue described above\n"
        "2. Generate a minimal, targeted fix\n"
        "3. Preserve all existing functionality\n"
        "4. Follow the conventions already used in the surrounding code\n"
        "5. Ensure the fix is production-ready\n\n"
        "### Suggested Remediation:\n"
        f"{prompt}\n\n"
        "### Expected Output:\n"
        "Provide ONLY the fixed code that should replace the problematic section.\n"
        "Include necessary imports if adding new dependencies.\n"
        "Do not include explanations - just the code."
    )
