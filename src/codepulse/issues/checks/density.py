"""Low pattern density rule."""

from __future__ import annotations

from typing import Sequence

from codepulse.core.models import Category, Issue, IssueType, ModuleRecord, Severity
from codepulse.issues.checks.base import BaseCheck, file_name

TARGET_DENSITY = 0.8

_UI_CATEGORIES = (Category.UI, Category.PAGES)


class LowDensityCheck(BaseCheck):
    """Non-core modules of meaningful size that barely use the domain vocabulary."""

    check_id = "LD-001"
    issue_type = IssueType.LOW_DENSITY
    severity = Severity.MEDIUM
    description = "Module pattern density below threshold"

    @property
    def limit(self) -> int:
        return self.config.max_low_density

    def run(self, modules: Sequence[ModuleRecord]) -> list[Issue]:
        cfg = self.config
        eligible = [
            m for m in modules
            if m.pattern_density < cfg.density_threshold
            and m.category != Category.CORE
            and m.lines_of_code > cfg.low_density_min_lines
        ]
        # Weakest first; sorted() is stable so ties keep collection order.
        eligible = sorted(eligible, key=lambda m: m.pattern_density)

        issues = []
        for module in eligible[: self.limit]:
            density_pct = round(module.pattern_density * 100)
            severity = (
                Severity.HIGH
                if module.pattern_density < cfg.severe_density_threshold
                else Severity.MEDIUM
            )
            if module.category in _UI_CATEGORIES:
                remediation = (
                    "Integrate signature display components. Add pattern visualization "
                    "overlays and archetype badges."
                )
            else:
                remediation = (
                    "Wrap core logic with signature extraction. Export temporal flow data "
                    "for cross-domain analysis."
                )
            gain = max(0, round((TARGET_DENSITY - module.pattern_density) * 100))
            issues.append(self._make_issue(
                title=f"Low Pattern Integration: {file_name(module.path)}",
                description=(
                    f"This module has only {density_pct}% pattern density across "
                    f"{module.lines_of_code} lines. It is not leveraging the core signature system."
                ),
                remediation=remediation,
                impact=f"+{gain}% pattern coverage improvement",
                subject_path=module.path,
                severity=severity,
                metric=module.pattern_density,
            ))
        return issues
