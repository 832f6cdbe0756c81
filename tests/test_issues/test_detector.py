"""Tests for the issue detector."""

from __future__ import annotations

from codepulse.core.config import DetectConfig
from codepulse.core.models import Category, Complexity, IssueType, ModuleRecord, Severity
from codepulse.issues.checks import CoreRatioCheck
from codepulse.issues.detector import IssueDetector, sort_issues


def _module(path: str, category: Category = Category.UTILITY, lines: int = 100,
            density: float = 0.5, complexity: Complexity = Complexity.LOW) -> ModuleRecord:
    return ModuleRecord(
        path=path,
        category=category,
        lines_of_code=lines,
        complexity=complexity,
        pattern_density=density,
        description="",
    )


def _large_project() -> list[ModuleRecord]:
    modules = [_module("src/core/a.ts", Category.CORE), _module("src/core/b.ts", Category.CORE)]
    modules += [_module(f"src/utils/sparse{i}.ts", density=0.05) for i in range(10)]
    modules += [
        _module(f"src/lib/huge{i}.ts", lines=600 + i, complexity=Complexity.CRITICAL)
        for i in range(5)
    ]
    modules += [_module(f"src/utils/fine{i}.ts") for i in range(23)]
    return modules


class TestIssueDetector:
    def test_caps_per_rule(self):
        issues = IssueDetector().detect(_large_project())
        by_type: dict[IssueType, int] = {}
        for issue in issues:
            by_type[issue.type] = by_type.get(issue.type, 0) + 1

        assert by_type[IssueType.LOW_DENSITY] == 3
        assert by_type[IssueType.COMPLEXITY_HOTSPOT] == 2
        assert by_type[IssueType.MISSING_COVERAGE] == 2
        assert by_type[IssueType.REFACTOR_NEEDED] == 1

    def test_sorted_by_severity(self):
        issues = IssueDetector().detect(_large_project())
        ranks = [i.severity.rank for i in issues]
        assert ranks == sorted(ranks, reverse=True)
        assert issues[-1].type == IssueType.REFACTOR_NEEDED

    def test_prompts_are_attached(self):
        issues = IssueDetector().detect(_large_project())
        assert all(issue.remediation_prompt for issue in issues)

    def test_deterministic(self):
        modules = _large_project()
        detector = IssueDetector()
        assert detector.detect(modules) == detector.detect(modules)

    def test_issue_ids_are_unique(self):
        issues = IssueDetector().detect(_large_project())
        assert len({i.id for i in issues}) == len(issues)

    def test_custom_rule_set(self):
        config = DetectConfig()
        detector = IssueDetector(config, checks=[CoreRatioCheck(config)])
        issues = detector.detect(_large_project())
        assert [i.type for i in issues] == [IssueType.REFACTOR_NEEDED]

    def test_empty_scan_has_no_issues(self):
        assert IssueDetector().detect([]) == []


def test_sort_issues_is_stable():
    from codepulse.core.models import Issue

    def issue(issue_id: str, severity: Severity) -> Issue:
        return Issue(issue_id, IssueType.LOW_DENSITY, severity, "", "", "", "")

    ordered = sort_issues([
        issue("a", Severity.LOW),
        issue("b", Severity.HIGH),
        issue("c", Severity.LOW),
        issue("d", Severity.CRITICAL),
        issue("e", Severity.HIGH),
    ])
    assert [i.id for i in ordered] == ["d", "b", "e", "a", "c"]
