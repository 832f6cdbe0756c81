"""Base class for all issue detection rules."""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from typing import Sequence

from codepulse.core.config import DetectConfig
from codepulse.core.models import Issue, IssueType, ModuleRecord, Severity


class BaseCheck(ABC):
    """Abstract base class for detection rules.

    Each concrete rule defines:
      - check_id   : short identifier used in logs
      - issue_type : the IssueType it emits
      - severity   : default severity
      - description: what the rule looks for

    ``run`` receives the whole sorted module collection and returns at most
    ``limit`` issues. Prompts are attached later by the detector.
    """

    check_id: str = ""
    issue_type: IssueType = IssueType.REFACTOR_NEEDED
    severity: Severity = Severity.LOW
    description: str = ""

    def __init__(self, config: DetectConfig | None = None):
        self.config = config or DetectConfig()

    @property
    def limit(self) -> int:
        return 1

    @abstractmethod
    def run(self, modules: Sequence[ModuleRecord]) -> list[Issue]:
        """Evaluate the rule over one scan's modules."""
        ...

    def _make_issue(
        self,
        *,
        title: str,
        description: str,
        remediation: str,
        impact: str,
        subject_path: str | None = None,
        suffix: str | None = None,
        severity: Severity | None = None,
        metric: float | None = None,
    ) -> Issue:
        """Helper to create an Issue with a stable id and this rule's defaults."""
        return Issue(
            id=make_issue_id(self.issue_type, subject_path or suffix or self.check_id),
            type=self.issue_type,
            severity=severity or self.severity,
            subject_path=subject_path,
            title=title,
            description=description,
            remediation=remediation,
            impact_summary=impact,
            metric=metric,
        )


def make_issue_id(issue_type: IssueType, subject: str) -> str:
    return f"{issue_type.value}-{subject}"


def file_name(path: str) -> str:
    return posixpath.basename(path)
