"""Issue detector: runs the rule set over one scan's modules."""

from __future__ import annotations

import dataclasses
import logging
from typing import Sequence

from codepulse.core.config import DetectConfig
from codepulse.core.models import Issue, ModuleRecord
from codepulse.fix.prompts import render_issue_prompt
from codepulse.issues.checks import ALL_CHECKS
from codepulse.issues.checks.base import BaseCheck

logger = logging.getLogger(__name__)


def sort_issues(issues: Sequence[Issue]) -> list[Issue]:
    """Most severe first; stable within a severity."""
    return sorted(issues, key=lambda i: -i.severity.rank)


class IssueDetector:
    """Deterministic, capped rule set producing ranked issues with prompts attached."""

    def __init__(
        self,
        config: DetectConfig | None = None,
        checks: Sequence[BaseCheck] | None = None,
    ):
        self.config = config or DetectConfig()
        if checks is None:
            checks = [check_cls(self.config) for check_cls in ALL_CHECKS]
        self.checks = list(checks)

    def detect(self, modules: Sequence[ModuleRecord]) -> list[Issue]:
        issues: list[Issue] = []
        for check in self.checks:
            found = check.run(modules)[: check.limit]
            logger.debug("%s produced %d issue(s)", check.check_id, len(found))
            issues.extend(
                dataclasses.replace(issue, remediation_prompt=render_issue_prompt(issue))
                for issue in found
            )
        return sort_issues(issues)
