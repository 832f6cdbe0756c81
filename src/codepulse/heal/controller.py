"""Self-heal controller: turns detected issues into tracked, persisted fix candidates."""

from __future__ import annotations

import dataclasses
import inspect
import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Sequence, Union

from codepulse.core.config import HealConfig
from codepulse.core.errors import FixNotFound, InvalidTransition, RecordStoreFailure
from codepulse.core.models import (
    FixCandidate,
    FixStatus,
    HealRun,
    HealStats,
    Issue,
    IssueType,
    Severity,
)
from codepulse.fix.prompts import render_fix_request
from codepulse.heal.audit import HealAuditLog
from codepulse.heal.store import FixStore

logger = logging.getLogger(__name__)

ApplyEffect = Callable[[FixCandidate], Union[Awaitable[None], None]]

HIGH_CONFIDENCE = 0.85

SEVERITY_CONFIDENCE = {
    Severity.CRITICAL: 0.95,
    Severity.HIGH: 0.88,
    Severity.MEDIUM: 0.75,
    Severity.LOW: 0.60,
}

# Structural rewrites are riskier than local integration work.
TYPE_ADJUSTMENT = {
    IssueType.LOW_DENSITY: 0.0,
    IssueType.COMPLEXITY_HOTSPOT: -0.03,
    IssueType.REFACTOR_NEEDED: -0.05,
    IssueType.MISSING_COVERAGE: -0.10,
}


def estimate_confidence(issue: Issue) -> float:
    """Heuristic confidence that an automated fix for *issue* is safe."""
    value = SEVERITY_CONFIDENCE[issue.severity] + TYPE_ADJUSTMENT[issue.type]
    return round(max(0.0, min(1.0, value)), 4)


def project_stats(candidates: Iterable[FixCandidate], runs: Sequence[HealRun] = ()) -> HealStats:
    """Aggregate counts over fix candidates. No side effects."""
    stats = HealStats(recent_runs=list(runs))
    for c in candidates:
        stats.total_issues += 1
        resolved = c.status.is_applied or c.status == FixStatus.REJECTED
        if not resolved:
            stats.unresolved_issues += 1
            if c.severity == Severity.CRITICAL:
                stats.critical_issues += 1
        if c.status.is_pending:
            stats.pending_fixes += 1
        if c.status.is_applied:
            stats.applied_fixes += 1
        if c.status == FixStatus.REJECTED:
            stats.rejected_fixes += 1
        if c.confidence >= HIGH_CONFIDENCE:
            stats.high_confidence_fixes += 1
    return stats


class SelfHealController:
    """Tracks fix candidates and auto-applies the confident ones.

    The controller owns one :class:`HealConfig`. It is replaced only through
    :meth:`set_config` / :meth:`toggle_enabled`, and every apply decision in a
    :meth:`detect_issues` batch reads one snapshot of it.
    """

    def __init__(
        self,
        store: FixStore,
        config: HealConfig | None = None,
        apply_effect: ApplyEffect | None = None,
        audit: HealAuditLog | None = None,
    ):
        self.store = store
        self._config = config or HealConfig()
        self._apply_effect = apply_effect
        self._audit = audit
        self._candidates: dict[str, FixCandidate] = {}

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> HealConfig:
        return dataclasses.replace(self._config)

    def set_config(
        self,
        enabled: bool | None = None,
        auto_apply_threshold: float | None = None,
    ) -> HealConfig:
        """Replace the config. An invalid threshold raises InvalidConfig and keeps the old one."""
        new_config = HealConfig(
            enabled=self._config.enabled if enabled is None else bool(enabled),
            auto_apply_threshold=(
                self._config.auto_apply_threshold
                if auto_apply_threshold is None
                else auto_apply_threshold
            ),
        )
        self._config = new_config
        return self.config

    def toggle_enabled(self) -> bool:
        """Flip ``enabled``. Pending candidates are not applied retroactively."""
        self._config = dataclasses.replace(self._config, enabled=not self._config.enabled)
        logger.info("Self-heal %s", "enabled" if self._config.enabled else "disabled")
        return self._config.enabled

    # ------------------------------------------------------------------
    # Tracked candidates
    # ------------------------------------------------------------------

    @property
    def candidates(self) -> list[FixCandidate]:
        return list(self._candidates.values())

    @property
    def pending(self) -> list[FixCandidate]:
        return [c for c in self._candidates.values() if c.status.is_pending]

    def get(self, fix_id: str) -> FixCandidate:
        try:
            return self._candidates[fix_id]
        except KeyError:
            raise FixNotFound(fix_id) from None

    async def restore(self) -> int:
        """Seed tracking from persisted candidates. Returns how many were added."""
        added = 0
        for candidate in self.store.list_candidates():
            if candidate.id not in self._candidates:
                self._candidates[candidate.id] = candidate
                added += 1
        return added

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def detect_issues(self, issues: Sequence[Issue]) -> list[FixCandidate]:
        """Track every new issue as a fix candidate, auto-applying where allowed.

        Candidates whose persistence fails are left untracked; once the whole
        batch has been processed a RecordStoreFailure naming them is raised.
        """
        snapshot = self.config
        run = HealRun(id=uuid.uuid4().hex, issues_detected=len(issues))
        failed: list[str] = []

        try:
            self.store.record_run(run)
            run_recorded = True
        except RecordStoreFailure as exc:
            logger.warning("Could not record heal run: %s", exc)
            run_recorded = False

        created: list[FixCandidate] = []
        for issue in issues:
            if issue.id in self._candidates:
                continue

            candidate = FixCandidate(
                id=issue.id,
                subject_path=issue.subject_path,
                confidence=estimate_confidence(issue),
                issue_type=issue.type,
                severity=issue.severity,
                title=issue.title,
            )
            candidate.fix_prompt = render_fix_request(issue, candidate.confidence)
            candidate.status = FixStatus.GENERATED

            try:
                self.store.insert_candidate(candidate)
            except RecordStoreFailure as exc:
                logger.warning("Could not persist fix candidate %s: %s", candidate.id, exc)
                failed.append(candidate.id)
                continue

            self._candidates[candidate.id] = candidate
            created.append(candidate)

            if snapshot.enabled and candidate.confidence >= snapshot.auto_apply_threshold:
                try:
                    await self._apply(candidate, FixStatus.AUTO_APPLIED, "auto_apply")
                except RecordStoreFailure:
                    failed.append(candidate.id)
                    continue
                except Exception as exc:
                    logger.warning("Auto-apply of %s failed: %s", candidate.id, exc, exc_info=True)
                    self._record("auto_apply", candidate, f"failure: {exc}")
                    continue
                run.auto_applied += 1

        run.candidates_created = len(created)
        run.status = "partial" if failed else "completed"
        if run_recorded:
            try:
                self.store.finish_run(run)
            except RecordStoreFailure as exc:
                logger.warning("Could not finish heal run %s: %s", run.id, exc)

        logger.info(
            "Heal run %s: %d issue(s), %d new candidate(s), %d auto-applied",
            run.id, run.issues_detected, run.candidates_created, run.auto_applied,
        )
        if failed:
            raise RecordStoreFailure(
                f"Failed to persist {len(failed)} fix candidate(s)", failed
            )
        return created

    async def apply_fix(self, fix_id: str) -> FixCandidate:
        """Apply a tracked candidate by hand. Already-applied candidates are returned as-is."""
        candidate = self.get(fix_id)
        if candidate.status.is_applied:
            return candidate
        if candidate.status == FixStatus.REJECTED:
            raise InvalidTransition(f"Fix {fix_id} was rejected and cannot be applied")
        await self._apply(candidate, FixStatus.APPLIED_MANUALLY, "manual_apply")
        return candidate

    async def reject_fix(self, fix_id: str) -> FixCandidate:
        candidate = self.get(fix_id)
        if candidate.status == FixStatus.REJECTED:
            return candidate
        if candidate.status.is_applied:
            raise InvalidTransition(f"Fix {fix_id} is already applied and cannot be rejected")
        previous = candidate.status
        candidate.status = FixStatus.REJECTED
        try:
            self.store.update_candidate(candidate)
        except RecordStoreFailure:
            candidate.status = previous
            raise
        self._record("reject", candidate, "success")
        return candidate

    async def fetch_stats(self) -> HealStats:
        """Project aggregate counts from the store. Store failures propagate; tracking is untouched."""
        rows = self.store.list_candidates()
        runs = self.store.list_runs(limit=10)
        return project_stats(rows, runs)

    def local_stats(self) -> HealStats:
        """Aggregate counts over the in-memory tracked collection."""
        return project_stats(self._candidates.values())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _apply(self, candidate: FixCandidate, status: FixStatus, action: str) -> None:
        """Run the apply effect, then persist *status*.

        The effect runs first, so when the store update fails and
        RecordStoreFailure is raised the effect has already happened. Only the
        in-memory status is rolled back, and the audit log records the failure.
        """
        if self._apply_effect is not None:
            outcome = self._apply_effect(candidate)
            if inspect.isawaitable(outcome):
                await outcome

        previous = (candidate.status, candidate.applied_at)
        candidate.status = status
        candidate.applied_at = datetime.now()
        try:
            self.store.update_candidate(candidate)
        except RecordStoreFailure as exc:
            candidate.status, candidate.applied_at = previous
            self._record(action, candidate, f"failure: {exc}")
            raise
        self._record(action, candidate, "success")

    def _record(self, action: str, candidate: FixCandidate, result: str) -> None:
        if self._audit is None:
            return
        self._audit.record(
            action=action,
            fix_id=candidate.id,
            path=candidate.subject_path,
            confidence=candidate.confidence,
            result=result,
        )
