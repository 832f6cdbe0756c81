"""Shared data models used across CodePulse modules."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class Category(enum.Enum):
    """Domain category of a module. Declaration order is the presentation priority."""

    CORE = "core"
    DOMAIN_A = "domainA"
    DOMAIN_B = "domainB"
    UI = "ui"
    UTILITY = "utility"
    TYPE_DEFS = "typeDefs"
    HOOKS = "hooks"
    STORES = "stores"
    PAGES = "pages"

    @property
    def priority(self) -> int:
        return list(Category).index(self)


class Complexity(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _COMPLEXITY_RANK[self]


class Severity(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_COMPLEXITY_RANK = {
    Complexity.LOW: 0,
    Complexity.MEDIUM: 1,
    Complexity.HIGH: 2,
    Complexity.CRITICAL: 3,
}

_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class IssueType(enum.Enum):
    LOW_DENSITY = "lowDensity"
    COMPLEXITY_HOTSPOT = "complexityHotspot"
    MISSING_COVERAGE = "missingCoverage"
    REFACTOR_NEEDED = "refactorNeeded"


class FixStatus(enum.Enum):
    PROPOSED = "proposed"
    GENERATED = "generated"
    AUTO_APPLIED = "autoApplied"
    APPLIED_MANUALLY = "appliedManually"
    REJECTED = "rejected"

    @property
    def is_applied(self) -> bool:
        return self in (FixStatus.AUTO_APPLIED, FixStatus.APPLIED_MANUALLY)

    @property
    def is_pending(self) -> bool:
        return self in (FixStatus.PROPOSED, FixStatus.GENERATED)


class ScanStage(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    EXTRACTING = "extracting"
    MATCHING = "matching"
    PREDICTING = "predicting"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ModuleRecord:
    """Metrics for one scanned source module."""

    path: str
    category: Category
    lines_of_code: int
    complexity: Complexity
    pattern_density: float
    description: str
    content_preview: str = ""
    has_superseding_modules: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "category": self.category.value,
            "linesOfCode": self.lines_of_code,
            "complexity": self.complexity.value,
            "patternDensity": self.pattern_density,
            "description": self.description,
            "contentPreview": self.content_preview,
            "hasSupersedingModules": self.has_superseding_modules,
        }


@dataclass(frozen=True)
class Issue:
    """An actionable problem derived from one scan's modules."""

    id: str
    type: IssueType
    severity: Severity
    title: str
    description: str
    remediation: str
    impact_summary: str
    remediation_prompt: str = ""
    subject_path: str | None = None
    metric: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "subjectPath": self.subject_path,
            "title": self.title,
            "description": self.description,
            "remediation": self.remediation,
            "impactSummary": self.impact_summary,
            "remediationPrompt": self.remediation_prompt,
        }


@dataclass(frozen=True)
class Prediction:
    """Outcome estimate produced alongside the archetype."""

    outcome: str
    confidence: float
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class ScanResult:
    """Complete, immutable result of one scan."""

    modules: tuple[ModuleRecord, ...]
    category_profile: dict[Category, float]
    aggregate_pattern_density: float
    archetype: str
    fingerprint: str
    issues: tuple[Issue, ...] = ()
    scanned_at: datetime = field(default_factory=datetime.now)
    version: int = 0
    archetype_description: str = ""
    prediction: Prediction | None = None
    total_lines: int = 0
    skipped_paths: tuple[str, ...] = ()

    @property
    def module_count(self) -> int:
        return len(self.modules)

    def module(self, path: str) -> ModuleRecord | None:
        return next((m for m in self.modules if m.path == path), None)

    def issue(self, issue_id: str) -> Issue | None:
        return next((i for i in self.issues if i.id == issue_id), None)

    def count_by_severity(self, severity: Severity) -> int:
        return sum(1 for i in self.issues if i.severity == severity)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready payload with stable camelCase field names."""
        return {
            "modules": [m.to_dict() for m in self.modules],
            "categoryProfile": {c.value: v for c, v in self.category_profile.items()},
            "aggregatePatternDensity": self.aggregate_pattern_density,
            "archetype": self.archetype,
            "archetypeDescription": self.archetype_description,
            "fingerprint": self.fingerprint,
            "version": self.version,
            "prediction": self.prediction.to_dict() if self.prediction else None,
            "issues": [i.to_dict() for i in self.issues],
            "totalLines": self.total_lines,
            "skippedPaths": list(self.skipped_paths),
            "scannedAt": self.scanned_at.isoformat(),
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass
class FixCandidate:
    """A tracked remediation proposal derived from one detected issue."""

    id: str
    subject_path: str | None
    confidence: float
    status: FixStatus = FixStatus.PROPOSED
    issue_type: IssueType = IssueType.REFACTOR_NEEDED
    severity: Severity = Severity.LOW
    title: str = ""
    fix_prompt: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    applied_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subjectPath": self.subject_path,
            "confidence": self.confidence,
            "status": self.status.value,
            "issueType": self.issue_type.value,
            "severity": self.severity.value,
            "title": self.title,
            "fixPrompt": self.fix_prompt,
            "createdAt": self.created_at.isoformat(),
            "appliedAt": self.applied_at.isoformat() if self.applied_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FixCandidate:
        applied = data.get("appliedAt")
        created = data.get("createdAt")
        return cls(
            id=data["id"],
            subject_path=data.get("subjectPath"),
            confidence=float(data.get("confidence", 0.0)),
            status=FixStatus(data.get("status", FixStatus.PROPOSED.value)),
            issue_type=IssueType(data.get("issueType", IssueType.REFACTOR_NEEDED.value)),
            severity=Severity(data.get("severity", Severity.LOW.value)),
            title=data.get("title", ""),
            fix_prompt=data.get("fixPrompt", ""),
            created_at=datetime.fromisoformat(created) if created else datetime.now(),
            applied_at=datetime.fromisoformat(applied) if applied else None,
        )


@dataclass
class HealRun:
    """One submission of an issue batch to the self-heal controller."""

    id: str
    started_at: datetime = field(default_factory=datetime.now)
    issues_detected: int = 0
    candidates_created: int = 0
    auto_applied: int = 0
    status: str = "analyzing"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "startedAt": self.started_at.isoformat(),
            "issuesDetected": self.issues_detected,
            "candidatesCreated": self.candidates_created,
            "autoApplied": self.auto_applied,
            "status": self.status,
        }


@dataclass
class HealStats:
    """Aggregate counts over the tracked fix candidates."""

    total_issues: int = 0
    unresolved_issues: int = 0
    critical_issues: int = 0
    pending_fixes: int = 0
    applied_fixes: int = 0
    high_confidence_fixes: int = 0
    rejected_fixes: int = 0
    recent_runs: list[HealRun] = field(default_factory=list)

    @property
    def health_score(self) -> int:
        return max(0, 100 - self.critical_issues * 20 - self.unresolved_issues * 2)


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification emitted by the scan orchestrator."""

    stage: ScanStage
    progress: float
    current_path: str | None = None
