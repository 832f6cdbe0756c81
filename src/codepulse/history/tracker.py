"""Scan history tracking."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from codepulse.core.config import get_state_dir
from codepulse.core.errors import RecordStoreFailure
from codepulse.core.models import ScanResult, Severity

DB_FILENAME = "history.db"

# Aggregate density drop between consecutive scans that counts as a regression.
REGRESSION_DELTA = 0.05


@dataclass
class HistoryEntry:
    """A single scan history entry."""

    scanned_at: datetime
    fingerprint: str
    version: int
    archetype: str
    module_count: int = 0
    total_lines: int = 0
    aggregate_density: float = 0.0
    critical_issues: int = 0
    high_issues: int = 0
    medium_issues: int = 0
    low_issues: int = 0

    @property
    def total_issues(self) -> int:
        return self.critical_issues + self.high_issues + self.medium_issues + self.low_issues


@dataclass
class RegressionAlert:
    """Alert for a significant pattern density drop."""

    from_density: float
    to_density: float
    delta: float
    date: datetime
    fingerprint: str = ""


class HistoryTracker:
    """Stores and queries scan history over time."""

    def __init__(self, project_path: Path | None = None, db_path: Path | None = None):
        self.db_path = db_path or get_state_dir(project_path) / DB_FILENAME
        self._ensure_table()

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(str(self.db_path))
        except sqlite3.Error as exc:
            raise RecordStoreFailure(f"Cannot open scan history at {self.db_path}: {exc}") from exc

    def _ensure_table(self) -> None:
        """Create history table if it doesn't exist."""
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS scan_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    scanned_at TIMESTAMP NOT NULL,
                    fingerprint TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    archetype TEXT NOT NULL,
                    module_count INTEGER DEFAULT 0,
                    total_lines INTEGER DEFAULT 0,
                    aggregate_density REAL DEFAULT 0,
                    critical_issues INTEGER DEFAULT 0,
                    high_issues INTEGER DEFAULT 0,
                    medium_issues INTEGER DEFAULT 0,
                    low_issues INTEGER DEFAULT 0
                )
            """)
            conn.commit()
        except sqlite3.Error as exc:
            raise RecordStoreFailure(f"Cannot initialise scan history: {exc}") from exc
        finally:
            conn.close()

    def record(self, result: ScanResult) -> None:
        """Append a completed scan to history."""
        conn = self._connect()
        try:
            conn.execute(
                """INSERT INTO scan_history
                   (scanned_at, fingerprint, version, archetype, module_count, total_lines,
                    aggregate_density, critical_issues, high_issues, medium_issues, low_issues)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    result.scanned_at.isoformat(sep=" "),
                    result.fingerprint,
                    result.version,
                    result.archetype,
                    result.module_count,
                    result.total_lines,
                    result.aggregate_pattern_density,
                    result.count_by_severity(Severity.CRITICAL),
                    result.count_by_severity(Severity.HIGH),
                    result.count_by_severity(Severity.MEDIUM),
                    result.count_by_severity(Severity.LOW),
                ),
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise RecordStoreFailure(f"Cannot record scan {result.fingerprint}: {exc}") from exc
        finally:
            conn.close()

    def get_trend(self, days: int = 90) -> list[HistoryEntry]:
        """Get scan history for the last N days, oldest first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                """SELECT scanned_at, fingerprint, version, archetype, module_count,
                          total_lines, aggregate_density, critical_issues, high_issues,
                          medium_issues, low_issues
                   FROM scan_history
                   WHERE scanned_at >= datetime('now', 'localtime', ?)
                   ORDER BY scanned_at ASC, id ASC""",
                (f"-{days} days",),
            ).fetchall()
        except sqlite3.Error as exc:
            raise RecordStoreFailure(f"Cannot read scan history: {exc}") from exc
        finally:
            conn.close()

        return [
            HistoryEntry(
                scanned_at=datetime.fromisoformat(r[0]),
                fingerprint=r[1],
                version=r[2],
                archetype=r[3],
                module_count=r[4] or 0,
                total_lines=r[5] or 0,
                aggregate_density=r[6] or 0.0,
                critical_issues=r[7] or 0,
                high_issues=r[8] or 0,
                medium_issues=r[9] or 0,
                low_issues=r[10] or 0,
            )
            for r in rows
        ]

    def get_regression_alerts(self, days: int = 30) -> list[RegressionAlert]:
        """Detect significant aggregate density drops between consecutive scans."""
        entries = self.get_trend(days=days)
        alerts = []

        for prev, cur in zip(entries, entries[1:]):
            delta = round(cur.aggregate_density - prev.aggregate_density, 4)
            if delta < -REGRESSION_DELTA:
                alerts.append(RegressionAlert(
                    from_density=prev.aggregate_density,
                    to_density=cur.aggregate_density,
                    delta=delta,
                    date=cur.scanned_at,
                    fingerprint=cur.fingerprint,
                ))

        return alerts
