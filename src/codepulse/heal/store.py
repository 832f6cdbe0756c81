"""SQLite record store for fix candidates, heal runs and heal settings.

The database lives at ``{project_root}/.codepulse/heal.db``. Fix payloads
can optionally be Fernet-encrypted before they hit disk. Every database
error surfaces as :class:`RecordStoreFailure` so callers never see raw
``sqlite3`` exceptions.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Protocol

from cryptography.fernet import InvalidToken

from codepulse.core.config import HealConfig, get_state_dir
from codepulse.core.crypto import PayloadCipher
from codepulse.core.errors import InvalidConfig, RecordStoreFailure
from codepulse.core.models import FixCandidate, FixStatus, HealRun, IssueType, Severity

logger = logging.getLogger(__name__)

DB_FILENAME = "heal.db"

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS fix_candidates (
    id            TEXT PRIMARY KEY,
    subject_path  TEXT,
    confidence    REAL NOT NULL,
    status        TEXT NOT NULL,
    issue_type    TEXT NOT NULL,
    severity      TEXT NOT NULL,
    title         TEXT NOT NULL DEFAULT '',
    payload       BLOB,
    created_at    TEXT NOT NULL,
    applied_at    TEXT
);

CREATE TABLE IF NOT EXISTS heal_runs (
    id                 TEXT PRIMARY KEY,
    started_at         TEXT NOT NULL,
    issues_detected    INTEGER NOT NULL DEFAULT 0,
    candidates_created INTEGER NOT NULL DEFAULT 0,
    auto_applied       INTEGER NOT NULL DEFAULT 0,
    status             TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS settings (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_candidates_status ON fix_candidates(status);
CREATE INDEX IF NOT EXISTS idx_runs_started ON heal_runs(started_at);
"""


class FixStore(Protocol):
    """Record store consumed by the self-heal controller."""

    def insert_candidate(self, candidate: FixCandidate) -> None: ...

    def update_candidate(self, candidate: FixCandidate) -> None: ...

    def get_candidate(self, fix_id: str) -> FixCandidate | None: ...

    def list_candidates(self) -> list[FixCandidate]: ...

    def record_run(self, run: HealRun) -> None: ...

    def finish_run(self, run: HealRun) -> None: ...

    def list_runs(self, limit: int = 10) -> list[HealRun]: ...

    def save_config(self, config: HealConfig) -> None: ...

    def load_config(self) -> HealConfig | None: ...


class SQLiteFixStore:
    """Thread-safe SQLite implementation of :class:`FixStore`.

    Usage::

        store = SQLiteFixStore(project_path)
        store.insert_candidate(candidate)
        pending = [c for c in store.list_candidates() if c.status.is_pending]
    """

    def __init__(
        self,
        project_path: Path | None = None,
        encrypt: bool = False,
        db_path: Path | None = None,
    ) -> None:
        state_dir = get_state_dir(project_path)
        self._db_path = db_path or state_dir / DB_FILENAME
        self._cipher = PayloadCipher(state_dir) if encrypt else None
        self._lock = threading.Lock()
        with self._connect() as conn:
            conn.executescript(_SCHEMA_SQL)

    @property
    def path(self) -> Path:
        return self._db_path

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=10)
        except sqlite3.Error as exc:
            raise RecordStoreFailure(f"Cannot open record store at {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RecordStoreFailure(f"Record store operation failed: {exc}") from exc
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Payload helpers
    # ------------------------------------------------------------------

    def _encode(self, text: str) -> bytes:
        if self._cipher is not None:
            return self._cipher.encrypt(text)
        return text.encode("utf-8")

    def _decode(self, blob: bytes | None) -> str:
        if blob is None:
            return ""
        if self._cipher is not None:
            try:
                return self._cipher.decrypt(bytes(blob))
            except InvalidToken as exc:
                raise RecordStoreFailure("Stored fix payload cannot be decrypted with the project key") from exc
        return bytes(blob).decode("utf-8")

    def _row_to_candidate(self, row: sqlite3.Row) -> FixCandidate:
        return FixCandidate(
            id=row["id"],
            subject_path=row["subject_path"],
            confidence=row["confidence"],
            status=FixStatus(row["status"]),
            issue_type=IssueType(row["issue_type"]),
            severity=Severity(row["severity"]),
            title=row["title"],
            fix_prompt=self._decode(row["payload"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            applied_at=datetime.fromisoformat(row["applied_at"]) if row["applied_at"] else None,
        )

    # ------------------------------------------------------------------
    # Fix candidates
    # ------------------------------------------------------------------

    def insert_candidate(self, candidate: FixCandidate) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                "INSERT INTO fix_candidates "
                "(id, subject_path, confidence, status, issue_type, severity, title, payload, "
                "created_at, applied_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    candidate.id,
                    candidate.subject_path,
                    candidate.confidence,
                    candidate.status.value,
                    candidate.issue_type.value,
                    candidate.severity.value,
                    candidate.title,
                    self._encode(candidate.fix_prompt),
                    candidate.created_at.isoformat(),
                    candidate.applied_at.isoformat() if candidate.applied_at else None,
                ),
            )

    def update_candidate(self, candidate: FixCandidate) -> None:
        with self._lock, self._connect() as conn:
            cur = conn.execute(
                "UPDATE fix_candidates SET status = ?, confidence = ?, payload = ?, applied_at = ? "
                "WHERE id = ?",
                (
                    candidate.status.value,
                    candidate.confidence,
                    self._encode(candidate.fix_prompt),
                    candidate.applied_at.isoformat() if candidate.applied_at else None,
                    candidate.id,
                ),
            )
            if cur.rowcount == 0:
                raise RecordStoreFailure(f"No stored fix candidate {candidate.id}", [candidate.id])

    def get_candidate(self, fix_id: str) -> FixCandidate | None:
        with self._lock, self._connect() as conn:
            row = conn.execute("SELECT * FROM fix_candidates WHERE id = ?", (fix_id,)).fetchone()
        return self._row_to_candidate(row) if row else None

    def list_candidates(self) -> list[FixCandidate]:
        with self._lock, self._connect() as conn:
            rows = conn.execute("SELECT * FROM fix_candidates ORDER BY created_at ASC, id ASC").fetchall()
        return [self._row_to_candidate(r) for r in rows]

    # ------------------------------------------------------------------
    # Heal runs
    # ------------------------------------------------------------------

    def record_run(self, run: HealRun) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                "INSERT INTO heal_runs "
                "(id, started_at, issues_detected, candidates_created, auto_applied, status) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    run.id,
                    run.started_at.isoformat(),
                    run.issues_detected,
                    run.candidates_created,
                    run.auto_applied,
                    run.status,
                ),
            )

    def finish_run(self, run: HealRun) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                "UPDATE heal_runs SET candidates_created = ?, auto_applied = ?, status = ? "
                "WHERE id = ?",
                (run.candidates_created, run.auto_applied, run.status, run.id),
            )

    def list_runs(self, limit: int = 10) -> list[HealRun]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM heal_runs ORDER BY started_at DESC LIMIT ?", (limit,)
            ).fetchall()
        return [
            HealRun(
                id=r["id"],
                started_at=datetime.fromisoformat(r["started_at"]),
                issues_detected=r["issues_detected"],
                candidates_created=r["candidates_created"],
                auto_applied=r["auto_applied"],
                status=r["status"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def save_config(self, config: HealConfig) -> None:
        values: dict[str, Any] = {
            "enabled": "1" if config.enabled else "0",
            "auto_apply_threshold": repr(config.auto_apply_threshold),
        }
        with self._lock, self._connect() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                list(values.items()),
            )

    def load_config(self) -> HealConfig | None:
        """Saved heal settings, or None if none were ever saved or they are invalid."""
        with self._lock, self._connect() as conn:
            rows = conn.execute("SELECT key, value FROM settings").fetchall()
        values = {r["key"]: r["value"] for r in rows}
        if "auto_apply_threshold" not in values:
            return None
        try:
            return HealConfig(
                enabled=values.get("enabled") == "1",
                auto_apply_threshold=float(values["auto_apply_threshold"]),
            )
        except (InvalidConfig, ValueError):
            logger.warning("Ignoring invalid stored heal settings: %s", values)
            return None
