"""Audit log for self-heal actions.

Every fix that is applied (automatically or by hand) or rejected is
recorded to a local append-only log so operators can review what the
controller did and when.

Log location: ``.codepulse/heal_audit.log``

Format (pipe-delimited, one line per action)::

    timestamp | action | fix_id | path | confidence | result
"""

from __future__ import annotations

import fcntl
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

from codepulse.core.config import get_state_dir

logger = logging.getLogger(__name__)

_LOG_FILENAME = "heal_audit.log"

_HEADER = (
    "# CodePulse Self-Heal Audit Log\n"
    "# Format: timestamp | action | fix_id | path | confidence | result\n"
    "#\n"
)

_FIELDS = ("timestamp", "action", "fix_id", "path", "confidence", "result")


class HealAuditLog:
    """Append-only audit log for heal actions.

    Writes are serialised through a lock *and* an ``fcntl`` advisory lock so
    that two processes sharing a project directory will not interleave lines.
    """

    def __init__(self, project_path: Path | None = None) -> None:
        self._path = get_state_dir(project_path) / _LOG_FILENAME
        self._lock = threading.Lock()
        self._ensure_header()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(
        self,
        *,
        action: str,
        fix_id: str,
        path: str | None,
        confidence: float,
        result: str,
    ) -> None:
        """Append a single action record to the log.

        Parameters
        ----------
        action:
            ``"auto_apply"``, ``"manual_apply"`` or ``"reject"``.
        fix_id:
            Id of the fix candidate (equal to the issue id).
        path:
            Subject module path, if the issue has one.
        confidence:
            Candidate confidence in ``[0, 1]``.
        result:
            ``"success"`` or ``"failure: <detail>"``.
        """
        ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        line = " | ".join(
            [
                ts,
                _sanitise(action),
                _sanitise(fix_id),
                _sanitise(path or "-"),
                f"{confidence:.2f}",
                _sanitise(result),
            ]
        )
        self._append(line + "\n")

    def read_entries(self, last_n: int = 50, action: str | None = None) -> list[dict[str, str]]:
        """Parse the last *n* entries (optionally of one *action*) into dicts keyed by field name."""
        with self._lock:
            if not self._path.exists():
                return []
            text = self._path.read_text(encoding="utf-8")

        lines = [ln for ln in text.splitlines() if ln.strip() and not ln.startswith("#")]
        entries: list[dict[str, str]] = []
        for ln in lines:
            parts = [p.strip() for p in ln.split("|")]
            if len(parts) < len(_FIELDS):
                continue
            entry = dict(zip(_FIELDS, parts))
            if action is None or entry["action"] == action:
                entries.append(entry)
        return entries[-last_n:]

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_header(self) -> None:
        if not self._path.exists():
            self._path.write_text(_HEADER, encoding="utf-8")

    def _append(self, text: str) -> None:
        with self._lock, open(self._path, "a", encoding="utf-8") as fh:
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
            except OSError as exc:
                logger.debug("Audit log lock unavailable, appending unlocked: %s", exc)
            fh.write(text)
            fh.flush()
            # Closing the file releases the flock.


def _sanitise(value: str) -> str:
    """Replace pipes and newlines so they don't break the log format."""
    return value.replace("|", "/").replace("\n", " ").replace("\r", "")
