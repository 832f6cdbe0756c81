"""Tests for the self-heal audit log."""

from __future__ import annotations

from pathlib import Path

import pytest

from codepulse.heal.audit import HealAuditLog, _sanitise


@pytest.fixture()
def audit_log(tmp_path: Path) -> HealAuditLog:
    return HealAuditLog(project_path=tmp_path)


class TestAuditLogInit:
    def test_creates_log_file_with_header(self, audit_log: HealAuditLog):
        assert audit_log.path.exists()
        content = audit_log.path.read_text(encoding="utf-8")
        assert content.startswith("# CodePulse Self-Heal Audit Log")

    def test_path_property(self, audit_log: HealAuditLog):
        assert audit_log.path.name == "heal_audit.log"
        assert audit_log.path.parent.name == ".codepulse"

    def test_existing_log_is_kept(self, tmp_path: Path):
        first = HealAuditLog(tmp_path)
        first.record(action="reject", fix_id="a", path=None, confidence=0.6, result="success")

        second = HealAuditLog(tmp_path)
        assert len(second.read_entries()) == 1


class TestAuditLogRecord:
    def test_record_and_read(self, audit_log: HealAuditLog):
        audit_log.record(
            action="auto_apply",
            fix_id="lowDensity-src/a.ts",
            path="src/a.ts",
            confidence=0.88,
            result="success",
        )

        [entry] = audit_log.read_entries()
        assert entry["action"] == "auto_apply"
        assert entry["fix_id"] == "lowDensity-src/a.ts"
        assert entry["path"] == "src/a.ts"
        assert entry["confidence"] == "0.88"
        assert entry["result"] == "success"
        assert entry["timestamp"]

    def test_project_wide_path_placeholder(self, audit_log: HealAuditLog):
        audit_log.record(action="reject", fix_id="x", path=None, confidence=0.6, result="success")
        assert audit_log.read_entries()[0]["path"] == "-"

    def test_last_n(self, audit_log: HealAuditLog):
        for i in range(5):
            audit_log.record(action="manual_apply", fix_id=f"fix-{i}", path=None, confidence=0.9, result="success")

        entries = audit_log.read_entries(last_n=2)
        assert [e["fix_id"] for e in entries] == ["fix-3", "fix-4"]

    def test_filter_by_action(self, audit_log: HealAuditLog):
        audit_log.record(action="auto_apply", fix_id="a", path=None, confidence=0.9, result="success")
        audit_log.record(action="reject", fix_id="b", path=None, confidence=0.6, result="success")
        audit_log.record(action="auto_apply", fix_id="c", path=None, confidence=0.9, result="success")

        assert [e["fix_id"] for e in audit_log.read_entries(action="auto_apply")] == ["a", "c"]
        assert [e["fix_id"] for e in audit_log.read_entries(last_n=1, action="auto_apply")] == ["c"]

    def test_pipes_in_values_do_not_break_format(self, audit_log: HealAuditLog):
        audit_log.record(
            action="auto_apply",
            fix_id="a",
            path="src/a.ts",
            confidence=0.9,
            result="failure: bad | worse\nline",
        )
        [entry] = audit_log.read_entries()
        assert entry["result"] == "failure: bad / worse line"


def test_sanitise():
    assert _sanitise("a|b\nc\r") == "a/b c"
