"""Tests for the structured audit log."""

import json


class TestAuditLogger:

    def test_event_written_as_json_line(self, tmp_path):
        from benefit_vault.core.audit_log import AuditLogger, EventSeverity, EventType

        logger = AuditLogger(log_dir=tmp_path / "audit")
        try:
            event_id = logger.log_event(
                EventType.RESULT_SAVED,
                EventSeverity.INFO,
                "Eligibility results saved",
                details={"record_id": "abc"},
            )
        finally:
            logger.close()

        lines = logger.log_file.read_text(encoding="utf-8").strip().splitlines()
        entry = json.loads(lines[-1])
        assert entry["event_id"] == event_id
        assert entry["event_type"] == "result.saved"
        assert entry["severity"] == "info"
        assert entry["details"] == {"record_id": "abc"}
        assert "hostname" in entry["user_context"]

    def test_default_directory_comes_from_settings(self, tmp_path):
        from benefit_vault.core.audit_log import get_audit_logger

        assert get_audit_logger().log_dir == tmp_path / "audit_logs"

    def test_singleton(self):
        from benefit_vault.core.audit_log import get_audit_logger

        assert get_audit_logger() is get_audit_logger()

    def test_best_effort_never_raises(self, monkeypatch):
        import benefit_vault.core.audit_log as audit_mod

        def broken(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(audit_mod, "log_security_event", broken)
        audit_mod.audit_best_effort(audit_mod.EventType.VAULT_LOCKED, "Vault locked")
