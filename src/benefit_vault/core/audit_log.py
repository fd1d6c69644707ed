# Benefit Vault - Audit Logging
#
# Append-only audit log for every security-relevant vault action:
# unlock attempts, saves, deletes, exports and imports.
# Events are structured JSON (structlog) written to a daily file.
#
# Details must never carry passwords, derived keys, or decrypted
# result content. Only ids, counts, and outcome codes are logged.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog


class EventType(str, Enum):
    """Types of audit events emitted by the vault subsystem."""

    # Vault lifecycle
    VAULT_CREATED = "vault.created"
    VAULT_UNLOCKED = "vault.unlocked"
    VAULT_LOCKED = "vault.locked"
    VAULT_UNLOCK_FAILED = "vault.unlock.failed"
    VAULT_ERROR = "vault.error"

    # Saved result records
    RESULT_SAVED = "result.saved"
    RESULT_ACCESSED = "result.accessed"
    RESULT_UPDATED = "result.updated"
    RESULT_DELETED = "result.deleted"

    # Portable export/import
    EXPORT_CREATED = "export.created"
    IMPORT_SUCCEEDED = "import.succeeded"
    IMPORT_FAILED = "import.failed"
    PRINT_RENDERED = "print.rendered"

    # System
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


class EventSeverity(str, Enum):
    """
    Severity levels for audit events.

    - INFO: Normal activity (logged only)
    - INVESTIGATE: Something unusual, e.g. a rejected import
    - ALERT: Repeated failures, e.g. wrong vault password
    - CRITICAL: Storage or integrity failure
    """
    INFO = "info"
    INVESTIGATE = "investigate"
    ALERT = "alert"
    CRITICAL = "critical"


class AuditLogger:
    """
    Append-only audit logger for vault events.

    Features:
    - Structured JSON logging via structlog
    - Automatic timestamp and event ID
    - Local user context capture (OS user, hostname)
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs. Defaults to the configured
                     audit directory (BENEFIT_VAULT_AUDIT_DIR).
        """
        if log_dir is None:
            from ..config import get_settings
            log_dir = get_settings().audit_log_dir
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._setup_file_handler()
        self.logger = structlog.get_logger("benefit_vault.audit")

    def _setup_file_handler(self):
        """Attach a daily audit file handler to the audit logger."""
        today = datetime.now().strftime("%Y-%m-%d")
        self.log_file = self.log_dir / f"audit_{today}.log"

        file_handler = logging.FileHandler(self.log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))  # structlog formats

        audit_logger = logging.getLogger("benefit_vault.audit")
        audit_logger.addHandler(file_handler)
        audit_logger.setLevel(logging.INFO)
        self._file_handler = file_handler

    def close(self):
        """Detach and close the file handler."""
        audit_logger = logging.getLogger("benefit_vault.audit")
        audit_logger.removeHandler(self._file_handler)
        self._file_handler.close()

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log an audit event (append-only).

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (ids and counts only)
            user_context: User context; defaults to OS user and hostname

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }

        self.logger.info("audit_event", **event_data)
        return event_id

    def _get_default_user_context(self) -> Dict[str, Any]:
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def log_security_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Convenience function for logging audit events.

    Usage:
        log_security_event(
            EventType.RESULT_DELETED,
            EventSeverity.INFO,
            "Saved result deleted",
            details={"record_id": "9f1c..."}
        )
    """
    return get_audit_logger().log_event(event_type, severity, message, **kwargs)


def audit_best_effort(
    event_type: EventType,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    severity: EventSeverity = EventSeverity.INFO,
) -> None:
    """Audit an event without letting a logging failure abort the operation."""
    try:
        log_security_event(event_type, severity, message, details=details)
    except Exception:
        logging.getLogger(__name__).warning("Audit log failed: %s", message, exc_info=True)
