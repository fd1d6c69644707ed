"""
Shared pytest fixtures for the Benefit Vault test suite.

Autouse fixtures below isolate tests from the live application data:
  - Audit logger -> temp directory  (no test events in the real audit log)
  - Settings     -> temp data dir   (no test vaults in ./data)
  - PBKDF2       -> low iterations  (600k per derivation is too slow for CI)
"""

from datetime import datetime, timezone

import pytest

PRODUCTION_ITERATIONS = 600_000
TEST_ITERATIONS = 1_000


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path, monkeypatch):
    """Point configuration at a temp directory for every test."""
    import benefit_vault.config as config_mod

    monkeypatch.setenv("BENEFIT_VAULT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("BENEFIT_VAULT_AUDIT_DIR", str(tmp_path / "audit_logs"))
    monkeypatch.delenv("BENEFIT_VAULT_DB_NAME", raising=False)
    monkeypatch.delenv("BENEFIT_VAULT_MIN_PASSWORD_LENGTH", raising=False)
    monkeypatch.setattr(config_mod, "load_dotenv", lambda *a, **kw: False)
    config_mod.reset_settings()

    yield

    config_mod.reset_settings()


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test."""
    import benefit_vault.core.audit_log as audit_mod

    # Reset the singleton so the next call to get_audit_logger() creates
    # a fresh instance pointing at the temp directory.
    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    orig_init = audit_mod.AuditLogger.__init__

    def patched_init(self, log_dir=None):
        orig_init(self, log_dir=log_dir or tmp_path / "audit_logs")

    monkeypatch.setattr(audit_mod.AuditLogger, "__init__", patched_init)

    yield

    if audit_mod._audit_logger is not None:
        audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _fast_key_derivation(monkeypatch):
    """Lower PBKDF2 iterations; derivation stays deterministic per run."""
    from benefit_vault.crypto.key_derivation import KeyDerivation

    monkeypatch.setattr(KeyDerivation, "PBKDF2_ITERATIONS", TEST_ITERATIONS)


# ── Sample data ─────────────────────────────────────────────────────


def make_program(program_id="snap", status="qualified", **overrides):
    from benefit_vault.models import (
        ConfidenceLevel,
        EligibilityStatus,
        EstimatedBenefit,
        Explanation,
        NextStep,
        ProgramEligibilityResult,
        RequiredDocument,
    )

    fields = dict(
        program_id=program_id,
        program_name=f"Program {program_id}",
        program_description="Helps households buy groceries",
        jurisdiction="US-GA",
        status=EligibilityStatus(status),
        confidence=ConfidenceLevel.HIGH,
        confidence_score=92,
        explanation=Explanation(
            reason="Household income is below the limit",
            details=["Income is 120% of poverty level"],
            rules_cited=["7 CFR 273.9"],
        ),
        evaluated_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        rules_version="2024.1",
        required_documents=[
            RequiredDocument(id="id", name="Photo ID", required=True, where="DMV"),
            RequiredDocument(id="lease", name="Lease", required=False),
        ],
        next_steps=[
            NextStep(step="Apply online", url="https://apply.example.gov/snap", priority="high"),
        ],
        estimated_benefit=EstimatedBenefit(amount=1234.56, frequency="monthly"),
    )
    fields.update(overrides)
    return ProgramEligibilityResult(**fields)


def make_results(evaluated_at=None, **partitions):
    from benefit_vault.models import EligibilityResults

    if not partitions:
        partitions = {
            "qualified": [make_program("snap")],
            "likely": [make_program("wic", "likely")],
            "maybe": [make_program("liheap", "maybe")],
            "not_qualified": [make_program("ssi", "not-qualified")],
        }
    total = sum(len(v) for v in partitions.values())
    return EligibilityResults(
        total_programs=total,
        evaluated_at=evaluated_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        **partitions,
    )


@pytest.fixture
def sample_results():
    return make_results()
