"""Saved result record shapes.

``StoredRecord`` is what a storage driver persists: plaintext index fields
plus sensitive fields that are already sealed. Drivers never see
plaintext sensitive data. ``ResultSummary`` and ``SavedResultRecord`` are
the decrypted views handed back to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import EligibilityResults, to_iso

# Fields that only ever reach storage through FieldCipher.encrypt_field
SENSITIVE_FIELDS = ("user_id", "user_name", "results", "profile_snapshot", "notes")


@dataclass
class StoredRecord:
    id: str
    evaluated_at: datetime
    qualified_count: int
    total_programs: int
    programs_evaluated: List[str]
    tags: List[str]
    created_at: datetime
    updated_at: datetime
    state: Optional[str] = None
    sealed_fields: Dict[str, str] = field(default_factory=dict)  # field name -> sealed token


@dataclass
class ResultSummary:
    """Index view of a saved result (no decryption needed)."""
    id: str
    evaluated_at: datetime
    qualified_count: int
    total_programs: int
    programs_evaluated: List[str]
    tags: List[str]
    created_at: datetime
    updated_at: datetime
    state: Optional[str] = None

    @classmethod
    def from_stored(cls, record: StoredRecord) -> "ResultSummary":
        return cls(
            id=record.id,
            evaluated_at=record.evaluated_at,
            qualified_count=record.qualified_count,
            total_programs=record.total_programs,
            programs_evaluated=list(record.programs_evaluated),
            tags=list(record.tags),
            created_at=record.created_at,
            updated_at=record.updated_at,
            state=record.state,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "evaluatedAt": to_iso(self.evaluated_at),
            "state": self.state,
            "qualifiedCount": self.qualified_count,
            "totalPrograms": self.total_programs,
            "programsEvaluated": list(self.programs_evaluated),
            "tags": list(self.tags),
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass
class SavedResultRecord:
    """Full decrypted record."""
    summary: ResultSummary
    results: EligibilityResults
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    profile_snapshot: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None

    @property
    def id(self) -> str:
        return self.summary.id
