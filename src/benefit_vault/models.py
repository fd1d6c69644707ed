"""Eligibility result data model.

These values are produced by the eligibility evaluation engine; the vault
only counts, sanitizes, serializes, and encrypts them. Wire form (JSON)
uses camelCase keys and ISO-8601 timestamps.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from .exceptions import ValidationError


class EligibilityStatus(str, Enum):
    QUALIFIED = "qualified"
    LIKELY = "likely"
    MAYBE = "maybe"
    UNLIKELY = "unlikely"
    NOT_QUALIFIED = "not-qualified"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize a datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def json_default(value: Any) -> Any:
    """``json.dumps`` hook for timestamps inside opaque snapshots."""
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def from_iso(value: Any) -> datetime:
    """Parse an ISO-8601 string (or epoch milliseconds) into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value)
    else:
        raise ValueError(f"Not a timestamp: {type(value).__name__}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class EstimatedBenefit:
    amount: float
    frequency: str  # monthly | annual | one-time
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"amount": self.amount, "frequency": self.frequency}
        if self.description is not None:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EstimatedBenefit":
        return cls(
            amount=data["amount"],
            frequency=data.get("frequency", ""),
            description=data.get("description"),
        )


@dataclass
class RequiredDocument:
    id: str
    name: str
    required: bool = True
    description: Optional[str] = None
    alternatives: List[str] = field(default_factory=list)
    where: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "required": self.required,
            "alternatives": list(self.alternatives),
        }
        if self.description is not None:
            d["description"] = self.description
        if self.where is not None:
            d["where"] = self.where
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequiredDocument":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            required=bool(data.get("required", True)),
            description=data.get("description"),
            alternatives=list(data.get("alternatives") or []),
            where=data.get("where"),
        )


@dataclass
class NextStep:
    step: str
    url: Optional[str] = None
    priority: Optional[str] = None  # high | medium | low
    estimated_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"step": self.step}
        if self.url is not None:
            d["url"] = self.url
        if self.priority is not None:
            d["priority"] = self.priority
        if self.estimated_time is not None:
            d["estimatedTime"] = self.estimated_time
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NextStep":
        return cls(
            step=data.get("step", ""),
            url=data.get("url"),
            priority=data.get("priority"),
            estimated_time=data.get("estimatedTime"),
        )


_EXPLANATION_KEYS = ("reason", "details", "rulesCited")


@dataclass
class Explanation:
    reason: str = ""
    details: List[str] = field(default_factory=list)
    rules_cited: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)  # engine-specific keys

    def to_dict(self) -> Dict[str, Any]:
        d = dict(self.extra)
        d.update({
            "reason": self.reason,
            "details": list(self.details),
            "rulesCited": list(self.rules_cited),
        })
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Explanation":
        return cls(
            reason=data.get("reason") or "",
            details=list(data.get("details") or []),
            rules_cited=list(data.get("rulesCited") or []),
            extra={k: v for k, v in data.items() if k not in _EXPLANATION_KEYS},
        )


@dataclass
class ProgramEligibilityResult:
    program_id: str
    program_name: str
    program_description: str
    jurisdiction: str
    status: EligibilityStatus
    confidence: ConfidenceLevel
    confidence_score: float
    explanation: Explanation
    evaluated_at: datetime
    rules_version: str
    required_documents: List[RequiredDocument] = field(default_factory=list)
    next_steps: List[NextStep] = field(default_factory=list)
    estimated_benefit: Optional[EstimatedBenefit] = None
    application_deadline: Optional[datetime] = None
    processing_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "programId": self.program_id,
            "programName": self.program_name,
            "programDescription": self.program_description,
            "jurisdiction": self.jurisdiction,
            "status": self.status.value,
            "confidence": self.confidence.value,
            "confidenceScore": self.confidence_score,
            "explanation": self.explanation.to_dict(),
            "requiredDocuments": [doc.to_dict() for doc in self.required_documents],
            "nextSteps": [step.to_dict() for step in self.next_steps],
            "evaluatedAt": to_iso(self.evaluated_at),
            "rulesVersion": self.rules_version,
        }
        if self.estimated_benefit is not None:
            d["estimatedBenefit"] = self.estimated_benefit.to_dict()
        if self.application_deadline is not None:
            d["applicationDeadline"] = to_iso(self.application_deadline)
        if self.processing_time is not None:
            d["processingTime"] = self.processing_time
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramEligibilityResult":
        benefit = data.get("estimatedBenefit")
        deadline = data.get("applicationDeadline")
        return cls(
            program_id=data["programId"],
            program_name=data.get("programName", ""),
            program_description=data.get("programDescription", ""),
            jurisdiction=data.get("jurisdiction", ""),
            status=EligibilityStatus(data["status"]),
            confidence=ConfidenceLevel(data.get("confidence", "low")),
            confidence_score=data.get("confidenceScore", 0),
            explanation=Explanation.from_dict(data.get("explanation") or {}),
            required_documents=[RequiredDocument.from_dict(d) for d in data.get("requiredDocuments") or []],
            next_steps=[NextStep.from_dict(s) for s in data.get("nextSteps") or []],
            estimated_benefit=EstimatedBenefit.from_dict(benefit) if benefit else None,
            evaluated_at=from_iso(data["evaluatedAt"]),
            rules_version=data.get("rulesVersion", ""),
            application_deadline=from_iso(deadline) if deadline else None,
            processing_time=data.get("processingTime"),
        )


@dataclass
class EligibilityResults:
    """Program results partitioned by eligibility outcome."""
    qualified: List[ProgramEligibilityResult] = field(default_factory=list)
    likely: List[ProgramEligibilityResult] = field(default_factory=list)
    maybe: List[ProgramEligibilityResult] = field(default_factory=list)
    not_qualified: List[ProgramEligibilityResult] = field(default_factory=list)
    total_programs: int = 0
    evaluated_at: datetime = field(default_factory=utcnow)

    def all_programs(self) -> Iterator[ProgramEligibilityResult]:
        for partition in (self.qualified, self.likely, self.maybe, self.not_qualified):
            yield from partition

    def program_ids(self) -> List[str]:
        return [p.program_id for p in self.all_programs()]

    def validate(self) -> None:
        """Every program must appear in exactly one partition."""
        seen = set()
        for program_id in self.program_ids():
            if program_id in seen:
                raise ValidationError(f"Program appears in more than one partition: {program_id}")
            seen.add(program_id)

    def map_programs(
        self, fn: Callable[[ProgramEligibilityResult], ProgramEligibilityResult]
    ) -> "EligibilityResults":
        """Return a copy with ``fn`` applied to every program."""
        return replace(
            self,
            qualified=[fn(p) for p in self.qualified],
            likely=[fn(p) for p in self.likely],
            maybe=[fn(p) for p in self.maybe],
            not_qualified=[fn(p) for p in self.not_qualified],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "qualified": [p.to_dict() for p in self.qualified],
            "likely": [p.to_dict() for p in self.likely],
            "maybe": [p.to_dict() for p in self.maybe],
            "notQualified": [p.to_dict() for p in self.not_qualified],
            "totalPrograms": self.total_programs,
            "evaluatedAt": to_iso(self.evaluated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EligibilityResults":
        def partition(key: str) -> List[ProgramEligibilityResult]:
            return [ProgramEligibilityResult.from_dict(p) for p in data.get(key) or []]

        return cls(
            qualified=partition("qualified"),
            likely=partition("likely"),
            maybe=partition("maybe"),
            not_qualified=partition("notQualified"),
            total_programs=int(data.get("totalPrograms", 0)),
            evaluated_at=from_iso(data["evaluatedAt"]),
        )
