"""Versioned export envelope: build and parse encrypted result packages.

Export:  results -> envelope (version, timestamp, sanitized text) -> JSON
         -> PBKDF2 key (fresh salt) -> AES-256-GCM -> {salt, encrypted}
Import:  {salt, encrypted} -> re-derive key from package salt -> open
         -> version gate -> sanitize again -> typed results

Sanitization runs on both paths: a forged package can carry hostile text
under a perfectly valid structure.
"""

import asyncio
import binascii
import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional, Union

from ..core.audit_log import EventSeverity, EventType, audit_best_effort
from ..crypto.cipher import AuthenticatedCipher, decode_bytes, encode_bytes
from ..crypto.key_derivation import KeyDerivation, SessionKey
from ..crypto.passphrase import validate_export_password
from ..exceptions import (
    DecryptionError,
    MalformedPackageError,
    UnsupportedVersionError,
    ValidationError,
)
from ..models import (
    EligibilityResults,
    EstimatedBenefit,
    Explanation,
    NextStep,
    ProgramEligibilityResult,
    RequiredDocument,
    from_iso,
    json_default,
    to_iso,
    utcnow,
)
from ..sanitizer import sanitize_text, sanitize_url

logger = logging.getLogger(__name__)

ENVELOPE_VERSION = "1.0.0"

Credential = Union[str, SessionKey]


# ── Data Model ───────────────────────────────────────────────────────


@dataclass
class ExportMetadata:
    user_name: Optional[str] = None
    state: Optional[str] = None
    notes: Optional[str] = None

    def sanitized(self) -> "ExportMetadata":
        return ExportMetadata(
            user_name=_clean_optional(self.user_name),
            state=_clean_optional(self.state),
            notes=_clean_optional(self.notes),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {"userName": self.user_name, "state": self.state, "notes": self.notes}
        return {k: v for k, v in d.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportMetadata":
        return cls(
            user_name=data.get("userName"),
            state=data.get("state"),
            notes=data.get("notes"),
        )


@dataclass
class ExportEnvelope:
    """The logical document inside an export package."""
    version: str
    exported_at: datetime
    results: EligibilityResults
    profile_snapshot: Optional[Dict[str, Any]] = None
    metadata: Optional[ExportMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "version": self.version,
            "exportedAt": to_iso(self.exported_at),
            "results": self.results.to_dict(),
        }
        if self.profile_snapshot is not None:
            d["profileSnapshot"] = self.profile_snapshot
        if self.metadata is not None:
            d["metadata"] = self.metadata.to_dict()
        return d


@dataclass(frozen=True)
class SealedPackage:
    """On-disk form: salt and ciphertext always travel together."""
    salt: bytes
    encrypted: str

    def to_dict(self) -> Dict[str, str]:
        return {"salt": encode_bytes(self.salt), "encrypted": self.encrypted}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "SealedPackage":
        if not isinstance(data, dict):
            raise MalformedPackageError()
        salt_b64 = data.get("salt")
        encrypted = data.get("encrypted")
        if not isinstance(salt_b64, str) or not salt_b64:
            raise MalformedPackageError()
        if not isinstance(encrypted, str) or not encrypted:
            raise MalformedPackageError()
        try:
            salt = decode_bytes(salt_b64)
        except (binascii.Error, ValueError) as e:
            raise MalformedPackageError() from e
        if len(salt) < KeyDerivation.MIN_SALT_LENGTH:
            raise MalformedPackageError()
        return cls(salt=salt, encrypted=encrypted)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "SealedPackage":
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            raise MalformedPackageError() from e
        return cls.from_dict(data)


# ── Sanitization ─────────────────────────────────────────────────────


def _clean_optional(value: Optional[str]) -> Optional[str]:
    return None if value is None else sanitize_text(value)


def _clean_extra(value: Any) -> Any:
    """Sanitize every string inside engine-specific explanation data."""
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, dict):
        return {k: _clean_extra(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_clean_extra(v) for v in value]
    return value


def sanitize_program(program: ProgramEligibilityResult) -> ProgramEligibilityResult:
    """Return a copy of a program result with every text field sanitized."""
    benefit = program.estimated_benefit
    if benefit is not None:
        benefit = EstimatedBenefit(
            amount=benefit.amount,
            frequency=sanitize_text(benefit.frequency),
            description=_clean_optional(benefit.description),
        )

    return replace(
        program,
        program_name=sanitize_text(program.program_name),
        program_description=sanitize_text(program.program_description),
        jurisdiction=sanitize_text(program.jurisdiction),
        explanation=Explanation(
            reason=sanitize_text(program.explanation.reason),
            details=[sanitize_text(d) for d in program.explanation.details],
            rules_cited=[sanitize_text(r) for r in program.explanation.rules_cited],
            extra=_clean_extra(program.explanation.extra),
        ),
        required_documents=[
            RequiredDocument(
                id=doc.id,
                name=sanitize_text(doc.name),
                required=doc.required,
                description=_clean_optional(doc.description),
                alternatives=[sanitize_text(a) for a in doc.alternatives],
                where=_clean_optional(doc.where),
            )
            for doc in program.required_documents
        ],
        next_steps=[
            NextStep(
                step=sanitize_text(step.step),
                url=sanitize_url(step.url) or None,
                priority=_clean_optional(step.priority),
                estimated_time=_clean_optional(step.estimated_time),
            )
            for step in program.next_steps
        ],
        estimated_benefit=benefit,
        processing_time=_clean_optional(program.processing_time),
    )


def sanitize_results(results: EligibilityResults) -> EligibilityResults:
    return results.map_programs(sanitize_program)


# ── Codec ────────────────────────────────────────────────────────────


class ExportEnvelopeCodec:
    """Builds and parses password-protected result packages.

    Args:
        min_password_length: Override of the configured password minimum
            (never below 8).
    """

    SUPPORTED_VERSION = ENVELOPE_VERSION

    def __init__(self, min_password_length: Optional[int] = None):
        self._min_password_length = min_password_length

    def build(
        self,
        results: EligibilityResults,
        password: str,
        *,
        profile_snapshot: Optional[Dict[str, Any]] = None,
        metadata: Optional[ExportMetadata] = None,
        confirm_password: Optional[str] = None,
    ) -> SealedPackage:
        """Encrypt results into a portable package.

        Every package gets its own salt, so a key is always derived from the
        password here. A SessionKey can open packages but never build one.

        Raises:
            ValidationError: Weak/mismatched password, a SessionKey instead
                of a password, invalid results, or an unserializable profile
                snapshot. Nothing is encrypted.
        """
        if isinstance(password, SessionKey):
            raise ValidationError("Exports need a password; a session key cannot set a fresh salt")
        validate_export_password(password, confirm_password, self._min_password_length)

        results.validate()

        envelope = ExportEnvelope(
            version=ENVELOPE_VERSION,
            exported_at=utcnow(),
            results=sanitize_results(results),
            profile_snapshot=profile_snapshot,
            metadata=metadata.sanitized() if metadata is not None else None,
        )
        try:
            payload = json.dumps(envelope.to_dict(), indent=2, default=json_default)
        except (TypeError, ValueError) as e:
            raise ValidationError("Export data is not serializable") from e

        derived = KeyDerivation.derive(password)
        package = SealedPackage(
            salt=derived.salt,
            encrypted=AuthenticatedCipher.seal(payload, derived.key),
        )

        audit_best_effort(EventType.EXPORT_CREATED, "Encrypted export created", {
            "program_count": len(results.program_ids()),
            "has_profile_snapshot": profile_snapshot is not None,
            "version": ENVELOPE_VERSION,
        })
        return package

    def parse(
        self,
        package: Union[SealedPackage, Dict[str, Any], str, bytes],
        credential: Credential,
    ) -> ExportEnvelope:
        """Decrypt and reconstruct an export package.

        Raises:
            MalformedPackageError: Package or envelope structure invalid
            DecryptionError: Wrong password or corrupted/tampered data
            UnsupportedVersionError: Envelope version is not 1.0.0
        """
        try:
            return self._parse(package, credential)
        except (MalformedPackageError, DecryptionError, UnsupportedVersionError) as e:
            audit_best_effort(
                EventType.IMPORT_FAILED,
                "Encrypted import rejected",
                {"reason": type(e).__name__},
                severity=EventSeverity.INVESTIGATE,
            )
            raise

    def _parse(self, package, credential: Credential) -> ExportEnvelope:
        if isinstance(package, SealedPackage):
            sealed = package
        elif isinstance(package, dict):
            sealed = SealedPackage.from_dict(package)
        else:
            sealed = SealedPackage.from_json(package)

        if isinstance(credential, SessionKey):
            key = credential.key
        else:
            key = KeyDerivation.derive(credential, sealed.salt).key

        plaintext = AuthenticatedCipher.open(sealed.encrypted, key)
        try:
            data = json.loads(plaintext)
        except json.JSONDecodeError as e:
            raise DecryptionError() from e
        if not isinstance(data, dict):
            raise DecryptionError()

        version = data.get("version")
        if version != ENVELOPE_VERSION:
            raise UnsupportedVersionError(version if isinstance(version, str) else None)

        try:
            raw_metadata = data.get("metadata")
            envelope = ExportEnvelope(
                version=version,
                exported_at=from_iso(data["exportedAt"]),
                results=sanitize_results(EligibilityResults.from_dict(data["results"])),
                profile_snapshot=data.get("profileSnapshot"),
                metadata=ExportMetadata.from_dict(raw_metadata).sanitized() if raw_metadata else None,
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise MalformedPackageError("Corrupt export: invalid envelope content") from e

        audit_best_effort(EventType.IMPORT_SUCCEEDED, "Encrypted import succeeded", {
            "program_count": len(envelope.results.program_ids()),
            "version": version,
        })
        return envelope


# ── Async entry points ───────────────────────────────────────────────


async def export_results(
    results: EligibilityResults,
    password: str,
    **options: Any,
) -> SealedPackage:
    """Build a package in a worker thread (PBKDF2 is CPU-bound)."""
    codec = ExportEnvelopeCodec()
    return await asyncio.to_thread(lambda: codec.build(results, password, **options))


async def import_results(
    package: Union[SealedPackage, Dict[str, Any], str, bytes],
    credential: Credential,
) -> ExportEnvelope:
    """Parse a package in a worker thread."""
    codec = ExportEnvelopeCodec()
    return await asyncio.to_thread(codec.parse, package, credential)
