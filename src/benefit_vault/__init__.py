# Benefit Vault - Encrypted export, import, print and local storage
# of benefit eligibility results.
#
# Results never leave the machine unencrypted: portable exports are
# password-sealed with AES-256-GCM, and the local vault seals every
# sensitive field with a session key before it reaches storage.

__version__ = "1.0.0"
__description__ = "Encrypted export, import and storage of benefit eligibility results"

from .core import EventSeverity, EventType, get_audit_logger
from .crypto import KeyDerivation, SessionKey
from .exceptions import (
    BenefitVaultError,
    DecryptionError,
    MalformedPackageError,
    OperationCancelled,
    RecordNotFoundError,
    StorageError,
    UnsupportedVersionError,
    ValidationError,
    VaultLockedError,
)
from .export import ExportEnvelopeCodec, PrintDocumentBuilder, SealedPackage
from .models import EligibilityResults, ProgramEligibilityResult
from .vault import MemoryRecordDriver, ResultVaultStore, SQLiteRecordDriver

__all__ = [
    "__version__",
    "EventSeverity",
    "EventType",
    "get_audit_logger",
    "KeyDerivation",
    "SessionKey",
    "BenefitVaultError",
    "DecryptionError",
    "MalformedPackageError",
    "OperationCancelled",
    "RecordNotFoundError",
    "StorageError",
    "UnsupportedVersionError",
    "ValidationError",
    "VaultLockedError",
    "ExportEnvelopeCodec",
    "PrintDocumentBuilder",
    "SealedPackage",
    "EligibilityResults",
    "ProgramEligibilityResult",
    "MemoryRecordDriver",
    "ResultVaultStore",
    "SQLiteRecordDriver",
]
