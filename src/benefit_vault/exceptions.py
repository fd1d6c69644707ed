"""
Result Vault Exception Classes

Messages on these exceptions are user-safe: they never include
passwords, key material, or decrypted result content.
"""

from typing import Optional


class BenefitVaultError(Exception):
    """Base exception for result vault operations"""
    pass


class MalformedPackageError(BenefitVaultError):
    """Raised when an export package is structurally invalid"""

    def __init__(self, message: str = "Invalid encrypted file format"):
        super().__init__(message)


class DecryptionError(BenefitVaultError):
    """Raised on authentication failure (wrong password or tampered data).

    The message is identical for both causes.
    """

    def __init__(self, message: str = "Invalid password or corrupted file"):
        super().__init__(message)


class UnsupportedVersionError(BenefitVaultError):
    """Raised when a decrypted envelope carries an unsupported version"""

    def __init__(self, version: Optional[str] = None):
        super().__init__("Unsupported file format version")
        self.version = version


class ValidationError(BenefitVaultError):
    """Raised when input fails validation before any crypto call"""
    pass


class VaultLockedError(ValidationError):
    """Raised when a vault operation needs a key and the vault is locked"""

    def __init__(self, message: str = "Vault is locked. Unlock vault first."):
        super().__init__(message)


class StorageError(BenefitVaultError):
    """Raised when the persistence backend fails"""

    def __init__(self, message: str, operation: str = "", record_id: Optional[str] = None):
        context = operation
        if record_id:
            context = f"{operation} {record_id}" if operation else record_id
        super().__init__(f"{message} ({context})" if context else message)
        self.operation = operation
        self.record_id = record_id


class RecordNotFoundError(StorageError):
    """Raised when a saved result record does not exist"""

    def __init__(self, operation: str, record_id: str):
        super().__init__("Saved result not found", operation=operation, record_id=record_id)


class OperationCancelled(BenefitVaultError):
    """Raised when the caller aborted an in-flight operation (not a failure)"""

    def __init__(self, operation: str = ""):
        super().__init__(f"Operation cancelled: {operation}" if operation else "Operation cancelled")
        self.operation = operation
