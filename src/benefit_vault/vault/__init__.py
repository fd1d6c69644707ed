# Vault Module - Encrypted local history of eligibility results
#
# Sensitive fields are sealed with the session key (FieldCipher) before
# any storage driver sees them.

from .field_cipher import FieldCipher
from .records import SENSITIVE_FIELDS, ResultSummary, SavedResultRecord, StoredRecord
from .result_store import ResultVaultStore
from .storage import MemoryRecordDriver, RecordDriver, SQLiteRecordDriver

__all__ = [
    "FieldCipher",
    "SENSITIVE_FIELDS",
    "ResultSummary",
    "SavedResultRecord",
    "StoredRecord",
    "ResultVaultStore",
    "MemoryRecordDriver",
    "RecordDriver",
    "SQLiteRecordDriver",
]
