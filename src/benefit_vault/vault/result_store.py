# Result Vault Store
#
# Local, encrypted-at-rest history of eligibility results.
# Every sensitive field is sealed with the session key through
# FieldCipher before a storage driver sees it; only index fields
# (dates, counts, program ids, tags, state) are stored in the clear.
#
# The vault password is verified against an encrypted canary value,
# the same way a password manager checks its master password.

import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from ..core.audit_log import EventSeverity, EventType, audit_best_effort
from ..crypto.cipher import AuthenticatedCipher, decode_bytes, encode_bytes
from ..crypto.key_derivation import KeyDerivation, SessionKey
from ..crypto.passphrase import validate_export_password
from ..exceptions import (
    DecryptionError,
    OperationCancelled,
    RecordNotFoundError,
    StorageError,
    VaultLockedError,
)
from ..export.envelope import sanitize_results
from ..models import EligibilityResults, from_iso, utcnow
from ..sanitizer import sanitize_text
from .field_cipher import FieldCipher
from .records import SENSITIVE_FIELDS, ResultSummary, SavedResultRecord, StoredRecord
from .storage import RecordDriver, SQLiteRecordDriver

logger = logging.getLogger(__name__)

Credential = Union[str, SessionKey]


class ResultVaultStore:
    """
    Encrypted store for saved eligibility results.

    Workflow:
    1. await store.unlock(password)   # creates salt + canary on first use
    2. record_id = await store.save(results, user_name=..., tags=[...])
    3. await store.list_summaries()  /  await store.load(record_id)
    4. await store.lock()

    Args:
        driver: Storage backend. Defaults to SQLite at the configured path.
        session_key: Host-managed key; the store starts unlocked with it.
    """

    CANARY_PLAINTEXT = "BENEFIT_VAULT_OK"
    META_SALT = "salt"
    META_CANARY = "canary"

    def __init__(
        self,
        driver: Optional[RecordDriver] = None,
        session_key: Optional[SessionKey] = None,
    ):
        self.driver = driver if driver is not None else SQLiteRecordDriver()
        self._session_key: Optional[SessionKey] = session_key
        self._cipher: Optional[FieldCipher] = FieldCipher(session_key) if session_key else None
        self._write_lock = asyncio.Lock()

    @property
    def is_unlocked(self) -> bool:
        return self._session_key is not None and not self._session_key.is_wiped

    # ── Lock / unlock ────────────────────────────────────────────────

    async def unlock(self, credential: Credential) -> None:
        """
        Unlock the vault with a password or a session key.

        Raises:
            DecryptionError: Credential does not open the vault canary
            ValidationError: First-time password fails the password policy
        """
        async with self._write_lock:
            new_salt = None
            if isinstance(credential, SessionKey):
                session_key = credential
            else:
                session_key, new_salt = await self._session_key_from_password(credential)

            canary = await self._call(self.driver.get_meta, self.META_CANARY)
            if canary is None:
                if new_salt is not None:
                    await self._call(self.driver.set_meta, self.META_SALT, encode_bytes(new_salt))
                token = AuthenticatedCipher.seal(self.CANARY_PLAINTEXT, session_key.key)
                await self._call(self.driver.set_meta, self.META_CANARY, token)
                audit_best_effort(EventType.VAULT_CREATED, "Result vault initialised")
            else:
                try:
                    plaintext = AuthenticatedCipher.open(canary, session_key.key)
                except DecryptionError:
                    plaintext = None
                if plaintext != self.CANARY_PLAINTEXT:
                    audit_best_effort(
                        EventType.VAULT_UNLOCK_FAILED,
                        "Vault unlock failed: incorrect credential",
                        severity=EventSeverity.ALERT,
                    )
                    raise DecryptionError("Incorrect vault password")

            self._session_key = session_key
            self._cipher = FieldCipher(session_key)

        audit_best_effort(EventType.VAULT_UNLOCKED, "Vault unlocked successfully")

    async def _session_key_from_password(
        self, password: str
    ) -> Tuple[SessionKey, Optional[bytes]]:
        """Derive the session key. The salt is returned only when it is new
        and still has to be stored."""
        salt_b64 = await self._call(self.driver.get_meta, self.META_SALT)
        if salt_b64 is None:
            # New vault: the password becomes the vault password
            validate_export_password(password)
            salt = KeyDerivation.generate_salt()
            session_key = await asyncio.to_thread(SessionKey.from_password, password, salt)
            return session_key, salt

        try:
            salt = decode_bytes(salt_b64)
        except ValueError as e:
            raise StorageError("Corrupted vault: invalid salt", operation="unlock") from e
        if not password:
            raise DecryptionError("Incorrect vault password")
        return await asyncio.to_thread(SessionKey.from_password, password, salt), None

    async def lock(self) -> None:
        """Drop the session key. Stored data stays sealed."""
        self._session_key = None
        self._cipher = None
        audit_best_effort(EventType.VAULT_LOCKED, "Vault locked")

    # ── Writes ───────────────────────────────────────────────────────

    async def save(
        self,
        results: EligibilityResults,
        *,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
        profile_snapshot: Optional[Dict[str, Any]] = None,
        state: Optional[str] = None,
        tags: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> str:
        """
        Save an evaluation to the vault.

        Returns:
            New record id

        Raises:
            ValidationError: Results violate the partition invariant or a
                field is not serializable (nothing is written)
            StorageError: Driver failure
        """
        cipher = self._require_cipher()
        results.validate()
        results = sanitize_results(results)

        now = utcnow()
        plain_fields = {
            "user_id": user_id,
            "user_name": _clean_optional(user_name),
            "results": results.to_dict(),
            "profile_snapshot": profile_snapshot,
            "notes": _clean_optional(notes),
        }
        sealed = await asyncio.to_thread(
            lambda: {name: cipher.encrypt_field(plain_fields[name]) for name in SENSITIVE_FIELDS}
        )

        record = StoredRecord(
            id=uuid4().hex,
            evaluated_at=from_iso(results.evaluated_at),
            qualified_count=len(results.qualified),
            total_programs=results.total_programs,
            programs_evaluated=results.program_ids(),
            tags=_clean_tags(tags),
            created_at=now,
            updated_at=now,
            state=_clean_optional(state),
            sealed_fields=sealed,
        )

        async with self._write_lock:
            await self._call(self.driver.insert, record)

        audit_best_effort(EventType.RESULT_SAVED, "Eligibility results saved", {
            "record_id": record.id,
            "program_count": len(record.programs_evaluated),
        })
        return record.id

    async def update(
        self,
        record_id: str,
        *,
        notes: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> None:
        """
        Change the notes and/or tags of a saved result.

        Raises:
            RecordNotFoundError: No record with this id
        """
        cipher = self._require_cipher()
        sealed = None
        if notes is not None:
            sealed = {"notes": cipher.encrypt_field(sanitize_text(notes))}
        new_tags = _clean_tags(tags) if tags is not None else None

        async with self._write_lock:
            existing = await self._call(self.driver.fetch, record_id)
            if existing is None:
                raise RecordNotFoundError("update", record_id)

            updated_at = utcnow()
            if updated_at <= existing.updated_at:
                updated_at = existing.updated_at + timedelta(microseconds=1)

            found = await self._call(
                self.driver.update_fields, record_id, updated_at, new_tags, sealed
            )
            if not found:
                raise RecordNotFoundError("update", record_id)

        audit_best_effort(EventType.RESULT_UPDATED, "Saved result updated", {
            "record_id": record_id,
            "notes_changed": notes is not None,
            "tags_changed": tags is not None,
        })

    async def delete(self, record_id: str) -> bool:
        """Remove a saved result. Returns False if the id was unknown."""
        self._require_cipher()
        async with self._write_lock:
            removed = await self._call(self.driver.delete, record_id)

        if removed:
            audit_best_effort(EventType.RESULT_DELETED, "Saved result deleted", {
                "record_id": record_id,
            })
        return removed

    # ── Reads ────────────────────────────────────────────────────────

    async def load(
        self,
        record_id: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Optional[EligibilityResults]:
        """Decrypt and return the results of a saved record, or None."""
        record = await self.load_record(record_id, cancel_event)
        return record.results if record else None

    async def load_record(
        self,
        record_id: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Optional[SavedResultRecord]:
        """Decrypt a full saved record (results, user fields, notes), or None."""
        cipher = self._require_cipher()
        _check_cancelled(cancel_event, "load")

        stored = await self._call(self.driver.fetch, record_id)
        _check_cancelled(cancel_event, "load")
        if stored is None:
            return None

        try:
            fields = await asyncio.to_thread(self._open_fields, cipher, stored)
            results = EligibilityResults.from_dict(fields["results"])
        except DecryptionError as e:
            raise StorageError(
                "Saved result could not be decrypted", operation="load", record_id=record_id
            ) from e
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise StorageError(
                "Saved result is corrupt", operation="load", record_id=record_id
            ) from e
        _check_cancelled(cancel_event, "load")

        audit_best_effort(EventType.RESULT_ACCESSED, "Saved result accessed", {
            "record_id": record_id,
        })
        return SavedResultRecord(
            summary=ResultSummary.from_stored(stored),
            results=results,
            user_id=fields.get("user_id"),
            user_name=fields.get("user_name"),
            profile_snapshot=fields.get("profile_snapshot"),
            notes=fields.get("notes"),
        )

    async def list_summaries(
        self,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ResultSummary]:
        """Index view of every saved result, newest evaluation first."""
        self._require_cipher()
        _check_cancelled(cancel_event, "list")

        stored = await self._call(self.driver.fetch_all)
        _check_cancelled(cancel_event, "list")

        summaries = [ResultSummary.from_stored(r) for r in stored]
        summaries.sort(key=lambda s: s.evaluated_at, reverse=True)
        return summaries

    # ── helpers ──────────────────────────────────────────────────────

    def _require_cipher(self) -> FieldCipher:
        if self._cipher is None or not self.is_unlocked:
            raise VaultLockedError()
        return self._cipher

    @staticmethod
    def _open_fields(cipher: FieldCipher, stored: StoredRecord) -> Dict[str, Any]:
        return {
            name: cipher.decrypt_field(stored.sealed_fields[name])
            for name in SENSITIVE_FIELDS
            if name in stored.sealed_fields
        }

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking driver call in a worker thread."""
        try:
            return await asyncio.to_thread(fn, *args)
        except RecordNotFoundError:
            raise
        except StorageError as e:
            logger.error("Vault storage failure during %s", e.operation or fn.__name__)
            audit_best_effort(
                EventType.VAULT_ERROR,
                "Vault storage failure",
                {"operation": e.operation, "record_id": e.record_id},
                severity=EventSeverity.CRITICAL,
            )
            raise


def _check_cancelled(cancel_event: Optional[asyncio.Event], operation: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled(operation)


def _clean_optional(value: Optional[str]) -> Optional[str]:
    return None if value is None else sanitize_text(value)


def _clean_tags(tags: Optional[List[str]]) -> List[str]:
    cleaned = []
    for tag in tags or []:
        tag = sanitize_text(tag).strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned
