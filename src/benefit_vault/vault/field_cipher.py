# Vault - Field Encryption Boundary
#
# Sensitive record fields are JSON-encoded and sealed with AES-256-GCM
# under the session key before any storage driver sees them, and opened
# only after a driver returns them. Each field gets its own nonce.

import json
from typing import Any

from ..crypto.cipher import AuthenticatedCipher
from ..crypto.key_derivation import SessionKey
from ..exceptions import DecryptionError, ValidationError
from ..models import json_default


class FieldCipher:
    """Encrypts/decrypts individual record fields with a session key."""

    def __init__(self, session_key: SessionKey):
        self._session_key = session_key

    def encrypt_field(self, value: Any) -> str:
        try:
            payload = json.dumps(value, default=json_default)
        except (TypeError, ValueError) as e:
            raise ValidationError("Field value is not serializable") from e
        return AuthenticatedCipher.seal(payload, self._session_key.key)

    def decrypt_field(self, token: str) -> Any:
        plaintext = AuthenticatedCipher.open(token, self._session_key.key)
        try:
            return json.loads(plaintext)
        except json.JSONDecodeError as e:
            raise DecryptionError() from e
