# Key Derivation
#
# Password + salt -> 256-bit AES key (PBKDF2-HMAC-SHA256).
# Deterministic for a given (password, salt) pair so that import can
# re-derive the export key from the salt stored in the package.

import os
from dataclasses import dataclass, field
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import ValidationError


@dataclass(frozen=True)
class DerivedKey:
    """A derived key and the salt it was derived with."""
    key: bytes = field(repr=False)
    salt: bytes

    def __repr__(self) -> str:
        return f"DerivedKey(salt={self.salt.hex()[:8]}..., key=<redacted>)"


class KeyDerivation:
    """
    Derives encryption keys from user passwords.

    Flow:
    1. Caller supplies password (and salt when re-deriving)
    2. A fresh random salt is generated when none is given
    3. PBKDF2 stretches password + salt into a 256-bit key
    """

    # PBKDF2 parameters (OWASP recommendations)
    PBKDF2_ITERATIONS = 600_000  # OWASP 2023: 600k iterations for PBKDF2-SHA256
    KEY_LENGTH = 32  # 256 bits for AES-256
    SALT_LENGTH = 32  # 256-bit salt
    MIN_SALT_LENGTH = 16

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically random salt."""
        return os.urandom(KeyDerivation.SALT_LENGTH)

    @staticmethod
    def derive(password: str, salt: Optional[bytes] = None) -> DerivedKey:
        """
        Derive an encryption key from a password.

        Args:
            password: User's password (never logged)
            salt: Salt from an existing package; generated when omitted

        Returns:
            DerivedKey with the 256-bit key and the salt used

        Raises:
            ValidationError: Empty password or salt shorter than 16 bytes
        """
        if not password:
            raise ValidationError("Password cannot be empty")

        if salt is None:
            salt = KeyDerivation.generate_salt()
        elif len(salt) < KeyDerivation.MIN_SALT_LENGTH:
            raise ValidationError("Salt must be at least 16 bytes")

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KeyDerivation.KEY_LENGTH,
            salt=salt,
            iterations=KeyDerivation.PBKDF2_ITERATIONS,
        )
        return DerivedKey(key=kdf.derive(password.encode('utf-8')), salt=salt)


class SessionKey:
    """
    Session-scoped key capability.

    Derived once (or generated by the host application), held only in
    memory for the session and never persisted. Accepted by both the
    export codec and the vault store in place of a raw password.
    """

    __slots__ = ("_key", "salt")

    def __init__(self, key: bytes, salt: Optional[bytes] = None):
        if len(key) != KeyDerivation.KEY_LENGTH:
            raise ValidationError("Session key must be 256 bits")
        self._key: Optional[bytes] = key
        self.salt = salt

    @classmethod
    def from_password(cls, password: str, salt: Optional[bytes] = None) -> "SessionKey":
        derived = KeyDerivation.derive(password, salt)
        return cls(derived.key, derived.salt)

    @classmethod
    def generate(cls) -> "SessionKey":
        """Random key for host-managed vaults (no password, no salt)."""
        return cls(os.urandom(KeyDerivation.KEY_LENGTH))

    @property
    def key(self) -> bytes:
        if self._key is None:
            raise ValidationError("Session key has been wiped")
        return self._key

    @property
    def is_wiped(self) -> bool:
        return self._key is None

    def wipe(self) -> None:
        """Drop the key reference at the end of the session."""
        self._key = None

    def __repr__(self) -> str:
        state = "wiped" if self._key is None else "active"
        return f"SessionKey({state})"
