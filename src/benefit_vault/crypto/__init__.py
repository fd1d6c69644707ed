# Crypto Module - Key derivation and authenticated encryption
#
# PBKDF2-HMAC-SHA256 key derivation + AES-256-GCM sealing, shared by the
# export codec and the vault store's field encryption.

from .cipher import AuthenticatedCipher
from .key_derivation import DerivedKey, KeyDerivation, SessionKey
from .passphrase import (
    PassphraseStrength,
    evaluate_passphrase_strength,
    strength_message,
    validate_export_password,
)

__all__ = [
    "AuthenticatedCipher",
    "DerivedKey",
    "KeyDerivation",
    "SessionKey",
    "PassphraseStrength",
    "evaluate_passphrase_strength",
    "strength_message",
    "validate_export_password",
]
