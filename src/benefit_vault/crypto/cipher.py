"""Authenticated encryption (AES-256-GCM) for vault and export payloads.

Token format (base64 text):

    nonce(12) + ciphertext + tag(16)

Each call to ``seal`` draws a fresh random nonce, so a key never
encrypts twice under the same nonce. ``open`` is self-contained given
only the key.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import DecryptionError


class AuthenticatedCipher:
    """Seal/open text with AES-256-GCM."""

    NONCE_LENGTH = 12  # 96-bit nonce for GCM (recommended)
    TAG_LENGTH = 16

    _MIN_TOKEN_BYTES = NONCE_LENGTH + TAG_LENGTH

    @staticmethod
    def seal(plaintext: str, key: bytes) -> str:
        """Encrypt plaintext and return a base64 token carrying the nonce."""
        nonce = os.urandom(AuthenticatedCipher.NONCE_LENGTH)
        ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode('utf-8'), None)
        return base64.b64encode(nonce + ciphertext).decode('ascii')

    @staticmethod
    def open(token: str, key: bytes) -> str:
        """
        Decrypt a token produced by ``seal``.

        Raises:
            DecryptionError: Wrong key, tampered or truncated token. The
                error is the same in every case.
        """
        try:
            blob = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise DecryptionError() from e

        # b64decode ignores unused trailing bits; a re-encode mismatch means
        # the token text was altered even if the bytes decode the same.
        if base64.b64encode(blob).decode('ascii') != token:
            raise DecryptionError()

        if len(blob) < AuthenticatedCipher._MIN_TOKEN_BYTES:
            raise DecryptionError()

        nonce = blob[:AuthenticatedCipher.NONCE_LENGTH]
        ciphertext = blob[AuthenticatedCipher.NONCE_LENGTH:]
        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
            return plaintext.decode('utf-8')
        except (InvalidTag, UnicodeDecodeError) as e:
            raise DecryptionError() from e


def encode_bytes(data: bytes) -> str:
    """Encode binary data (salts) as base64 text."""
    return base64.b64encode(data).decode('ascii')


def decode_bytes(data: str) -> bytes:
    """Decode base64 text; raises binascii.Error on invalid input."""
    return base64.b64decode(data, validate=True)
