"""Password policy checks and passphrase strength scoring.

``validate_export_password`` runs before any key derivation so a weak or
mistyped password blocks the action with no data written.
"""

import re
from enum import Enum
from typing import Optional

from ..config import MIN_PASSWORD_LENGTH, get_settings
from ..exceptions import ValidationError


class PassphraseStrength(str, Enum):
    NONE = "none"
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"
    VERY_STRONG = "very-strong"


_COMMON_PATTERNS = [
    re.compile(r"^password", re.IGNORECASE),
    re.compile(r"^12345"),
    re.compile(r"^qwerty", re.IGNORECASE),
    re.compile(r"(.)\1{2,}"),  # Repeated characters
]

_STRENGTH_MESSAGES = {
    PassphraseStrength.NONE: "Please enter a passphrase",
    PassphraseStrength.WEAK: "Weak - Add more characters and variety",
    PassphraseStrength.MEDIUM: "Medium - Consider making it longer",
    PassphraseStrength.STRONG: "Strong - Good passphrase",
    PassphraseStrength.VERY_STRONG: "Very Strong - Excellent passphrase",
}


def validate_export_password(
    password: str,
    confirm: Optional[str] = None,
    min_length: Optional[int] = None,
) -> None:
    """
    Verify a password before it is used for encryption.

    Args:
        password: Candidate password
        confirm: Confirmation entry; checked for equality when given
        min_length: Minimum length (defaults to configured minimum)

    Raises:
        ValidationError: Too short or confirmation mismatch
    """
    if min_length is None:
        min_length = get_settings().min_password_length
    min_length = max(min_length, MIN_PASSWORD_LENGTH)

    if not isinstance(password, str) or len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters long")

    if confirm is not None and confirm != password:
        raise ValidationError("Passwords do not match")


def _length_score(length: int) -> int:
    score = 0
    if length >= 8:
        score += 2
    if length >= 12:
        score += 1
    if length >= 16:
        score += 1
    if length >= 20:
        score += 1
    return score


def _diversity_score(passphrase: str) -> int:
    score = 0
    if re.search(r"[a-z]", passphrase):
        score += 1
    if re.search(r"[A-Z]", passphrase):
        score += 1
    if re.search(r"[0-9]", passphrase):
        score += 1
    if re.search(r"[^a-zA-Z0-9]", passphrase):
        score += 2  # Special characters are worth more
    return score


def evaluate_passphrase_strength(passphrase: Optional[str]) -> PassphraseStrength:
    """Score a passphrase by length, character variety, and common patterns."""
    if not passphrase:
        return PassphraseStrength.NONE

    positive = _length_score(len(passphrase)) + _diversity_score(passphrase)
    penalty = sum(1 for pattern in _COMMON_PATTERNS if pattern.search(passphrase))

    # Any positive score floors at 2 so penalties alone never yield NONE
    score = max(positive - penalty, 2) if positive > 0 else positive - penalty

    if score >= 9:
        return PassphraseStrength.VERY_STRONG
    if score >= 7:
        return PassphraseStrength.STRONG
    if score >= 4:
        return PassphraseStrength.MEDIUM
    if score >= 2:
        return PassphraseStrength.WEAK
    return PassphraseStrength.NONE


def strength_message(strength: PassphraseStrength) -> str:
    return _STRENGTH_MESSAGES[strength]
