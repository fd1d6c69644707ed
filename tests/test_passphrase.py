"""Tests for password policy and passphrase strength scoring."""

import pytest


class TestValidateExportPassword:

    def test_accepts_long_enough_password(self):
        from benefit_vault.crypto.passphrase import validate_export_password

        validate_export_password("SuperSecret123!", "SuperSecret123!")

    def test_too_short(self):
        from benefit_vault.crypto.passphrase import validate_export_password
        from benefit_vault.exceptions import ValidationError

        with pytest.raises(ValidationError, match="at least 8 characters"):
            validate_export_password("short")

    def test_mismatch(self):
        from benefit_vault.crypto.passphrase import validate_export_password
        from benefit_vault.exceptions import ValidationError

        with pytest.raises(ValidationError, match="Passwords do not match"):
            validate_export_password("SuperSecret123!", "SuperSecret124!")

    def test_minimum_cannot_go_below_eight(self):
        from benefit_vault.crypto.passphrase import validate_export_password
        from benefit_vault.exceptions import ValidationError

        with pytest.raises(ValidationError):
            validate_export_password("abc", min_length=2)

    def test_configured_minimum_is_honoured(self, monkeypatch):
        from benefit_vault.config import reset_settings
        from benefit_vault.crypto.passphrase import validate_export_password
        from benefit_vault.exceptions import ValidationError

        monkeypatch.setenv("BENEFIT_VAULT_MIN_PASSWORD_LENGTH", "12")
        reset_settings()
        with pytest.raises(ValidationError, match="at least 12 characters"):
            validate_export_password("elevenchars")
        validate_export_password("twelve chars")


class TestPassphraseStrength:

    @pytest.mark.parametrize("passphrase,expected", [
        ("", "none"),
        ("abc", "weak"),
        ("abcdefgh", "weak"),
        ("abcdefgh12", "medium"),
        ("SuperSecret123!", "strong"),
        ("Correct-Horse-Battery-Staple-42", "very-strong"),
    ])
    def test_levels(self, passphrase, expected):
        from benefit_vault.crypto.passphrase import evaluate_passphrase_strength

        assert evaluate_passphrase_strength(passphrase).value == expected

    def test_common_patterns_are_penalised(self):
        from benefit_vault.crypto.passphrase import (
            PassphraseStrength,
            evaluate_passphrase_strength,
        )

        assert evaluate_passphrase_strength("Password1!") == PassphraseStrength.MEDIUM
        assert evaluate_passphrase_strength("Xkcd9!mz") == PassphraseStrength.STRONG

    def test_messages(self):
        from benefit_vault.crypto.passphrase import PassphraseStrength, strength_message

        assert strength_message(PassphraseStrength.NONE) == "Please enter a passphrase"
        assert strength_message(PassphraseStrength.STRONG).startswith("Strong")
