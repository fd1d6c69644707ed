"""Runtime configuration for the result vault.

Values come from environment variables (optionally loaded from a local
``.env`` file via python-dotenv):

    BENEFIT_VAULT_DATA_DIR             directory holding the vault database
    BENEFIT_VAULT_AUDIT_DIR            directory for daily audit logs
    BENEFIT_VAULT_DB_NAME              vault database filename
    BENEFIT_VAULT_MIN_PASSWORD_LENGTH  export/vault password minimum (>= 8)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Hard floor for password length; configuration can only raise it.
MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class VaultSettings:
    data_dir: Path
    audit_log_dir: Path
    db_name: str = "result_vault.db"
    min_password_length: int = MIN_PASSWORD_LENGTH

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "VaultSettings":
        """Build settings from the environment."""
        if load_env_file:
            load_dotenv()

        raw_min = os.environ.get("BENEFIT_VAULT_MIN_PASSWORD_LENGTH", "")
        try:
            min_length = int(raw_min) if raw_min else MIN_PASSWORD_LENGTH
        except ValueError:
            logger.warning(
                "Ignoring non-numeric BENEFIT_VAULT_MIN_PASSWORD_LENGTH=%r", raw_min
            )
            min_length = MIN_PASSWORD_LENGTH

        return cls(
            data_dir=Path(os.environ.get("BENEFIT_VAULT_DATA_DIR", "data")),
            audit_log_dir=Path(os.environ.get("BENEFIT_VAULT_AUDIT_DIR", "audit_logs")),
            db_name=os.environ.get("BENEFIT_VAULT_DB_NAME", "result_vault.db"),
            min_password_length=max(min_length, MIN_PASSWORD_LENGTH),
        )


_settings: Optional[VaultSettings] = None


def get_settings() -> VaultSettings:
    """Return cached settings (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = VaultSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
