"""
Pydantic Settings Configuration
=================================

Type-safe configuration for the approval broker.
Validates all configuration values at startup and fails fast with clear error messages.
"""

from typing import Optional
from pathlib import Path
from pydantic import BaseModel, Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from approval_broker.core.structured_logger import configure_logging


DEFAULT_JOURNAL_FILENAME = "exec-approval-journal.jsonl"
DEFAULT_GRACE_PERIOD_MS = 15_000
DEFAULT_TIMEOUT_MS = 120_000


class ApprovalConfig(BaseModel):
    """Approval lifecycle timing"""
    default_timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, ge=1, description="Timeout used when a caller does not pass one")
    grace_period_ms: int = Field(
        DEFAULT_GRACE_PERIOD_MS,
        ge=0,
        description="How long a resolved approval stays queryable for late waiters",
    )

    model_config = ConfigDict(extra='forbid')


class JournalConfig(BaseModel):
    """Durable audit journal configuration"""
    persist_dir: Optional[Path] = Field(None, description="Journal directory (None = in-memory only, no journal)")
    filename: str = Field(DEFAULT_JOURNAL_FILENAME, description="Journal file name inside persist_dir")
    file_mode: int = Field(0o600, description="Permission bits for a newly created journal file")
    journal_expirations: bool = Field(False, description="Also journal approvals that expired without a decision")

    @field_validator('filename')
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """Journal file must live directly inside persist_dir"""
        v = v.strip()
        if not v or Path(v).name != v or v in {'.', '..'}:
            raise ValueError("Journal filename must be a bare file name, not a path")
        return v

    @field_validator('file_mode')
    @classmethod
    def validate_file_mode(cls, v: int) -> int:
        """Only permission bits are accepted"""
        if v < 0 or v > 0o777:
            raise ValueError("Journal file_mode must be between 0o000 and 0o777")
        return v

    @property
    def journal_path(self) -> Optional[Path]:
        """Full path to the journal file, or None when persistence is disabled"""
        if self.persist_dir is None:
            return None
        return self.persist_dir / self.filename

    model_config = ConfigDict(extra='forbid')


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = Field("INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field("json", description="Log format (json, text)")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(sorted(valid_levels))}")
        return v_upper

    @field_validator('format')
    @classmethod
    def validate_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {'json', 'text'}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v_lower

    model_config = ConfigDict(extra='forbid')


class Settings(BaseSettings):
    """
    Approval broker settings with type validation.

    Configuration is loaded from:
    1. YAML config file (if provided)
    2. Environment variables with APPROVAL_BROKER_ prefix
    3. Default values (fallback)

    Environment variable mapping uses double-underscore nesting:
      APPROVAL_BROKER_JOURNAL__PERSIST_DIR
      APPROVAL_BROKER_APPROVALS__GRACE_PERIOD_MS
      APPROVAL_BROKER_LOGGING__LEVEL
    """

    approvals: ApprovalConfig = Field(default_factory=ApprovalConfig)
    journal: JournalConfig = Field(default_factory=JournalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix='APPROVAL_BROKER_',
        env_nested_delimiter='__',
        extra='ignore',
        validate_assignment=True,
    )

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Settings":
        """
        Load settings from a YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Settings instance with validated configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables only."""
        return cls()

    def ensure_directories(self) -> None:
        """Create the journal directory if persistence is enabled"""
        if self.journal.persist_dir is not None:
            self.journal.persist_dir.mkdir(parents=True, exist_ok=True)


def load_settings(config_path: Optional[str | Path] = None) -> Settings:
    """
    Load and validate broker settings, then apply them process-wide:
    create the journal directory and install the log handler.

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Validated Settings instance
    """
    if config_path:
        settings = Settings.from_yaml(config_path)
    else:
        settings = Settings.from_env()

    settings.ensure_directories()
    configure_logging(settings.logging)
    return settings


__all__ = [
    'ApprovalConfig',
    'DEFAULT_GRACE_PERIOD_MS',
    'DEFAULT_JOURNAL_FILENAME',
    'DEFAULT_TIMEOUT_MS',
    'JournalConfig',
    'LoggingConfig',
    'Settings',
    'load_settings',
]
