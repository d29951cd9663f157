"""
Settings management for the Dhamma seeder.

Settings come from environment variables (optionally loaded from a .env file)
and can be overridden by CLI options.
"""

from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_DAILY_WRITE_LIMIT,
    DEFAULT_LANGUAGE,
    DEFAULT_SOURCE_TABLE,
    DEFAULT_STATE_FILE,
    FIRESTORE_MAX_BATCH_SIZE,
    CONTENT_TABLE,
)
from ..exceptions import ConfigurationError


class SeederSettings(BaseSettings):
    """
    Validated settings for a seeding run.

    Each field reads the upper-cased environment variable of the same name
    (SUPABASE_URL, BATCH_SIZE, ...). Two fields differ: the Supabase key also
    accepts SUPABASE_SERVICE_ROLE_KEY, and the state file reads SEED_STATE_FILE.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra="ignore",
    )

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("supabase_key", "supabase_service_role_key"),
    )
    sqlite_db_path: Optional[str] = None
    source_table: str = DEFAULT_SOURCE_TABLE

    batch_size: int = Field(default=100, gt=0)
    retry_attempts: int = Field(default=3, gt=0)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)
    retry_backoff: str = "linear"
    batch_delay_seconds: float = Field(default=1.0, ge=0)

    database_url: Optional[str] = None
    database_sslmode: str = "require"

    firebase_credentials: Optional[str] = None
    firebase_project_id: Optional[str] = None
    firestore_batch_size: int = Field(default=400, gt=0, le=FIRESTORE_MAX_BATCH_SIZE)
    firestore_content_collection: str = CONTENT_TABLE
    daily_write_limit: int = Field(default=DEFAULT_DAILY_WRITE_LIMIT, gt=0)
    state_file: str = Field(
        default=DEFAULT_STATE_FILE,
        validation_alias=AliasChoices("state_file", "seed_state_file"),
    )

    default_language: str = DEFAULT_LANGUAGE

    @field_validator("retry_backoff")
    @classmethod
    def _check_backoff(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("linear", "exponential"):
            raise ValueError("retry_backoff must be 'linear' or 'exponential'")
        return value

    @field_validator("source_table")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        # Interpolated into SQL, so only plain identifiers are allowed
        if not value.replace("_", "").isalnum():
            raise ValueError(f"invalid table name: {value!r}")
        return value

    def require_source(self) -> str:
        if not self.sqlite_db_path:
            raise ConfigurationError("SQLITE_DB_PATH environment variable not set")
        return self.sqlite_db_path

    def require_supabase(self) -> None:
        if not self.supabase_url:
            raise ConfigurationError("SUPABASE_URL environment variable not set")
        if not self.supabase_key:
            raise ConfigurationError("SUPABASE_KEY environment variable not set")

    def require_firestore(self) -> str:
        if not self.firebase_credentials:
            raise ConfigurationError("FIREBASE_CREDENTIALS environment variable not set")
        return self.firebase_credentials

    def require_database_url(self) -> str:
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL environment variable not set")
        return self.database_url


def load_settings(env_file: Optional[str] = None, **overrides: Any) -> SeederSettings:
    """
    Build settings from the environment plus explicit overrides.

    Args:
        env_file: Optional path to a .env file (default: search from cwd)
        **overrides: Field values that win over the environment; None is ignored

    Returns:
        SeederSettings instance

    Raises:
        ConfigurationError: If a value fails validation
    """
    load_dotenv(dotenv_path=env_file)

    try:
        return SeederSettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
