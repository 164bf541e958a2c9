"""Event store connection settings."""

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_BACKENDS = ("sqlite", "postgresql")


def check_database_url(url: str) -> str:
    """Accept sqlite and postgresql URLs, with or without a driver suffix.

    Raises:
        ValueError: If the string is not a URL or names another backend.
    """
    scheme, sep, _ = url.partition("://")
    if not sep:
        raise ValueError("database_url is not a URL")
    backend = scheme.split("+", 1)[0]
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(f"Unsupported database backend: {backend!r}")
    return url


class DatabaseSettings(BaseSettings):
    """Where the event store lives and how its connections are pooled.

    The URL is read from the same variables as the keeper, so the service
    and ``twob-init-db`` always point at one database.

    Environment variables:
    - EVENTKEEPER_DATABASE_URL (or DATABASE_URL): SQLAlchemy URL
    - TWOB_DB_POOL_SIZE, TWOB_DB_MAX_OVERFLOW, TWOB_DB_POOL_TIMEOUT,
      TWOB_DB_POOL_RECYCLE: PostgreSQL pool tuning
    - TWOB_DB_ECHO_SQL: Log every statement (default: false)
    """

    database_url: str = Field(
        default="sqlite:///twob_events.db",
        validation_alias=AliasChoices("EVENTKEEPER_DATABASE_URL", "DATABASE_URL"),
    )

    # Ignored for SQLite
    pool_size: int = Field(default=5, ge=1, validation_alias=AliasChoices("TWOB_DB_POOL_SIZE"))
    max_overflow: int = Field(
        default=10, ge=0, validation_alias=AliasChoices("TWOB_DB_MAX_OVERFLOW")
    )
    pool_timeout: float = Field(
        default=30.0, gt=0, validation_alias=AliasChoices("TWOB_DB_POOL_TIMEOUT")
    )
    pool_recycle: int = Field(
        default=1800, validation_alias=AliasChoices("TWOB_DB_POOL_RECYCLE")
    )

    echo_sql: bool = Field(default=False, validation_alias=AliasChoices("TWOB_DB_ECHO_SQL"))

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("database_url")
    @classmethod
    def _valid_backend(cls, v: str) -> str:
        return check_database_url(v)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")
