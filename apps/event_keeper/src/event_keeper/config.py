"""Configuration for the event keeper service.

Values come from environment variables (``EVENTKEEPER_`` prefix, ``.env``
file) and may be overridden by an optional YAML file.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey

from twob_core import TWOB_PROGRAM_ID
from twob_db import check_database_url


COMMITMENTS = ("processed", "confirmed", "finalized")


class EventKeeperConfig(BaseSettings):
    """Configuration for event keeper service.

    Environment variables:
    - EVENTKEEPER_WS_URL (or CLUSTER_WS_URL): RPC websocket endpoint
    - EVENTKEEPER_PROGRAM_ID: Program whose logs are ingested
    - EVENTKEEPER_COMMITMENT: processed | confirmed | finalized (default: confirmed)
    - EVENTKEEPER_DATABASE_URL (or DATABASE_URL): SQLAlchemy URL
    - EVENTKEEPER_HEALTH_LOG_INTERVAL: Seconds between health lines (default: 60)
    - EVENTKEEPER_BACKOFF_INITIAL / EVENTKEEPER_BACKOFF_MAX: Reconnect delays (default: 1 / 30)
    - EVENTKEEPER_CREATE_TABLES: Create tables on startup (default: true)
    """

    ws_url: str = Field(
        default="ws://127.0.0.1:8900",
        validation_alias=AliasChoices("EVENTKEEPER_WS_URL", "CLUSTER_WS_URL"),
    )
    program_id: str = Field(
        default=TWOB_PROGRAM_ID,
        validation_alias=AliasChoices("EVENTKEEPER_PROGRAM_ID"),
    )
    commitment: str = Field(
        default="confirmed",
        validation_alias=AliasChoices("EVENTKEEPER_COMMITMENT"),
    )
    database_url: str = Field(
        default="sqlite:///twob_events.db",
        validation_alias=AliasChoices("EVENTKEEPER_DATABASE_URL", "DATABASE_URL"),
    )

    # Health monitoring
    health_log_interval: float = Field(
        default=60.0, gt=0,
        validation_alias=AliasChoices("EVENTKEEPER_HEALTH_LOG_INTERVAL"),
    )

    # Reconnect backoff
    backoff_initial: float = Field(
        default=1.0, gt=0,
        validation_alias=AliasChoices("EVENTKEEPER_BACKOFF_INITIAL"),
    )
    backoff_max: float = Field(
        default=30.0, gt=0,
        validation_alias=AliasChoices("EVENTKEEPER_BACKOFF_MAX"),
    )

    create_tables: bool = Field(
        default=True,
        validation_alias=AliasChoices("EVENTKEEPER_CREATE_TABLES"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("program_id")
    @classmethod
    def _valid_pubkey(cls, v: str) -> str:
        try:
            Pubkey.from_string(v)
        except ValueError as e:
            raise ValueError(f"program_id is not a valid base58 pubkey: {v}") from e
        return v

    @field_validator("commitment")
    @classmethod
    def _valid_commitment(cls, v: str) -> str:
        if v not in COMMITMENTS:
            raise ValueError(f"commitment must be one of {COMMITMENTS}, got {v!r}")
        return v

    @field_validator("ws_url")
    @classmethod
    def _valid_ws_url(cls, v: str) -> str:
        if not v.startswith(("ws://", "wss://")):
            raise ValueError(f"ws_url must start with ws:// or wss://, got {v!r}")
        return v

    @field_validator("database_url")
    @classmethod
    def _valid_database_url(cls, v: str) -> str:
        return check_database_url(v)

    @field_validator("backoff_max")
    @classmethod
    def _max_not_below_initial(cls, v: float, info: ValidationInfo) -> float:
        initial = info.data.get("backoff_initial")
        if initial is not None and v < initial:
            raise ValueError("backoff_max must be >= backoff_initial")
        return v


def _find_config_file() -> Optional[str]:
    config_path = os.environ.get("EVENTKEEPER_CONFIG_PATH")
    if config_path is not None:
        return config_path

    for path in (Path("conf/event_keeper.yaml"), Path("event_keeper.yaml")):
        if path.exists():
            return str(path)
    return None


def load_config(config_path: Optional[str] = None) -> EventKeeperConfig:
    """Load configuration from environment plus an optional YAML file.

    Args:
        config_path: Path to config file. If None, checks:
            1. EVENTKEEPER_CONFIG_PATH environment variable
            2. conf/event_keeper.yaml
            3. event_keeper.yaml
            Environment variables alone are used when none exists.

    Returns:
        Validated EventKeeperConfig. YAML keys override environment values.

    Raises:
        FileNotFoundError: If an explicitly named config file is missing.
        ValueError: If the file is not valid YAML or validation fails.
    """
    if config_path is None:
        config_path = _find_config_file()

    data = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

    return EventKeeperConfig(**data)
