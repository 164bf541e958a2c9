"""
Event store for twob keepers.

Supports SQLite (development) and PostgreSQL (production).
"""

from twob_db.settings import DatabaseSettings, check_database_url
from twob_db.database import DatabaseFactory
from twob_db.models import (
    Base,
    MarketUpdateEventRecord,
    ClosePositionEventRecord,
)
from twob_db.repositories import (
    BaseRepository,
    MarketUpdateEventRepository,
    ClosePositionEventRepository,
)
from twob_db.utils import redact_db_url

__all__ = [
    # Settings
    "DatabaseSettings",
    "check_database_url",
    # Database
    "DatabaseFactory",
    # Models
    "Base",
    "MarketUpdateEventRecord",
    "ClosePositionEventRecord",
    # Repositories
    "BaseRepository",
    "MarketUpdateEventRepository",
    "ClosePositionEventRepository",
    # Utils
    "redact_db_url",
]
