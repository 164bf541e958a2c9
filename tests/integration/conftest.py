"""Shared fixtures for integration tests."""

import sys
from pathlib import Path

import pytest

# Ensure tests/integration is on sys.path so ``import integration_helpers``
# works regardless of how pytest is invoked.
_INTEGRATION_DIR = str(Path(__file__).resolve().parent)
if _INTEGRATION_DIR not in sys.path:
    sys.path.insert(0, _INTEGRATION_DIR)

from twob_db import DatabaseFactory, DatabaseSettings

from event_keeper.config import EventKeeperConfig

from integration_helpers import PROGRAM_ID


@pytest.fixture
def db():
    """In-memory SQLite database."""
    factory = DatabaseFactory(DatabaseSettings(database_url="sqlite+pysqlite:///:memory:"))
    factory.create_tables()
    yield factory
    factory.dispose()


@pytest.fixture
def keeper_config():
    return EventKeeperConfig(
        ws_url="ws://127.0.0.1:8900",
        program_id=PROGRAM_ID,
        database_url="sqlite+pysqlite:///:memory:",
        backoff_initial=0.01,
        backoff_max=0.02,
    )
