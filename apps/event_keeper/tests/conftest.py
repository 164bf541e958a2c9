"""Shared test fixtures for event_keeper tests."""

import sys
from pathlib import Path

import pytest

# Make ``import keeper_helpers`` work regardless of pytest's import mode.
_TESTS_DIR = str(Path(__file__).resolve().parent)
if _TESTS_DIR not in sys.path:
    sys.path.insert(0, _TESTS_DIR)

from twob_db import DatabaseFactory, DatabaseSettings

from event_keeper.config import EventKeeperConfig

from keeper_helpers import PROGRAM_ID


@pytest.fixture
def keeper_config():
    """Config with fast backoff for reconnect tests."""
    return EventKeeperConfig(
        ws_url="ws://127.0.0.1:8900",
        program_id=PROGRAM_ID,
        commitment="confirmed",
        database_url="sqlite+pysqlite:///:memory:",
        health_log_interval=60.0,
        backoff_initial=0.01,
        backoff_max=0.04,
    )


@pytest.fixture
def db():
    """Fresh in-memory database with tables created."""
    factory = DatabaseFactory(DatabaseSettings(database_url="sqlite+pysqlite:///:memory:"))
    factory.create_tables()
    yield factory
    factory.dispose()
