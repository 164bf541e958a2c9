"""Test fixtures for database tests."""

import pytest

from twob_db.database import DatabaseFactory
from twob_db.settings import DatabaseSettings


SIGNATURE = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"
AUTHORITY = "4vJ9JU1bJJE96FWSJKvHsmmFADCg4gpZQff4P3bkLKi"


@pytest.fixture
def db_settings():
    """In-memory SQLite settings for testing."""
    return DatabaseSettings(database_url="sqlite+pysqlite:///:memory:", echo_sql=False)


@pytest.fixture
def db(db_settings):
    """Create fresh database for each test."""
    database = DatabaseFactory(db_settings)
    database.create_tables()
    yield database
    database.drop_tables()
    database.dispose()


@pytest.fixture
def session(db):
    """Provide a session for each test."""
    session = db.session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def market_update_values():
    return {
        "signature": SIGNATURE,
        "slot": 250_000_000,
        "log_index": 3,
        "market_id": 7,
        "base_flow": 500,
        "quote_flow": 1000,
    }


@pytest.fixture
def close_position_values():
    return {
        "signature": SIGNATURE,
        "slot": 250_000_001,
        "log_index": 5,
        "position_authority": AUTHORITY,
        "market_id": 7,
        "start_slot": 100,
        "end_slot": 200,
        "deposit_amount": 1000,
        "swapped_amount": 400,
        "remaining_amount": 600,
        "fee_amount": 3,
        "is_buy": 1,
    }
