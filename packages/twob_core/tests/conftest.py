"""Test fixtures for twob_core tests."""

import sys
from pathlib import Path

import pytest

# Make ``import core_helpers`` work regardless of pytest's import mode.
_TESTS_DIR = str(Path(__file__).resolve().parent)
if _TESTS_DIR not in sys.path:
    sys.path.insert(0, _TESTS_DIR)

from core_helpers import (
    PROGRAM_ID,
    close_position_payload,
    data_line,
    market_update_payload,
)


@pytest.fixture
def program_id():
    return PROGRAM_ID


@pytest.fixture
def market_update_line():
    """Program data line carrying a MarketUpdateEvent."""
    return data_line(market_update_payload(market_id=7, base_flow=11, quote_flow=22))


@pytest.fixture
def close_position_line():
    """Program data line carrying a ClosePositionEvent."""
    return data_line(close_position_payload())
