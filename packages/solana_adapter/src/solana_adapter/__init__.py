"""Solana-specific adapter for the program log feed.

This package provides:
- logsSubscribe WebSocket client with connection state tracking
- Normalization of logsNotification messages to twob_core objects
"""

from solana_adapter.normalizer import LogsNormalizer
from solana_adapter.ws_client import (
    ConnectionState,
    FeedConnectionError,
    LogsSubscriptionClient,
    SubscriptionError,
)

__all__ = [
    "LogsNormalizer",
    "ConnectionState",
    "FeedConnectionError",
    "LogsSubscriptionClient",
    "SubscriptionError",
]
