"""
Event keeper - streams TwoB program logs and stores decoded events.

Subscribes to logs mentioning the program, attributes each line to the
program that emitted it, decodes event payloads and writes them with
insert-or-ignore semantics.
"""

from event_keeper.config import EventKeeperConfig, load_config
from event_keeper.health import HealthMonitor, HealthSnapshot
from event_keeper.ingestion import IngestionRepository, IngestOutcome
from event_keeper.runner import ReconnectBackoff, RunnerState, SubscriptionRunner

__all__ = [
    "EventKeeperConfig",
    "load_config",
    "HealthMonitor",
    "HealthSnapshot",
    "IngestionRepository",
    "IngestOutcome",
    "ReconnectBackoff",
    "RunnerState",
    "SubscriptionRunner",
]
