"""Ingestion counters and the periodic health line."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from twob_core import DecodeError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthSnapshot:
    """Point-in-time copy of the ingestion counters.

    ``unknown_discriminators`` holds the distinct unrecognised keys seen so
    far; the health line prints their count. ``last_*_ago`` are seconds
    since the last event of that kind, or None if none has been seen since
    startup.
    """

    uptime_seconds: float
    notifications: int
    market_events: int
    close_events: int
    duplicates: int
    decode_errors: int
    db_errors: int
    attribution_warnings: int
    reconnects: int
    unknown_discriminators: frozenset[bytes]
    last_market_ago: Optional[float]
    last_close_ago: Optional[float]

    def format(self) -> str:
        """Render the single-line health summary."""
        return (
            f"Health - uptime={int(self.uptime_seconds)}s "
            f"market_events={self.market_events} (last={_format_last_seen(self.last_market_ago)}) "
            f"close_events={self.close_events} (last={_format_last_seen(self.last_close_ago)}) "
            f"decode_errors={self.decode_errors} db_errors={self.db_errors} "
            f"unknown_discriminators={len(self.unknown_discriminators)} "
            f"duplicates={self.duplicates} notifications={self.notifications} "
            f"attribution_warnings={self.attribution_warnings} reconnects={self.reconnects}"
        )


def _format_last_seen(ago: Optional[float]) -> str:
    if ago is None:
        return "never"
    return f"{int(ago)}s ago"


class HealthMonitor:
    """Owns the ingestion counters for one runner.

    Single writer: only the runner's task calls the ``record_*`` methods.
    Counters live for the whole process, across reconnects.

    Example:
        health = HealthMonitor()
        health.record_market_event()
        health.log_health()
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started_at = clock()

        self._notifications = 0
        self._market_events = 0
        self._close_events = 0
        self._duplicates = 0
        self._decode_errors = 0
        self._db_errors = 0
        self._attribution_warnings = 0
        self._reconnects = 0

        self._last_market_at: Optional[float] = None
        self._last_close_at: Optional[float] = None
        self._unknown_discriminators: set[bytes] = set()

    def record_notification(self) -> None:
        self._notifications += 1

    def record_market_event(self) -> None:
        self._market_events += 1
        self._last_market_at = self._clock()

    def record_close_event(self) -> None:
        self._close_events += 1
        self._last_close_at = self._clock()

    def record_duplicate(self) -> None:
        self._duplicates += 1

    def record_decode_error(self, signature: str, slot: int, error: DecodeError | str) -> None:
        """Count a payload that matched a schema but did not decode, and log it."""
        self._decode_errors += 1
        reason = error.reason if isinstance(error, DecodeError) else error
        logger.error(
            f"Failed to decode Anchor event payload (signature: {signature}, slot: {slot}): {reason}"
        )

    def record_db_error(self) -> None:
        self._db_errors += 1

    def record_attribution_warning(self, count: int = 1) -> None:
        self._attribution_warnings += count

    def record_reconnect(self) -> None:
        self._reconnects += 1

    def record_unknown_discriminator(self, key: bytes) -> bool:
        """Remember an unrecognised discriminator.

        Logs a warning the first time a given key is seen.

        Returns:
            True if the key had not been seen before.
        """
        key = bytes(key)
        if key in self._unknown_discriminators:
            return False

        self._unknown_discriminators.add(key)
        logger.warning(
            f"Observed unknown event discriminator 0x{key.hex()}; keeper IDL may be outdated"
        )
        return True

    def snapshot(self) -> HealthSnapshot:
        now = self._clock()
        return HealthSnapshot(
            uptime_seconds=now - self._started_at,
            notifications=self._notifications,
            market_events=self._market_events,
            close_events=self._close_events,
            duplicates=self._duplicates,
            decode_errors=self._decode_errors,
            db_errors=self._db_errors,
            attribution_warnings=self._attribution_warnings,
            reconnects=self._reconnects,
            unknown_discriminators=frozenset(self._unknown_discriminators),
            last_market_ago=None if self._last_market_at is None else now - self._last_market_at,
            last_close_ago=None if self._last_close_at is None else now - self._last_close_at,
        )

    def log_health(self) -> HealthSnapshot:
        """Emit the health line at INFO and return the snapshot it was built from."""
        snapshot = self.snapshot()
        logger.info(snapshot.format())
        return snapshot
