"""Subscription runner: feed -> attribution -> decoder -> store.

Keeps one logsSubscribe subscription alive, reconnecting with exponential
backoff, and interleaves notification handling with periodic health lines.
"""

import asyncio
import logging
import signal
from enum import Enum
from typing import Callable, Optional

from solana_adapter import FeedConnectionError, LogsSubscriptionClient
from twob_core import (
    ClosePositionEvent,
    DecodedEvent,
    DecodeStatus,
    EventDecoder,
    EventSchemaRegistry,
    LogAttributionTracker,
    LogNotification,
    MarketUpdateEvent,
)
from twob_db import DatabaseFactory

from event_keeper.config import EventKeeperConfig
from event_keeper.health import HealthMonitor
from event_keeper.ingestion import IngestionRepository, IngestOutcome


logger = logging.getLogger(__name__)


class RunnerState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


class ReconnectBackoff:
    """Exponential reconnect delay.

    Starts at ``initial``, multiplies after every failed attempt and never
    exceeds ``maximum``. ``reset`` returns to ``initial`` once a subscription
    is established.
    """

    def __init__(self, initial: float = 1.0, maximum: float = 30.0, multiplier: float = 2.0):
        self._initial = initial
        self._maximum = maximum
        self._multiplier = multiplier
        self._current = initial

    @property
    def current(self) -> float:
        """Delay the next call to ``next_delay`` will return."""
        return self._current

    def next_delay(self) -> float:
        delay = self._current
        self._current = min(self._current * self._multiplier, self._maximum)
        return delay

    def reset(self) -> None:
        self._current = self._initial


class SubscriptionRunner:
    """Runs the ingestion pipeline for one program.

    States: DISCONNECTED -> CONNECTING -> SUBSCRIBED -> DISCONNECTED, until
    ``stop()`` is called. Every failure on the way is logged and turned into
    a reconnect; nothing in the ingestion path ends the loop.

    Example:
        runner = SubscriptionRunner(config, db)
        await runner.run_until_shutdown()
    """

    def __init__(
        self,
        config: EventKeeperConfig,
        db: DatabaseFactory,
        client_factory: Optional[Callable[[], LogsSubscriptionClient]] = None,
        registry: Optional[EventSchemaRegistry] = None,
        health: Optional[HealthMonitor] = None,
    ):
        """Initialize runner.

        Args:
            config: Keeper configuration.
            db: Database factory used for persistence.
            client_factory: Builds a fresh feed client per connection attempt.
                Defaults to a LogsSubscriptionClient for ``config``.
            registry: Event schemas to decode. Defaults to the built-in ones.
            health: Health monitor. A new one is created if not provided.
        """
        self._config = config
        self._client_factory = client_factory or self._default_client
        self._tracker = LogAttributionTracker(config.program_id)
        self._decoder = EventDecoder(registry)
        self._repository = IngestionRepository(db)
        self._backoff = ReconnectBackoff(config.backoff_initial, config.backoff_max)
        self.health = health or HealthMonitor()

        self._state = RunnerState.DISCONNECTED
        self._shutdown_event = asyncio.Event()

    @property
    def state(self) -> RunnerState:
        return self._state

    @property
    def backoff(self) -> ReconnectBackoff:
        return self._backoff

    def stop(self) -> None:
        """Request shutdown; the loop exits at its next wait."""
        self._shutdown_event.set()

    def _default_client(self) -> LogsSubscriptionClient:
        return LogsSubscriptionClient(
            self._config.ws_url,
            self._config.program_id,
            commitment=self._config.commitment,
        )

    def handle_notification(self, notification: LogNotification) -> list[IngestOutcome]:
        """Run one notification through attribution, decoding and persistence.

        Args:
            notification: Logs of one transaction.

        Returns:
            One outcome per candidate event line emitted by the program,
            in log order. Lines that are not event payloads produce nothing.
        """
        signature = notification.signature
        slot = notification.slot
        self.health.record_notification()

        attribution = self._tracker.attribute(notification.logs, signature=signature, slot=slot)
        if attribution.warnings:
            self.health.record_attribution_warning(attribution.warnings)

        outcomes = []
        for line in attribution.lines:
            result = self._decoder.decode_line(
                line.text, signature=signature, slot=slot, log_index=line.index
            )

            if result.status is DecodeStatus.IGNORED:
                continue

            if result.status is DecodeStatus.UNKNOWN:
                self.health.record_unknown_discriminator(result.discriminator)
                outcomes.append(IngestOutcome.UNKNOWN_DISCRIMINATOR)
                continue

            if result.status is DecodeStatus.ERROR:
                self.health.record_decode_error(signature, slot, result.error)
                outcomes.append(IngestOutcome.DECODE_ERROR)
                continue

            self._record_event(result.event)
            outcome = self._repository.persist(result.event)
            if outcome is IngestOutcome.DUPLICATE_IGNORED:
                self.health.record_duplicate()
            elif outcome is IngestOutcome.PERSISTENCE_ERROR:
                self.health.record_db_error()
            outcomes.append(outcome)

        return outcomes

    def _record_event(self, event: DecodedEvent) -> None:
        if isinstance(event, MarketUpdateEvent):
            logger.info(
                f"MarketUpdateEvent - Signature: {event.signature}, "
                f"Slot: {event.slot}, Market: {event.market_id}"
            )
            self.health.record_market_event()
        elif isinstance(event, ClosePositionEvent):
            logger.info(
                f"ClosePositionEvent - Signature: {event.signature}, "
                f"Slot: {event.slot}, Market: {event.market_id}"
            )
            self.health.record_close_event()

    async def run_forever(self) -> None:
        """Connect, consume and reconnect until ``stop()`` is called."""
        while not self._shutdown_event.is_set():
            await self._run_subscription()

            if self._shutdown_event.is_set():
                break

            delay = self._backoff.next_delay()
            self.health.record_reconnect()
            logger.info(f"Reconnecting in {delay:.1f}s")
            await self._sleep_unless_stopped(delay)

        self._state = RunnerState.DISCONNECTED
        self.health.log_health()
        logger.info("Subscription runner stopped")

    async def run_until_shutdown(self) -> None:
        """Run with SIGINT/SIGTERM wired to ``stop()``."""
        loop = asyncio.get_running_loop()

        def shutdown_handler():
            logger.info("Shutdown signal received")
            self.stop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown_handler)

        try:
            await self.run_forever()
        finally:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)

    async def _run_subscription(self) -> None:
        """One connection attempt and, if it succeeds, one subscribed session."""
        self._state = RunnerState.CONNECTING
        logger.info(
            f"Subscribing to transaction logs for program {self._config.program_id} "
            f"on {self._config.ws_url}"
        )

        client = self._client_factory()
        try:
            await client.connect()
        except FeedConnectionError as e:
            logger.error(f"Log subscription failed: {e}")
            self._state = RunnerState.DISCONNECTED
            return
        except Exception as e:
            logger.exception(f"Unexpected error while subscribing: {e!r}")
            await client.close()
            self._state = RunnerState.DISCONNECTED
            return

        self._state = RunnerState.SUBSCRIBED
        self._backoff.reset()
        logger.info("Subscription established")

        try:
            await self._consume(client)
        except FeedConnectionError as e:
            logger.error(f"Log subscription failed: {e}")
        except Exception as e:
            logger.exception(f"Log subscription aborted by unexpected error: {e!r}")
        finally:
            await client.close()
            self._state = RunnerState.DISCONNECTED

    async def _consume(self, client: LogsSubscriptionClient) -> None:
        """Handle notifications until the stream closes or shutdown is requested.

        Waits on the pending receive and the shutdown event with the next
        health tick as timeout. A receive in flight is kept across ticks.
        Missed ticks are skipped, not replayed.
        """
        loop = asyncio.get_running_loop()
        interval = self._config.health_log_interval
        next_tick = loop.time() + interval

        shutdown_task = asyncio.create_task(self._shutdown_event.wait())
        recv_task: Optional[asyncio.Task] = None
        try:
            while True:
                if recv_task is None:
                    recv_task = asyncio.create_task(client.next_notification())

                done, _ = await asyncio.wait(
                    {recv_task, shutdown_task},
                    timeout=max(0.0, next_tick - loop.time()),
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if shutdown_task in done:
                    return

                if recv_task in done:
                    finished, recv_task = recv_task, None
                    notification = finished.result()
                    if notification is None:
                        logger.warning("Log notification stream closed by RPC node")
                        return
                    self.handle_notification(notification)

                now = loop.time()
                if now >= next_tick:
                    self.health.log_health()
                    while next_tick <= now:
                        next_tick += interval
        finally:
            for task in (recv_task, shutdown_task):
                if task is not None and not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass

    async def _sleep_unless_stopped(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
