"""Managed logsSubscribe WebSocket connection.

This module wraps a single Solana pubsub WebSocket carrying one
``logsSubscribe`` subscription ("transactions mentioning program P"). It
tracks connection state and surfaces transport failures as
FeedConnectionError so the caller can reconnect.

Reference:
- websockets: https://websockets.readthedocs.io/
- Solana pubsub: https://solana.com/docs/rpc/websocket
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import AsyncIterator, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from twob_core.events import LogNotification

from solana_adapter.normalizer import (
    LogsNormalizer,
    build_logs_subscribe_request,
    build_logs_unsubscribe_request,
)


logger = logging.getLogger(__name__)


DEFAULT_COMMITMENT = "confirmed"
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_PING_INTERVAL = 20.0
DEFAULT_PING_TIMEOUT = 20.0
DEFAULT_CLOSE_TIMEOUT = 5.0


class FeedConnectionError(Exception):
    """WebSocket handshake or stream failure."""


class SubscriptionError(FeedConnectionError):
    """The RPC node rejected the subscription request."""


@dataclass
class ConnectionState:
    """Track feed connection state for health reporting.

    Attributes:
        connected_at: Timestamp when the subscription was established
        disconnected_at: Timestamp when the connection was last closed
        last_message_ts: Timestamp of last received message
        subscription_id: Id assigned by the node to the logs subscription
        messages_received: Notifications received on this connection
        is_connected: Whether currently subscribed
    """

    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None
    last_message_ts: Optional[datetime] = None
    subscription_id: Optional[int] = None
    messages_received: int = 0
    is_connected: bool = False


class LogsSubscriptionClient:
    """One logsSubscribe subscription over one WebSocket.

    Responsibilities:
    - Open the WebSocket and register the "mentions program" filter
    - Yield LogNotification objects until the stream closes
    - Unsubscribe before closing the socket

    Example:
        client = LogsSubscriptionClient(ws_url, program_id)
        await client.connect()
        try:
            while (notification := await client.next_notification()) is not None:
                handle(notification)
        finally:
            await client.close()
    """

    def __init__(
        self,
        ws_url: str,
        program_id: str,
        commitment: str = DEFAULT_COMMITMENT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        ping_interval: float = DEFAULT_PING_INTERVAL,
        ping_timeout: float = DEFAULT_PING_TIMEOUT,
    ):
        """Initialize client.

        Args:
            ws_url: Pubsub endpoint (ws:// or wss://).
            program_id: Base58 program id used as the "mentions" filter.
            commitment: Commitment level for notifications.
            connect_timeout: Seconds allowed for handshake and subscription ack.
            ping_interval: WebSocket keepalive ping interval in seconds.
            ping_timeout: Seconds to wait for a pong before failing.
        """
        self.ws_url = ws_url
        self.program_id = program_id
        self.commitment = commitment
        self.connect_timeout = connect_timeout
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout

        self._ws = None
        self._normalizer = LogsNormalizer()
        self._state = ConnectionState()
        self._next_request_id = 1

    async def connect(self) -> int:
        """Open the WebSocket and register the logs subscription.

        Returns:
            Subscription id assigned by the node.

        Raises:
            SubscriptionError: If the node answers with an error.
            FeedConnectionError: On handshake failure, timeout or early close.
        """
        if self._ws is not None:
            logger.warning("LogsSubscriptionClient already connected, closing first")
            await self.close()

        logger.info(f"Connecting logs WebSocket: {self.ws_url}")
        try:
            self._ws = await asyncio.wait_for(
                websockets.connect(
                    self.ws_url,
                    ping_interval=self.ping_interval,
                    ping_timeout=self.ping_timeout,
                    close_timeout=DEFAULT_CLOSE_TIMEOUT,
                    max_size=None,
                ),
                timeout=self.connect_timeout,
            )
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            raise FeedConnectionError(f"Failed to open pubsub websocket: {e!r}") from e

        request_id = self._take_request_id()
        request = build_logs_subscribe_request(request_id, self.program_id, self.commitment)

        try:
            await self._ws.send(json.dumps(request))
            subscription_id = await asyncio.wait_for(
                self._await_ack(request_id), timeout=self.connect_timeout
            )
        except asyncio.TimeoutError as e:
            await self._abort()
            raise FeedConnectionError("Timed out waiting for logsSubscribe ack") from e
        except ConnectionClosed as e:
            await self._abort()
            raise FeedConnectionError(f"Connection closed during subscribe: {e}") from e
        except SubscriptionError:
            await self._abort()
            raise

        now = datetime.now(UTC)
        self._state.connected_at = now
        self._state.last_message_ts = now
        self._state.subscription_id = subscription_id
        self._state.messages_received = 0
        self._state.is_connected = True
        logger.info(
            f"Subscribed to logs mentioning {self.program_id} "
            f"(subscription={subscription_id}, commitment={self.commitment})"
        )
        return subscription_id

    async def next_notification(self) -> Optional[LogNotification]:
        """Wait for the next logs notification.

        Acks, notifications for other subscriptions and malformed messages are
        skipped (malformed ones with a warning).

        Returns:
            The next LogNotification, or None once the stream has closed.

        Raises:
            FeedConnectionError: If called before connect() or on a transport error.
        """
        if self._ws is None:
            raise FeedConnectionError("Not connected")

        while True:
            try:
                raw = await self._ws.recv()
            except ConnectionClosed as e:
                logger.warning(f"Log notification stream closed by RPC node: {e}")
                self._mark_disconnected()
                return None
            except (OSError, WebSocketException) as e:
                self._mark_disconnected()
                raise FeedConnectionError(f"Log notification stream failed: {e!r}") from e

            self._state.last_message_ts = datetime.now(UTC)
            message = self._parse(raw)
            if message is None or not self._normalizer.is_logs_notification(message):
                continue

            if self._normalizer.subscription_id(message) != self._state.subscription_id:
                continue

            try:
                notification = self._normalizer.normalize_logs_notification(message)
            except ValueError as e:
                logger.warning(f"Dropping malformed notification: {e}")
                continue

            self._state.messages_received += 1
            return notification

    async def notifications(self) -> AsyncIterator[LogNotification]:
        """Iterate notifications until the stream closes."""
        while True:
            notification = await self.next_notification()
            if notification is None:
                return
            yield notification

    async def unsubscribe(self) -> None:
        """Send logsUnsubscribe for the active subscription (best effort)."""
        subscription_id = self._state.subscription_id
        if self._ws is None or subscription_id is None:
            return

        request_id = self._take_request_id()
        try:
            await self._ws.send(
                json.dumps(build_logs_unsubscribe_request(request_id, subscription_id))
            )
            logger.debug(f"Sent logsUnsubscribe for subscription {subscription_id}")
        except (OSError, WebSocketException) as e:
            logger.debug(f"logsUnsubscribe not delivered: {e!r}")
        self._state.subscription_id = None

    async def close(self) -> None:
        """Unsubscribe and close the WebSocket."""
        if self._ws is None:
            return
        await self.unsubscribe()
        await self._abort()
        logger.info("Logs WebSocket disconnected")

    async def __aenter__(self) -> "LogsSubscriptionClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def get_connection_state(self) -> ConnectionState:
        """Return a copy of the current connection state."""
        return ConnectionState(
            connected_at=self._state.connected_at,
            disconnected_at=self._state.disconnected_at,
            last_message_ts=self._state.last_message_ts,
            subscription_id=self._state.subscription_id,
            messages_received=self._state.messages_received,
            is_connected=self._state.is_connected,
        )

    def is_connected(self) -> bool:
        return self._state.is_connected and self._ws is not None

    async def _await_ack(self, request_id: int) -> int:
        """Read messages until the reply to ``request_id`` arrives."""
        while True:
            message = self._parse(await self._ws.recv())
            if message is None or message.get("id") != request_id:
                continue
            if "error" in message:
                raise SubscriptionError(f"logsSubscribe rejected: {message['error']}")
            result = message.get("result")
            if not isinstance(result, int):
                raise SubscriptionError(f"logsSubscribe returned unexpected result: {result!r}")
            return result

    async def _abort(self) -> None:
        """Close the socket without unsubscribing."""
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except (OSError, WebSocketException) as e:
                logger.warning(f"Error during WebSocket close: {e!r}")
        self._mark_disconnected()

    def _mark_disconnected(self) -> None:
        if self._state.is_connected:
            self._state.disconnected_at = datetime.now(UTC)
        self._state.is_connected = False

    def _take_request_id(self) -> int:
        request_id = self._next_request_id
        self._next_request_id += 1
        return request_id

    @staticmethod
    def _parse(raw) -> Optional[dict]:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Dropping non-JSON message: {raw!r:.200}")
            return None
        return message if isinstance(message, dict) else None
