"""
Decoded event models for the TwoB program.

These events represent the structured payloads the on-chain program emits via
``Program data:`` log lines. All events are immutable (frozen dataclasses) and
carry the transaction coordinates they were observed in, so a decoded event
can be persisted without re-reading the notification.
"""

from dataclasses import dataclass
from enum import Enum


class EventKind(Enum):
    """Kinds of program events the keeper knows how to decode."""
    MARKET_UPDATE = "market_update"
    CLOSE_POSITION = "close_position"


@dataclass(frozen=True)
class LogNotification:
    """One transaction's logs as delivered by the feed.

    ``err`` is the raw transaction error payload (None for successful
    transactions). Failed transactions still carry logs, so they are
    processed like any other notification.
    """
    slot: int
    signature: str
    logs: tuple[str, ...]
    err: object = None


@dataclass(frozen=True)
class Event:
    """
    Base model for all decoded program events.

    ``log_index`` is the position of the originating line in the
    transaction's log list. Together with ``signature`` it identifies one
    event occurrence on chain.
    """
    kind: EventKind
    signature: str
    slot: int
    log_index: int

    @property
    def natural_key(self) -> tuple[str, int]:
        """Unique identifier of this event occurrence."""
        return (self.signature, self.log_index)


@dataclass(frozen=True)
class MarketUpdateEvent(Event):
    """
    Market liquidity update.

    Emitted whenever the program books base/quote flow for a market.
    """
    market_id: int = 0
    base_flow: int = 0
    quote_flow: int = 0

    def __post_init__(self):
        if self.kind != EventKind.MARKET_UPDATE:
            raise ValueError(f"MarketUpdateEvent must have kind=MARKET_UPDATE, got {self.kind}")


@dataclass(frozen=True)
class ClosePositionEvent(Event):
    """
    Trade position close.

    ``position_authority`` is the base58 address of the position owner.
    ``is_buy`` is the raw side byte (1 = buy, 0 = sell).
    """
    position_authority: str = ""
    market_id: int = 0
    start_slot: int = 0
    end_slot: int = 0
    deposit_amount: int = 0
    swapped_amount: int = 0
    remaining_amount: int = 0
    fee_amount: int = 0
    is_buy: int = 0

    def __post_init__(self):
        if self.kind != EventKind.CLOSE_POSITION:
            raise ValueError(f"ClosePositionEvent must have kind=CLOSE_POSITION, got {self.kind}")


DecodedEvent = MarketUpdateEvent | ClosePositionEvent
