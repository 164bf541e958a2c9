"""Event schema registry.

Maps the 8-byte Anchor event discriminator to the Borsh layout and event
constructor for each event kind the program emits. Dispatch is a single dict
lookup; the registry refuses to build if two schemas share a discriminator.

Anchor event discriminator: first 8 bytes of sha256("event:<EventName>").
"""

import hashlib
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from borsh_construct import CStruct, U8, U64
from construct import Bytes, Construct, Container
from solders.pubkey import Pubkey

from twob_core.events import (
    ClosePositionEvent,
    DecodedEvent,
    EventKind,
    MarketUpdateEvent,
)


DISCRIMINATOR_SIZE = 8

MARKET_UPDATE_LAYOUT = CStruct(
    "market_id" / U64,
    "base_flow" / U64,
    "quote_flow" / U64,
)

CLOSE_POSITION_LAYOUT = CStruct(
    "position_authority" / Bytes(32),
    "market_id" / U64,
    "start_slot" / U64,
    "end_slot" / U64,
    "deposit_amount" / U64,
    "swapped_amount" / U64,
    "remaining_amount" / U64,
    "fee_amount" / U64,
    "is_buy" / U8,
)


def event_discriminator(event_name: str) -> bytes:
    """Compute the Anchor discriminator for an event struct name."""
    return hashlib.sha256(f"event:{event_name}".encode()).digest()[:DISCRIMINATOR_SIZE]


def _build_market_update(
    fields: Container, signature: str, slot: int, log_index: int
) -> MarketUpdateEvent:
    return MarketUpdateEvent(
        kind=EventKind.MARKET_UPDATE,
        signature=signature,
        slot=slot,
        log_index=log_index,
        market_id=fields.market_id,
        base_flow=fields.base_flow,
        quote_flow=fields.quote_flow,
    )


def _build_close_position(
    fields: Container, signature: str, slot: int, log_index: int
) -> ClosePositionEvent:
    return ClosePositionEvent(
        kind=EventKind.CLOSE_POSITION,
        signature=signature,
        slot=slot,
        log_index=log_index,
        position_authority=str(Pubkey.from_bytes(bytes(fields.position_authority))),
        market_id=fields.market_id,
        start_slot=fields.start_slot,
        end_slot=fields.end_slot,
        deposit_amount=fields.deposit_amount,
        swapped_amount=fields.swapped_amount,
        remaining_amount=fields.remaining_amount,
        fee_amount=fields.fee_amount,
        is_buy=fields.is_buy,
    )


@dataclass(frozen=True)
class EventSchema:
    """Decoding recipe for one event kind.

    Attributes:
        kind: Event kind tag.
        name: Anchor struct name (source of the discriminator).
        layout: Borsh layout of the payload after the discriminator.
        build: Turns parsed fields plus transaction coordinates into an event.
    """

    kind: EventKind
    name: str
    layout: Construct
    build: Callable[[Container, str, int, int], DecodedEvent]

    @property
    def discriminator(self) -> bytes:
        return event_discriminator(self.name)

    def decode(self, body: bytes, signature: str, slot: int, log_index: int) -> DecodedEvent:
        """Parse ``body`` (payload without discriminator) into an event.

        Raises:
            construct.ConstructError: If the body is truncated or malformed.
        """
        fields = self.layout.parse(body)
        return self.build(fields, signature, slot, log_index)


MARKET_UPDATE_SCHEMA = EventSchema(
    kind=EventKind.MARKET_UPDATE,
    name="MarketUpdateEvent",
    layout=MARKET_UPDATE_LAYOUT,
    build=_build_market_update,
)

CLOSE_POSITION_SCHEMA = EventSchema(
    kind=EventKind.CLOSE_POSITION,
    name="ClosePositionEvent",
    layout=CLOSE_POSITION_LAYOUT,
    build=_build_close_position,
)


class EventSchemaRegistry:
    """Static mapping from discriminator to event schema.

    Example:
        registry = EventSchemaRegistry.default()
        schema = registry.lookup(payload[:8])
        if schema is not None:
            event = schema.decode(payload[8:], signature, slot, log_index)
    """

    def __init__(self, schemas: Iterable[EventSchema]):
        """Build the registry.

        Args:
            schemas: Event schemas to register.

        Raises:
            ValueError: If two schemas share a discriminator or a kind.
        """
        self._by_discriminator: dict[bytes, EventSchema] = {}
        self._by_kind: dict[EventKind, EventSchema] = {}

        for schema in schemas:
            key = schema.discriminator
            if key in self._by_discriminator:
                other = self._by_discriminator[key]
                raise ValueError(
                    f"Discriminator 0x{key.hex()} of {schema.name} "
                    f"collides with {other.name}"
                )
            if schema.kind in self._by_kind:
                raise ValueError(f"Event kind {schema.kind} registered twice")
            self._by_discriminator[key] = schema
            self._by_kind[schema.kind] = schema

    @classmethod
    def default(cls) -> "EventSchemaRegistry":
        """Registry with every event kind the keeper persists."""
        return cls([MARKET_UPDATE_SCHEMA, CLOSE_POSITION_SCHEMA])

    def lookup(self, key: bytes) -> Optional[EventSchema]:
        """Get the schema for a discriminator, or None if unknown."""
        return self._by_discriminator.get(bytes(key))

    def schema_for(self, kind: EventKind) -> EventSchema:
        """Get the schema registered for an event kind."""
        return self._by_kind[kind]

    @property
    def kinds(self) -> list[EventKind]:
        return list(self._by_kind)

    def __contains__(self, key: bytes) -> bool:
        return bytes(key) in self._by_discriminator

    def __len__(self) -> int:
        return len(self._by_discriminator)
