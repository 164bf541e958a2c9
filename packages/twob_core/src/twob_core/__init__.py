"""
twob_core - Pure event-ingestion logic for the TwoB program, no I/O.

This package contains the event models, the discriminator registry, the
call-stack log attribution tracker and the event decoder shared by the
keeper services.
"""

from twob_core.events import (
    EventKind,
    Event,
    LogNotification,
    MarketUpdateEvent,
    ClosePositionEvent,
    DecodedEvent,
)
from twob_core.errors import (
    IngestionError,
    AttributionInconsistency,
    DecodeError,
    UnknownDiscriminator,
    PersistenceError,
)
from twob_core.registry import EventSchema, EventSchemaRegistry, event_discriminator
from twob_core.attribution import LogAttributionTracker, AttributedLine, AttributionResult
from twob_core.decoder import EventDecoder, DecodeResult, DecodeStatus
from twob_core.accounts import TWOB_PROGRAM_ID, PdaResult, derive_address, program_id

__version__ = "0.1.0"

__all__ = [
    "EventKind",
    "Event",
    "LogNotification",
    "MarketUpdateEvent",
    "ClosePositionEvent",
    "DecodedEvent",
    "IngestionError",
    "AttributionInconsistency",
    "DecodeError",
    "UnknownDiscriminator",
    "PersistenceError",
    "EventSchema",
    "EventSchemaRegistry",
    "event_discriminator",
    "LogAttributionTracker",
    "AttributedLine",
    "AttributionResult",
    "EventDecoder",
    "DecodeResult",
    "DecodeStatus",
    "TWOB_PROGRAM_ID",
    "PdaResult",
    "derive_address",
    "program_id",
]
