"""Decode program event payloads from attributed log lines."""

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from construct import ConstructError

from twob_core.errors import DecodeError, IngestionError, UnknownDiscriminator
from twob_core.events import DecodedEvent
from twob_core.registry import DISCRIMINATOR_SIZE, EventSchemaRegistry


PROGRAM_DATA_PREFIX = "Program data: "
PROGRAM_LOG_PREFIX = "Program log: "


class DecodeStatus(Enum):
    """What the decoder made of a single line."""
    EVENT = "event"
    IGNORED = "ignored"
    UNKNOWN = "unknown"
    ERROR = "error"


@dataclass(frozen=True)
class DecodeResult:
    """Result of decoding one log line.

    EVENT carries ``event``; UNKNOWN carries ``discriminator`` and an
    UnknownDiscriminator ``error``; ERROR carries a DecodeError; IGNORED
    carries nothing.
    """

    status: DecodeStatus
    event: Optional[DecodedEvent] = None
    discriminator: Optional[bytes] = None
    error: Optional[IngestionError] = None


_IGNORED = DecodeResult(status=DecodeStatus.IGNORED)


def extract_payload(line: str) -> Optional[bytes]:
    """Strip a known prefix and base64-decode the remainder.

    Returns None if the line has no known prefix or is not valid base64;
    plenty of ``Program log:`` lines are plain text messages.
    """
    for prefix in (PROGRAM_DATA_PREFIX, PROGRAM_LOG_PREFIX):
        if line.startswith(prefix):
            encoded = line[len(prefix):]
            break
    else:
        return None

    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return None


class EventDecoder:
    """Turns attributed log lines into typed events.

    Example:
        decoder = EventDecoder(EventSchemaRegistry.default())
        result = decoder.decode_line(line.text, signature, slot, line.index)
        if result.status is DecodeStatus.EVENT:
            persist(result.event)
    """

    def __init__(self, registry: Optional[EventSchemaRegistry] = None):
        self._registry = registry or EventSchemaRegistry.default()

    @property
    def registry(self) -> EventSchemaRegistry:
        return self._registry

    def decode_line(
        self,
        line: str,
        signature: str = "",
        slot: int = 0,
        log_index: int = 0,
    ) -> DecodeResult:
        """Decode one log line emitted by the target program.

        Args:
            line: Raw log line.
            signature: Transaction signature the line belongs to.
            slot: Slot of the transaction.
            log_index: Index of the line within the transaction's logs.

        Returns:
            DecodeResult; never raises for malformed input.
        """
        payload = extract_payload(line)
        if payload is None:
            return _IGNORED
        return self.decode_payload(payload, signature, slot, log_index)

    def decode_payload(
        self,
        payload: bytes,
        signature: str = "",
        slot: int = 0,
        log_index: int = 0,
    ) -> DecodeResult:
        """Decode raw event bytes (discriminator + Borsh body)."""
        if len(payload) < DISCRIMINATOR_SIZE:
            return _IGNORED

        key = payload[:DISCRIMINATOR_SIZE]
        schema = self._registry.lookup(key)
        if schema is None:
            return DecodeResult(
                status=DecodeStatus.UNKNOWN,
                discriminator=key,
                error=UnknownDiscriminator(key),
            )

        try:
            event = schema.decode(payload[DISCRIMINATOR_SIZE:], signature, slot, log_index)
        except (ConstructError, ValueError) as e:
            return DecodeResult(
                status=DecodeStatus.ERROR,
                error=DecodeError(schema.name, str(e), signature, slot),
            )

        return DecodeResult(status=DecodeStatus.EVENT, event=event)
