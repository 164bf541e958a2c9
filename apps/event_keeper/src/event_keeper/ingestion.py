"""Idempotent persistence of decoded events."""

import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from twob_core import (
    ClosePositionEvent,
    DecodedEvent,
    MarketUpdateEvent,
    PersistenceError,
)
from twob_db import (
    ClosePositionEventRepository,
    DatabaseFactory,
    MarketUpdateEventRepository,
)


logger = logging.getLogger(__name__)


class IngestOutcome(Enum):
    """What happened to one candidate event line. Never raised."""
    PERSISTED = "persisted"
    DUPLICATE_IGNORED = "duplicate_ignored"
    UNKNOWN_DISCRIMINATOR = "unknown_discriminator"
    DECODE_ERROR = "decode_error"
    PERSISTENCE_ERROR = "persistence_error"


class IngestionRepository:
    """Writes decoded events with insert-or-ignore semantics.

    One short session per event. A row already stored under the same
    (signature, log_index) is reported as DUPLICATE_IGNORED, not an error.

    Example:
        repo = IngestionRepository(db)
        outcome = repo.persist(event)
    """

    def __init__(self, db: DatabaseFactory):
        self._db = db

    def persist(self, event: DecodedEvent) -> IngestOutcome:
        """Store one event unless it is already present.

        Args:
            event: Decoded market update or close position event.

        Returns:
            PERSISTED, DUPLICATE_IGNORED or PERSISTENCE_ERROR.
        """
        try:
            with self._db.get_session() as session:
                inserted = self._insert(session, event)
        except SQLAlchemyError as e:
            error = PersistenceError(
                f"Failed to insert {event.kind.value} event "
                f"(signature: {event.signature}, log_index: {event.log_index})",
                e,
            )
            logger.error(str(error))
            return IngestOutcome.PERSISTENCE_ERROR

        if not inserted:
            logger.debug(
                f"Duplicate {event.kind.value} event ignored "
                f"(signature: {event.signature}, log_index: {event.log_index})"
            )
            return IngestOutcome.DUPLICATE_IGNORED
        return IngestOutcome.PERSISTED

    @staticmethod
    def _insert(session, event: DecodedEvent) -> bool:
        if isinstance(event, MarketUpdateEvent):
            return MarketUpdateEventRepository(session).insert_market_update(
                signature=event.signature,
                slot=event.slot,
                log_index=event.log_index,
                market_id=event.market_id,
                base_flow=event.base_flow,
                quote_flow=event.quote_flow,
            )

        if isinstance(event, ClosePositionEvent):
            return ClosePositionEventRepository(session).insert_close_position(
                signature=event.signature,
                slot=event.slot,
                log_index=event.log_index,
                position_authority=event.position_authority,
                market_id=event.market_id,
                start_slot=event.start_slot,
                end_slot=event.end_slot,
                deposit_amount=event.deposit_amount,
                swapped_amount=event.swapped_amount,
                remaining_amount=event.remaining_amount,
                fee_amount=event.fee_amount,
                is_buy=event.is_buy,
            )

        raise ValueError(f"No table for event kind {event.kind}")
