"""Repository pattern for event store operations."""

from typing import Any, Generic, TypeVar, Optional, List

from sqlalchemy import func, insert, select
from sqlalchemy.orm import Session
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert

from twob_db.models import (
    Base,
    MarketUpdateEventRecord,
    ClosePositionEventRecord,
)


T = TypeVar("T", bound=Base)

NATURAL_KEY = ["signature", "log_index"]


class BaseRepository(Generic[T]):
    """Base repository with insert-or-ignore and lookups by natural key.

    Usage:
        repo = MarketUpdateEventRepository(session)
        inserted = repo.insert_market_update(signature, slot, 0, 7, 100, 200)
        rows = repo.get_by_signature(signature)
    """

    def __init__(self, session: Session, model_class: type[T]):
        """Initialize repository with session and model class.

        Args:
            session: SQLAlchemy session instance.
            model_class: The ORM model class to operate on.
        """
        self.session = session
        self.model_class = model_class

    def insert_or_ignore(self, values: dict[str, Any]) -> bool:
        """Insert one row, skipping it when (signature, log_index) already exists.

        Args:
            values: Column values for the new row.

        Returns:
            True if a row was inserted, False if it was a duplicate.
        """
        # Use dialect-specific insert for ON CONFLICT support
        db_dialect = self.session.get_bind().dialect.name
        if db_dialect == "postgresql":
            stmt = postgresql_insert(self.model_class).values(values)
            stmt = stmt.on_conflict_do_nothing(index_elements=NATURAL_KEY)
        elif db_dialect == "sqlite":
            stmt = sqlite_insert(self.model_class).values(values)
            stmt = stmt.on_conflict_do_nothing(index_elements=NATURAL_KEY)
        else:
            # Fallback for unsupported dialects - unique violation propagates
            stmt = insert(self.model_class).values(values)

        result = self.session.execute(stmt)
        self.session.flush()

        # rowcount is 0 when the conflict clause skipped the row
        return bool(result.rowcount)

    def get_by_natural_key(self, signature: str, log_index: int) -> Optional[T]:
        """Get the row stored for one event occurrence."""
        stmt = select(self.model_class).where(
            self.model_class.signature == signature,
            self.model_class.log_index == log_index,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_signature(self, signature: str) -> List[T]:
        """Get all rows from one transaction, in log order."""
        stmt = (
            select(self.model_class)
            .where(self.model_class.signature == signature)
            .order_by(self.model_class.log_index)
        )
        return list(self.session.execute(stmt).scalars())

    def get_by_slot_range(self, start_slot: int, end_slot: int, limit: int = 1000) -> List[T]:
        """Get rows whose slot falls in [start_slot, end_slot]."""
        stmt = (
            select(self.model_class)
            .where(
                self.model_class.slot >= start_slot,
                self.model_class.slot <= end_slot,
            )
            .order_by(self.model_class.slot, self.model_class.log_index)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def get_last_slot(self) -> Optional[int]:
        """Get the highest slot stored, or None for an empty table."""
        return self.session.execute(select(func.max(self.model_class.slot))).scalar()

    def count(self) -> int:
        """Count stored rows."""
        return self.session.execute(
            select(func.count()).select_from(self.model_class)
        ).scalar_one()


class MarketUpdateEventRepository(BaseRepository[MarketUpdateEventRecord]):
    """Repository for market_update_events."""

    def __init__(self, session: Session):
        super().__init__(session, MarketUpdateEventRecord)

    def insert_market_update(
        self,
        signature: str,
        slot: int,
        log_index: int,
        market_id: int,
        base_flow: int,
        quote_flow: int,
    ) -> bool:
        """Insert a market update unless it is already stored.

        Returns:
            True if inserted, False if (signature, log_index) already existed.
        """
        return self.insert_or_ignore(
            {
                "signature": signature,
                "slot": slot,
                "log_index": log_index,
                "market_id": market_id,
                "base_flow": base_flow,
                "quote_flow": quote_flow,
            }
        )

    def get_by_market(self, market_id: int, limit: int = 100) -> List[MarketUpdateEventRecord]:
        """Get the most recent updates for a market, newest first."""
        stmt = (
            select(MarketUpdateEventRecord)
            .where(MarketUpdateEventRecord.market_id == market_id)
            .order_by(MarketUpdateEventRecord.slot.desc(), MarketUpdateEventRecord.log_index.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())


class ClosePositionEventRepository(BaseRepository[ClosePositionEventRecord]):
    """Repository for close_position_events."""

    def __init__(self, session: Session):
        super().__init__(session, ClosePositionEventRecord)

    def insert_close_position(
        self,
        signature: str,
        slot: int,
        log_index: int,
        position_authority: str,
        market_id: int,
        start_slot: int,
        end_slot: int,
        deposit_amount: int,
        swapped_amount: int,
        remaining_amount: int,
        fee_amount: int,
        is_buy: int,
    ) -> bool:
        """Insert a closed position unless it is already stored.

        Returns:
            True if inserted, False if (signature, log_index) already existed.
        """
        return self.insert_or_ignore(
            {
                "signature": signature,
                "slot": slot,
                "log_index": log_index,
                "position_authority": position_authority,
                "market_id": market_id,
                "start_slot": start_slot,
                "end_slot": end_slot,
                "deposit_amount": deposit_amount,
                "swapped_amount": swapped_amount,
                "remaining_amount": remaining_amount,
                "fee_amount": fee_amount,
                "is_buy": is_buy,
            }
        )

    def get_by_authority(self, position_authority: str, limit: int = 100) -> List[ClosePositionEventRecord]:
        """Get closed positions for one authority, newest first."""
        stmt = (
            select(ClosePositionEventRecord)
            .where(ClosePositionEventRecord.position_authority == position_authority)
            .order_by(ClosePositionEventRecord.slot.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())
