"""SQLAlchemy ORM models for the event store.

Two append-only tables, one per event kind:
- market_update_events
- close_position_events

Rows are keyed naturally by (signature, log_index): the transaction signature
plus the index of the log line that carried the event. Re-delivered
notifications hit the unique constraint and are skipped.
"""

from datetime import datetime, UTC

from sqlalchemy import (
    String,
    DateTime,
    Numeric,
    Index,
    UniqueConstraint,
    BigInteger,
    Integer,
    SmallInteger,
    TypeDecorator,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class U64(TypeDecorator):
    """Unsigned 64-bit integer column, read back as int.

    NUMERIC(20, 0) on PostgreSQL. SQLite binds NUMERIC values as float, so
    there the value is kept as zero-padded text, which compares and sorts
    like the number.
    """

    impl = Numeric(20, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(20))
        return dialect.type_descriptor(Numeric(20, 0))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if not 0 <= value < 2**64:
            raise ValueError(f"u64 out of range: {value}")
        if dialect.name == "sqlite":
            return f"{value:020d}"
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class MarketUpdateEventRecord(Base):
    """Flow update emitted by the program for one market."""

    __tablename__ = "market_update_events"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    signature: Mapped[str] = mapped_column(String(88), nullable=False)
    slot: Mapped[int] = mapped_column(BigInteger, nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    market_id: Mapped[int] = mapped_column(U64(), nullable=False)
    base_flow: Mapped[int] = mapped_column(U64(), nullable=False)
    quote_flow: Mapped[int] = mapped_column(U64(), nullable=False)
    ingested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        UniqueConstraint("signature", "log_index", name="uq_market_update_events_natural_key"),
        Index("ix_market_update_events_market_slot", "market_id", "slot"),
    )


class ClosePositionEventRecord(Base):
    """Position closed on a market, with the settled amounts."""

    __tablename__ = "close_position_events"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    signature: Mapped[str] = mapped_column(String(88), nullable=False)
    slot: Mapped[int] = mapped_column(BigInteger, nullable=False)
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)
    position_authority: Mapped[str] = mapped_column(String(44), nullable=False)  # base58
    market_id: Mapped[int] = mapped_column(U64(), nullable=False)
    start_slot: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_slot: Mapped[int] = mapped_column(BigInteger, nullable=False)
    deposit_amount: Mapped[int] = mapped_column(U64(), nullable=False)
    swapped_amount: Mapped[int] = mapped_column(U64(), nullable=False)
    remaining_amount: Mapped[int] = mapped_column(U64(), nullable=False)
    fee_amount: Mapped[int] = mapped_column(U64(), nullable=False)
    is_buy: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    ingested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        UniqueConstraint("signature", "log_index", name="uq_close_position_events_natural_key"),
        Index("ix_close_position_events_authority", "position_authority"),
        Index("ix_close_position_events_market_slot", "market_id", "slot"),
    )
