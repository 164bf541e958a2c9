"""Database connection factory supporting SQLite and PostgreSQL."""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from twob_db.settings import DatabaseSettings
from twob_db.models import Base


class DatabaseFactory:
    """Factory for engine and sessions over the event store.

    Usage:
        db = DatabaseFactory(DatabaseSettings(database_url="sqlite:///events.db"))
        db.create_tables()

        with db.get_session() as session:
            repo = MarketUpdateEventRepository(session)
            repo.insert_or_ignore(...)
            # Commits automatically on success
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        """Initialize factory with database settings.

        Args:
            settings: Database configuration. Uses defaults if not provided.
        """
        self.settings = settings or DatabaseSettings()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        """Lazy-load SQLAlchemy engine."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Lazy-load session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self.engine,
            )
        return self._session_factory

    def _create_engine(self) -> Engine:
        """Create SQLAlchemy engine with appropriate settings for database type."""
        url = self.settings.database_url

        if self.settings.is_sqlite:
            kwargs = {
                "echo": self.settings.echo_sql,
                "connect_args": {"check_same_thread": False},
            }
            # One shared connection, otherwise each session sees an empty database
            if ":memory:" in url:
                kwargs["poolclass"] = StaticPool
            return create_engine(url, **kwargs)

        # PostgreSQL with connection pooling; pre_ping drops connections
        # the pooler closed while the keeper sat idle
        return create_engine(
            url,
            echo=self.settings.echo_sql,
            poolclass=QueuePool,
            pool_size=self.settings.pool_size,
            max_overflow=self.settings.max_overflow,
            pool_timeout=self.settings.pool_timeout,
            pool_recycle=self.settings.pool_recycle,
            pool_pre_ping=True,
        )

    def create_tables(self) -> None:
        """Create all tables defined in models."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution."""
        Base.metadata.drop_all(bind=self.engine)

    def ping(self) -> None:
        """Round-trip a trivial query.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the database is unreachable.
        """
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def dispose(self) -> None:
        """Close all pooled connections."""
        if self._engine is not None:
            self._engine.dispose()

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Context manager for database sessions.

        Automatically commits on success, rolls back on exception.

        Yields:
            SQLAlchemy Session instance.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
