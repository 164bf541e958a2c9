"""Create the event store tables.

Usage:
    twob-init-db [--database-url URL] [--echo-sql]

Without ``--database-url`` the URL comes from EVENTKEEPER_DATABASE_URL or
DATABASE_URL, the variables the keeper itself reads. Existing tables are
left untouched, so running it against a live store is safe.

Exit codes: 0 on success, 1 if the database cannot be reached or written,
2 if the URL is rejected.
"""

import argparse
import sys
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from twob_db.database import DatabaseFactory
from twob_db.models import Base
from twob_db.settings import DatabaseSettings
from twob_db.utils import redact_db_url


def initialize_database(
    settings: Optional[DatabaseSettings] = None,
) -> tuple[DatabaseFactory, list[str]]:
    """Create any missing event tables.

    Args:
        settings: Database configuration. Read from the environment if not provided.

    Returns:
        The factory bound to the database, and the names of the tables
        this call created (empty when they all existed already).
    """
    db = DatabaseFactory(settings or DatabaseSettings())
    existing = set(inspect(db.engine).get_table_names())
    db.create_tables()
    created = [name for name in Base.metadata.tables if name not in existing]
    return db, created


def _parse_args(argv: Optional[list[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create twob event store tables")
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy URL (default: $EVENTKEEPER_DATABASE_URL or $DATABASE_URL)",
    )
    parser.add_argument("--echo-sql", action="store_true", help="Echo SQL statements")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for database initialization."""
    args = _parse_args(argv)

    overrides = {"echo_sql": True} if args.echo_sql else {}
    if args.database_url:
        overrides["database_url"] = args.database_url

    try:
        settings = DatabaseSettings(**overrides)
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        print(f"Invalid database URL: {messages}", file=sys.stderr)
        return 2

    print(f"Initializing database: {redact_db_url(settings.database_url)}")

    try:
        db, created = initialize_database(settings)
    except SQLAlchemyError as e:
        print(f"Error initializing database: {e}", file=sys.stderr)
        return 1

    try:
        for name in Base.metadata.tables:
            status = "created" if name in created else "already present"
            print(f"  - {name}: {status}")
    finally:
        db.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
