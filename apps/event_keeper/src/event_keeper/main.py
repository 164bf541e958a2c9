"""Main entry point for the event keeper.

Usage:
    python -m event_keeper.main
    python -m event_keeper.main --config path/to/event_keeper.yaml
    python -m event_keeper.main --debug
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from twob_db import DatabaseFactory, DatabaseSettings, redact_db_url

from event_keeper.config import load_config
from event_keeper.runner import SubscriptionRunner


logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure logging for the event keeper.

    Args:
        debug: Enable DEBUG level logging.
    """
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Reduce noise from libraries
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


async def main(config_path: Optional[str] = None) -> int:
    """Main async entry point.

    Args:
        config_path: Path to configuration file.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        logger.error(f"Configuration file not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    logger.info("Event keeper configuration:")
    logger.info(f"  Program: {config.program_id}")
    logger.info(f"  WebSocket: {config.ws_url}")
    logger.info(f"  Commitment: {config.commitment}")
    logger.info(f"  Database: {redact_db_url(config.database_url)}")
    logger.info(f"  Health log interval: {config.health_log_interval}s")

    # URL passed directly; the factory picks sqlite vs postgresql from it
    db = DatabaseFactory(DatabaseSettings(database_url=config.database_url))
    try:
        if config.create_tables:
            db.create_tables()
            logger.info("Database tables initialized")
        else:
            db.ping()
        logger.info("Connected to database")
    except SQLAlchemyError as e:
        logger.error(f"Database unavailable: {e}")
        db.dispose()
        return 2

    runner = SubscriptionRunner(config, db)
    try:
        await runner.run_until_shutdown()
    finally:
        db.dispose()

    return 0


def cli() -> None:
    """Command-line interface entry point."""
    parser = argparse.ArgumentParser(
        description="Event Keeper - ingest TwoB program events into the database",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to configuration file (default: conf/event_keeper.yaml, else env only)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()
    setup_logging(debug=args.debug)

    try:
        exit_code = asyncio.run(main(args.config))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    cli()
