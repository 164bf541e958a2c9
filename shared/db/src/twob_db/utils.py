"""Helpers for logging database locations without leaking credentials."""

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError


def redact_db_url(url: str) -> str:
    """Render a database URL with its password masked as ``***``.

    URLs SQLAlchemy cannot parse are not echoed at all.

    Example::

        >>> redact_db_url("postgresql+psycopg2://keeper:hunter2@db:5432/twob")
        'postgresql+psycopg2://keeper:***@db:5432/twob'
        >>> redact_db_url("sqlite:///twob_events.db")
        'sqlite:///twob_events.db'
    """
    try:
        parsed = make_url(url)
    except ArgumentError:
        return "<unparseable database url>"
    return parsed.render_as_string(hide_password=True)
