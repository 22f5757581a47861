import os
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import IntegrityError

db = SQLAlchemy()


def utcnow():
    """Naive UTC timestamp, the way the timestamp columns store it"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ensure_sqlite_dir(uri):
    """Create the directory of a sqlite database file if it doesn't exist"""
    if not uri or not uri.startswith('sqlite:///'):
        return
    path = uri[len('sqlite:///'):]
    db_dir = os.path.dirname(path)
    if db_dir and path != ':memory:':
        os.makedirs(db_dir, exist_ok=True)


def is_unique_violation(error, constraint, column=None):
    """
    Check whether an IntegrityError was raised by a given unique constraint.

    MySQL and PostgreSQL report the constraint name; sqlite reports
    "UNIQUE constraint failed: <table>.<column>", so the column is matched too.
    """
    if not isinstance(error, IntegrityError):
        return False
    text = str(getattr(error, 'orig', error))
    if constraint in text:
        return True
    return bool(column) and 'UNIQUE' in text.upper() and column in text
