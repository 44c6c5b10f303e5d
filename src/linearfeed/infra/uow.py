"""
This is the canonical Unit of Work boundary for linearfeed. All transactional changes must go through this.

Do not open ad hoc sessions elsewhere.

The SQL stores, the CLI and the HTTP layer all obtain sessions here, so a channel's
write batch commits or rolls back as one unit.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator

from sqlalchemy.orm import Session, sessionmaker

from . import db as db_module


@contextlib.contextmanager
def session(factory: sessionmaker | None = None) -> Generator[Session, None, None]:
    """
    Database session context manager for CLI operations and scheduler passes.

    Provides Unit of Work semantics:
    - Opens a DB session
    - Yields it for use
    - On success: commits the transaction
    - On exception: rolls back and re-raises the exception
    - Always closes the session

    Usage:
        with session() as db:
            db.add(some_object)
            # transaction will be committed automatically on success
    """
    db = (factory or db_module.SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
