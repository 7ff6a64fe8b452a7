"""
Database unit-of-work helper shared by the SQL-backed stores.

Mirrors the rollback/log/raise pattern used for endpoint database errors,
but raises StoreUnavailableError so the engine, not HTTP, decides what to
report.

Usage:
    with db_operation(self.session_factory, self.NAME, "update") as db:
        record = db.get(ExamSessionRecord, token)
        record.status = "expired"
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from picquiz.stores.base import StoreUnavailableError

logger = logging.getLogger(__name__)


@contextmanager
def db_operation(
    session_factory: sessionmaker,
    store: str,
    operation: str,
) -> Generator[Session, None, None]:
    """
    Open a session, commit on success, roll back and wrap database errors.

    Raises:
        StoreUnavailableError: on any SQLAlchemyError raised inside the block
            or during commit
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during {store}.{operation}: {e}", exc_info=True)
        raise StoreUnavailableError(store, operation, e) from e
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
