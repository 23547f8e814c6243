# Overview: Unit-of-work helpers shared by the services: retry on lock contention and storage error wrapping.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageError
from ..extensions import db


def begin_immediate() -> None:
    """
    Take SQLite's write lock up front for read-modify-write units of work.

    No-op on other dialects.
    """
    if db.engine.dialect.name == "sqlite" and not db.session().in_transaction():
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (database locked) and StaleDataError. Any
    SQLAlchemy failure that survives the retries, or is not retryable, is
    rolled back and re-raised as StorageError with the original chained.
    Domain errors raised by func propagate after a rollback.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.error("Giving up after %d attempts: %s", attempts, exc)
                raise StorageError("Database is busy, please retry") from exc
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Storage failure")
            raise StorageError("Storage failure") from exc
        except Exception:
            db.session.rollback()
            raise
