# Overview: Transaction helpers shared by every ledger write: row locks, write-lock acquisition, bounded retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import InvalidState


class ConcurrencyConflict(RuntimeError):
    """Storage kept rejecting the unit of work after the bounded retries."""


def _has_uncommitted_writes() -> bool:
    session = db.session()
    if session.new or session.dirty or session.deleted:
        return True
    if not session.in_transaction():
        return False
    # Flushed but uncommitted writes leave the sqlite3 connection mid-transaction
    driver_connection = session.connection().connection.driver_connection
    return bool(getattr(driver_connection, "in_transaction", False))


def ensure_clean_session() -> None:
    """
    Refuse to start a unit of work on top of the caller's uncommitted writes.

    Units of work roll back and retry as a whole, which would silently discard
    anything the caller had pending in the same session.
    """
    if _has_uncommitted_writes():
        raise InvalidState("Commit or roll back pending changes before starting a ledger write")


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    provides the equivalent guarantee there.
    """
    return query.with_for_update().populate_existing()


def begin_write_transaction() -> None:
    """
    Take the database write lock up front on SQLite.

    Without it two SQLite transactions can both read a cell (or the invoice
    counter) before either writes, and the later commit fails or loses an update.
    Server databases rely on lock_for_update() instead.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def _retry_settings(attempts: int | None, backoff_base: float | None) -> tuple[int, float]:
    config = current_app.config
    if attempts is None:
        attempts = config.get("LEDGER_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = config.get("LEDGER_RETRY_BACKOFF", 0.1)
    return max(1, attempts), backoff_base


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a unit of work, retrying it whole on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts, serialization
    failures) and StaleDataError (optimistic version conflicts). Any other
    exception rolls the session back and propagates unchanged.

    Raises:
        InvalidState: the session already holds uncommitted writes (nothing
            is rolled back)
    """
    ensure_clean_session()
    attempts, backoff_base = _retry_settings(attempts, backoff_base)
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise ConcurrencyConflict(
                    f"Gave up after {attempts} attempts: {exc.__class__.__name__}"
                ) from exc
            current_app.logger.warning(
                "Retrying unit of work after %s (attempt %d/%d)",
                exc.__class__.__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise

