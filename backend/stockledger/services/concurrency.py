# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from .errors import PersistenceConflictError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Product.version_id still catches the race there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    func must be a complete read-compute-write unit that commits on success,
    so a retry re-reads fresh state instead of replaying stale values.

    - OperationalError (deadlocks, locks) and StaleDataError (optimistic
      version conflict) are retried; when attempts run out the session is
      rolled back and PersistenceConflictError is raised.
    - Any other SQLAlchemyError rolls back and raises PersistenceConflictError.
    - Domain errors raised by func roll back and propagate unchanged.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.error("Giving up after %d conflicting attempts: %s", attempts, exc)
                raise PersistenceConflictError("Concurrent update detected, please retry") from exc
            current_app.logger.warning(
                "Concurrent update conflict (attempt %d/%d), retrying: %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error("Persistence failure: %s", exc)
            raise PersistenceConflictError("Failed to persist changes") from exc
        except Exception:
            db.session.rollback()
            raise
