"""
Concurrency helpers for store operations.
Row locking and retry of transient database conflicts.
"""

import logging
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from timeledger.config import settings
from timeledger.domain.models.base import ConcurrentModificationError, DomainException, StoreError

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    Renders SELECT ... FOR UPDATE on databases with row locks. SQLite drops the
    clause; there the writer lock taken by BEGIN IMMEDIATE covers the whole
    transaction (see database.use_immediate_transactions).
    """
    return query.with_for_update()


def run_with_retry(session: Session, func, *, attempts: int = None, backoff_base: float = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (optimistic locking conflicts), rolling back before each new attempt.
    """
    attempts = attempts or settings.store_retry_attempts
    backoff_base = settings.store_retry_backoff_seconds if backoff_base is None else backoff_base

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                f"Retrying after {type(exc).__name__} (attempt {attempt + 1} of {attempts})"
            )
            time.sleep(backoff_base * (2 ** attempt))


@contextmanager
def store_errors(session: Session, operation: str, entity_id=None, entity_type: str = None):
    """
    Roll back on any failure and report unexpected database errors as StoreError.
    Domain exceptions pass through unchanged; a lost version check becomes
    ConcurrentModificationError.
    """
    try:
        yield
    except DomainException:
        session.rollback()
        raise
    except StaleDataError as exc:
        session.rollback()
        logger.warning(
            f"Store operation {operation} lost a version check",
            extra={"operation": operation, "entity_id": entity_id}
        )
        raise ConcurrentModificationError(entity_type or "Entity", entity_id) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            f"Store operation {operation} failed: {type(exc).__name__}",
            exc_info=True,
            extra={"operation": operation, "entity_id": entity_id}
        )
        raise StoreError(operation, entity_id) from exc
