# Overview: Unit-of-work helpers shared by every mutating service.

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..errors import DatastoreError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func, *, invalidates: tuple[str, ...] = ()):
    """
    Execute func() as one unit of work and commit it.

    - Service errors (ThummaError and friends) roll back and propagate unchanged.
    - SQLAlchemyError rolls back and is raised as DatastoreError with the raw
      backend message. There are no automatic retries.
    - After a successful commit, the named entity types are dropped from the cache.
    """
    try:
        result = func()
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.warning("Datastore write rejected: %s", exc)
        raise DatastoreError(str(getattr(exc, "orig", None) or exc)) from exc
    except Exception:
        db.session.rollback()
        raise

    if invalidates:
        from .cache import invalidate
        for entity_type in invalidates:
            invalidate(entity_type)
    return result
