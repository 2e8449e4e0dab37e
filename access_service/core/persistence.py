"""Store-failure translation shared by the components that own tables.

Components wrap each store statement (or commit) in :func:`store_operation`.
Unique-constraint violations become :class:`ConflictError`; every other
SQLAlchemy failure becomes a :class:`PersistenceError` carrying a generic
message. The raw driver text is logged, never returned to callers.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from access_service.core.exceptions import ConflictError, PersistenceError

logger = logging.getLogger(__name__)

# Unique index from the retired "one API key per project" rule. Databases that
# have not applied the migration dropping it still reject a second key.
LEGACY_SINGLE_KEY_CONSTRAINT = "api_keys_project_id_key"
LEGACY_SINGLE_KEY_MESSAGE = (
    "This project still allows only one API key. Delete the existing key, "
    "or apply the latest database migration to enable multiple keys."
)


@contextmanager
def store_operation(
    db: Session,
    failure_message: str,
    conflict_message: Optional[str] = None,
) -> Iterator[None]:
    """
    Run store statements, rolling back and translating any SQLAlchemy failure.

    Args:
        db: Session the statements run on
        failure_message: Caller-safe message for unclassified store failures
        conflict_message: Message for unique-constraint violations; when omitted
            an integrity failure is reported as a PersistenceError
    """
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        driver_text = str(exc.orig)
        if LEGACY_SINGLE_KEY_CONSTRAINT in driver_text:
            logger.warning("Legacy single-key constraint rejected API key insert")
            raise ConflictError(
                LEGACY_SINGLE_KEY_MESSAGE,
                details={"constraint": LEGACY_SINGLE_KEY_CONSTRAINT},
            ) from exc
        if conflict_message:
            logger.info("Constraint violation: %s (%s)", conflict_message, driver_text)
            raise ConflictError(conflict_message) from exc
        logger.error("%s: %s", failure_message, driver_text)
        raise PersistenceError(failure_message) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("%s", failure_message, exc_info=True)
        raise PersistenceError(failure_message) from exc
