"""Typed failures raised by the model layer"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import asyncpg

logger = logging.getLogger(__name__)


class BlogStoreError(Exception):
    """Base class for every failure raised by blogstore."""


class NotFoundError(BlogStoreError):
    """No row matches the requested key."""


class UniqueConstraintError(BlogStoreError):
    """A natural or composite key already exists."""


class UnsupportedOperationError(BlogStoreError):
    """The operation is structurally disallowed for this entity type."""


class StorageError(BlogStoreError):
    """Any lower-level I/O, connection or constraint fault."""


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise engine faults as blogstore errors, chaining the original.

    Errors that are already blogstore errors pass through unchanged.
    """
    try:
        yield
    except asyncpg.UniqueViolationError as exc:
        logger.warning("%s: unique constraint violated: %s", operation, exc)
        raise UniqueConstraintError(str(exc)) from exc
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
        logger.warning("%s: storage failure: %s", operation, exc)
        raise StorageError(f"{operation} failed: {exc}") from exc
