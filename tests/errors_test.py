import asyncpg
import pytest

from blogstore.errors import (
    BlogStoreError,
    NotFoundError,
    StorageError,
    UniqueConstraintError,
    translate_errors,
)


class TestTranslateErrors:
    """Classification of engine faults"""

    def test_unique_violation(self):
        original = asyncpg.UniqueViolationError("duplicate key value")

        with pytest.raises(UniqueConstraintError) as exc_info:
            with translate_errors("insert"):
                raise original

        assert exc_info.value.__cause__ is original
        assert isinstance(exc_info.value, BlogStoreError)

    def test_other_postgres_error(self):
        original = asyncpg.ForeignKeyViolationError("missing parent")

        with pytest.raises(StorageError) as exc_info:
            with translate_errors("insert"):
                raise original

        assert exc_info.value.__cause__ is original
        assert "insert failed" in str(exc_info.value)

    def test_connection_error(self):
        with pytest.raises(StorageError):
            with translate_errors("connect"):
                raise ConnectionRefusedError("no server")

    def test_blogstore_errors_pass_through(self):
        with pytest.raises(NotFoundError):
            with translate_errors("select"):
                raise NotFoundError("gone")

    def test_unrelated_errors_pass_through(self):
        with pytest.raises(KeyError):
            with translate_errors("select"):
                raise KeyError("x")
