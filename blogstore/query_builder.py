"""
Statement builders producing SQL text plus positional parameters.
Nothing here executes SQL.

Only identifiers (tables, columns) are written into the SQL text and they must
come from code-controlled declarations. Every value is bound as a `$n`
parameter.
"""

from collections.abc import Sequence
from typing import Any

from blogstore.entities import Pagination, SortOrder

# Largest value PostgreSQL accepts for LIMIT and OFFSET (BIGINT)
MAX_ROW_COUNT = 2**63 - 1


class QueryBuilder:
    """
    Immutable builder for SELECT statements.

    Usage:
        builder = QueryBuilder("posts")
        query, params = builder.select("id", "slug").where("slug", slug).build()
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.select_fields = "*"
        self.where_conditions: list[str] = []
        self.params: list[Any] = []
        self.order_by_parts: list[str] = []
        self.limit_param: str | None = None
        self.offset_param: str | None = None
        self.lock_clause = ""

    def _clone(self) -> "QueryBuilder":
        """Create a copy of the current QueryBuilder instance"""
        new_builder = QueryBuilder(self.table_name)
        new_builder.select_fields = self.select_fields
        new_builder.where_conditions = self.where_conditions.copy()
        new_builder.params = self.params.copy()
        new_builder.order_by_parts = self.order_by_parts.copy()
        new_builder.limit_param = self.limit_param
        new_builder.offset_param = self.offset_param
        new_builder.lock_clause = self.lock_clause
        return new_builder

    def _bind(self, value: Any) -> str:
        self.params.append(value)
        return f"${len(self.params)}"

    def select(self, *fields: str) -> "QueryBuilder":
        """Set the SELECT fields; defaults to * when none is provided."""
        new_builder = self._clone()
        new_builder.select_fields = ", ".join(fields) if fields else "*"
        return new_builder

    def where(self, field: str, value: Any) -> "QueryBuilder":
        """Add an equality condition; conditions are joined with AND."""
        new_builder = self._clone()
        placeholder = new_builder._bind(value)
        new_builder.where_conditions.append(f"{field} = {placeholder}")
        return new_builder

    def where_any(self, field: str, values: Sequence[Any]) -> "QueryBuilder":
        """Add a `field = ANY($n)` condition bound to a single array parameter."""
        new_builder = self._clone()
        placeholder = new_builder._bind(list(values))
        new_builder.where_conditions.append(f"{field} = ANY({placeholder})")
        return new_builder

    def order_by_asc(self, field: str) -> "QueryBuilder":
        """Add ORDER BY ... ASC for a field. Can be chained for multiple fields."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field} {SortOrder.ASC.value}")
        return new_builder

    def order_by_desc(self, field: str) -> "QueryBuilder":
        """Add ORDER BY ... DESC for a field. Can be chained for multiple fields."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field} {SortOrder.DESC.value}")
        return new_builder

    def paginate(self, pagination: Pagination) -> "QueryBuilder":
        """Bind LIMIT and OFFSET for the requested page.

        LIMIT is clamped to MAX_ROW_COUNT; callers must not build a page whose
        skip count exceeds it.
        """
        new_builder = self._clone()
        new_builder.limit_param = new_builder._bind(
            min(pagination.page_size, MAX_ROW_COUNT)
        )
        new_builder.offset_param = new_builder._bind(pagination.skip_count)
        return new_builder

    def for_update(self) -> "QueryBuilder":
        """Lock the selected rows until the surrounding transaction ends."""
        new_builder = self._clone()
        new_builder.lock_clause = "FOR UPDATE"
        return new_builder

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        query_parts = [f"SELECT {self.select_fields} FROM {self.table_name}"]

        if self.where_conditions:
            query_parts.append(f"WHERE {' AND '.join(self.where_conditions)}")

        if self.order_by_parts:
            query_parts.append(f"ORDER BY {', '.join(self.order_by_parts)}")

        if self.limit_param is not None:
            query_parts.append(f"LIMIT {self.limit_param}")

        if self.offset_param is not None:
            query_parts.append(f"OFFSET {self.offset_param}")

        if self.lock_clause:
            query_parts.append(self.lock_clause)

        return " ".join(query_parts), self.params.copy()

    def to_sql(self) -> str:
        """Return only the SQL query string without parameters"""
        query, _ = self.build()
        return query


def build_insert(
    table_name: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    returning: str | None = None,
) -> tuple[str, list[Any]]:
    """Build a single INSERT statement covering every row.

    Raises ValueError for an empty row list: callers skip the statement
    entirely when there is nothing to insert.
    """
    if not rows:
        raise ValueError("Cannot build an INSERT statement without rows")

    field_count = len(columns)
    rows_placeholders = []
    all_values: list[Any] = []

    for i, row in enumerate(rows):
        if len(row) != field_count:
            raise ValueError(
                f"Row {i} has {len(row)} values, expected {field_count}"
            )
        row_placeholders = ", ".join(
            [f"${j + i * field_count + 1}" for j in range(field_count)]
        )
        rows_placeholders.append(f"({row_placeholders})")
        all_values.extend(row)

    query = (
        f"INSERT INTO {table_name} ({', '.join(columns)}) "
        f"VALUES {', '.join(rows_placeholders)}"
    )
    if returning:
        query += f" RETURNING {returning}"
    return query, all_values


def build_update(
    table_name: str,
    assignments: Sequence[tuple[str, Any]],
    key: Sequence[tuple[str, Any]],
) -> tuple[str, list[Any]]:
    """Build `UPDATE table SET col = $n, ... WHERE key_col = $m AND ...`."""
    if not assignments:
        raise ValueError("Cannot build an UPDATE statement without assignments")
    if not key:
        raise ValueError("Cannot build an UPDATE statement without a key")

    values: list[Any] = []
    set_parts = []
    for column, value in assignments:
        values.append(value)
        set_parts.append(f"{column} = ${len(values)}")

    where_parts = []
    for column, value in key:
        values.append(value)
        where_parts.append(f"{column} = ${len(values)}")

    query = (
        f"UPDATE {table_name} SET {', '.join(set_parts)} "
        f"WHERE {' AND '.join(where_parts)}"
    )
    return query, values


def build_delete(
    table_name: str, key: Sequence[tuple[str, Any]]
) -> tuple[str, list[Any]]:
    """Build `DELETE FROM table WHERE key_col = $n AND ...`."""
    if not key:
        raise ValueError("Cannot delete without WHERE conditions")

    where_parts = [f"{column} = ${i + 1}" for i, (column, _) in enumerate(key)]
    return (
        f"DELETE FROM {table_name} WHERE {' AND '.join(where_parts)}",
        [value for _, value in key],
    )
