from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T", bound=BaseModel)


class EntityMapper(Generic[T]):
    """Converts storage rows into entities and entities into column values.

    Args:
        entity_class: The entity type rows decode into
        column_names: Field name -> column name, for fields stored under a
            different name. Unlisted fields use their own name.
        dependent_fields: Fields stored outside the primary row (e.g. tags);
            they are left at their defaults when decoding a primary row and are
            never part of `columns`.
    """

    def __init__(
        self,
        entity_class: type[T],
        column_names: Mapping[str, str] | None = None,
        dependent_fields: Sequence[str] = (),
    ):
        self.entity_class = entity_class
        self.dependent_fields = frozenset(dependent_fields)
        self._field_to_column = {
            name: (column_names or {}).get(name, name)
            for name in entity_class.model_fields
            if name not in self.dependent_fields
        }
        self._column_to_field = {
            column: name for name, column in self._field_to_column.items()
        }

    @property
    def columns(self) -> list[str]:
        """Primary-row columns, in entity field order"""
        return list(self._field_to_column.values())

    def map_row_to_entity(self, row: Any) -> T:
        """Map database row to entity"""
        data = {
            self._column_to_field.get(column, column): value
            for column, value in dict(row).items()
        }
        return self.entity_class(**data)

    def map_rows_to_entities(self, rows: list[Any]) -> list[T]:
        """Map database rows to entities"""
        return [self.map_row_to_entity(row) for row in rows]

    def to_row(self, entity: T) -> list[Any]:
        """Primary-row values of an entity, aligned with `columns`"""
        return [getattr(entity, name) for name in self._field_to_column]
