"""Model contract shared by every persisted entity type"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, Field

from blogstore.clock import Clock, utc_now_timestamp
from blogstore.database_operations import DatabaseOperations, affected_rows
from blogstore.db_context import Database, transactional
from blogstore.entities import Pagination, SortOrder
from blogstore.entity_mapper import EntityMapper
from blogstore.errors import NotFoundError
from blogstore.fields import FieldDescriptor, masked_assignments
from blogstore.query_builder import (
    MAX_ROW_COUNT,
    QueryBuilder,
    build_delete,
    build_update,
)

logger = logging.getLogger(__name__)

KeyColumns = list[tuple[str, Any]]


EntityT = TypeVar("EntityT", bound=BaseModel)
KeyT = TypeVar("KeyT")
MaskT = TypeVar("MaskT")


class ModelConfig(BaseModel):
    """Configuration options for Model"""

    db_schema: str | None = Field(default=None, description="Database schema name")


class Model(ABC, Generic[EntityT, KeyT, MaskT]):
    """Uniform persistence contract, implemented once per entity type.

    Subclasses declare their storage shape through class attributes and a few
    hooks; the reading and masked-update algorithms live here and are shared.

    Class attributes:
        table_name: Unqualified primary table name
        mapper: Row codec for the primary table
        fields: Descriptor table for masked updates
        order_by: Fixed listing order for select_many
        update_timestamp_column: Column refreshed by every masked update, or None
    """

    table_name: ClassVar[str]
    mapper: ClassVar[EntityMapper]
    fields: ClassVar[tuple[FieldDescriptor, ...]] = ()
    order_by: ClassVar[tuple[tuple[str, SortOrder], ...]] = ()
    update_timestamp_column: ClassVar[str | None] = None

    def __init__(
        self,
        db: Database,
        clock: Clock = utc_now_timestamp,
        config: ModelConfig | None = None,
    ):
        if db is None:
            raise ValueError("db is required")

        self.db = db
        self.clock = clock
        self.config = config or ModelConfig()
        self.db_ops = DatabaseOperations(db)
        self.table = self.qualify(self.table_name)

    def qualify(self, table_name: str) -> str:
        """Prefix a table name with the configured schema, if any"""
        if self.config.db_schema:
            return f"{self.config.db_schema}.{table_name}"
        return table_name

    # Hooks implemented per entity type
    @abstractmethod
    def natural_key(self, key: KeyT) -> KeyColumns:
        """Map a lookup key to (column, value) pairs"""

    @abstractmethod
    def identity_key(self, entity: EntityT) -> KeyColumns:
        """(column, value) pairs addressing an already stored entity"""

    async def hydrate(self, entities: list[EntityT]):
        """Attach dependent rows to freshly decoded entities"""

    async def replace_dependents(self, entity: EntityT, mask: MaskT):
        """Rewrite dependent rows flagged in mask"""

    # Contract
    @abstractmethod
    async def init_schema(self):
        """Create tables and indexes if they do not exist"""

    @abstractmethod
    async def insert(self, entity: EntityT) -> EntityT:
        """Persist a new entity, assigning server-controlled fields on it"""

    @transactional(write=False)
    async def select_one(self, key: KeyT) -> EntityT:
        """Look up exactly one entity by its natural key"""
        builder = QueryBuilder(self.table).select(*self.mapper.columns)
        for column, value in self.natural_key(key):
            builder = builder.where(column, value)

        query, params = builder.build()
        row = await self.db_ops.fetch_one(query, params)
        if row is None:
            raise NotFoundError(f"No row in {self.table} for key {key!r}")

        entity = self.mapper.map_row_to_entity(row)
        await self.hydrate([entity])
        return entity

    @transactional(write=False)
    async def select_many(self, pagination: Pagination) -> list[EntityT]:
        """Return one page of entities in the fixed listing order"""
        if pagination.skip_count > MAX_ROW_COUNT:
            # Past any table PostgreSQL can hold
            return []

        builder = QueryBuilder(self.table).select(*self.mapper.columns)
        for column, order in self.order_by:
            if order == SortOrder.DESC:
                builder = builder.order_by_desc(column)
            else:
                builder = builder.order_by_asc(column)

        query, params = builder.paginate(pagination).build()
        rows = await self.db_ops.fetch_all(query, params)

        entities = self.mapper.map_rows_to_entities(rows)
        await self.hydrate(entities)
        return entities

    async def update(self, entity: EntityT, mask: MaskT) -> EntityT:
        """Write the fields flagged in mask; an empty mask touches nothing."""
        if not mask:
            return entity

        assignments = masked_assignments(entity, mask, self.fields)
        update_timestamp = None
        if self.update_timestamp_column:
            update_timestamp = self.clock()
            assignments.insert(0, (self.update_timestamp_column, update_timestamp))

        key = self.identity_key(entity)
        async with self.db.write():
            if assignments:
                query, params = build_update(self.table, assignments, key)
                status = await self.db_ops.execute_query(query, params)
                if affected_rows(status) == 0:
                    raise NotFoundError(f"No row in {self.table} for {key!r}")

            await self.replace_dependents(entity, mask)

        if update_timestamp is not None:
            setattr(entity, self.update_timestamp_column, update_timestamp)
        return entity

    @transactional()
    async def delete(self, key: KeyT):
        """Delete the entity and everything it owns; missing keys are ignored."""
        query, params = build_delete(self.table, self.natural_key(key))
        status = await self.db_ops.execute_query(query, params)
        logger.info("Deleted %d row(s) from %s", affected_rows(status), self.table)
