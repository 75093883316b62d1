import logging

from blogstore.db_context import transactional
from blogstore.entities import Pagination, PostResource
from blogstore.entity_mapper import EntityMapper
from blogstore.errors import UnsupportedOperationError
from blogstore.model import KeyColumns, Model
from blogstore.query_builder import build_insert

logger = logging.getLogger(__name__)

ResourceKey = tuple[int, str]


class PostResourceModel(Model[PostResource, ResourceKey, None]):
    """Binary resources keyed by (post id, resource name).

    Resources are immutable and never listed: replace one with delete + insert.
    The posts table must exist before `init_schema` runs.
    """

    table_name = "posts_resources"
    posts_table_name = "posts"
    mapper = EntityMapper(
        PostResource,
        column_names={"name": "res_name", "type": "res_type", "data": "res_data"},
    )

    def natural_key(self, key: ResourceKey) -> KeyColumns:
        post_id, name = key
        return [("post_id", post_id), ("res_name", name)]

    def identity_key(self, entity: PostResource) -> KeyColumns:
        return self.natural_key((entity.post_id, entity.name))

    @transactional()
    async def init_schema(self):
        resources, posts = self.table, self.qualify(self.posts_table_name)
        await self.db_ops.execute_script(
            f"""
            CREATE TABLE IF NOT EXISTS {resources} (
                post_id  BIGINT NOT NULL REFERENCES {posts} (id) ON DELETE CASCADE,
                res_name TEXT NOT NULL,
                res_type TEXT NOT NULL,
                res_data BYTEA NOT NULL
            );

            CREATE UNIQUE INDEX IF NOT EXISTS posts_resources_idx_name_uniq ON {resources} (post_id, res_name);
            """
        )
        logger.info("Initialized schema for %s", resources)

    @transactional()
    async def insert(self, entity: PostResource) -> PostResource:
        query, params = build_insert(
            self.table, self.mapper.columns, [self.mapper.to_row(entity)]
        )
        await self.db_ops.execute_query(query, params)
        return entity

    async def select_many(self, pagination: Pagination) -> list[PostResource]:
        raise UnsupportedOperationError("Post resources cannot be listed")

    async def update(self, entity: PostResource, mask: None) -> PostResource:
        raise UnsupportedOperationError(
            "Post resources are immutable; delete and insert instead"
        )
