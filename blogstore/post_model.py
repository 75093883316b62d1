import logging
from collections import defaultdict

from blogstore.db_context import transactional
from blogstore.entities import Post, SortOrder
from blogstore.entity_mapper import EntityMapper
from blogstore.errors import NotFoundError
from blogstore.fields import POST_FIELDS
from blogstore.masks import PostUpdateMask
from blogstore.model import KeyColumns, Model
from blogstore.query_builder import (
    QueryBuilder,
    build_delete,
    build_insert,
    build_update,
)

logger = logging.getLogger(__name__)


class PostModel(Model[Post, str, PostUpdateMask]):
    """Posts keyed by slug, with tags stored in a dependent table."""

    table_name = "posts"
    tags_table_name = "posts_tags"
    mapper = EntityMapper(Post, dependent_fields=("tags",))
    fields = POST_FIELDS
    order_by = (("create_timestamp", SortOrder.DESC), ("id", SortOrder.DESC))
    update_timestamp_column = "update_timestamp"

    @property
    def tags_table(self) -> str:
        return self.qualify(self.tags_table_name)

    def natural_key(self, key: str) -> KeyColumns:
        return [("slug", key)]

    def identity_key(self, entity: Post) -> KeyColumns:
        if entity.id is None:
            raise NotFoundError(f"Post {entity.slug!r} has not been inserted")
        return [("id", entity.id)]

    @transactional()
    async def init_schema(self):
        posts, tags = self.table, self.tags_table
        await self.db_ops.execute_script(
            f"""
            CREATE TABLE IF NOT EXISTS {posts} (
                id               BIGSERIAL PRIMARY KEY,
                title            TEXT NOT NULL,
                slug             TEXT NOT NULL,
                author           TEXT NOT NULL,
                create_timestamp BIGINT NOT NULL,
                update_timestamp BIGINT NOT NULL,
                category         TEXT NOT NULL,
                views            BIGINT NOT NULL DEFAULT 0,
                content          TEXT NOT NULL
            );

            CREATE UNIQUE INDEX IF NOT EXISTS posts_idx_slug     ON {posts} (slug);
            CREATE INDEX IF NOT EXISTS        posts_idx_ts       ON {posts} (create_timestamp DESC);
            CREATE INDEX IF NOT EXISTS        posts_idx_category ON {posts} (category);
            CREATE INDEX IF NOT EXISTS        posts_idx_views    ON {posts} (views DESC);

            CREATE TABLE IF NOT EXISTS {tags} (
                post_id  BIGINT NOT NULL REFERENCES {posts} (id) ON DELETE CASCADE,
                tag_name TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS        posts_tags_idx_tag_name ON {tags} (tag_name);
            CREATE UNIQUE INDEX IF NOT EXISTS posts_tags_idx_uniq     ON {tags} (post_id, tag_name);
            """
        )
        logger.info("Initialized schema for %s and %s", posts, tags)

    @transactional()
    async def insert(self, entity: Post) -> Post:
        """Insert a post and its tags.

        Sets `id`, `create_timestamp`, `update_timestamp` and `views` on the
        passed entity.
        """
        timestamp = self.clock()
        row = {
            "title": entity.title,
            "slug": entity.slug,
            "author": entity.author,
            "create_timestamp": timestamp,
            "update_timestamp": timestamp,
            "category": entity.category,
            "views": 0,
            "content": entity.content,
        }
        query, params = build_insert(
            self.table, list(row), [list(row.values())], returning="id"
        )
        post_id = await self.db_ops.fetch_value(query, params)

        entity.id = post_id
        entity.create_timestamp = timestamp
        entity.update_timestamp = timestamp
        entity.views = 0

        if entity.tags:
            await self._insert_tags(post_id, entity.tags)

        logger.debug("Inserted post %d (%s)", post_id, entity.slug)
        return entity

    async def hydrate(self, entities: list[Post]):
        if not entities:
            return

        query, params = (
            QueryBuilder(self.tags_table)
            .select("post_id", "tag_name")
            .where_any("post_id", [post.id for post in entities])
            .build()
        )
        rows = await self.db_ops.fetch_all(query, params)

        tags_by_post: dict[int, list[str]] = defaultdict(list)
        for row in rows:
            tags_by_post[row["post_id"]].append(row["tag_name"])

        for post in entities:
            post.tags = tags_by_post.get(post.id, [])

    async def replace_dependents(self, entity: Post, mask: PostUpdateMask):
        if PostUpdateMask.TAGS not in mask:
            return

        query, params = build_delete(self.tags_table, [("post_id", entity.id)])
        await self.db_ops.execute_query(query, params)

        if entity.tags:
            await self._insert_tags(entity.id, entity.tags)

    async def _insert_tags(self, post_id: int, tags: list[str]):
        query, params = build_insert(
            self.tags_table, ["post_id", "tag_name"], [(post_id, tag) for tag in tags]
        )
        await self.db_ops.execute_query(query, params)

    async def increase_views(self, entity: Post) -> Post:
        """Add one view to a stored post.

        The counter is read and rewritten under the exclusive write lock and a
        row lock, so concurrent increments never overwrite each other.
        """
        key = self.identity_key(entity)
        async with self.db.write():
            builder = QueryBuilder(self.table).select("views")
            for column, value in key:
                builder = builder.where(column, value)
            query, params = builder.for_update().build()
            views = await self.db_ops.fetch_value(query, params)
            if views is None:
                raise NotFoundError(f"No row in {self.table} for {key!r}")

            query, params = build_update(self.table, [("views", views + 1)], key)
            await self.db_ops.execute_query(query, params)

        entity.views = views + 1
        return entity
