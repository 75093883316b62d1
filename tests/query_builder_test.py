"""
Tests for the SELECT/INSERT/UPDATE/DELETE statement builders.
"""

import pytest

from blogstore.entities import Pagination
from blogstore.query_builder import (
    MAX_ROW_COUNT,
    QueryBuilder,
    build_delete,
    build_insert,
    build_update,
)


class TestQueryBuilder:
    """SELECT statements"""

    def test_select_all(self):
        query, params = QueryBuilder("posts").build()

        assert query == "SELECT * FROM posts"
        assert params == []

    def test_select_fields_and_where(self):
        query, params = (
            QueryBuilder("posts").select("id", "slug").where("slug", "hello").build()
        )

        assert query == "SELECT id, slug FROM posts WHERE slug = $1"
        assert params == ["hello"]

    def test_multiple_where_conditions_are_anded(self):
        query, params = (
            QueryBuilder("posts_resources")
            .where("post_id", 3)
            .where("res_name", "cover.png")
            .build()
        )

        assert query == "SELECT * FROM posts_resources WHERE post_id = $1 AND res_name = $2"
        assert params == [3, "cover.png"]

    def test_where_any_binds_one_array(self):
        query, params = QueryBuilder("posts_tags").where_any("post_id", (1, 2)).build()

        assert query == "SELECT * FROM posts_tags WHERE post_id = ANY($1)"
        assert params == [[1, 2]]

    def test_order_and_paginate(self):
        query, params = (
            QueryBuilder("posts")
            .order_by_desc("create_timestamp")
            .order_by_asc("id")
            .paginate(Pagination(page_size=2, page_index=3))
            .build()
        )

        assert query == (
            "SELECT * FROM posts ORDER BY create_timestamp DESC, id ASC "
            "LIMIT $1 OFFSET $2"
        )
        assert params == [2, 6]

    def test_paginate_clamps_limit_to_bigint(self):
        _, params = QueryBuilder("posts").paginate(Pagination(page_size=10**19)).build()

        assert params == [MAX_ROW_COUNT, 0]

    def test_for_update(self):
        query, params = QueryBuilder("posts").select("views").where("id", 1).for_update().build()

        assert query == "SELECT views FROM posts WHERE id = $1 FOR UPDATE"
        assert params == [1]

    def test_builder_is_immutable(self):
        base = QueryBuilder("posts")
        base.where("id", 1)

        assert base.to_sql() == "SELECT * FROM posts"


class TestWriteStatements:
    """INSERT, UPDATE and DELETE statements"""

    def test_insert_single_row_returning(self):
        query, params = build_insert("posts", ["title", "slug"], [["T", "t"]], returning="id")

        assert query == "INSERT INTO posts (title, slug) VALUES ($1, $2) RETURNING id"
        assert params == ["T", "t"]

    def test_insert_many_rows(self):
        query, params = build_insert(
            "posts_tags", ["post_id", "tag_name"], [(1, "a"), (1, "b"), (1, "c")]
        )

        assert query == (
            "INSERT INTO posts_tags (post_id, tag_name) "
            "VALUES ($1, $2), ($3, $4), ($5, $6)"
        )
        assert params == [1, "a", 1, "b", 1, "c"]

    def test_insert_without_rows_is_rejected(self):
        with pytest.raises(ValueError, match="without rows"):
            build_insert("posts_tags", ["post_id", "tag_name"], [])

    def test_insert_row_width_mismatch(self):
        with pytest.raises(ValueError, match="Row 1 has 1 values"):
            build_insert("posts_tags", ["post_id", "tag_name"], [(1, "a"), (2,)])

    def test_update_uses_set_clause(self):
        query, params = build_update(
            "posts", [("update_timestamp", 10), ("title", "New")], [("id", 4)]
        )

        assert query == "UPDATE posts SET update_timestamp = $1, title = $2 WHERE id = $3"
        assert params == [10, "New", 4]

    def test_update_requires_assignments_and_key(self):
        with pytest.raises(ValueError, match="without assignments"):
            build_update("posts", [], [("id", 1)])
        with pytest.raises(ValueError, match="without a key"):
            build_update("posts", [("title", "x")], [])

    def test_delete_by_composite_key(self):
        query, params = build_delete("posts_resources", [("post_id", 1), ("res_name", "a")])

        assert query == "DELETE FROM posts_resources WHERE post_id = $1 AND res_name = $2"
        assert params == [1, "a"]

    def test_delete_requires_key(self):
        with pytest.raises(ValueError, match="Cannot delete without WHERE conditions"):
            build_delete("posts", [])
