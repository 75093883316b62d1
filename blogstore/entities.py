from enum import Enum

from pydantic import BaseModel, Field, NonNegativeInt, PositiveInt


class BaseEntity(BaseModel):
    """Base entity class for all persisted models."""


class Post(BaseEntity):
    """A blog post.

    `id`, `create_timestamp`, `update_timestamp` and `views` are assigned by the
    storage layer; values supplied by callers are overwritten on insert.
    """

    id: int | None = None
    title: str
    slug: str
    author: str
    create_timestamp: int = 0
    update_timestamp: int = 0
    category: str
    views: int = 0
    content: str
    tags: list[str] = Field(default_factory=list)


class PostResource(BaseEntity):
    """A named binary attachment owned by a post."""

    post_id: int
    name: str
    type: str
    data: bytes


class Pagination(BaseModel):
    """A limit/offset window over an ordered result set."""

    page_size: PositiveInt
    page_index: NonNegativeInt = 0

    @property
    def skip_count(self) -> int:
        """Number of rows to skip before the page starts"""
        return self.page_index * self.page_size


# Sorting functionality
class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"
