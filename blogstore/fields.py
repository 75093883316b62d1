"""Field descriptor tables driving masked updates"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Flag
from typing import Any, Generic, TypeVar

from blogstore.entities import Post
from blogstore.masks import PostUpdateMask


E = TypeVar("E")
M = TypeVar("M", bound=Flag)


@dataclass(frozen=True)
class FieldDescriptor(Generic[E, M]):
    """Binds an update-mask flag to a storage column and a value accessor.

    Usage:
        FieldDescriptor(PostUpdateMask.TITLE, "title", lambda post: post.title)

    The column name is written into SQL text verbatim, so descriptors must only
    ever be declared in code, never built from external input.
    """

    flag: M
    column: str
    getter: Callable[[E], Any]

    def value_of(self, entity: E) -> Any:
        return self.getter(entity)


def masked_assignments(
    entity: E, mask: M, fields: Iterable[FieldDescriptor[E, M]]
) -> list[tuple[str, Any]]:
    """Return (column, value) pairs for every descriptor whose flag is in mask.

    Pairs follow the declaration order of `fields`.
    """
    return [
        (field.column, field.value_of(entity)) for field in fields if field.flag in mask
    ]


def _post_field(flag: PostUpdateMask, attribute: str) -> FieldDescriptor:
    return FieldDescriptor(flag, attribute, lambda post: getattr(post, attribute))


POST_FIELDS: tuple[FieldDescriptor[Post, PostUpdateMask], ...] = (
    _post_field(PostUpdateMask.TITLE, "title"),
    _post_field(PostUpdateMask.SLUG, "slug"),
    _post_field(PostUpdateMask.AUTHOR, "author"),
    _post_field(PostUpdateMask.CATEGORY, "category"),
    _post_field(PostUpdateMask.CONTENT, "content"),
)


def _check_post_fields() -> None:
    declared = [field.flag for field in POST_FIELDS]
    if len(set(declared)) != len(declared):
        raise RuntimeError("POST_FIELDS declares the same flag more than once")

    covered = PostUpdateMask.TAGS
    for flag in declared:
        covered |= flag
    if covered != PostUpdateMask.all():
        raise RuntimeError("POST_FIELDS does not cover every PostUpdateMask flag")


_check_post_fields()
