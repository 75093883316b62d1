"""blogstore: persistence layer for blog posts, tags and post resources"""

from blogstore.db_context import Database, DatabaseConfig, transactional
from blogstore.entities import Pagination, Post, PostResource
from blogstore.errors import (
    BlogStoreError,
    NotFoundError,
    StorageError,
    UniqueConstraintError,
    UnsupportedOperationError,
)
from blogstore.masks import PostUpdateMask
from blogstore.model import Model, ModelConfig
from blogstore.post_model import PostModel
from blogstore.resource_model import PostResourceModel

__all__ = [
    "Database",
    "DatabaseConfig",
    "transactional",
    "Pagination",
    "Post",
    "PostResource",
    "PostUpdateMask",
    "Model",
    "ModelConfig",
    "PostModel",
    "PostResourceModel",
    "BlogStoreError",
    "NotFoundError",
    "StorageError",
    "UniqueConstraintError",
    "UnsupportedOperationError",
]
