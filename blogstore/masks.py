"""Update masks: which fields of an entity changed"""

from enum import Flag, auto


class PostUpdateMask(Flag):
    """Fields of a Post touched by a masked update.

    Usage:
        mask = PostUpdateMask.TITLE | PostUpdateMask.TAGS
        PostUpdateMask.TITLE in mask  # True
        bool(PostUpdateMask(0))       # False, empty mask
    """

    TITLE = auto()
    SLUG = auto()
    AUTHOR = auto()
    CATEGORY = auto()
    CONTENT = auto()
    TAGS = auto()

    @classmethod
    def empty(cls) -> "PostUpdateMask":
        return cls(0)

    @classmethod
    def all(cls) -> "PostUpdateMask":
        mask = cls(0)
        for flag in cls:
            mask |= flag
        return mask
