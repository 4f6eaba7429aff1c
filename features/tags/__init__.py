"""
Tags feature — key/value labels attached to catalog features.

Public API:
    from features.tags import Tag, TagInput, TagResolver, MemoryTagResolver
    from features.tags.db import PostgresTagResolver
"""

from features.tags.models import Tag, TagInput
from features.tags.store import MemoryTagResolver, TagResolver

__all__ = ["Tag", "TagInput", "TagResolver", "MemoryTagResolver"]
