"""
Data models for the tags feature.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from pydantic import BaseModel, field_validator


def _new_tag_id() -> str:
    return f"tag-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class Tag:
    """A key/value label attached to features. Identity is (name, value)."""
    name: str
    value: str = ""
    id: str = field(default_factory=_new_tag_id, compare=False)


class TagInput(BaseModel):
    """Requested tag, as supplied by a caller creating a feature."""
    name: str
    value: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("tag name must not be empty")
        return v

    @classmethod
    def coerce(cls, item: "TagInput | tuple[str, str] | dict") -> "TagInput":
        """Accept a TagInput, a (name, value) pair or a dict."""
        if isinstance(item, cls):
            return item
        if isinstance(item, dict):
            return cls(**item)
        name, value = item
        return cls(name=name, value=value)
