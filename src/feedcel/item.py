"""
Canonical Feed Item

Normalized representation of one feed entry, independent of the source
dialect. Optional fields keep a three-way distinction: ``None`` means the
source did not provide the value, ``""`` means it provided an empty one.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from feedcel.cel.types import INT, STRING, TIMESTAMP, CelType, list_of

ITEM_TYPE_NAME = "feedcel.Item"

# Expression-facing field names and their declared types
ITEM_FIELDS: List[Tuple[str, CelType]] = [
    ("URL", STRING),
    ("Title", STRING),
    ("Author", STRING),
    ("Tags", STRING),
    ("Categories", list_of(STRING)),
    ("Content", STRING),
    ("ContentLength", INT),
    ("Published", TIMESTAMP),
    ("Updated", TIMESTAMP),
]


@dataclass(frozen=True)
class Item:
    """
    Container for one normalized feed entry.

    ``content_length`` is derived from ``content`` and is absent whenever
    ``content`` is absent.
    """

    url: str = ""
    title: Optional[str] = None
    author: Optional[str] = None
    categories: Tuple[str, ...] = field(default_factory=tuple)
    content: Optional[str] = None
    published: Optional[datetime] = None
    updated: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'categories', tuple(self.categories))

    @property
    def tags(self) -> Optional[str]:
        """Comma-joined categories, absent when there are none."""
        return ",".join(self.categories) if self.categories else None

    @property
    def content_length(self) -> Optional[int]:
        return len(self.content) if self.content is not None else None

    def to_activation(self) -> Dict[str, Any]:
        """
        Object value bound to ``item`` in expressions.

        Absent fields are omitted so that selecting them fails evaluation
        instead of yielding a default.
        """
        values = {
            "URL": self.url,
            "Title": self.title,
            "Author": self.author,
            "Tags": self.tags,
            "Categories": list(self.categories),
            "Content": self.content,
            "ContentLength": self.content_length,
            "Published": self.published,
            "Updated": self.updated,
        }
        return {name: value for name, value in values.items() if value is not None}

    def label(self) -> str:
        """Short human-readable identity used in logs and console output."""
        return self.title or self.url or "<untitled>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'title': self.title,
            'author': self.author,
            'tags': self.tags,
            'categories': list(self.categories),
            'content': self.content,
            'content_length': self.content_length,
            'published': self.published.isoformat() if self.published else None,
            'updated': self.updated.isoformat() if self.updated else None,
        }
