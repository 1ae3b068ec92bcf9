"""
Base Renderer Classes

Abstract base class and registry for the output formats. Renderers take the
feed-level metadata plus the raw entries that survived filtering and encode
them as one document. Every format carries the same entry fields: title,
link, description/content, author, id and timestamps, in the order given.
"""

import calendar
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

from feedcel.core.exceptions import EncodingError

DEFAULT_FORMAT = "json"


@dataclass(frozen=True)
class FormatInfo:
    """Information about an output format."""
    name: str
    extension: str
    description: str
    mime_type: str


@dataclass(frozen=True)
class RenderedFeed:
    """Encoded output document."""
    body: bytes
    content_type: str
    format_name: str
    item_count: int


@dataclass(frozen=True)
class Author:
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class FeedInfo:
    """Feed-level metadata carried into the output document."""
    title: str = ""
    link: str = ""
    description: str = ""
    author: Optional[Author] = None
    image_url: Optional[str] = None
    image_title: Optional[str] = None
    updated: Optional[datetime] = None
    published: Optional[datetime] = None


@dataclass(frozen=True)
class EntryRecord:
    """The subset of an entry every output format encodes."""
    id: str = ""
    title: str = ""
    link: str = ""
    description: str = ""
    content: str = ""
    author: Optional[Author] = None
    published: Optional[datetime] = None
    updated: Optional[datetime] = None


def _get(raw: Mapping[str, Any], key: str) -> Any:
    # Plain dict access skips feedparser's published/updated aliasing
    if isinstance(raw, dict):
        return dict.get(raw, key)
    return raw.get(key) if isinstance(raw, Mapping) else None


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        return datetime.fromtimestamp(calendar.timegm(tuple(value)[:9]), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _author(raw: Mapping[str, Any]) -> Optional[Author]:
    authors = _get(raw, 'authors')
    if isinstance(authors, list) and authors and isinstance(authors[0], Mapping):
        first = authors[0]
        if first.get('name') or first.get('email'):
            return Author(first.get('name'), first.get('email'))
    detail = _get(raw, 'author_detail')
    if isinstance(detail, Mapping) and (detail.get('name') or detail.get('email')):
        return Author(detail.get('name'), detail.get('email'))
    if _get(raw, 'author'):
        return Author(str(_get(raw, 'author')))
    return None


def feed_info(raw: Mapping[str, Any]) -> FeedInfo:
    """Extract feed-level metadata from a parsed feed header."""
    image = _get(raw, 'image')
    image = image if isinstance(image, Mapping) else {}
    return FeedInfo(
        title=str(_get(raw, 'title') or ""),
        link=str(_get(raw, 'link') or ""),
        description=str(_get(raw, 'subtitle') or _get(raw, 'description') or ""),
        author=_author(raw),
        image_url=image.get('href') or image.get('url'),
        image_title=image.get('title'),
        updated=_as_datetime(_get(raw, 'updated_parsed')),
        published=_as_datetime(_get(raw, 'published_parsed')),
    )


def entry_record(raw: Mapping[str, Any]) -> EntryRecord:
    """Extract the encodable fields of one raw entry."""
    content = _get(raw, 'content')
    if isinstance(content, list) and content and isinstance(content[0], Mapping):
        content = content[0].get('value')
    return EntryRecord(
        id=str(_get(raw, 'id') or _get(raw, 'guid') or ""),
        title=str(_get(raw, 'title') or ""),
        link=str(_get(raw, 'link') or ""),
        description=str(_get(raw, 'summary') or _get(raw, 'description') or ""),
        content=str(content or ""),
        author=_author(raw),
        published=_as_datetime(_get(raw, 'published_parsed')),
        updated=_as_datetime(_get(raw, 'updated_parsed')),
    )


class BaseRenderer(ABC):
    """
    Abstract base class for all output formats.

    Renderers are stateless and thread-safe; everything they need is passed
    to :meth:`render`.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._format_info = self._create_format_info()

    @abstractmethod
    def _create_format_info(self) -> FormatInfo:
        """Create the format info for this renderer."""

    @abstractmethod
    def encode(self, feed: FeedInfo, entries: List[EntryRecord], now: datetime) -> bytes:
        """Encode the document. Implementations may raise ValueError or TypeError."""

    def get_format_info(self) -> FormatInfo:
        return self._format_info

    def render(self, feed: Mapping[str, Any], entries: Sequence[Mapping[str, Any]],
               now: Optional[datetime] = None) -> RenderedFeed:
        """
        Render raw feed metadata and entries.

        Args:
            feed: Parsed feed header
            entries: Raw entries to encode, in output order
            now: Fallback timestamp for formats that require one

        Raises:
            EncodingError: If the document cannot be encoded
        """
        info = self.get_format_info()
        now = now or datetime.now(timezone.utc)
        records = [entry_record(entry) for entry in entries]
        try:
            body = self.encode(feed_info(feed), records, now)
        except (ValueError, TypeError) as e:
            raise EncodingError(f"Failed to encode {info.name} feed: {e}", output_format=info.name,
                                cause=e) from e

        self.logger.debug(f"Rendered {len(records)} entries as {info.name} ({len(body)} bytes)")
        return RenderedFeed(body=body, content_type=info.mime_type, format_name=info.name,
                            item_count=len(records))


class RendererRegistry:
    """Maps format names to renderer classes."""

    def __init__(self):
        self._renderers: Dict[str, Type[BaseRenderer]] = {}

    def register(self, name: str, renderer_class: Type[BaseRenderer]) -> None:
        self._renderers[name.lower()] = renderer_class

    def names(self) -> List[str]:
        return sorted(self._renderers)

    def resolve_format(self, name: Optional[str]) -> str:
        """Known format name for ``name``; unknown or absent selects the default."""
        if name and name.strip().lower() in self._renderers:
            return name.strip().lower()
        return DEFAULT_FORMAT

    def get(self, name: Optional[str]) -> BaseRenderer:
        return self._renderers[self.resolve_format(name)]()
