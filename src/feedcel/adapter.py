"""
Feed Entry Adapter

Normalizes raw feed entries (as produced by feedparser, or any mapping with
the same keys) into canonical :class:`~feedcel.item.Item` objects. The
adapter is total: a malformed entry yields an Item with absent fields, never
an exception.
"""

import calendar
import logging
import time
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from feedcel.item import Item

logger = logging.getLogger(__name__)


def _raw(entry: Mapping[str, Any], key: str) -> Any:
    """
    Read a key without feedparser's compatibility fallbacks.

    ``FeedParserDict`` answers ``updated_parsed`` with ``published_parsed``
    when the entry has no update date; plain dict access avoids that so an
    absent Updated stays absent.
    """
    if isinstance(entry, dict):
        return dict.get(entry, key)
    return entry.get(key)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _to_datetime(value: Any) -> Optional[datetime]:
    """Aware UTC datetime from a UTC struct_time, datetime or epoch seconds."""
    if value is None:
        return None
    try:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        if isinstance(value, time.struct_time) or isinstance(value, tuple):
            return datetime.fromtimestamp(calendar.timegm(tuple(value)[:9]), tz=timezone.utc)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, ValueError, TypeError, OSError) as e:
        logger.debug(f"Ignoring unusable timestamp {value!r}: {e}")
    return None


def _author(entry: Mapping[str, Any]) -> Optional[str]:
    # author_detail holds the last <author>, authors[0] the first
    authors = _raw(entry, 'authors')
    if isinstance(authors, list) and authors:
        first = authors[0]
        name = first.get('name') if isinstance(first, Mapping) else first
        if name:
            return _text(name)
    detail = _raw(entry, 'author_detail')
    if isinstance(detail, Mapping) and detail.get('name'):
        return _text(detail.get('name'))
    author = _raw(entry, 'author')
    if author:
        return _text(author)
    return None


def _categories(entry: Mapping[str, Any]) -> Tuple[str, ...]:
    tags = _raw(entry, 'tags')
    if not isinstance(tags, list):
        return ()
    terms = []
    for tag in tags:
        term = tag.get('term') if isinstance(tag, Mapping) else tag
        if term:
            terms.append(_text(term))
    return tuple(terms)


def _content(entry: Mapping[str, Any]) -> Optional[str]:
    content = _raw(entry, 'content')
    if isinstance(content, list) and content:
        first = content[0]
        value = first.get('value') if isinstance(first, Mapping) else first
        return _text(value)
    if isinstance(content, str):
        return content
    return None


def adapt(entry: Mapping[str, Any]) -> Item:
    """
    Map one raw feed entry into a canonical Item.

    Args:
        entry: Parsed feed entry

    Returns:
        Item with every field the entry provides; the rest absent
    """
    if not isinstance(entry, Mapping):
        logger.debug(f"Entry of type {type(entry).__name__} is not a mapping, adapting as empty")
        return Item()

    title = _text(_raw(entry, 'title'))
    return Item(
        url=_text(_raw(entry, 'link')) or "",
        title=title if title else None,
        author=_author(entry),
        categories=_categories(entry),
        content=_content(entry),
        published=_to_datetime(_raw(entry, 'published_parsed')),
        updated=_to_datetime(_raw(entry, 'updated_parsed')),
    )


def adapt_all(entries: Iterable[Mapping[str, Any]]) -> List[Item]:
    """Adapt entries, preserving their order."""
    return [adapt(entry) for entry in entries]
