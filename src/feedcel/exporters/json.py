"""
JSON Feed Renderer

Encodes filtered entries as a JSON Feed (https://jsonfeed.org/version/1)
document. This is the default output format.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from feedcel.exporters.base import Author, BaseRenderer, EntryRecord, FeedInfo, FormatInfo

JSON_FEED_VERSION = "https://jsonfeed.org/version/1"


def _timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _author(author: Optional[Author]) -> Optional[Dict[str, str]]:
    if author is None or not author.name:
        return None
    return {'name': author.name}


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value not in (None, "")}


class JsonFeedRenderer(BaseRenderer):
    """Renders JSON Feed documents."""

    def _create_format_info(self) -> FormatInfo:
        return FormatInfo(
            name="json",
            extension=".json",
            description="JSON Feed version 1",
            mime_type="application/json",
        )

    def encode(self, feed: FeedInfo, entries: List[EntryRecord], now: datetime) -> bytes:
        document = _compact({
            'version': JSON_FEED_VERSION,
            'title': feed.title,
            'home_page_url': feed.link,
            'description': feed.description,
            'author': _author(feed.author),
            'icon': feed.image_url,
        })
        document['items'] = [self._item(entry) for entry in entries]
        return json.dumps(document, ensure_ascii=False, indent=2).encode('utf-8')

    def _item(self, entry: EntryRecord) -> Dict[str, Any]:
        return _compact({
            'id': entry.id or entry.link or entry.title,
            'url': entry.link,
            'title': entry.title,
            'summary': entry.description,
            'content_html': entry.content,
            'date_published': _timestamp(entry.published),
            'date_modified': _timestamp(entry.updated),
            'author': _author(entry.author),
        })
