"""
RSS and Atom Renderers

Both formats are produced with feedgen. Atom and RSS each have required
elements the source feed may lack (an Atom entry needs an id, a title and an
update time), so missing values fall back to the closest available field.
"""

from datetime import datetime
from typing import List

from feedgen.entry import FeedEntry
from feedgen.feed import FeedGenerator

from feedcel import __version__
from feedcel.exporters.base import BaseRenderer, EntryRecord, FeedInfo, FormatInfo

UNTITLED = "Untitled"


class _SyndicationRenderer(BaseRenderer):
    """Shared feedgen document construction."""

    def _generator(self, feed: FeedInfo, now: datetime) -> FeedGenerator:
        fg = FeedGenerator()
        fg.generator("feedcel", version=__version__)
        link = feed.link or "about:blank"
        fg.id(link)
        fg.title(feed.title or UNTITLED)
        fg.link(href=link, rel='alternate')
        fg.description(feed.description or feed.title or UNTITLED)
        fg.updated(feed.updated or feed.published or now)
        if feed.author and feed.author.name:
            fg.author(self._author_fields(feed.author))
        return fg

    @staticmethod
    def _author_fields(author) -> dict:
        fields = {'name': author.name}
        if author.email:
            fields['email'] = author.email
        return fields

    def _common_entry(self, fe: FeedEntry, entry: EntryRecord, index: int) -> None:
        fe.id(entry.id or entry.link or f"urn:feedcel:entry:{index}")
        if entry.link:
            fe.link(href=entry.link)
        if entry.published:
            fe.published(entry.published)
        if entry.updated:
            fe.updated(entry.updated)
        if entry.author and entry.author.name:
            fe.author(self._author_fields(entry.author))


class RssRenderer(_SyndicationRenderer):
    """Renders RSS 2.0 documents."""

    def _create_format_info(self) -> FormatInfo:
        return FormatInfo(
            name="rss",
            extension=".xml",
            description="RSS 2.0",
            mime_type="application/rss+xml",
        )

    def encode(self, feed: FeedInfo, entries: List[EntryRecord], now: datetime) -> bytes:
        fg = self._generator(feed, now)
        if feed.image_url:
            fg.image(url=feed.image_url, title=feed.image_title or feed.title or UNTITLED,
                     link=feed.link or "about:blank")
        for index, entry in enumerate(entries):
            fe = fg.add_entry(order='append')
            self._common_entry(fe, entry, index)
            fe.title(entry.title or entry.link or UNTITLED)
            if entry.description:
                fe.description(entry.description)
            if entry.content:
                fe.content(entry.content, type='CDATA')
        return fg.rss_str(pretty=True)


class AtomRenderer(_SyndicationRenderer):
    """Renders Atom 1.0 documents."""

    def _create_format_info(self) -> FormatInfo:
        return FormatInfo(
            name="atom",
            extension=".xml",
            description="Atom 1.0",
            mime_type="application/atom+xml",
        )

    def encode(self, feed: FeedInfo, entries: List[EntryRecord], now: datetime) -> bytes:
        fg = self._generator(feed, now)
        if feed.image_url:
            fg.logo(feed.image_url)
        for index, entry in enumerate(entries):
            fe = fg.add_entry(order='append')
            self._common_entry(fe, entry, index)
            fe.title(entry.title or entry.link or UNTITLED)
            fe.updated(entry.updated or entry.published or feed.updated or now)
            if entry.description:
                fe.summary(entry.description)
            # An Atom entry without an alternate link must carry content
            fe.content(entry.content or entry.description or "", type='html')
        return fg.atom_str(pretty=True)
