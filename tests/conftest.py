"""
Shared Test Configuration and Fixtures

Sample feed documents in both syndication dialects, parsed feeds, canonical
items and a fixed clock, shared by the whole suite.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

from feedcel.adapter import adapt_all
from feedcel.cel import new_env
from feedcel.core.config.models import AppConfig
from feedcel.fetch import ParsedFeed, parse_document
from feedcel.item import Item

FIXED_NOW = datetime(2025, 1, 6, 12, 0, 0, tzinfo=timezone.utc)

SAMPLE_RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Example Blog</title>
    <link>https://example.com/</link>
    <description>Posts about programming</description>
    <item>
      <title>Learning Go</title>
      <link>https://example.com/posts/learning-go</link>
      <guid>https://example.com/posts/learning-go</guid>
      <dc:creator>Alice</dc:creator>
      <category>go</category>
      <category>tutorial</category>
      <description>An introduction to Go</description>
      <content:encoded><![CDATA[<p>Go is a language.</p>]]></content:encoded>
      <pubDate>Mon, 06 Jan 2025 11:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Hello</title>
      <link>https://example.com/posts/hello</link>
      <guid>https://example.com/posts/hello</guid>
      <description>A greeting</description>
      <pubDate>Sun, 05 Jan 2025 12:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

SAMPLE_ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Atom</title>
  <link href="https://example.org/"/>
  <id>urn:example:feed</id>
  <updated>2025-01-06T10:00:00Z</updated>
  <entry>
    <title>Rust ownership</title>
    <link href="https://example.org/rust"/>
    <id>urn:example:rust</id>
    <updated>2025-01-06T10:00:00Z</updated>
    <published>2025-01-06T09:00:00Z</published>
    <author><name>Bob</name></author>
    <author><name>Carol</name></author>
    <category term="rust"/>
    <summary>Borrowing explained</summary>
    <content type="html">&lt;p&gt;Ownership&lt;/p&gt;</content>
  </entry>
  <entry>
    <title>Untagged note</title>
    <link href="https://example.org/note"/>
    <id>urn:example:note</id>
    <updated>2025-01-04T10:00:00Z</updated>
    <summary>Nothing to see</summary>
  </entry>
</feed>
"""


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def env():
    return new_env()


@pytest.fixture
def sample_rss():
    return SAMPLE_RSS


@pytest.fixture
def sample_atom():
    return SAMPLE_ATOM


@pytest.fixture
def rss_file(tmp_path) -> Path:
    path = tmp_path / "feed.xml"
    path.write_bytes(SAMPLE_RSS)
    return path


@pytest.fixture
def parsed_rss() -> ParsedFeed:
    return parse_document("https://example.com/feed.xml", SAMPLE_RSS)


@pytest.fixture
def parsed_atom() -> ParsedFeed:
    return parse_document("https://example.org/feed.atom", SAMPLE_ATOM)


@pytest.fixture
def rss_items(parsed_rss):
    return adapt_all(parsed_rss.entries)


@pytest.fixture
def make_item():
    """Build an Item relative to the fixed clock."""
    def _make(title="Learning Go", published_ago=timedelta(hours=1), **kwargs):
        published = FIXED_NOW - published_ago if published_ago is not None else None
        kwargs.setdefault('url', "https://example.com/item")
        return Item(title=title, published=published, **kwargs)
    return _make


@pytest.fixture
def fake_fetcher(parsed_rss):
    """Fetch collaborator returning the sample RSS feed."""
    return Mock(return_value=parsed_rss)


@pytest.fixture
def app_config():
    return AppConfig()
