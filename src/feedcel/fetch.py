"""
Feed Fetching

Retrieves a feed document from an HTTP(S) URL or a local path and parses it
with feedparser. Every failure is reported as a :class:`FetchError`; there
are no retries.
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

import feedparser
import requests

from feedcel import __version__
from feedcel.core.exceptions import ErrorCode, FetchError

logger = logging.getLogger(__name__)

USER_AGENT = f"feedcel/{__version__} (+https://github.com/lukasschwab/feedcel)"


@dataclass
class ParsedFeed:
    """
    A fetched and parsed feed.

    Attributes:
        source: URL or path the feed was read from
        feed: Feed-level metadata (title, link, subtitle, author, ...)
        entries: Raw entries in document order
        version: Detected dialect, e.g. ``rss20`` or ``atom10``
    """
    source: str
    feed: Mapping[str, Any] = field(default_factory=dict)
    entries: List[Mapping[str, Any]] = field(default_factory=list)
    version: str = ""


def _is_url(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


def _download(url: str, timeout: float, session: Optional[requests.Session],
              user_agent: Optional[str]) -> requests.Response:
    http = session or requests
    headers = {'User-Agent': user_agent or USER_AGENT}
    try:
        response = http.get(url, headers=headers, timeout=timeout)
    except requests.Timeout as e:
        raise FetchError(f"Timed out after {timeout}s fetching {url}", error_code=ErrorCode.FETCH_TIMEOUT,
                         source=url, cause=e) from e
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch {url}: {e}", error_code=ErrorCode.FETCH_CONNECTION_FAILED,
                         source=url, cause=e) from e

    if not response.ok:
        raise FetchError(f"HTTP {response.status_code} fetching {url}", error_code=ErrorCode.FETCH_HTTP_STATUS,
                         source=url, status_code=response.status_code)
    return response


def _read_local(source: str) -> bytes:
    path = Path(urlparse(source).path if source.startswith("file://") else source).expanduser()
    if not path.is_file():
        raise FetchError(f"Feed file not found: {path}", error_code=ErrorCode.FETCH_FILE_NOT_FOUND, source=source)
    try:
        return path.read_bytes()
    except OSError as e:
        raise FetchError(f"Cannot read feed file {path}: {e}", error_code=ErrorCode.FETCH_FILE_NOT_FOUND,
                         source=source, cause=e) from e


def parse_document(source: str, document: bytes, headers: Optional[Dict[str, str]] = None) -> ParsedFeed:
    """
    Parse a feed document already in memory.

    Raises:
        FetchError: If the document is not a recognizable feed
    """
    parsed = feedparser.parse(io.BytesIO(document), response_headers=headers or {})
    version = parsed.get('version', '')
    if not version and not parsed.entries:
        reason = parsed.get('bozo_exception')
        detail = f": {reason}" if reason else ""
        raise FetchError(f"Could not parse feed from {source}{detail}", error_code=ErrorCode.FETCH_UNPARSABLE,
                         source=source)

    if parsed.get('bozo'):
        logger.debug(f"Feed {source} is not well-formed: {parsed.get('bozo_exception')}")
    return ParsedFeed(source=source, feed=parsed.feed, entries=list(parsed.entries), version=version)


def fetch(source: str, timeout: float = 10.0, session: Optional[requests.Session] = None,
          user_agent: Optional[str] = None) -> ParsedFeed:
    """
    Fetch and parse a feed.

    Args:
        source: HTTP(S) URL, ``file://`` URL or local path
        timeout: Network timeout in seconds
        session: Optional requests session (connection reuse, testing)
        user_agent: Override for the User-Agent header

    Returns:
        ParsedFeed with entries in document order

    Raises:
        FetchError: If the feed is unreachable or unparsable
    """
    if not source or not source.strip():
        raise FetchError("No feed source given", error_code=ErrorCode.FETCH_CONNECTION_FAILED, source=source)
    source = source.strip()

    if _is_url(source):
        logger.info(f"Fetching {source}")
        response = _download(source, timeout, session, user_agent)
        headers = {'content-type': response.headers.get('Content-Type', ''),
                   'content-location': response.url or source}
        feed = parse_document(source, response.content, headers)
    else:
        logger.info(f"Reading {source}")
        feed = parse_document(source, _read_local(source))

    logger.info(f"Parsed {len(feed.entries)} entries from {source} ({feed.version or 'unknown format'})")
    return feed
