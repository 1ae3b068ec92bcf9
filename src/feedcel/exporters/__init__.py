"""
Exporters Package

Output formats for filtered feeds: JSON Feed (default), RSS 2.0 and Atom 1.0.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from feedcel.core.exceptions import EncodingError, ErrorCode
from feedcel.exporters.base import (
    DEFAULT_FORMAT,
    BaseRenderer,
    FormatInfo,
    RenderedFeed,
    RendererRegistry,
)
from feedcel.exporters.json import JsonFeedRenderer
from feedcel.exporters.syndication import AtomRenderer, RssRenderer

registry = RendererRegistry()
registry.register("json", JsonFeedRenderer)
registry.register("rss", RssRenderer)
registry.register("atom", AtomRenderer)


def resolve_format(name: Optional[str]) -> str:
    """``json``, ``rss`` or ``atom``; unknown or absent names select ``json``."""
    return registry.resolve_format(name)


def render(feed: Mapping[str, Any], entries: Sequence[Mapping[str, Any]], output_format: Optional[str] = None,
           now: Optional[datetime] = None) -> RenderedFeed:
    """
    Render entries in the requested format.

    Raises:
        EncodingError: If the document cannot be encoded
    """
    return registry.get(output_format).render(feed, entries, now=now)


def output_path(path: Path, output_format: Optional[str] = None) -> Path:
    """``path`` with the format's file extension appended when it has none."""
    if path.suffix or not path.name or path.is_dir():
        return path
    return path.with_suffix(registry.get(output_format).get_format_info().extension)


def write_feed(rendered: RenderedFeed, path: Path) -> Path:
    """
    Write a rendered feed to ``path`` and return where it went.

    Raises:
        EncodingError: If the file cannot be written
    """
    target = output_path(path, rendered.format_name)
    try:
        target.write_bytes(rendered.body)
    except OSError as e:
        raise EncodingError(
            f"Cannot write {rendered.format_name} feed to {target}: {e.strerror or e}",
            error_code=ErrorCode.OUTPUT_WRITE_FAILED,
            output_format=rendered.format_name,
            cause=e,
        ) from e
    return target


__all__ = [
    'DEFAULT_FORMAT',
    'BaseRenderer',
    'FormatInfo',
    'RenderedFeed',
    'RendererRegistry',
    'JsonFeedRenderer',
    'RssRenderer',
    'AtomRenderer',
    'registry',
    'resolve_format',
    'render',
    'output_path',
    'write_feed',
]
