"""
Filter Pipeline

Orchestrates one filtering request: fetch → adapt → compile once → evaluate
every item against a single ``now`` snapshot → order-preserving partition →
render. Only per-item evaluation faults are recoverable, and only through the
configured error handler; fetch, compile and encoding failures propagate.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, Union

from feedcel.adapter import adapt_all
from feedcel.cel import Environment, Program, new_env
from feedcel.core.config.models import AppConfig
from feedcel.core.exceptions import EvaluationError
from feedcel.exporters import RenderedFeed, render, resolve_format
from feedcel.fetch import ParsedFeed, fetch
from feedcel.filters import ErrorHandler, FilterResult, evaluate, log_and_exclude, raise_on_error
from feedcel.item import Item

Fetcher = Callable[..., ParsedFeed]
Renderer = Callable[..., RenderedFeed]
Clock = Callable[[], datetime]

ALWAYS_TRUE = "true"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FilterResponse:
    """Outcome of one successful :meth:`FilterPipeline.run`."""
    source: str
    format_name: str
    rendered: RenderedFeed
    result: FilterResult

    @property
    def body(self) -> bytes:
        return self.rendered.body

    @property
    def content_type(self) -> str:
        return self.rendered.content_type


class FilterPipeline:
    """
    Filters feeds with compiled expressions.

    The pipeline holds no per-request state and may serve concurrent
    requests; the environment it compiles against is read-only.
    """

    def __init__(
        self,
        env: Optional[Environment] = None,
        fetcher: Fetcher = fetch,
        renderer: Renderer = render,
        error_handler: Optional[ErrorHandler] = None,
        config: Optional[AppConfig] = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize the pipeline.

        Args:
            env: Expression environment, built with ``new_env()`` if omitted
            fetcher: ``fetch(source, timeout=..., user_agent=...)`` collaborator
            renderer: ``render(feed, entries, output_format, now=...)`` collaborator
            error_handler: Per-item evaluation fault handler; defaults to the
                policy in ``config.filter.on_error``
            config: Application configuration
            clock: Source of the batch ``now`` timestamp
        """
        self.config = config or AppConfig()
        self.env = env or new_env()
        self.fetcher = fetcher
        self.renderer = renderer
        self.clock = clock
        if error_handler is None:
            error_handler = raise_on_error if self.config.filter.on_error == "abort" else log_and_exclude
        self.error_handler = error_handler
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def compile(self, expression: Optional[str]) -> Program:
        """
        Compile an expression; absent or blank text means the default expression.

        Raises:
            CompileError: If the expression is invalid
        """
        if expression is None or not expression.strip():
            expression = self.config.filter.default_expression or ALWAYS_TRUE
        return self.env.compile(expression)

    def filter_items(self, items: Sequence[Item], expression: Union[str, Program, None] = None,
                     now: Optional[datetime] = None) -> FilterResult:
        """
        Partition items by an expression.

        Args:
            items: Items to test, in order
            expression: Source text or an already compiled program
            now: Batch timestamp; sampled once from the clock if omitted

        Returns:
            FilterResult preserving the original order in both partitions

        Raises:
            CompileError: If the expression is invalid
            EvaluationError: If the error handler escalates an item fault
        """
        program = expression if isinstance(expression, Program) else self.compile(expression)
        if now is None:
            now = self.clock()

        result = FilterResult(items=list(items), expression=program.source)
        for index, item in enumerate(result.items):
            try:
                matched = evaluate(program, item, now, index=index)
            except EvaluationError as e:
                self.error_handler(e)
                result.exclude(index, e)
                continue

            if matched:
                result.include(index)
            else:
                result.exclude(index)

        if result.errors:
            self.logger.info(f"{len(result.errors)} items excluded by evaluation errors")
        return result

    def resolve_format(self, name: Optional[str]) -> str:
        """Requested format, or the configured default when unknown or absent."""
        if name and name.strip():
            return resolve_format(name)
        return resolve_format(self.config.output.default_format)

    def run(self, source: str, expression: Optional[str] = None, output_format: Optional[str] = None,
            timeout: Optional[float] = None) -> FilterResponse:
        """
        Fetch, filter and render one feed.

        Raises:
            FetchError: If the feed cannot be fetched or parsed; no item is processed
            CompileError: If the expression is invalid
            EvaluationError: If the error handler escalates an item fault
            EncodingError: If the filtered feed cannot be encoded
        """
        format_name = self.resolve_format(output_format)
        parsed = self.fetch(source, timeout=timeout)
        return self.process(parsed, expression, format_name)

    def fetch(self, source: str, timeout: Optional[float] = None) -> ParsedFeed:
        """Fetch and parse a feed with the configured deadline and user agent."""
        timeout = timeout if timeout is not None else self.config.fetch.timeout
        return self.fetcher(source, timeout=timeout, user_agent=self.config.fetch.user_agent)

    def process(self, parsed: ParsedFeed, expression: Union[str, Program, None] = None,
                output_format: Optional[str] = None) -> FilterResponse:
        """Adapt, filter and render an already fetched feed."""
        format_name = self.resolve_format(output_format)
        items = adapt_all(parsed.entries)
        program = expression if isinstance(expression, Program) else self.compile(expression)
        now = self.clock()
        result = self.filter_items(items, program, now=now)
        self.logger.info(f"Filtered {len(items)} → {len(result.included_indices)} items from {parsed.source}")

        rendered = self.renderer(parsed.feed, result.select(parsed.entries), format_name, now=now)
        return FilterResponse(source=parsed.source, format_name=format_name, rendered=rendered, result=result)
