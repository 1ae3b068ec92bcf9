"""
HTTP Filtering Proxy

FastAPI application exposing one filtering route. ``GET /filter`` takes
``url``, ``expression`` and ``format`` query parameters; ``POST /filter``
takes a JSON body ``{"url": ..., "expression": ..., "format": ...}``. Errors
map to distinct statuses: 400 for a bad request, 502 when the feed cannot be
fetched, and a server error for compile, evaluation and encoding failures.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from feedcel import __version__
from feedcel.core.config.models import AppConfig
from feedcel.core.exceptions import CompileError, EncodingError, EvaluationError, FetchError
from feedcel.pipeline import FilterPipeline, FilterResponse

logger = logging.getLogger(__name__)


class BadRequest(Exception):
    """The request itself is malformed (missing url, invalid JSON body)."""


def _response(outcome: FilterResponse) -> Response:
    result = outcome.result
    return Response(
        content=outcome.body,
        media_type=outcome.content_type,
        headers={
            "X-Feedcel-Total": str(len(result.items)),
            "X-Feedcel-Included": str(len(result.included_indices)),
            "X-Feedcel-Errors": str(len(result.errors)),
        },
    )


def create_app(pipeline: Optional[FilterPipeline] = None, config: Optional[AppConfig] = None) -> FastAPI:
    """
    Build the application.

    Args:
        pipeline: Pipeline serving requests; built from ``config`` if omitted
        config: Application configuration
    """
    config = config or (pipeline.config if pipeline else AppConfig())
    pipeline = pipeline or FilterPipeline(config=config)

    app = FastAPI(title="feedcel", version=__version__,
                  description="Filter RSS, Atom and JSON feeds with CEL expressions")
    app.state.pipeline = pipeline
    app.state.config = config

    @app.exception_handler(BadRequest)
    async def bad_request(request: Request, exc: BadRequest):
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(FetchError)
    async def fetch_failed(request: Request, exc: FetchError):
        logger.error(f"Fetch failed: {exc.message}")
        return PlainTextResponse(f"failed to fetch feed: {exc.message}", status_code=502)

    @app.exception_handler(CompileError)
    async def compile_failed(request: Request, exc: CompileError):
        logger.info(f"Rejected expression {exc.expression!r}: {exc.message}")
        return PlainTextResponse(f"failed to filter feed: {exc.message}",
                                 status_code=config.server.compile_error_status)

    @app.exception_handler(EvaluationError)
    async def evaluation_failed(request: Request, exc: EvaluationError):
        logger.error(f"Evaluation aborted on item {exc.describe_item()}: {exc.message}")
        return PlainTextResponse(f"failed to filter feed: {exc.message}", status_code=500)

    @app.exception_handler(EncodingError)
    async def encoding_failed(request: Request, exc: EncodingError):
        logger.error(f"Encoding failed: {exc.message}")
        return PlainTextResponse(f"failed to encode feed: {exc.message}", status_code=500)

    async def _filter(url: Optional[str], expression: Optional[str], output_format: Optional[str]) -> Response:
        if not url:
            raise BadRequest("Missing 'url' parameter")
        outcome = await run_in_threadpool(pipeline.run, url, expression, output_format)
        return _response(outcome)

    @app.get("/filter")
    async def filter_get(url: Optional[str] = None, expression: Optional[str] = None,
                         format: Optional[str] = None):
        return await _filter(url, expression, format)

    @app.post("/filter")
    async def filter_post(request: Request, format: Optional[str] = None):
        raw = await request.body()
        try:
            payload: Dict[str, Any] = json.loads(raw) if raw else {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BadRequest(f"Invalid JSON body: {e}")
        if not isinstance(payload, dict):
            raise BadRequest("Invalid JSON body: expected an object")

        expression = payload.get("expression")
        if expression is not None and not isinstance(expression, str):
            raise BadRequest("'expression' must be a string")
        url = payload.get("url")
        if url is not None and not isinstance(url, str):
            raise BadRequest("'url' must be a string")
        body_format = payload.get("format")
        if not isinstance(body_format, str):
            body_format = None
        return await _filter(url, expression, format or body_format)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    return app
