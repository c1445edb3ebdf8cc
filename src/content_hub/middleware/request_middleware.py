"""
Transport-level middleware.

- `BodySizeLimitMiddleware` rejects request bodies above `MAX_REQUEST_BODY_BYTES` with 413 before
  any handler sees them. Image payloads travel as base64 in JSON, so this is the only size ceiling
  they are subject to.
- `RequestLoggingMiddleware` logs one line per request with status and duration.
"""

import time
from typing import Callable

from fastapi import HTTPException, Request, Response
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from content_hub.managers.logging_manager import get_logger

logger = get_logger(prefix="[HTTP]")

BODY_METHODS = {"POST", "PUT", "PATCH"}


def _limit_message(limit: int) -> str:
    if limit >= 1024 * 1024:
        return f"Request body exceeds the {limit // (1024 * 1024)}MB limit"
    return f"Request body exceeds the {limit // 1024}KB limit"


def _too_large(limit: int) -> JSONResponse:
    return JSONResponse(status_code=413, content={"success": False, "error": _limit_message(limit)})


class BodyTooLarge(HTTPException):
    """Raised from inside `receive` once a streamed body passes the limit."""

    def __init__(self, limit: int):
        super().__init__(status_code=413, detail=_limit_message(limit))


class BodySizeLimitMiddleware:
    """
    Reject oversized request bodies.

    A declared `Content-Length` above the limit is answered with 413 straight away. A body without
    one (chunked upload) is counted chunk by chunk as the application reads it, and reading stops
    with `BodyTooLarge` as soon as the running total passes the limit, so no more than the limit
    is ever buffered.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in BODY_METHODS:
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > self.max_body_bytes:
            logger.warning("Rejected %s %s: body of %s bytes", scope["method"], scope["path"], content_length)
            await _too_large(self.max_body_bytes)(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    logger.warning(
                        "Rejected %s %s: streamed body passed %d bytes", scope["method"], scope["path"], self.max_body_bytes
                    )
                    raise BodyTooLarge(self.max_body_bytes)
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except BodyTooLarge:
            # Only reached when something outside the routes read the body.
            if response_started:
                raise
            await _too_large(self.max_body_bytes)(scope, receive, send)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request (metrics and health are skipped)."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in ("/metrics", "/health"):
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.3fs)", request.method, request.url.path, response.status_code, time.time() - start_time
        )
        return response
