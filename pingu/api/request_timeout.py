"""Request Timeout — pure ASGI middleware bounding every HTTP request.

Invariants:
    - The downstream app runs in the caller's task under asyncio.timeout, so expiry
      cancels the route itself; an open TransactionCoordinator unit rolls back
    - 504 REQUEST_TIMEOUT is sent only if the response has not started yet
    - Non-HTTP scopes (lifespan, websocket) pass through unbounded

Design Decisions:
    - Plain ASGI class over @app.middleware("http"): BaseHTTPMiddleware runs the route
      in a separate task group that a timeout around call_next can't cancel
"""

import asyncio
import logging

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pingu.core.errors import ErrorCategory, ErrorSeverity

logger = logging.getLogger(__name__)


class RequestTimeoutMiddleware:
    """Cancel requests that outlive `timeout_seconds` and answer 504."""

    def __init__(self, app: ASGIApp, timeout_seconds: float):
        self.app = app
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking_start(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            async with asyncio.timeout(self.timeout_seconds) as deadline:
                await self.app(scope, receive, send_tracking_start)
        except TimeoutError:
            if not deadline.expired():
                raise
            path = scope.get("path", "")
            logger.error(
                f"Request timed out after {self.timeout_seconds}s on {path}",
                extra={"path": path},
            )
            if response_started:
                return
            response = JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={
                    "error": {
                        "code": "REQUEST_TIMEOUT",
                        "message": "The request took too long to complete",
                        "category": ErrorCategory.TIMEOUT.value,
                        "severity": ErrorSeverity.ERROR.value,
                    },
                },
            )
            await response(scope, receive, send)
