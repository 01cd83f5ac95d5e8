"""API call log middleware.

Records every HTTP request (method, path, query, status, duration) into
api_call_logs via fire-and-forget tasks. Uses its own DB session so a
failed write never touches the response.
"""

import asyncio
import time

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

from land_gateway.models.call_log import ApiCallLog

logger = structlog.get_logger()

CALL_LOG_EXEMPT_PATHS = frozenset({
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
})


class CallLogMiddleware:
    """Pure ASGI middleware that logs each request to api_call_logs."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self._pending: set[asyncio.Task] = set()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if path in CALL_LOG_EXEMPT_PATHS:
            await self.app(scope, receive, send)
            return

        response_status = 0
        started = time.perf_counter()

        async def capture_send(message: dict) -> None:
            nonlocal response_status
            if message["type"] == "http.response.start":
                response_status = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive, capture_send)
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            container = getattr(scope["app"].state, "container", None) if "app" in scope else None
            if container is not None and container.call_log_enabled:
                task = asyncio.create_task(
                    self._write_call_log(
                        container.session_factory,
                        method=scope.get("method", ""),
                        path=path,
                        query=scope.get("query_string", b"").decode("latin-1") or None,
                        status_code=response_status or 500,
                        duration_ms=round(duration_ms, 2),
                    )
                )
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

    async def _write_call_log(self, session_factory, **fields) -> None:
        try:
            async with session_factory() as session:
                session.add(ApiCallLog(**fields))
                await session.commit()
        except Exception:
            logger.exception("call_log_write_failed", path=fields.get("path"))
