"""HTTP middleware binding request context and logging each request."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from skillwise.core.context import (
    clear_context,
    set_correlation_id,
    set_request_id,
    set_trace_id,
)


logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request/trace/correlation ids and log request start and finish.

    The request id is echoed back in ``X-Request-ID`` and the handling time in
    ``X-Response-Time`` (milliseconds). Paths in ``exclude_paths`` are served
    without request logs so health checks do not flood the sinks.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"
    CORRELATION_ID_HEADER = "X-Correlation-ID"
    RESPONSE_TIME_HEADER = "X-Response-Time"
    TRACEPARENT_HEADER = "traceparent"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = (
            exclude_paths if exclude_paths is not None else ["/health"]
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()

        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        request.state.request_id = request_id

        trace_id = request.headers.get(self.TRACE_ID_HEADER) or _traceparent_trace_id(
            request.headers.get(self.TRACEPARENT_HEADER)
        )
        if trace_id:
            set_trace_id(trace_id)
        if correlation_id := request.headers.get(self.CORRELATION_ID_HEADER):
            set_correlation_id(correlation_id)

        should_log = self.log_requests and not self._is_excluded(request.url.path)
        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                client_ip=client_ip(request),
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(started),
            )
            raise
        else:
            duration_ms = _elapsed_ms(started)
            if should_log:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "request_finished",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )
            response.headers[self.REQUEST_ID_HEADER] = request_id
            response.headers[self.RESPONSE_TIME_HEADER] = f"{duration_ms}"
            return response
        finally:
            clear_context()

    def _is_excluded(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.exclude_paths)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _traceparent_trace_id(traceparent: str | None) -> str | None:
    """Trace id from a W3C ``traceparent`` (``version-traceid-parentid-flags``)."""
    if not traceparent:
        return None
    parts = traceparent.split("-")
    return parts[1] if len(parts) >= 2 else None


def client_ip(request: Request) -> str | None:
    """Client address, honouring reverse proxy headers."""
    if forwarded_for := request.headers.get("x-forwarded-for"):
        return forwarded_for.split(",")[0].strip()
    if real_ip := request.headers.get("x-real-ip"):
        return real_ip
    return request.client.host if request.client else None


__all__ = ["RequestContextMiddleware", "client_ip"]
