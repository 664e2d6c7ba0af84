"""Per-request context binding and access logging."""

import time
from collections.abc import Awaitable, Callable, Sequence

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from blogapi.core.context import clear_context, set_request_id


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def client_address(request: Request) -> str | None:
    """First hop of ``X-Forwarded-For`` when behind a proxy, else the peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and emit one access log line for it.

    A caller-supplied ``X-Request-ID`` is reused; either way the id is echoed
    on the response and appears in error bodies.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: Sequence[str] = (),
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths)

    def is_logged(self, path: str) -> bool:
        return self.log_requests and not path.startswith(self.exclude_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request.state.request_id = set_request_id(
            request.headers.get(REQUEST_ID_HEADER)
        )
        path = request.url.path
        log = logger.bind(method=request.method, path=path)

        try:
            response = await call_next(request)
            if self.is_logged(path):
                level = "warning" if response.status_code >= 400 else "info"
                getattr(log, level)(
                    "request_completed",
                    status_code=response.status_code,
                    elapsed_ms=_elapsed_ms(started),
                    client=client_address(request),
                )
            response.headers[REQUEST_ID_HEADER] = request.state.request_id
            return response
        except Exception:
            log.exception("request_failed", elapsed_ms=_elapsed_ms(started))
            raise
        finally:
            clear_context()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware", "client_address"]
