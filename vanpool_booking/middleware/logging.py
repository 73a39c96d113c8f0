"""
Request/response logging middleware.
"""

import contextvars
import logging
import time
from typing import Iterable, Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Id of the request being served, read by the logging filter
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_SECONDS = 2.0
QUIET_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})
MASKED_HEADERS = ("authorization", "cookie", "x-api-key")


def _route_family(path: str) -> str:
    if path.startswith("/api/admin"):
        return "admin"
    if path.startswith("/api/reservations"):
        return "queue"
    return "api"


def _client_ip(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


class LoggingMiddleware(BaseHTTPMiddleware):
    """Give every request an id, echo it back and log how the request went."""

    def __init__(
        self,
        app,
        log_requests: bool = True,
        log_responses: bool = True,
        sensitive_headers: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.sensitive_headers = {h.lower() for h in (sensitive_headers or MASKED_HEADERS)}

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        quiet = request.url.path in QUIET_PATHS

        try:
            if self.log_requests:
                self._log_request(request, quiet)

            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    f"{request.method} {request.url.path} raised {type(exc).__name__}",
                    extra={"elapsed": time.perf_counter() - started},
                    exc_info=True,
                )
                raise

            elapsed = time.perf_counter() - started
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers["X-Process-Time"] = f"{elapsed:.4f}"

            if self.log_responses:
                self._log_response(request, response, elapsed, quiet)
            return response
        finally:
            request_id_var.reset(token)

    def _log_request(self, request: Request, quiet: bool) -> None:
        headers = {
            key: "***" if key.lower() in self.sensitive_headers else value
            for key, value in request.headers.items()
        }
        logger.log(
            logging.DEBUG if quiet else logging.INFO,
            f"-> {request.method} {request.url.path}",
            extra={
                "route_family": _route_family(request.url.path),
                "query_params": dict(request.query_params),
                "client_ip": _client_ip(request),
                "headers": headers,
            },
        )

    def _log_response(self, request: Request, response: Response, elapsed: float, quiet: bool) -> None:
        status_code = response.status_code
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.DEBUG if quiet else logging.INFO

        logger.log(
            level,
            f"<- {request.method} {request.url.path} {status_code} in {elapsed:.4f}s",
            extra={"status_code": status_code, "elapsed": elapsed},
        )

        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {elapsed:.2f}s",
                extra={"slow_request": True, "threshold": SLOW_REQUEST_SECONDS},
            )
