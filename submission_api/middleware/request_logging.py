from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
SENSITIVE_HEADERS = frozenset({"authorization", "x-authorization", "cookie", "set-cookie"})


def redact_headers(headers) -> dict[str, str]:
    return {
        k: ("[REDACTED]" if k.lower() in SENSITIVE_HEADERS else v)
        for k, v in dict(headers).items()
    }


def describe_caller(request: Request) -> str:
    identity = getattr(request.state, "auth", None)
    if identity is None:
        return "Anonymous"
    return f"User(id={identity.uid})"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Request/response logging with a per-request correlation id.

    Credentials and cookies never reach the log. The correlation id is taken
    from the incoming ``X-Correlation-ID`` header when present and echoed on
    the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        logger.info(
            f"[{correlation_id}] {request.method} {request.url.path} "
            f"Headers: {redact_headers(request.headers)}"
        )
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"[{correlation_id}] {request.method} {request.url.path} failed after "
                f"{elapsed_ms:.1f}ms: {type(e).__name__}: {e}"
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"[{correlation_id}] {request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed_ms:.1f}ms by {describe_caller(request)}"
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
