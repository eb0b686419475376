from __future__ import annotations

"""
JWT middleware for the callable endpoints.

Responsibilities:
  * Accept tokens from either the `Authorization` header (Bearer scheme) or
    the `X-Authorization` header.
  * Attach the caller to `request.state.auth` as a `CallerIdentity`, or
    `None` when no credentials were sent. Endpoints decide whether an
    anonymous caller is acceptable.
  * Answer `401` with an `UNAUTHENTICATED` callable error for credentials
    that are present but malformed, expired, or wrongly signed.
"""

from typing import Iterable
from urllib.parse import unquote

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..errors import Unauthenticated
from ..services.auth_service import extract_bearer_token, identity_from_claims, verify_jwt_token

DEFAULT_EXEMPT: tuple[str, ...] = (
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
)


def _is_exempt(path: str, exempt: Iterable[str]) -> bool:
    for p in exempt:
        if p.endswith("/") and path.startswith(p):
            return True
        if path == p:
            return True
    return False


def _unauthorized(message: str) -> JSONResponse:
    error = Unauthenticated(message)
    return JSONResponse(
        error.to_dict(),
        status_code=error.http_status,
        headers={"WWW-Authenticate": "Bearer"},
    )


class JWTAuthMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        *,
        secret: str,
        algorithm: str = "HS256",
        exempt_paths: Iterable[str] = DEFAULT_EXEMPT,
    ) -> None:
        super().__init__(app)
        if algorithm != "HS256":
            raise ValueError("This middleware currently supports HS256 only.")
        self.secret = secret
        self.algorithm = algorithm
        self.exempt_paths = tuple(exempt_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        request.state.auth = None
        path = unquote(request.scope.get("path", "") or request.url.path)
        if _is_exempt(path, self.exempt_paths):
            return await call_next(request)

        token = extract_bearer_token(request.headers)
        if token is None:
            return await call_next(request)
        if not token:
            return _unauthorized("Authorization token missing")

        claims = verify_jwt_token(token, self.secret, self.algorithm)
        if not claims:
            return _unauthorized("Invalid or expired authentication token")

        identity = identity_from_claims(claims)
        if identity is None:
            return _unauthorized("Token does not identify a user")

        request.state.auth = identity
        return await call_next(request)
