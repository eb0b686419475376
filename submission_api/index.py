"""
Application factory.

``create_app`` wires the routers, middleware and exception handlers around
explicitly supplied collaborators (document store, code storage, JWT secret).
Anything not supplied is built from ``Settings``.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .errors import InvalidArgument, SubmissionError, Unknown
from .middleware.jwt_auth import JWTAuthMiddleware
from .middleware.request_logging import LoggingMiddleware
from .routes import submissions, system
from .services.auth_service import IdentityDirectory
from .services.code_storage import CodeStorage, create_code_storage
from .services.document_store import DocumentStore, create_document_store
from .services.submission_queries import SubmissionQueryService
from .services.submission_writes import SubmissionWriteService
from .utils.jwt_secret import get_jwt_secret

logger = logging.getLogger(__name__)


async def _submission_error_handler(request: Request, exc: SubmissionError) -> JSONResponse:
    if isinstance(exc, Unknown):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.kind}): {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.http_status)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Malformed request") if errors else "Malformed request"
    error = InvalidArgument(f"Malformed request body: {message}")
    return JSONResponse(error.to_dict(), status_code=error.http_status)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}",
        exc_info=exc,
    )
    error = Unknown("Internal error")
    return JSONResponse(error.to_dict(), status_code=error.http_status)


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[DocumentStore] = None,
    code_storage: Optional[CodeStorage] = None,
    jwt_secret: Optional[str] = None,
) -> FastAPI:
    settings = settings or load_settings()
    store = store if store is not None else create_document_store(settings)
    code_storage = code_storage if code_storage is not None else create_code_storage(settings)
    jwt_secret = jwt_secret or get_jwt_secret(settings)

    identities = IdentityDirectory(store)

    app = FastAPI(title="Submission Service", version="1.0.0")
    app.state.settings = settings
    app.state.query_service = SubmissionQueryService(
        store,
        code_storage,
        identities,
        public_page_size=settings.public_page_size,
        display_timezone=settings.display_timezone,
    )
    app.state.write_service = SubmissionWriteService(store, code_storage, identities)

    app.include_router(system.router)
    app.include_router(submissions.router)

    app.add_exception_handler(SubmissionError, _submission_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    # Added last, runs first (LIFO): logging wraps auth so it sees the caller
    app.add_middleware(JWTAuthMiddleware, secret=jwt_secret, algorithm=settings.jwt_algorithm)
    app.add_middleware(LoggingMiddleware)

    logger.info(
        f"Submission service ready: store={settings.store_backend}, code={settings.code_backend}"
    )
    return app
