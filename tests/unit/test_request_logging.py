"""
Tests for request logging and credential redaction
"""
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Request
from starlette.responses import Response

from submission_api.middleware.request_logging import (
    CORRELATION_HEADER,
    LoggingMiddleware,
    describe_caller,
    redact_headers,
)
from submission_api.services.auth_service import CallerIdentity


class TestRedaction:
    def test_sensitive_headers_redacted(self):
        headers = {
            "Authorization": "Bearer secret",
            "X-Authorization": "secret",
            "Cookie": "session=abc",
            "Content-Type": "application/json",
        }
        redacted = redact_headers(headers)
        assert redacted["Authorization"] == "[REDACTED]"
        assert redacted["X-Authorization"] == "[REDACTED]"
        assert redacted["Cookie"] == "[REDACTED]"
        assert redacted["Content-Type"] == "application/json"

    def test_describe_caller(self):
        request = MagicMock()
        request.state.auth = None
        assert describe_caller(request) == "Anonymous"
        request.state.auth = CallerIdentity(uid="uid-alice")
        assert describe_caller(request) == "User(id=uid-alice)"


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware"""

    def test_correlation_id_generated(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.headers[CORRELATION_HEADER]

    def test_correlation_id_echoed(self, client):
        response = client.get("/health", headers={CORRELATION_HEADER: "trace-123"})
        assert response.headers[CORRELATION_HEADER] == "trace-123"

    def test_token_never_logged(self, client, make_token, caplog):
        token = make_token("uid-alice")
        with caplog.at_level(logging.INFO, logger="submission_api.middleware.request_logging"):
            client.post(
                "/getRecentSubmissions",
                json={"data": {}},
                headers={"Authorization": f"Bearer {token}"},
            )
        assert token not in caplog.text
        assert "[REDACTED]" in caplog.text
        assert "User(id=uid-alice)" in caplog.text

    @pytest.mark.asyncio
    async def test_exception_is_logged_and_reraised(self, caplog):
        """Errors raised downstream propagate after being logged"""
        middleware = LoggingMiddleware(MagicMock())
        request = MagicMock(spec=Request)
        request.url.path = "/submit"
        request.method = "POST"
        request.headers = {}
        request.state = MagicMock()

        async def failing_call_next(request):
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(RuntimeError):
                await middleware.dispatch(request, failing_call_next)
        assert "RuntimeError: boom" in caplog.text

    @pytest.mark.asyncio
    async def test_response_gets_correlation_header(self):
        middleware = LoggingMiddleware(MagicMock())
        request = MagicMock(spec=Request)
        request.url.path = "/health"
        request.method = "GET"
        request.headers = {CORRELATION_HEADER: "abc"}
        request.state = MagicMock()
        request.state.auth = None
        call_next = AsyncMock(return_value=Response("ok"))

        response = await middleware.dispatch(request, call_next)

        assert response.headers[CORRELATION_HEADER] == "abc"
