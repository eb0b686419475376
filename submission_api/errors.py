"""
Error taxonomy for the callable endpoints.

Each endpoint either succeeds or fails with exactly one ``SubmissionError``.
The subclasses form a closed set, one per failure class, so callers can
match on the type instead of inspecting a free-form kind string.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    kind: str = "unknown"
    http_status: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    @property
    def status(self) -> str:
        """Wire name of the kind, e.g. ``INVALID_ARGUMENT``."""
        return self.kind.upper().replace("-", "_")

    def to_dict(self) -> Dict[str, Any]:
        return {"error": {"status": self.status, "message": self.message}}


class InvalidArgument(SubmissionError):
    kind = "invalid-argument"
    http_status = 400


class PermissionDenied(SubmissionError):
    kind = "permission-denied"
    http_status = 403


class Unauthenticated(SubmissionError):
    kind = "unauthenticated"
    http_status = 401


class DataLoss(SubmissionError):
    kind = "data-loss"
    http_status = 500


class Aborted(SubmissionError):
    kind = "aborted"
    http_status = 409


class Unknown(SubmissionError):
    kind = "unknown"
    http_status = 500


@contextmanager
def remote_call_guard(operation: str) -> Iterator[None]:
    """
    Re-raise ``SubmissionError`` untouched and wrap anything else as ``Unknown``.

    Store and blob-storage failures lose their exception type here;
    the traceback is kept in the log.
    """
    try:
        yield
    except SubmissionError:
        raise
    except Exception as e:
        logger.error(f"{operation} failed: {type(e).__name__}: {e}", exc_info=True)
        raise Unknown(str(e)) from e
