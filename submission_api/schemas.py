"""
Request models for the callable endpoints.

Payloads are validated here, before any store access. Numbers reject
booleans and numeric strings, strings reject everything else, and the first
failing field is reported as ``InvalidArgument`` with a readable message.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidArgument

ModelT = TypeVar("ModelT", bound=BaseModel)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_integer(value: Any) -> Optional[int]:
    # JSON clients may send 5 as 5.0
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, int):
        return value
    return None


def _positive_limit(value: Any) -> int:
    limit = _as_integer(value)
    if limit is None or limit <= 0:
        raise ValueError("Limit must be an integer > 0")
    return limit


def _non_empty_string(value: Any, label: str) -> str:
    if not isinstance(value, str) or len(value) == 0:
        raise ValueError(f"{label} must be a non-empty string")
    return value


def _optional_string(value: Any, label: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string")
    return value


def _number(value: Any, label: str) -> Union[int, float]:
    if not _is_number(value):
        raise ValueError(f"{label} must be a number")
    return value


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_default=True)


class CallableEnvelope(BaseModel):
    """Wire envelope of a callable request: ``{"data": {...}}``."""

    data: Optional[Dict[str, Any]] = None


class RecentSubmissionsRequest(RequestModel):
    limit: Optional[int] = None
    last_document_id: Optional[str] = None

    @field_validator("limit", mode="before")
    @classmethod
    def _limit(cls, v):
        if v is None:
            return None
        limit = _as_integer(v)
        if limit is None or limit < 0:
            raise ValueError("Limit must be a non-negative integer")
        return limit

    @field_validator("last_document_id", mode="before")
    @classmethod
    def _cursor(cls, v):
        return _optional_string(v, "Last document ID")


class FilteredSubmissionsRequest(RequestModel):
    limit: int = None
    uid: Optional[str] = None
    problem_id: Optional[str] = None

    @field_validator("limit", mode="before")
    @classmethod
    def _limit(cls, v):
        return _positive_limit(v)

    @field_validator("uid", mode="before")
    @classmethod
    def _uid(cls, v):
        return _optional_string(v, "UID")

    @field_validator("problem_id", mode="before")
    @classmethod
    def _problem_id(cls, v):
        return _optional_string(v, "Problem ID")


class SubmissionDetailRequest(RequestModel):
    submission_id: str = None

    @field_validator("submission_id", mode="before")
    @classmethod
    def _submission_id(cls, v):
        return _non_empty_string(v, "Submission ID")


class QueuedSubmissionsRequest(RequestModel):
    limit: int = None
    problem_id: Optional[str] = None

    @field_validator("limit", mode="before")
    @classmethod
    def _limit(cls, v):
        return _positive_limit(v)

    @field_validator("problem_id", mode="before")
    @classmethod
    def _problem_id(cls, v):
        return _optional_string(v, "Problem ID")


class SimpleSubmissionRequest(RequestModel):
    """Submission against a problem id, code inline as one string."""

    variant: Literal["simple"] = "simple"
    uid: str = None
    problem_id: str = None
    code: str = None
    language: str = None

    @field_validator("uid", mode="before")
    @classmethod
    def _uid(cls, v):
        return _non_empty_string(v, "UID")

    @field_validator("problem_id", mode="before")
    @classmethod
    def _problem_id(cls, v):
        return _non_empty_string(v, "Problem ID")

    @field_validator("code", mode="before")
    @classmethod
    def _code(cls, v):
        return _non_empty_string(v, "Code")

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, v):
        return _non_empty_string(v, "Language")


class TaskSubmissionRequest(RequestModel):
    """Submission against a task; code is a zip payload or a list of files."""

    variant: Literal["task"] = "task"
    task_id: str = Field(default=None, alias="id")
    code: Union[str, List[str]] = None
    language: str = Field(default=None, alias="lang")

    @field_validator("task_id", mode="before")
    @classmethod
    def _task_id(cls, v):
        return _non_empty_string(v, "Task ID")

    @field_validator("code", mode="before")
    @classmethod
    def _code(cls, v):
        if isinstance(v, str) and v:
            return v
        if isinstance(v, list) and v and all(isinstance(item, str) for item in v):
            return v
        raise ValueError("Code must be a non-empty string or a non-empty list of strings")

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, v):
        return _non_empty_string(v, "Language")


SubmissionCreateRequest = Union[SimpleSubmissionRequest, TaskSubmissionRequest]


class GetSubmissionRequest(RequestModel):
    submission_id: str = Field(default=None, alias="submissionID")

    @field_validator("submission_id", mode="before")
    @classmethod
    def _submission_id(cls, v):
        return _non_empty_string(v, "Submission ID")


class StatusUpdateRequest(RequestModel):
    submission_id: str = None
    status: str = None
    points: Union[int, float] = None
    time: Union[int, float] = None
    memory: Union[int, float] = None

    @field_validator("submission_id", mode="before")
    @classmethod
    def _submission_id(cls, v):
        return _non_empty_string(v, "Submission ID")

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _non_empty_string(v, "Status")

    @field_validator("points", "time", "memory", mode="before")
    @classmethod
    def _measurements(cls, v, info):
        return _number(v, info.field_name.capitalize())


class PublicListingQuery(RequestModel):
    username: Optional[str] = None
    task_id: Optional[str] = Field(default=None, alias="taskID")
    offset: Optional[int] = Field(default=None, ge=0)


def _first_error_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    ctx_error = (err.get("ctx") or {}).get("error")
    if isinstance(ctx_error, ValueError):
        return str(ctx_error)
    if err.get("type") == "missing":
        return f"{err['loc'][0]} is required"
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg')}" if location else str(err.get("msg"))


def parse_request(model: Type[ModelT], data: Optional[Dict[str, Any]]) -> ModelT:
    """Validate a payload into ``model`` or raise ``InvalidArgument``."""
    if data is not None and not isinstance(data, dict):
        raise InvalidArgument("Request data must be an object")
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        raise InvalidArgument(_first_error_message(e)) from e
