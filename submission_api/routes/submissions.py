from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ..errors import SubmissionError
from ..schemas import (
    CallableEnvelope,
    FilteredSubmissionsRequest,
    GetSubmissionRequest,
    PublicListingQuery,
    QueuedSubmissionsRequest,
    RecentSubmissionsRequest,
    SimpleSubmissionRequest,
    StatusUpdateRequest,
    SubmissionDetailRequest,
    TaskSubmissionRequest,
    parse_request,
)
from ..services.auth_service import CallerIdentity
from ..services.submission_queries import SubmissionQueryService
from ..services.submission_writes import SubmissionWriteService

router = APIRouter(tags=["Submissions"])

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


def get_query_service(request: Request) -> SubmissionQueryService:
    return request.app.state.query_service


def get_write_service(request: Request) -> SubmissionWriteService:
    return request.app.state.write_service


def get_caller(request: Request) -> Optional[CallerIdentity]:
    return getattr(request.state, "auth", None)


def _payload(envelope: Optional[CallableEnvelope]) -> Optional[Dict[str, Any]]:
    return envelope.data if envelope is not None else None


def _result(value: Any) -> Dict[str, Any]:
    return {"result": value}


@router.post("/getRecentSubmissions", summary="Most recent submissions, newest first")
def get_recent_submissions(
    envelope: Optional[CallableEnvelope] = None,
    service: SubmissionQueryService = Depends(get_query_service),
):
    request = parse_request(RecentSubmissionsRequest, _payload(envelope))
    return _result(service.list_recent(request))


@router.post("/getSubmissionsWithFilter", summary="Submissions filtered by user and/or problem")
def get_submissions_with_filter(
    envelope: Optional[CallableEnvelope] = None,
    service: SubmissionQueryService = Depends(get_query_service),
):
    request = parse_request(FilteredSubmissionsRequest, _payload(envelope))
    return _result(service.list_filtered(request))


@router.post("/getDetailedSubmissionData", summary="One submission with code and verdicts")
def get_detailed_submission_data(
    envelope: Optional[CallableEnvelope] = None,
    service: SubmissionQueryService = Depends(get_query_service),
):
    request = parse_request(SubmissionDetailRequest, _payload(envelope))
    return _result(service.get_detail(request))


@router.post("/getOldestSubmissionsInQueue", summary="Ungraded submissions, oldest first")
def get_oldest_submissions_in_queue(
    envelope: Optional[CallableEnvelope] = None,
    service: SubmissionQueryService = Depends(get_query_service),
):
    request = parse_request(QueuedSubmissionsRequest, _payload(envelope))
    return _result(service.list_queued(request))


@router.post("/makeSubmission", summary="Submit code for a problem")
def make_submission(
    envelope: Optional[CallableEnvelope] = None,
    service: SubmissionWriteService = Depends(get_write_service),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    request = parse_request(SimpleSubmissionRequest, _payload(envelope))
    return _result(service.create(request, caller))


@router.post("/submit", summary="Submit code for a task")
def submit(
    envelope: Optional[CallableEnvelope] = None,
    service: SubmissionWriteService = Depends(get_write_service),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    request = parse_request(TaskSubmissionRequest, _payload(envelope))
    return _result(service.create(request, caller))


@router.post("/getSubmission", summary="One submission joined with its task and user")
def get_submission(
    envelope: Optional[CallableEnvelope] = None,
    service: SubmissionQueryService = Depends(get_query_service),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    request = parse_request(GetSubmissionRequest, _payload(envelope))
    return _result(service.get_one(request, caller))


@router.post("/updateSubmissionStatus", summary="Record a grading result")
def update_submission_status(
    envelope: Optional[CallableEnvelope] = None,
    service: SubmissionWriteService = Depends(get_write_service),
    caller: Optional[CallerIdentity] = Depends(get_caller),
):
    request = parse_request(StatusUpdateRequest, _payload(envelope))
    service.update_status(request, caller)
    return _result(None)


@router.get("/submissions", summary="Public paginated submission list")
def list_submissions(
    username: Optional[str] = Query(None),
    task_id: Optional[str] = Query(None, alias="taskID"),
    offset: Optional[str] = Query(None),
    service: SubmissionQueryService = Depends(get_query_service),
):
    try:
        query = parse_request(
            PublicListingQuery,
            {"username": username, "taskID": task_id, "offset": offset},
        )
        return JSONResponse(service.list_public(query), headers=CORS_HEADERS)
    except SubmissionError as e:
        return JSONResponse(e.to_dict(), status_code=e.http_status, headers=CORS_HEADERS)
