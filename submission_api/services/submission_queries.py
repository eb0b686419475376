"""
Read side of the submission service.

Listings, single-submission detail with grouped per-case verdicts, the
grading queue feed, and the visibility-filtered views backed by tasks and
users.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from ..errors import DataLoss, remote_call_guard
from ..schemas import (
    FilteredSubmissionsRequest,
    GetSubmissionRequest,
    PublicListingQuery,
    QueuedSubmissionsRequest,
    RecentSubmissionsRequest,
    SubmissionDetailRequest,
)
from .auth_service import CallerIdentity, IdentityDirectory, is_admin
from .code_storage import CodeStorage
from .document_store import CASE_RESULTS, SUBMISSIONS, TASKS, Document, DocumentStore

logger = logging.getLogger(__name__)

IN_QUEUE = "in_queue"


def _with_submission_id(doc: Document) -> Dict[str, Any]:
    data = dict(doc.data)
    data["submission_id"] = doc.id
    return data


def group_case_results(docs: List[Document]) -> Dict[int, List[Dict[str, Any]]]:
    """
    Group per-case verdict rows by subtask.

    ``case_id`` is ``"<subtask>/<subcase>"``; each subtask maps to its
    verdicts ordered by subcase number.
    """
    grouped: Dict[int, List[Dict[str, Any]]] = {}
    for doc in docs:
        subtask_str, subcase_str = str(doc.data["case_id"]).split("/", 1)
        subtask, subcase = int(subtask_str), int(subcase_str)
        grouped.setdefault(subtask, []).append(
            {
                "subcase": subcase,
                "verdict": doc.data.get("verdict"),
                "time": float(doc.data.get("time", 0)),
                "memory": float(doc.data.get("memory", 0)),
            }
        )
    for verdicts in grouped.values():
        verdicts.sort(key=lambda v: v["subcase"])
    return dict(sorted(grouped.items()))


def aggregate_groups(groups: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
    """
    Sum score/fullScore over groups; take the max time/memory over every case.

    >>> aggregate_groups([{"score": 3, "fullScore": 10, "status": [{"time": 0.5, "memory": 50}]}])
    {'score': 3, 'fullScore': 10, 'time': 0.5, 'memory': 50}
    """
    score = 0
    full_score = 0
    time = 0
    memory = 0
    for group in groups or []:
        score += group.get("score", 0)
        full_score += group.get("fullScore", 0)
        for case in group.get("status") or []:
            time = max(time, case.get("time", 0))
            memory = max(memory, case.get("memory", 0))
    return {"score": score, "fullScore": full_score, "time": time, "memory": memory}


def format_locale_timestamp(value: Any, tz_name: str = "UTC") -> str:
    """Render a stored timestamp as ``M/D/YYYY, h:mm:ss AM`` in ``tz_name``."""
    if value is None or value == "":
        return ""
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(ZoneInfo(tz_name))
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return (
        f"{moment.month}/{moment.day}/{moment.year}, "
        f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"
    )


def code_file_count(task: Dict[str, Any]) -> Optional[int]:
    """``None`` for single-file tasks, else the number of expected files."""
    if task.get("type", "normal") == "normal":
        return None
    return len(task.get("fileName") or [])


class SubmissionQueryService:
    def __init__(
        self,
        store: DocumentStore,
        code_storage: CodeStorage,
        identities: IdentityDirectory,
        *,
        public_page_size: int = 20,
        display_timezone: str = "UTC",
    ) -> None:
        self.store = store
        self.code_storage = code_storage
        self.identities = identities
        self.public_page_size = public_page_size
        self.display_timezone = display_timezone

    def list_recent(self, request: RecentSubmissionsRequest) -> List[Dict[str, Any]]:
        with remote_call_guard("getRecentSubmissions"):
            docs = self.store.query(
                SUBMISSIONS,
                order_by="timestamp",
                descending=True,
                start_after=request.last_document_id or None,
                limit=request.limit or None,
            )
            return [_with_submission_id(doc) for doc in docs]

    def list_filtered(self, request: FilteredSubmissionsRequest) -> List[Dict[str, Any]]:
        filters = {}
        if request.uid:
            filters["uid"] = request.uid
        if request.problem_id:
            filters["problem_id"] = request.problem_id
        with remote_call_guard("getSubmissionsWithFilter"):
            docs = self.store.query(
                SUBMISSIONS,
                filters=filters,
                order_by="timestamp",
                descending=True,
                limit=request.limit,
            )
            return [_with_submission_id(doc) for doc in docs]

    def get_detail(self, request: SubmissionDetailRequest) -> Dict[str, Any]:
        with remote_call_guard("getDetailedSubmissionData"):
            doc = self.store.get(SUBMISSIONS, request.submission_id)
            if doc is None:
                raise DataLoss(f"Submission {request.submission_id} not found")
            case_docs = self.store.list_children(
                SUBMISSIONS, doc.id, CASE_RESULTS, order_by="case_id"
            )
            code = self.code_storage.read_code(doc.id)
            return {
                "metadata": doc.data,
                "code": code,
                "case_results": group_case_results(case_docs),
            }

    def list_queued(self, request: QueuedSubmissionsRequest) -> List[Dict[str, Any]]:
        filters = {"status": IN_QUEUE}
        if request.problem_id:
            filters["problem_id"] = request.problem_id
        with remote_call_guard("getOldestSubmissionsInQueue"):
            docs = self.store.query(
                SUBMISSIONS,
                filters=filters,
                order_by="timestamp",
                limit=request.limit,
            )
            result = []
            for doc in docs:
                data = _with_submission_id(doc)
                data["code"] = self.code_storage.read_code(doc.id)
                result.append(data)
            return result

    def get_one(
        self, request: GetSubmissionRequest, caller: Optional[CallerIdentity]
    ) -> Dict[str, Any]:
        with remote_call_guard("getSubmission"):
            submission = self.store.get(SUBMISSIONS, request.submission_id)
            if submission is None:
                raise DataLoss(f"Submission {request.submission_id} not found")

            task_id = submission.data.get("taskID")
            task = self.store.get(TASKS, task_id) if task_id else None
            if task is None:
                raise DataLoss(f"Task {task_id} not found")
            if not task.data.get("visible") and not is_admin(caller):
                return {}

            code = self.code_storage.read_code(submission.id, code_file_count(task.data))

            uid = submission.data.get("uid")
            user = self.identities.get_user(uid) if uid else None
            if user is None:
                raise DataLoss(f"User {uid} not found")

            result = dict(submission.data)
            result.update(
                {
                    "submissionID": submission.id,
                    "task": dict(task.data, id=task.id),
                    "username": user.get("username"),
                    "humanTimestamp": format_locale_timestamp(
                        submission.data.get("timestamp"), self.display_timezone
                    ),
                    "code": code,
                }
            )
            return result

    def list_public(self, query: PublicListingQuery) -> List[Dict[str, Any]]:
        with remote_call_guard("listSubmissions"):
            filters = {}
            if query.username:
                uid = self.identities.find_uid_by_username(query.username)
                if uid is None:
                    return []
                filters["uid"] = uid
            if query.task_id:
                filters["taskID"] = query.task_id

            offset = query.offset or 0
            limit = self.public_page_size if query.offset is not None else None
            docs = self.store.query(
                SUBMISSIONS,
                filters=filters,
                order_by="timestamp",
                descending=True,
                offset=offset,
                limit=limit,
            )

            tasks: Dict[str, Optional[Document]] = {}
            usernames: Dict[str, Optional[str]] = {}
            result = []
            for position, doc in enumerate(docs, start=offset):
                task_id = doc.data.get("taskID")
                if task_id not in tasks:
                    tasks[task_id] = self.store.get(TASKS, task_id) if task_id else None
                task = tasks[task_id]
                if task is None or not task.data.get("visible"):
                    result.append({"id": position})
                    continue

                uid = doc.data.get("uid")
                if uid not in usernames:
                    user = self.identities.get_user(uid) if uid else None
                    usernames[uid] = user.get("username") if user else None

                entry = {
                    "id": position,
                    "username": usernames[uid],
                    "timestamp": doc.data.get("timestamp"),
                    "language": doc.data.get("language"),
                    "taskID": task_id,
                    "submissionID": doc.id,
                }
                entry.update(aggregate_groups(doc.data.get("groups")))
                result.append(entry)
            return result
