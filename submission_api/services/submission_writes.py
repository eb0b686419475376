"""
Write side of the submission service: creating submissions and recording
grading results.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..errors import (
    DataLoss,
    InvalidArgument,
    PermissionDenied,
    Unauthenticated,
    remote_call_guard,
)
from ..schemas import (
    SimpleSubmissionRequest,
    StatusUpdateRequest,
    SubmissionCreateRequest,
    TaskSubmissionRequest,
)
from .auth_service import CallerIdentity, IdentityDirectory, is_admin
from .code_storage import CodeStorage
from .document_store import SUBMISSIONS, TASKS, DocumentNotFound, DocumentStore
from .submission_queries import IN_QUEUE

logger = logging.getLogger(__name__)

# Measurements not yet reported by a grader
UNMEASURED = -1

DEFAULT_FILE_NAME = "main"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def expected_file_names(task: Dict[str, Any]) -> List[str]:
    names = [str(name) for name in task.get("fileName") or []]
    if task.get("type", "normal") == "normal":
        return names[:1] or [DEFAULT_FILE_NAME]
    return names


class SubmissionWriteService:
    def __init__(
        self,
        store: DocumentStore,
        code_storage: CodeStorage,
        identities: IdentityDirectory,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.code_storage = code_storage
        self.identities = identities
        self._clock = clock

    def _timestamp(self) -> str:
        return self._clock().astimezone(timezone.utc).isoformat(timespec="microseconds")

    def create(
        self, request: SubmissionCreateRequest, caller: Optional[CallerIdentity]
    ) -> str:
        """Create a submission from either request variant and return its id."""
        if isinstance(request, SimpleSubmissionRequest):
            return self._create_simple(request, caller)
        if isinstance(request, TaskSubmissionRequest):
            return self._create_for_task(request, caller)
        raise InvalidArgument(f"Unsupported submission request: {type(request).__name__}")

    def _create_simple(
        self, request: SimpleSubmissionRequest, caller: Optional[CallerIdentity]
    ) -> str:
        if caller is None or caller.uid != request.uid:
            raise PermissionDenied("Unauthorized to make submission")

        with remote_call_guard("makeSubmission"):
            username = self.identities.display_name(caller.uid)
            submission_id = self.store.add(
                SUBMISSIONS,
                {
                    "language": request.language,
                    "memory": UNMEASURED,
                    "points": UNMEASURED,
                    "problem_id": request.problem_id,
                    "status": IN_QUEUE,
                    "time": UNMEASURED,
                    "timestamp": self._timestamp(),
                    "uid": request.uid,
                    "username": username,
                },
            )
            self.code_storage.write_code(submission_id, request.code)

        logger.info(
            f"Submission {submission_id} queued: uid={request.uid}, problem_id={request.problem_id}"
        )
        return submission_id

    def _create_for_task(
        self, request: TaskSubmissionRequest, caller: Optional[CallerIdentity]
    ) -> str:
        if caller is None:
            raise Unauthenticated("Sign in to submit")

        with remote_call_guard("submit"):
            task = self.store.get(TASKS, request.task_id)
            if task is None:
                raise DataLoss(f"Task {request.task_id} not found")
            if not task.data.get("visible") and not is_admin(caller):
                raise PermissionDenied("Task is not visible")

            file_names = expected_file_names(task.data)
            if not file_names:
                raise DataLoss(f"Task {task.id} lists no expected files")
            files = request.code
            if isinstance(files, str):
                files = self.code_storage.unzip_code(files, file_names)
            if not isinstance(files, list):
                raise InvalidArgument("Code could not be unpacked into the expected files")
            if len(files) > len(file_names):
                raise InvalidArgument(f"Expected {len(file_names)} code file(s), got {len(files)}")
            # Files the caller left out are stored empty
            files = list(files) + [""] * (len(file_names) - len(files))

            submission_id = self.store.add(
                SUBMISSIONS,
                {
                    "taskID": task.id,
                    "language": request.language,
                    "timestamp": self._timestamp(),
                    "uid": caller.uid,
                },
            )
            if task.data.get("type", "normal") == "normal":
                self.code_storage.write_code(submission_id, files[0])
            else:
                self.code_storage.write_code(submission_id, files)

        logger.info(f"Submission {submission_id} created: uid={caller.uid}, taskID={task.id}")
        return submission_id

    def update_status(
        self, request: StatusUpdateRequest, caller: Optional[CallerIdentity]
    ) -> None:
        """Record a grading result; any authenticated caller may report one."""
        if caller is None:
            raise PermissionDenied("Unauthorized to update submission status")

        with remote_call_guard("updateSubmissionStatus"):
            try:
                self.store.update(
                    SUBMISSIONS,
                    request.submission_id,
                    {
                        "points": request.points,
                        "status": request.status,
                        "time": request.time,
                        "memory": request.memory,
                    },
                )
            except DocumentNotFound as e:
                raise DataLoss(f"Submission {request.submission_id} not found") from e

        logger.info(
            f"Submission {request.submission_id} graded by {caller.uid}: status={request.status}"
        )
