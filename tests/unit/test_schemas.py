"""
Unit tests for request validation
"""
import pytest

from submission_api.errors import InvalidArgument
from submission_api.schemas import (
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


class TestFilteredSubmissionsRequest:
    """listFiltered input validation"""

    @pytest.mark.parametrize("limit", [0, -1, -100, 2.5, 0.0, "10", True, None, [5]])
    def test_rejects_bad_limit(self, limit):
        with pytest.raises(InvalidArgument, match="Limit must be an integer > 0"):
            parse_request(FilteredSubmissionsRequest, {"limit": limit})

    def test_integral_float_limit_becomes_int(self):
        request = parse_request(FilteredSubmissionsRequest, {"limit": 5.0})
        assert request.limit == 5
        assert isinstance(request.limit, int)

    @pytest.mark.parametrize("uid", [1, 1.5, True, ["uid"], {"uid": "x"}])
    def test_rejects_non_string_uid(self, uid):
        with pytest.raises(InvalidArgument, match="UID must be a string"):
            parse_request(FilteredSubmissionsRequest, {"limit": 5, "uid": uid})

    @pytest.mark.parametrize("problem_id", [7, False, ["p"], 0.0])
    def test_rejects_non_string_problem_id(self, problem_id):
        with pytest.raises(InvalidArgument, match="Problem ID must be a string"):
            parse_request(FilteredSubmissionsRequest, {"limit": 5, "problem_id": problem_id})

    def test_accepts_optional_filters(self):
        request = parse_request(FilteredSubmissionsRequest, {"limit": 3})
        assert request.limit == 3
        assert request.uid is None
        assert request.problem_id is None

        request = parse_request(
            FilteredSubmissionsRequest, {"limit": 3, "uid": "u1", "problem_id": ""}
        )
        assert request.uid == "u1"
        assert request.problem_id == ""

    def test_missing_payload_reports_limit(self):
        with pytest.raises(InvalidArgument, match="Limit"):
            parse_request(FilteredSubmissionsRequest, None)


class TestRecentSubmissionsRequest:
    def test_everything_optional(self):
        request = parse_request(RecentSubmissionsRequest, {})
        assert request.limit is None
        assert request.last_document_id is None

    def test_zero_limit_is_accepted(self):
        assert parse_request(RecentSubmissionsRequest, {"limit": 0}).limit == 0

    def test_rejects_negative_limit(self):
        with pytest.raises(InvalidArgument):
            parse_request(RecentSubmissionsRequest, {"limit": -3})

    def test_integral_float_limit_is_accepted(self):
        assert parse_request(RecentSubmissionsRequest, {"limit": 3.0}).limit == 3
        with pytest.raises(InvalidArgument, match="non-negative integer"):
            parse_request(RecentSubmissionsRequest, {"limit": 3.5})

    def test_extra_fields_ignored(self):
        request = parse_request(RecentSubmissionsRequest, {"limit": 2, "unexpected": 1})
        assert request.limit == 2


class TestDetailAndQueueRequests:
    @pytest.mark.parametrize("submission_id", ["", None, 12, ["abc"]])
    def test_detail_requires_non_empty_string(self, submission_id):
        with pytest.raises(InvalidArgument, match="Submission ID must be a non-empty string"):
            parse_request(SubmissionDetailRequest, {"submission_id": submission_id})

    def test_queue_requires_positive_limit(self):
        with pytest.raises(InvalidArgument):
            parse_request(QueuedSubmissionsRequest, {"limit": 0})
        request = parse_request(QueuedSubmissionsRequest, {"limit": 4, "problem_id": "p1"})
        assert request.problem_id == "p1"

    def test_get_submission_uses_camel_case_field(self):
        request = parse_request(GetSubmissionRequest, {"submissionID": "abc"})
        assert request.submission_id == "abc"
        with pytest.raises(InvalidArgument, match="Submission ID"):
            parse_request(GetSubmissionRequest, {"submissionID": ""})


class TestSubmissionCreationRequests:
    VALID = {"uid": "u", "problem_id": "p", "code": "print(1)", "language": "python"}

    @pytest.mark.parametrize("field", ["uid", "problem_id", "code", "language"])
    def test_simple_requires_every_field_non_empty(self, field):
        payload = dict(self.VALID, **{field: ""})
        with pytest.raises(InvalidArgument, match="must be a non-empty string"):
            parse_request(SimpleSubmissionRequest, payload)

    def test_simple_variant_tag(self):
        assert parse_request(SimpleSubmissionRequest, self.VALID).variant == "simple"

    def test_task_request_aliases(self):
        request = parse_request(TaskSubmissionRequest, {"id": "t1", "code": "x", "lang": "cpp"})
        assert request.variant == "task"
        assert request.task_id == "t1"
        assert request.language == "cpp"

    def test_task_request_accepts_file_list(self):
        request = parse_request(
            TaskSubmissionRequest, {"id": "t1", "code": ["a", "b"], "lang": "cpp"}
        )
        assert request.code == ["a", "b"]

    @pytest.mark.parametrize("code", ["", [], [1, 2], None, 42])
    def test_task_request_rejects_bad_code(self, code):
        with pytest.raises(InvalidArgument, match="Code must be"):
            parse_request(TaskSubmissionRequest, {"id": "t1", "code": code, "lang": "cpp"})


class TestStatusUpdateRequest:
    VALID = {"submission_id": "s1", "status": "AC", "points": 100, "time": 0.25, "memory": 2048}

    def test_valid(self):
        request = parse_request(StatusUpdateRequest, self.VALID)
        assert request.points == 100
        assert request.time == 0.25

    @pytest.mark.parametrize("field", ["points", "time", "memory"])
    @pytest.mark.parametrize("value", ["1", None, True, [1]])
    def test_measurements_must_be_numbers(self, field, value):
        payload = dict(self.VALID, **{field: value})
        with pytest.raises(InvalidArgument, match=f"{field.capitalize()} must be a number"):
            parse_request(StatusUpdateRequest, payload)

    def test_status_must_be_non_empty(self):
        with pytest.raises(InvalidArgument, match="Status"):
            parse_request(StatusUpdateRequest, dict(self.VALID, status=""))


class TestPublicListingQuery:
    def test_offset_parsed_from_query_string(self):
        query = parse_request(PublicListingQuery, {"offset": "40", "taskID": "t"})
        assert query.offset == 40
        assert query.task_id == "t"

    def test_rejects_negative_offset(self):
        with pytest.raises(InvalidArgument):
            parse_request(PublicListingQuery, {"offset": "-1"})


def test_non_object_payload_rejected():
    with pytest.raises(InvalidArgument, match="must be an object"):
        parse_request(RecentSubmissionsRequest, ["not", "a", "dict"])
