"""Unit tests for submission outcome classification."""

from trailer.errors import TestRailAPIError
from trailer.testrail.outcome import (
    RejectedOther,
    RejectedUnknownCases,
    classify_error,
    parse_unknown_case_ids,
)


class TestParseUnknownCaseIds:
    def test_single_case(self):
        assert parse_unknown_case_ids('{"error": "Field :results case C11 unknown"}') == {11}

    def test_several_cases(self):
        text = "case C11 unknown, case C4875610 unknown"

        assert parse_unknown_case_ids(text) == {11, 4875610}

    def test_no_match(self):
        assert parse_unknown_case_ids("Field :status_id is not a valid status") == frozenset()
        assert parse_unknown_case_ids("") == frozenset()


class TestClassifyError:
    def test_bad_request_naming_cases(self):
        err = TestRailAPIError("400 Bad Request: case C11 unknown", status_code=400)

        outcome = classify_error(err)

        assert isinstance(outcome, RejectedUnknownCases)
        assert outcome.case_ids == {11}

    def test_bad_request_without_cases(self):
        err = TestRailAPIError("400 Bad Request: invalid status", status_code=400)

        assert isinstance(classify_error(err), RejectedOther)

    def test_other_status_with_case_text(self):
        err = TestRailAPIError("500 Internal Server Error: case C11 unknown", status_code=500)

        assert classify_error(err) == RejectedOther(message=str(err))

    def test_transport_failure(self):
        assert isinstance(classify_error(TestRailAPIError("connection refused")), RejectedOther)
