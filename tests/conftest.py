"""Pytest configuration and fixtures for trailer tests."""

import os
import pytest
from unittest.mock import patch
from typing import Any, Dict, Iterable, List, Optional

# Add the project root to the Python path
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from trailer.models import CaseRecord, Catalog, Section  # noqa: E402


def pytest_collection_modifyitems(config, items):
    """Mark everything under tests/unit as ``unit``."""
    unit_dir = Path(__file__).parent / "unit"
    for item in items:
        if unit_dir in Path(item.path).parents:
            item.add_marker(pytest.mark.unit)


def make_catalog(name: str, sections: Dict[int, str], cases: Iterable[tuple]) -> Catalog:
    """Build a catalog from ``{section_id: name}`` and ``(id, section_id, title)`` tuples."""
    return Catalog(
        name=name,
        sections=tuple(Section(id=sid, name=sname) for sid, sname in sections.items()),
        cases=tuple(CaseRecord(id=cid, section_id=sid, title=title) for cid, sid, title in cases),
    )


class FakeTestRail:
    """In-memory stand-in for ``TestRailClient``.

    ``results_responses`` scripts successive ``add_results_for_cases`` calls:
    each entry is either a list of records to return or an exception to raise.
    When the script runs out, every result is accepted.
    """

    def __init__(
        self,
        sections: Optional[List[Dict[str, Any]]] = None,
        cases: Optional[List[Dict[str, Any]]] = None,
        tests: Optional[Dict[int, List[int]]] = None,
        results_responses: Optional[List[Any]] = None,
    ):
        self.sections = sections or []
        self.cases = cases or []
        self.tests = tests or {}
        self.results_responses = list(results_responses or [])
        self.add_run_calls: List[Dict[str, Any]] = []
        self.add_results_calls: List[tuple] = []
        self.get_tests_calls: List[int] = []
        self.next_run_id = 500
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    def get_sections(self, project_id, suite_id):
        return list(self.sections)

    def get_cases(self, project_id, suite_id):
        return list(self.cases)

    def get_tests(self, run_id):
        self.get_tests_calls.append(run_id)
        return [{"id": 9000 + i, "case_id": cid} for i, cid in enumerate(self.tests.get(run_id, []))]

    def add_run(self, project_id, suite_id, name, case_ids, include_all=False):
        run_id = self.next_run_id
        self.next_run_id += 1
        self.add_run_calls.append({
            "project_id": project_id,
            "suite_id": suite_id,
            "name": name,
            "case_ids": list(case_ids),
            "include_all": include_all,
        })
        self.tests[run_id] = list(case_ids)
        return {"id": run_id, "name": name}

    def add_results_for_cases(self, run_id, results):
        results = list(results)
        self.add_results_calls.append((run_id, results))
        if self.results_responses:
            response = self.results_responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return [{"id": i + 1, "test_id": r["case_id"], "status_id": r["status_id"]} for i, r in enumerate(results)]


@pytest.fixture
def fake_client():
    return FakeTestRail()


@pytest.fixture
def source_catalog():
    """Source catalog with one duplicated natural key (Login_Valid password)."""
    return make_catalog(
        "source",
        {1: "Login", 2: "Logout"},
        [
            (101, 1, "Valid password"),
            (102, 1, "Invalid password"),
            (103, 2, "Session cleared"),
            (105, 1, "Valid password"),
        ],
    )


@pytest.fixture
def target_catalog():
    return make_catalog(
        "target",
        {50: "Login", 51: "Logout"},
        [
            (2001, 50, "Invalid password"),
            (2003, 50, "Valid password"),
            (2002, 50, "Valid password"),
            (2004, 51, "Session cleared"),
        ],
    )


@pytest.fixture
def temp_env():
    """Temporary TestRail credentials for both accounts."""
    test_env = {
        "TESTRAIL_USERNAME": "qa@example.com",
        "TESTRAIL_TOKEN": "source-token",
        "TESTRAIL_URL": "https://source.testrail.example",
        "MIRANTIS_TESTRAIL_USERNAME": "qa@example.com",
        "MIRANTIS_TESTRAIL_TOKEN": "target-token",
        "MIRANTIS_TESTRAIL_URL": "https://target.testrail.example",
    }
    with patch.dict(os.environ, test_env):
        for name in ("UPLOAD_RETRIES", "STATUS_CODES_JSON", "LOG_LEVEL", "SOURCE_PROJECT_ID",
                     "SOURCE_SUITE_ID", "TARGET_PROJECT_ID", "TARGET_SUITE_ID"):
            os.environ.pop(name, None)
        yield test_env
