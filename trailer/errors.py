"""Exception hierarchy for trailer.

Integrity errors mean the input data contradicts what reconciliation or
translation requires; nothing retries them. ``TestRailAPIError`` is raised by
the HTTP client and classified by ``trailer.testrail.outcome``.
"""
from __future__ import annotations

from typing import Any, Optional


class TrailerError(Exception):
    """Base class for all errors raised by trailer."""


class ConfigurationError(TrailerError):
    """Missing credentials or unusable command line input."""


class IntegrityError(TrailerError):
    """Input data is inconsistent with reconciliation or translation."""


class UnknownSectionError(IntegrityError):
    def __init__(self, case_id: int, section_id: int, catalog: str):
        self.case_id = case_id
        self.section_id = section_id
        self.catalog = catalog
        super().__init__(
            f"Case {case_id} references section {section_id} not found in {catalog} catalog"
        )


class DuplicateSectionError(IntegrityError):
    def __init__(self, section_id: int, catalog: str):
        self.section_id = section_id
        self.catalog = catalog
        super().__init__(f"Duplicate entry for section ID {section_id} in {catalog} catalog")


class DuplicateMismatchError(IntegrityError):
    """A duplicated natural key cannot be paired 2-vs-2 across systems."""

    def __init__(self, key: str, source_ids: list[int], target_ids: list[int]):
        self.key = key
        self.source_ids = list(source_ids)
        self.target_ids = list(target_ids)
        super().__init__(
            f"Ambiguous or missing duplicate correspondence for {key!r}: "
            f"source cases {self.source_ids}, target cases {self.target_ids}"
        )


class ReportFormatError(IntegrityError):
    """A report or override file is malformed."""


class UnknownStatusError(IntegrityError):
    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Could not find {status} in status codes")


class TestRailAPIError(TrailerError):
    """Non-success response (or transport failure) from the TestRail API."""

    __test__ = False

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class SubmissionError(TrailerError):
    """Result submission ended in a terminal state."""

    def __init__(self, message: str, outcome: Any = None, attempts: int = 0):
        self.outcome = outcome
        self.attempts = attempts
        super().__init__(message)
