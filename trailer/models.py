"""Value types shared by reconciliation and result transfer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class Section:
    id: int
    name: str


@dataclass(frozen=True)
class CaseRecord:
    id: int
    section_id: int
    title: str
    updated_on: int = 0


@dataclass(frozen=True)
class Catalog:
    """Sections and cases of one (project, suite) pair in one account.

    Attributes:
        name: Label used in error messages (e.g. ``"source"``).
        sections: Sections in the order the API returned them.
        cases: Cases in the order the API returned them.
    """

    name: str
    sections: Tuple[Section, ...] = ()
    cases: Tuple[CaseRecord, ...] = ()


@dataclass(frozen=True)
class ResultRow:
    """One line of an exported run report."""

    source_case_id: int
    status: str
    comment: str
    run_label: str


@dataclass(frozen=True)
class TranslatedResult:
    case_id: int
    status_id: int
    comment: str = ""

    def to_api(self) -> Dict[str, Any]:
        """Shape expected by ``add_results_for_cases``."""
        payload: Dict[str, Any] = {"case_id": self.case_id, "status_id": self.status_id}
        if self.comment:
            payload["comment"] = self.comment
        return payload


@dataclass
class RunPayload:
    """A run to create plus the results to record against it.

    ``member_case_ids`` keeps cases whose row carried no result (``Untested``)
    so they still show up in the created run.
    """

    name: str
    member_case_ids: List[int] = field(default_factory=list)
    results: List[TranslatedResult] = field(default_factory=list)
