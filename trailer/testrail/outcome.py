"""Outcomes of a bulk result submission.

TestRail rejects an entire ``add_results_for_cases`` batch when one result
references a case that is not part of the run, and names the offenders only
in the error text (``case C123 unknown``). ``classify_error`` turns that text
into a ``RejectedUnknownCases`` value so the retry loop never inspects
strings itself.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Union

from trailer.errors import TestRailAPIError

_UNKNOWN_CASE_RE = re.compile(r"case C(\d+) unknown")


@dataclass(frozen=True)
class Accepted:
    records: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class RejectedUnknownCases:
    case_ids: FrozenSet[int]
    message: str = ""


@dataclass(frozen=True)
class RejectedOther:
    message: str


SubmissionOutcome = Union[Accepted, RejectedUnknownCases, RejectedOther]


def parse_unknown_case_ids(text: str) -> FrozenSet[int]:
    return frozenset(int(m) for m in _UNKNOWN_CASE_RE.findall(text or ""))


def classify_error(error: TestRailAPIError) -> SubmissionOutcome:
    """Map a submission error onto ``RejectedUnknownCases`` or ``RejectedOther``."""
    message = str(error)
    if error.status_code == 400:
        case_ids = parse_unknown_case_ids(message)
        if case_ids:
            return RejectedUnknownCases(case_ids=case_ids, message=message)
    return RejectedOther(message=message)
