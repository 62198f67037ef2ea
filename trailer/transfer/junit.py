"""JUnit XML reports → TestRail results for an existing run.

A test reports against every TestRail case whose ID (``C1234``) appears in
its name, e.g. ``TestLogin/C1234_valid_password``. When several tests cover
the same case, the case fails if any of them failed. Skipped tests leave the
case untouched.

Format::

    <testsuites>
      <testsuite name="integration" tests="2" failures="1">
        <testcase name="TestLogin/C1234_valid_password" classname="login" time="0.1"/>
        <testcase name="TestLogin/C1235_bad_password" classname="login">
          <failure message="expected 401">...</failure>
        </testcase>
      </testsuite>
    </testsuites>
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from trailer.errors import ReportFormatError
from trailer.models import TranslatedResult
from trailer.utils.logger import log_debug, log_info

# TestRail's built-in status IDs, identical on every account.
PASSED_STATUS_ID = 1
FAILED_STATUS_ID = 5

OUTCOME_PASSED = "passed"
OUTCOME_FAILED = "failed"
OUTCOME_SKIPPED = "skipped"

_CASE_REF_RE = re.compile(r"(?<![A-Za-z0-9])C(\d+)(?![0-9])")
MAX_FAILURE_TEXT = 2000


@dataclass(frozen=True)
class JUnitCase:
    name: str
    classname: str = ""
    outcome: str = OUTCOME_PASSED
    message: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.classname}.{self.name}" if self.classname else self.name

    @property
    def case_ids(self) -> List[int]:
        return sorted({int(m) for m in _CASE_REF_RE.findall(self.name)})


def _outcome(testcase: ET.Element) -> tuple[str, str]:
    for tag in ("failure", "error"):
        node = testcase.find(tag)
        if node is not None:
            text = node.get("message") or (node.text or "").strip()
            return OUTCOME_FAILED, text[:MAX_FAILURE_TEXT]
    if testcase.find("skipped") is not None:
        return OUTCOME_SKIPPED, ""
    return OUTCOME_PASSED, ""


def parse_junit_file(path: Path) -> List[JUnitCase]:
    """Parse a ``<testsuites>`` or bare ``<testsuite>`` document.

    Raises:
        ReportFormatError: the file cannot be read or is not well-formed XML.
    """
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as e:
        raise ReportFormatError(f"Failed to parse file: {path}: {e}") from e

    if root.tag == "testsuite":
        testsuites = [root]
    else:
        testsuites = root.iter("testsuite")

    cases: List[JUnitCase] = []
    for testsuite in testsuites:
        for testcase in testsuite.findall("testcase"):
            outcome, message = _outcome(testcase)
            cases.append(JUnitCase(
                name=testcase.get("name", "unknown"),
                classname=testcase.get("classname", ""),
                outcome=outcome,
                message=message,
            ))
    log_debug("JUnit file parsed", path=str(path), testcases=len(cases))
    return cases


@dataclass
class CaseUpdate:
    case_id: int
    failed: bool = False
    lines: List[str] = field(default_factory=list)

    @property
    def status_id(self) -> int:
        return FAILED_STATUS_ID if self.failed else PASSED_STATUS_ID


class ResultUpdates:
    """Results collected from JUnit files, keyed by TestRail case ID."""

    def __init__(self):
        self.result_map: Dict[int, CaseUpdate] = {}

    def add_cases(self, comment_prefix: str, cases: Iterable[JUnitCase]) -> None:
        unreferenced = 0
        for case in cases:
            if case.outcome == OUTCOME_SKIPPED:
                continue
            case_ids = case.case_ids
            if not case_ids:
                unreferenced += 1
                continue
            line = f"{case.full_name}: {case.outcome}"
            if case.message:
                line = f"{line}\n{case.message}"
            if comment_prefix:
                line = f"{comment_prefix} {line}"
            for case_id in case_ids:
                update = self.result_map.setdefault(case_id, CaseUpdate(case_id=case_id))
                update.failed = update.failed or case.outcome == OUTCOME_FAILED
                update.lines.append(line)
        if unreferenced:
            log_info("Tests without a TestRail case reference were ignored", count=unreferenced)

    def create_payload(self) -> List[TranslatedResult]:
        return [
            TranslatedResult(case_id=u.case_id, status_id=u.status_id, comment="\n".join(u.lines))
            for _, u in sorted(self.result_map.items())
        ]

    def describe(self) -> List[str]:
        """Readable one-line summaries for dry runs."""
        return [
            f"C{u.case_id}: {'Failed' if u.failed else 'Passed'} ({len(u.lines)} test(s))"
            for _, u in sorted(self.result_map.items())
        ]
