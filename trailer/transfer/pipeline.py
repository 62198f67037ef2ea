"""Translate result rows into a run payload and submit it to TestRail.

Submission follows this state machine for every attempt::

    Built -> Submitted -> Accepted
                       -> RejectedUnknownCases -> (exclude cases) -> Submitted
                       -> RejectedOther -> Failed

Exclusion only ever removes results; the run's member cases are untouched,
so an excluded case stays in the run without a result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from trailer.config import UNTESTED_STATUS
from trailer.errors import SubmissionError, TestRailAPIError, UnknownStatusError
from trailer.models import ResultRow, RunPayload, TranslatedResult
from trailer.testrail.client import TestRailClient
from trailer.testrail.outcome import (
    Accepted,
    RejectedOther,
    SubmissionOutcome,
    classify_error,
)
from trailer.utils.logger import log_debug, log_info, log_run_operation, log_warning


def translate(
    rows: Iterable[ResultRow],
    mapping: Mapping[int, int],
    status_codes: Mapping[str, int],
    *,
    name: Optional[str] = None,
    untested_status: str = UNTESTED_STATUS,
) -> RunPayload:
    """Translate source-account rows into a target-account run payload.

    Rows are processed in order. A row whose case has no counterpart in
    ``mapping`` is reported and dropped. An ``Untested`` row makes its case a
    run member without a result, since TestRail refuses results carrying the
    untested status.

    Raises:
        UnknownStatusError: a row's status has no entry in ``status_codes``.
    """
    payload = RunPayload(name=name or "")
    for row in rows:
        if not payload.name:
            payload.name = row.run_label

        target_id = mapping.get(row.source_case_id)
        if target_id is None:
            print(f"Could not find {row.source_case_id} in case ID lookup")
            log_debug("Unmapped source case dropped", case_id=row.source_case_id)
            continue
        payload.member_case_ids.append(target_id)

        if row.status == untested_status:
            continue

        try:
            status_id = status_codes[row.status]
        except KeyError:
            raise UnknownStatusError(row.status) from None
        payload.results.append(TranslatedResult(case_id=target_id, status_id=status_id, comment=row.comment))

    return payload


def prune_results(results: Iterable[TranslatedResult], membership: Set[int]) -> List[TranslatedResult]:
    """Keep only results whose case is a member of the run."""
    return [r for r in results if r.case_id in membership]


def run_membership(client: TestRailClient, run_id: int) -> Set[int]:
    """Case IDs currently instantiated as tests in ``run_id``."""
    return {int(t["case_id"]) for t in client.get_tests(run_id) if t.get("case_id") is not None}


@dataclass
class SubmissionReport:
    """Where a submission ended up.

    Attributes:
        outcome: ``Accepted`` with the records TestRail created (possibly none).
        attempts: Bulk calls made.
        excluded_case_ids: Cases dropped after TestRail reported them unknown.
        pruned_case_ids: Cases dropped because they were not run members.
    """

    outcome: SubmissionOutcome
    attempts: int = 0
    excluded_case_ids: Set[int] = field(default_factory=set)
    pruned_case_ids: Set[int] = field(default_factory=set)

    @property
    def uploaded(self) -> int:
        return len(self.outcome.records) if isinstance(self.outcome, Accepted) else 0


def submit_results(
    client: TestRailClient,
    run_id: int,
    results: Sequence[TranslatedResult],
    *,
    retries: int = 1,
    prune: bool = False,
) -> SubmissionReport:
    """Submit ``results`` to ``run_id`` in one bulk call, excluding unknown cases.

    Args:
        client: Client for the account owning the run.
        run_id: Existing run.
        results: Results to record.
        retries: Total number of bulk calls allowed.
        prune: Re-fetch the run's membership before every attempt and drop
            results for cases outside it.

    Returns:
        A report whose outcome is ``Accepted``. Zero accepted records is not
        an error.

    Every rejected attempt prints "No results uploaded". Running out of
    ``retries`` while TestRail still rejects unknown cases is a failure
    (exit status 1 from the CLI); the Go tool this replaces stopped its loop
    at that point and exited 0. A loop that ends because nothing is left to
    submit, or with an empty acceptance, is not a failure.

    Raises:
        SubmissionError: TestRail rejected the batch for a reason other than
            unknown cases, or kept rejecting it until ``retries`` ran out.
    """
    report = SubmissionReport(outcome=Accepted())
    last: Optional[SubmissionOutcome] = None

    for attempt in range(1, max(retries, 1) + 1):
        pending = [r for r in results if r.case_id not in report.excluded_case_ids]
        if prune:
            kept = prune_results(pending, run_membership(client, run_id))
            report.pruned_case_ids |= {r.case_id for r in pending} - {r.case_id for r in kept}
            pending = kept

        if not pending:
            print("No results uploaded")
            return report

        report.attempts = attempt
        log_run_operation("submit results", run_id, attempt=attempt, results=len(pending))
        try:
            records = client.add_results_for_cases(run_id, [r.to_api() for r in pending])
        except TestRailAPIError as e:
            last = classify_error(e)
            if isinstance(last, RejectedOther):
                raise SubmissionError(
                    f"Failed to upload test results to TestRail: {last.message}",
                    outcome=last,
                    attempts=attempt,
                ) from e
            report.excluded_case_ids |= set(last.case_ids)
            log_warning("TestRail rejected unknown cases; excluding them",
                        run_id=run_id, attempt=attempt, case_ids=sorted(last.case_ids))
            print("No results uploaded")
            continue

        report.outcome = Accepted(records=list(records or []))
        if not report.uploaded:
            print("No results uploaded")
        else:
            log_info("Results uploaded", run_id=run_id, count=report.uploaded, attempts=attempt)
        return report

    raise SubmissionError(
        f"Giving up after {report.attempts} attempt(s): {getattr(last, 'message', '')}",
        outcome=last,
        attempts=report.attempts,
    )


def create_and_submit(
    client: TestRailClient,
    payload: RunPayload,
    project_id: int,
    suite_id: int,
    *,
    retries: int = 1,
) -> Dict[str, object]:
    """Create the payload's run in ``project_id``/``suite_id`` and record its results.

    Returns:
        ``{"run": <created run>, "report": SubmissionReport}``
    """
    run = client.add_run(project_id, suite_id, payload.name, payload.member_case_ids, include_all=False)
    run_id = int(run["id"])
    print(f"Created run for {payload.name} in the target account")
    log_run_operation("created", run_id, name=payload.name, members=len(payload.member_case_ids))

    report = submit_results(client, run_id, payload.results, retries=retries)
    print(f"Transferred results for {payload.name} to run {run_id}")
    return {"run": run, "report": report}

