"""Result translation and submission.

Reports from the source account are translated through a case ID
correspondence into a run payload for the target account; JUnit reports are
uploaded into an existing run of a single account.
"""

from trailer.transfer.pipeline import (
    SubmissionReport,
    create_and_submit,
    prune_results,
    run_membership,
    submit_results,
    translate,
)

__all__ = [
    "SubmissionReport",
    "create_and_submit",
    "prune_results",
    "run_membership",
    "submit_results",
    "translate",
]
