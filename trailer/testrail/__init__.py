"""TestRail API access: HTTP client and submission outcome classification."""

from trailer.testrail.client import TestRailClient, client_from_config
from trailer.testrail.outcome import (
    Accepted,
    RejectedOther,
    RejectedUnknownCases,
    classify_error,
)

__all__ = [
    "TestRailClient",
    "client_from_config",
    "Accepted",
    "RejectedOther",
    "RejectedUnknownCases",
    "classify_error",
]
