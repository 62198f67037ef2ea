"""Local snapshot of a suite's case titles.

The snapshot is a YAML document::

    project_id: 3
    suite_id: 33
    last_updated: '2024-05-01T10:00:00.000000+00:00'
    cases:
      1234: Login with a valid password

``download`` refreshes the titles of cases changed since ``last_updated``;
``prune`` drops case IDs. Both rewrite the file only when something changed,
replacing it atomically.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from trailer.errors import ReportFormatError
from trailer.models import CaseRecord
from trailer.utils.logger import log_info

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # RFC3339Nano may carry more than the 6 fractional digits Python accepts.
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits, rest = digits + rest[0], rest[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class SuiteSnapshot(BaseModel):
    """Case titles of one (project, suite) pair."""

    project_id: int = Field(0, description="TestRail project ID")
    suite_id: int = Field(0, description="TestRail suite ID")
    last_updated: str = Field(default_factory=lambda: format_timestamp(EPOCH),
                              description="RFC 3339 time of the last refresh")
    cases: Dict[int, str] = Field(default_factory=dict, description="case ID → title")

    @field_validator("last_updated", mode="before")
    @classmethod
    def validate_last_updated(cls, v):
        # Unquoted timestamps come out of yaml.safe_load as datetimes.
        if isinstance(v, datetime):
            if v.tzinfo is None:
                v = v.replace(tzinfo=timezone.utc)
            return format_timestamp(v)
        try:
            parse_timestamp(str(v))
        except ValueError:
            raise ValueError(f"Error parsing last_updated time: {v!r}")
        return v

    @property
    def last_updated_at(self) -> datetime:
        return parse_timestamp(self.last_updated)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.model_dump(), sort_keys=False, allow_unicode=True)


def load_snapshot(path: Path, *, project_id: int = 0, suite_id: int = 0) -> SuiteSnapshot:
    """Read ``path``; a missing file yields an empty snapshot for the given scope."""
    if not path.exists():
        return SuiteSnapshot(project_id=project_id, suite_id=suite_id)

    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        return SuiteSnapshot(**raw)
    except (yaml.YAMLError, ValidationError, TypeError) as exc:
        raise ReportFormatError(f"Error unmarshaling suite data from {path}: {exc}") from exc


def save_snapshot(snapshot: SuiteSnapshot, path: Path) -> None:
    """Write ``snapshot`` to ``path`` via a temporary file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(snapshot.to_yaml())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    log_info("Suite snapshot written", path=str(path), cases=len(snapshot.cases))


def merge_updated_cases(snapshot: SuiteSnapshot, cases: Iterable[CaseRecord],
                        now: Optional[datetime] = None) -> bool:
    """Record titles of cases updated after ``snapshot.last_updated``.

    Returns True when at least one case was recorded; ``last_updated`` is
    then moved to ``now``.
    """
    since = snapshot.last_updated_at
    updated = False
    for case in cases:
        if datetime.fromtimestamp(case.updated_on, tz=timezone.utc) > since:
            snapshot.cases[case.id] = case.title
            updated = True
    if updated:
        snapshot.last_updated = format_timestamp(now or datetime.now(timezone.utc))
    return updated


def prune_cases(snapshot: SuiteSnapshot, case_ids: Iterable[int],
                now: Optional[datetime] = None) -> bool:
    """Remove ``case_ids``; returns True when any of them was present."""
    updated = False
    for case_id in case_ids:
        if snapshot.cases.pop(case_id, None) is not None:
            updated = True
    if updated:
        snapshot.last_updated = format_timestamp(now or datetime.now(timezone.utc))
    return updated
