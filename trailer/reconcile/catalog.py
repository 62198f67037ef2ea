"""Fetch a (project, suite) catalog from TestRail."""
from __future__ import annotations

from typing import Any, Dict, Iterable, Tuple

from trailer.models import CaseRecord, Catalog, Section
from trailer.testrail.client import TestRailClient
from trailer.utils.logger import log_info


def case_records(raw_cases: Iterable[Dict[str, Any]]) -> Tuple[CaseRecord, ...]:
    return tuple(
        CaseRecord(
            id=int(c["id"]),
            section_id=int(c["section_id"]),
            title=c.get("title") or "",
            updated_on=int(c.get("updated_on") or 0),
        )
        for c in raw_cases
    )


def fetch_catalog(client: TestRailClient, project_id: int, suite_id: int, name: str) -> Catalog:
    sections = tuple(
        Section(id=int(s["id"]), name=s.get("name") or "")
        for s in client.get_sections(project_id, suite_id)
    )
    cases = case_records(client.get_cases(project_id, suite_id))
    log_info("Catalog fetched", catalog=name, project_id=project_id, suite_id=suite_id,
             sections=len(sections), cases=len(cases))
    return Catalog(name=name, sections=sections, cases=cases)
