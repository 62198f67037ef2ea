"""Reader for exported run reports (one CSV file per run).

The header row decides column positions. Required columns are the run
label, the case ID (``C1234``), the status and the comment; other columns
are ignored.
"""
from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from trailer.errors import ReportFormatError
from trailer.models import ResultRow
from trailer.utils.logger import log_debug

_CASE_ID_RE = re.compile(r"^.(\d+)$")


@dataclass(frozen=True)
class ReportColumns:
    run: str = "Run"
    case_id: str = "Case ID"
    status: str = "Status"
    comment: str = "Comment"


def parse_case_id(cell: str) -> int:
    """``"C1234"`` -> ``1234``; the prefix character itself is not checked."""
    match = _CASE_ID_RE.match(cell.strip())
    if not match:
        raise ReportFormatError(f"Invalid case ID {cell!r}")
    return int(match.group(1))


def header_positions(header: List[str]) -> Dict[str, int]:
    positions: Dict[str, int] = {}
    for i, name in enumerate(header):
        if name in positions:
            raise ReportFormatError(f"{name} is a duplicate header")
        positions[name] = i
    return positions


def _parse_rows(path: Path, reader, columns: ReportColumns) -> List[ResultRow]:
    header = next(reader, None)
    if header is None:
        return []

    positions = header_positions(header)
    required = (columns.run, columns.case_id, columns.status, columns.comment)
    for name in required:
        if name not in positions:
            raise ReportFormatError(f"Could not find {name} in headers of {path}")

    rows: List[ResultRow] = []
    for cells in reader:
        if not cells:
            continue
        if len(cells) <= max(positions[name] for name in required):
            raise ReportFormatError(f"{path}:{reader.line_num}: expected {len(header)} columns, got {len(cells)}")
        try:
            case_id = parse_case_id(cells[positions[columns.case_id]])
        except ReportFormatError as e:
            raise ReportFormatError(f"{path}:{reader.line_num}: {e}") from None
        rows.append(ResultRow(
            source_case_id=case_id,
            status=cells[positions[columns.status]],
            comment=cells[positions[columns.comment]],
            run_label=cells[positions[columns.run]],
        ))
    return rows


def read_report(path: Path, columns: ReportColumns = ReportColumns()) -> List[ResultRow]:
    """Parse one report file into result rows, in file order.

    Raises:
        ReportFormatError: duplicate header, missing required column,
            short row, malformed case ID, bytes that are not UTF-8 or
            text the CSV reader rejects.
    """
    with open(path, "r", encoding="utf-8-sig", newline="") as fh:
        reader = csv.reader(fh)
        try:
            rows = _parse_rows(path, reader, columns)
        except (UnicodeDecodeError, csv.Error) as e:
            # Decoding happens ahead of the reader, so the line is approximate.
            raise ReportFormatError(f"{path}:{reader.line_num + 1}: {e}") from e

    log_debug("Report parsed", path=str(path), rows=len(rows))
    return rows
