"""Manual source → target case ID overrides.

Some cases cannot be matched by natural key at all (their section or title
changed between accounts). They are listed by hand in a YAML mapping::

    61947: 4875610
    61948: 4875611
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import yaml

from trailer.errors import ConfigurationError, ReportFormatError
from trailer.utils.logger import log_info


def _as_case_id(value, path: Path) -> int:
    if isinstance(value, bool):
        raise ReportFormatError(f"Invalid case ID {value!r} in {path}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text[:1].upper() == "C":
        text = text[1:]
    try:
        return int(text)
    except ValueError:
        raise ReportFormatError(f"Invalid case ID {value!r} in {path}") from None


def load_overrides(path: Path) -> Dict[int, int]:
    if not path.exists():
        raise ConfigurationError(f"Overrides file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ReportFormatError(f"YAML parse error in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ReportFormatError(f"{path} must contain a mapping of source to target case IDs")

    overrides = {_as_case_id(k, path): _as_case_id(v, path) for k, v in raw.items()}
    log_info("Loaded case ID overrides", path=str(path), count=len(overrides))
    return overrides
