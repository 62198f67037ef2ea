"""Case identity reconciliation between two TestRail accounts.

Cases are not shared by ID across accounts, so each case is identified by a
natural key, ``<section name>_<title>``. Keys present once on each side map
directly. Keys duplicated in the source catalog are set aside and resolved
after both catalogs are scanned: the two source IDs are paired with the two
target IDs in ascending order.

The ascending-order pairing assumes both accounts created the duplicated
cases in the same relative order. Nothing checks that beyond the 2-vs-2 size
requirement; a content-aware match is not possible because the target
account lost whatever distinguished the duplicates.

Usage::

    mapping = reconcile(source_catalog, target_catalog, overrides={61947: 4875610})
    target_id = mapping.get(source_id)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from trailer.errors import DuplicateMismatchError, DuplicateSectionError, UnknownSectionError
from trailer.models import CaseRecord, Catalog
from trailer.utils.logger import log_debug, log_reconcile_progress, log_warning

# Only pairwise duplicates can be resolved by ordering.
DUPLICATE_GROUP_SIZE = 2


def natural_key(section_name: str, title: str) -> str:
    return f"{section_name}_{title}"


def section_names(catalog: Catalog) -> Dict[int, str]:
    """Map section ID to section name, rejecting repeated section IDs."""
    names: Dict[int, str] = {}
    for section in catalog.sections:
        if section.id in names:
            raise DuplicateSectionError(section.id, catalog.name)
        names[section.id] = section.name
    return names


def keyed_cases(catalog: Catalog) -> Iterator[Tuple[CaseRecord, str]]:
    """Yield ``(case, natural key)`` pairs in catalog order.

    Raises:
        UnknownSectionError: a case points at a section outside its catalog.
    """
    names = section_names(catalog)
    for case in catalog.cases:
        try:
            section_name = names[case.section_id]
        except KeyError:
            raise UnknownSectionError(case.id, case.section_id, catalog.name) from None
        yield case, natural_key(section_name, case.title)


@dataclass
class DuplicateGroups:
    """Case IDs sharing a natural key, per side.

    ``source`` holds every key seen more than once in the source catalog,
    first occurrence first. ``target`` holds the target IDs found under those
    same keys, whatever their count.
    """

    source: Dict[str, List[int]] = field(default_factory=dict)
    target: Dict[str, List[int]] = field(default_factory=dict)


def _index_source(catalog: Catalog) -> Tuple[Dict[str, int], Dict[str, List[int]]]:
    key_to_source: Dict[str, int] = {}
    duplicates: Dict[str, List[int]] = {}
    for case, key in keyed_cases(catalog):
        if key in key_to_source:
            log_debug("Duplicate natural key in source catalog", key=key, case_id=case.id)
            duplicates.setdefault(key, [key_to_source[key]]).append(case.id)
            continue
        key_to_source[key] = case.id
    return key_to_source, duplicates


def _pair_by_order(key: str, source_ids: List[int], target_ids: Optional[List[int]]) -> List[Tuple[int, int]]:
    target_ids = target_ids or []
    if len(source_ids) != DUPLICATE_GROUP_SIZE or len(target_ids) != DUPLICATE_GROUP_SIZE:
        raise DuplicateMismatchError(key, source_ids, target_ids)
    return list(zip(sorted(source_ids), sorted(target_ids)))


def reconcile(
    source: Catalog,
    target: Catalog,
    overrides: Optional[Mapping[int, int]] = None,
) -> Dict[int, int]:
    """Build the source case ID → target case ID correspondence.

    Args:
        source: Catalog whose IDs appear in the results being migrated.
        target: Catalog the results are uploaded into.
        overrides: Manual entries applied last; they replace automatic ones.

    Returns:
        A partial mapping. Source cases without a counterpart are absent.

    Raises:
        UnknownSectionError: a case references a section missing from its catalog.
        DuplicateSectionError: a catalog lists the same section ID twice.
        DuplicateMismatchError: a duplicated key is not duplicated exactly
            twice on both sides.
    """
    key_to_source, source_duplicates = _index_source(source)
    groups = DuplicateGroups(source=source_duplicates)
    log_reconcile_progress(
        "Source catalog indexed",
        catalog=source.name,
        cases=len(source.cases),
        keys=len(key_to_source),
        duplicate_keys=len(source_duplicates),
    )

    mapping: Dict[int, int] = {}
    unmatched = 0
    for case, key in keyed_cases(target):
        if key in groups.source:
            groups.target.setdefault(key, []).append(case.id)
            continue
        source_id = key_to_source.get(key)
        if source_id is None:
            unmatched += 1
            continue
        if source_id in mapping:
            log_warning(
                "Natural key repeated in target catalog; keeping the later case",
                key=key, previous=mapping[source_id], case_id=case.id,
            )
        mapping[source_id] = case.id

    log_reconcile_progress(
        "Target catalog matched",
        catalog=target.name,
        cases=len(target.cases),
        direct_matches=len(mapping),
        unmatched_target_cases=unmatched,
    )

    for key, source_ids in groups.source.items():
        for source_id, target_id in _pair_by_order(key, source_ids, groups.target.get(key)):
            mapping[source_id] = target_id

    if overrides:
        for source_id, target_id in overrides.items():
            source_id, target_id = int(source_id), int(target_id)
            if source_id in mapping and mapping[source_id] != target_id:
                log_debug("Override replaces automatic match", source_id=source_id,
                          automatic=mapping[source_id], override=target_id)
            mapping[source_id] = target_id

    log_reconcile_progress(
        "Correspondence built",
        mapped=len(mapping),
        duplicate_pairs=len(groups.source),
        overrides=len(overrides or {}),
    )
    return mapping
