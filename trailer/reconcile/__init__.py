"""Cross-account case identity reconciliation.

Catalogs are matched on ``<section name>_<title>``; pairwise duplicates are
resolved by ID order and manual overrides are applied last.
"""

from trailer.reconcile.engine import DuplicateGroups, natural_key, reconcile
from trailer.reconcile.catalog import fetch_catalog

__all__ = ["DuplicateGroups", "natural_key", "reconcile", "fetch_catalog"]
