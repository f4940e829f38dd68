"""Deterministic diff engine for application schema comparison."""

from schemadiff.diff.aggregator import diff_models, diff_schema_pair, resolve_schema_pairs
from schemadiff.diff.comparator import ElementComparator
from schemadiff.diff.ordering import canonical_order, dedupe_records, record_sort_key
from schemadiff.diff.reconciler import Correspondence, IdentityReconciler, NodeIndex, Side
from schemadiff.diff.text_diff import Granularity, diff_text, pair_values, tokenize

__all__ = [
    "Correspondence",
    "ElementComparator",
    "Granularity",
    "IdentityReconciler",
    "NodeIndex",
    "Side",
    "canonical_order",
    "dedupe_records",
    "diff_models",
    "diff_schema_pair",
    "diff_text",
    "pair_values",
    "record_sort_key",
    "resolve_schema_pairs",
    "tokenize",
]
