"""Diff aggregation: drives reconciliation and comparison over whole schemas.

:func:`diff_schema_pair` compares one reference schema with one input
schema.  :func:`diff_models` resolves schema pairs by name across two
models, diffs each pair independently (optionally on worker threads) and
merges the results.  Records are filtered by the run's allow-set,
de-duplicated and put into canonical order exactly once, after all pairs
have finished.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from schemadiff.diff.comparator import ElementComparator
from schemadiff.diff.ordering import canonical_order
from schemadiff.diff.reconciler import IdentityReconciler, Side
from schemadiff.models.diff import ChangeSet, DiffRecord
from schemadiff.models.options import DiffOptions, RuleScope
from schemadiff.models.schema import NodeKind, PackageNode
from schemadiff.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def diff_schema_pair(
    reference_root: PackageNode,
    input_root: PackageNode,
    options: DiffOptions | None = None,
) -> ChangeSet:
    """Compute the ordered change-set between two versions of one schema.

    Parameters
    ----------
    reference_root:
        Schema package of the reference (old) model.
    input_root:
        Schema package of the input (new) model.
    options:
        Run context.  Defaults to no rules and no filtering.

    Returns
    -------
    ChangeSet
        Filtered, de-duplicated records in canonical order.

    Raises
    ------
    ConfigurationError
        If the options are malformed or a tree reuses an identifier.
    """
    options = options or DiffOptions()
    options.validate_rules()
    records = _collect_pair(reference_root, input_root, options)
    return ChangeSet(records=_finalise(records, options))


def diff_models(
    reference_schemas: Sequence[PackageNode],
    input_schemas: Sequence[PackageNode],
    options: DiffOptions | None = None,
    schema_names: Sequence[str] | None = None,
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
) -> ChangeSet:
    """Diff every schema of the input model against its reference counterpart.

    Parameters
    ----------
    reference_schemas:
        Schema packages of the reference model.
    input_schemas:
        Schema packages of the input model.
    options:
        Run context shared by all pairs.
    schema_names:
        Restrict the run to these input schema names.  ``None`` diffs all
        input schemas.
    max_workers:
        Number of worker threads; pairs are independent, so any value
        yields the same result.
    cancel_event:
        When set, pairs that have not started yet are abandoned and listed
        in :attr:`ChangeSet.abandoned_schemas`.

    Returns
    -------
    ChangeSet
        Merged records in canonical order.  Schemas without counterpart
        are listed in :attr:`ChangeSet.skipped_schemas`.
    """
    options = options or DiffOptions()
    options.validate_rules()

    pairs, skipped = resolve_schema_pairs(reference_schemas, input_schemas, options, schema_names)
    for name in skipped:
        logger.warning(
            "Schema '%s' has no equivalent package in the reference model; no diff was performed for it",
            name,
            extra={"schema": name},
        )

    def run(pair: tuple[PackageNode, PackageNode]) -> list[DiffRecord] | None:
        if cancel_event is not None and cancel_event.is_set():
            return None
        return _collect_pair(pair[0], pair[1], options)

    if max_workers > 1 and len(pairs) > 1:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="schemadiff") as pool:
            results = list(pool.map(run, pairs))
    else:
        results = [run(pair) for pair in pairs]

    collected: list[DiffRecord] = []
    abandoned: list[str] = []
    for (_, input_root), result in zip(pairs, results):
        if result is None:
            abandoned.append(input_root.name)
        else:
            collected.extend(result)
    if abandoned:
        logger.info("Diff cancelled; %d schema pair(s) abandoned: %s", len(abandoned), ", ".join(abandoned))

    return ChangeSet(
        records=_finalise(collected, options),
        skipped_schemas=skipped,
        abandoned_schemas=abandoned,
    )


def resolve_schema_pairs(
    reference_schemas: Sequence[PackageNode],
    input_schemas: Sequence[PackageNode],
    options: DiffOptions,
    schema_names: Sequence[str] | None = None,
) -> tuple[list[tuple[PackageNode, PackageNode]], list[str]]:
    """Pair input schemas with reference schemas by name.

    A package rule whose target is the input schema name supplies the
    reference name to look for.  Returns the pairs (ordered by input schema
    name) and the sorted names that could not be paired.
    """
    reference_by_target = {target: source for source, target in options.rule_map(RuleScope.PACKAGE).items()}
    reference_by_name: dict[str, list[PackageNode]] = {}
    for schema in reference_schemas:
        reference_by_name.setdefault(schema.name, []).append(schema)

    inputs = sorted(input_schemas, key=lambda s: (s.name, s.id))
    skipped: list[str] = []
    if schema_names is not None:
        wanted = set(schema_names)
        skipped.extend(sorted(wanted - {s.name for s in inputs}))
        inputs = [s for s in inputs if s.name in wanted]

    pairs: list[tuple[PackageNode, PackageNode]] = []
    for schema in inputs:
        lookup = reference_by_target.get(schema.name, schema.name)
        candidates = reference_by_name.get(lookup, [])
        if len(candidates) == 1:
            pairs.append((candidates[0], schema))
        else:
            if len(candidates) > 1:
                logger.warning("Reference model contains %d schemas named '%s'", len(candidates), lookup)
            skipped.append(schema.name)
    return pairs, sorted(skipped)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@profile_operation("diff.schema_pair")
def _collect_pair(reference_root: PackageNode, input_root: PackageNode, options: DiffOptions) -> list[DiffRecord]:
    """Unfiltered, unordered records of one schema pair."""
    logger.debug("Diffing schema '%s' against reference '%s'", input_root.name, reference_root.name)
    correspondence = IdentityReconciler(options).reconcile(reference_root, input_root)
    comparator = ElementComparator(correspondence, options)

    records: list[DiffRecord] = []
    for kind in (NodeKind.PACKAGE, NodeKind.CLASS, NodeKind.PROPERTY):
        for ref_entry, input_entry in correspondence.matched_pairs(kind):
            records.extend(comparator.compare_pair(ref_entry, input_entry))
        for side in (Side.REFERENCE, Side.INPUT):
            for entry in correspondence.unmatched(side, kind):
                records.extend(comparator.report_unmatched(entry))

    logger.info("Schema '%s': %d difference(s) found", input_root.name, len(records))
    return records


def _finalise(records: list[DiffRecord], options: DiffOptions) -> list[DiffRecord]:
    return canonical_order(r for r in records if options.retains(r.element_change_type))
