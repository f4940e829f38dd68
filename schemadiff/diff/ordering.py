"""Canonical ordering and de-duplication of diff records.

The sort key is a strict total order over distinct records:

1. operation (DELETE < INSERT < CHANGE);
2. change type, by taxonomy declaration order;
3. sub-element (by qualified name) or tag name; records with neither sort
   first;
4. source, then target element (absent sorts first);
5. reference text, then input text of the edit script.

Two records with equal keys are duplicates under
:meth:`DiffRecord.identity_key`, so after :func:`dedupe_records` the order
no longer depends on traversal order or hash iteration order.
"""

from __future__ import annotations

from collections.abc import Iterable

from schemadiff.models.diff import (
    CHANGE_TYPE_ORDER,
    OPERATION_ORDER,
    DiffRecord,
    ElementRef,
)

_ABSENT: tuple[int, str, str, str] = (0, "", "", "")


def _ref_sort(ref: ElementRef | None) -> tuple[int, str, str, str]:
    if ref is None:
        return _ABSENT
    return (1, *ref.sort_key())


def record_sort_key(record: DiffRecord) -> tuple:
    if record.sub_element is not None:
        member = _ref_sort(record.sub_element)
    elif record.tag is not None:
        member = (1, record.tag, "", "")
    else:
        member = _ABSENT
    return (
        OPERATION_ORDER[record.change],
        CHANGE_TYPE_ORDER[record.element_change_type],
        member,
        _ref_sort(record.source),
        _ref_sort(record.target),
        record.from_text(),
        record.to_text(),
    )


def dedupe_records(records: Iterable[DiffRecord]) -> list[DiffRecord]:
    """Drop records whose identity key was already seen, keeping the first."""
    seen: set[tuple] = set()
    unique: list[DiffRecord] = []
    for record in records:
        key = record.identity_key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def canonical_order(records: Iterable[DiffRecord]) -> list[DiffRecord]:
    """De-duplicate and sort *records* into canonical order."""
    return sorted(dedupe_records(records), key=record_sort_key)
