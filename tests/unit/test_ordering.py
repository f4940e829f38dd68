"""Unit tests for schemadiff.diff.ordering."""

from __future__ import annotations

import random

from schemadiff.diff.ordering import canonical_order, dedupe_records, record_sort_key
from schemadiff.models.diff import DiffRecord, EditOp, EditSegment, ElementChangeType, ElementRef, Operation
from schemadiff.models.schema import NodeKind

ECT = ElementChangeType


def _ref(qname: str, kind: NodeKind = NodeKind.CLASS) -> ElementRef:
    return ElementRef(kind=kind, id=qname.replace("::", "_"), name=qname.rsplit("::", 1)[-1], qualified_name=qname)


def _value(op: Operation, change_type: ECT, owner: str, text: str, tag: str | None = None) -> DiffRecord:
    seg_op = EditOp.DELETE if op is Operation.DELETE else EditOp.INSERT
    side = {"source": _ref(owner)} if op is Operation.DELETE else {"target": _ref(owner)}
    return DiffRecord(
        change=op,
        element_change_type=change_type,
        edit_script=(EditSegment(op=seg_op, text=text),),
        tag=tag,
        **side,
    )


def _sample() -> list[DiffRecord]:
    return [
        DiffRecord(
            change=Operation.CHANGE,
            element_change_type=ECT.NAME,
            source=_ref("S::A"),
            target=_ref("S::B"),
            edit_script=(EditSegment(op=EditOp.DELETE, text="A"), EditSegment(op=EditOp.INSERT, text="B")),
        ),
        DiffRecord(change=Operation.INSERT, element_change_type=ECT.SELF, target=_ref("S::Z")),
        DiffRecord(change=Operation.DELETE, element_change_type=ECT.SELF, source=_ref("S::Y")),
        DiffRecord(change=Operation.DELETE, element_change_type=ECT.SELF, source=_ref("S::X")),
        DiffRecord(
            change=Operation.INSERT,
            element_change_type=ECT.PROPERTY,
            target=_ref("S::C"),
            sub_element=_ref("S::C::b", NodeKind.PROPERTY),
        ),
        DiffRecord(
            change=Operation.INSERT,
            element_change_type=ECT.PROPERTY,
            target=_ref("S::C"),
            sub_element=_ref("S::C::a", NodeKind.PROPERTY),
        ),
        _value(Operation.INSERT, ECT.TAG, "S::C", "2", tag="sequenceNumber"),
        _value(Operation.INSERT, ECT.TAG, "S::C", "x", tag="description"),
        _value(Operation.DELETE, ECT.EXAMPLE, "S::C", "e2"),
        _value(Operation.DELETE, ECT.EXAMPLE, "S::C", "e1"),
    ]


class TestRecordSortKey:
    def test_operation_then_type(self):
        ordered = canonical_order(_sample())
        ops = [r.change for r in ordered]
        assert ops == sorted(ops, key=lambda op: list(Operation).index(op))
        deletes = [r.element_change_type for r in ordered if r.change is Operation.DELETE]
        assert deletes == [ECT.SELF, ECT.SELF, ECT.EXAMPLE, ECT.EXAMPLE]

    def test_ties_broken_by_member_then_owner_then_text(self):
        ordered = canonical_order(_sample())
        selfs = [
            r.source.qualified_name
            for r in ordered
            if r.change is Operation.DELETE and r.element_change_type is ECT.SELF
        ]
        assert selfs == ["S::X", "S::Y"]
        members = [r.sub_element.qualified_name for r in ordered if r.element_change_type is ECT.PROPERTY]
        assert members == ["S::C::a", "S::C::b"]
        tags = [r.tag for r in ordered if r.element_change_type is ECT.TAG]
        assert tags == ["description", "sequenceNumber"]
        examples = [r.from_text() for r in ordered if r.element_change_type is ECT.EXAMPLE]
        assert examples == ["e1", "e2"]

    def test_order_independent_of_input_order(self):
        records = _sample()
        expected = canonical_order(records)
        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(records)
            rng.shuffle(shuffled)
            assert canonical_order(shuffled) == expected

    def test_keys_are_distinct(self):
        keys = [record_sort_key(r) for r in _sample()]
        assert len(set(keys)) == len(keys)


class TestDedupe:
    def test_duplicates_removed_keeping_first(self):
        records = _sample()
        doubled = records + list(reversed(records))
        assert dedupe_records(doubled) == records

    def test_canonical_order_dedupes(self):
        records = _sample()
        assert len(canonical_order(records + records)) == len(records)
