"""Per-element comparison producing :class:`DiffRecord` entries.

The comparator never walks the trees on its own; it is handed matched
pairs (or unmatched elements) by the aggregator and consults the
:class:`Correspondence` to decide membership of owned elements.  Each
attribute category is evaluated independently:

* scalar strings are diffed with the text engine and reported as CHANGE
  unless the values are equal (blank counts as empty); a property value
  type is compared under the name its class carries in the input model;
* enum and code list literals compare descriptors only;
* multiplicity is compared structurally and only rendered for display;
* owned members (subpackages, classes, properties, enum literals) and
  supertypes are compared as sets of matched identities;
* multi-valued strings (stereotypes, tagged values, examples, data capture
  statements) are paired by exact value.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from schemadiff.diff.reconciler import Correspondence, IndexedNode, Side
from schemadiff.diff.text_diff import Granularity, diff_text, pair_values, texts_equal
from schemadiff.models.diff import (
    DiffRecord,
    EditOp,
    EditSegment,
    ElementChangeType,
    ElementRef,
    Operation,
    change_type_facets,
)
from schemadiff.models.options import QUALIFIER, DiffOptions, RuleScope
from schemadiff.models.schema import ClassNode, NodeKind, PropertyNode

logger = logging.getLogger(__name__)

ECT = ElementChangeType

# (change type, attribute, granularity) for descriptors shared by all kinds.
_DESCRIPTOR_FIELDS: tuple[tuple[ElementChangeType, str, Granularity], ...] = (
    (ECT.NAME, "name", Granularity.VALUE),
    (ECT.ALIAS, "alias", Granularity.VALUE),
    (ECT.DOCUMENTATION, "documentation", Granularity.WORD),
    (ECT.DEFINITION, "definition", Granularity.WORD),
    (ECT.DESCRIPTION, "description", Granularity.WORD),
    (ECT.PRIMARYCODE, "primary_code", Granularity.VALUE),
    (ECT.GLOBALIDENTIFIER, "global_identifier", Granularity.VALUE),
    (ECT.LEGALBASIS, "legal_basis", Granularity.WORD),
    (ECT.LANGUAGE, "language", Granularity.VALUE),
)

_MULTI_VALUED_FIELDS: tuple[tuple[ElementChangeType, str], ...] = (
    (ECT.STEREOTYPE, "stereotypes"),
    (ECT.DATACAPTURESTATEMENT, "data_capture_statements"),
    (ECT.EXAMPLE, "examples"),
)


class ElementComparator:
    """Emits the diff records for matched pairs and unmatched elements.

    Parameters
    ----------
    correspondence:
        Reconciliation result for the schema pair being compared.
    options:
        Run context; supplies the tag filter and tag split pattern.
    """

    def __init__(self, correspondence: Correspondence, options: DiffOptions) -> None:
        self._corr = correspondence
        self._class_rules = options.rule_map(RuleScope.CLASS)
        self._tag_pattern: re.Pattern[str] = options.compiled_tag_pattern()
        self._split_pattern: re.Pattern[str] | None = options.compiled_split_pattern()

    # -- matched pairs ----------------------------------------------------

    def compare_pair(self, ref: IndexedNode, inp: IndexedNode) -> list[DiffRecord]:
        """Compare a matched pair of elements of the same kind."""
        if ref.kind is not inp.kind:
            raise ValueError(f"Cannot compare {ref.kind.value} '{ref.qualified_name}' with {inp.kind.value}")

        records: list[DiffRecord] = []
        for change_type, attr, granularity in _DESCRIPTOR_FIELDS:
            records.extend(self._scalar(change_type, ref, inp, attr, granularity))
        for change_type, attr in _MULTI_VALUED_FIELDS:
            records.extend(
                self._values(change_type, ref, inp, getattr(ref.node, attr), getattr(inp.node, attr))
            )
        records.extend(self._tags(ref, inp))

        if ref.kind is NodeKind.PACKAGE:
            records.extend(self._members(ECT.SUBPACKAGE, ref, inp, ref.subpackage_keys, inp.subpackage_keys))
            records.extend(self._members(ECT.CLASS, ref, inp, ref.class_keys, inp.class_keys))
        elif ref.kind is NodeKind.CLASS:
            records.extend(self._supertypes(ref, inp))
            records.extend(self._properties(ref, inp))
        elif not self._is_literal(ref):
            records.extend(self._value_type(ref, inp))
            records.extend(self._scalar(ECT.INITIALVALUE, ref, inp, "initial_value", Granularity.VALUE))
            records.extend(self._multiplicity(ref, inp))
        return records

    # -- unmatched elements -----------------------------------------------

    def report_unmatched(self, entry: IndexedNode) -> list[DiffRecord]:
        """Report an element without counterpart, plus its directly owned members.

        Properties are reported only through their owner (PROPERTY/ENUM
        records); packages and classes additionally get a SELF record.
        """
        operation = Operation.DELETE if entry.side is Side.REFERENCE else Operation.INSERT
        index = self._corr.index
        records: list[DiffRecord] = []

        # Unmatched properties get no SELF record; the owner's PROPERTY/ENUM
        # record is their only report.
        if entry.kind is NodeKind.PROPERTY:
            return records

        records.append(_structural(operation, ECT.SELF, entry.ref()))
        if entry.kind is NodeKind.PACKAGE:
            for key in entry.subpackage_keys:
                records.append(_structural(operation, ECT.SUBPACKAGE, entry.ref(), index[key].ref()))
            for key in entry.class_keys:
                records.append(_structural(operation, ECT.CLASS, entry.ref(), index[key].ref()))
        else:
            member_type = _property_member_type(entry)
            for key in entry.property_keys:
                records.append(_structural(operation, member_type, entry.ref(), index[key].ref()))
        return records

    # -- attribute axes -----------------------------------------------------

    def _scalar(
        self,
        change_type: ElementChangeType,
        ref: IndexedNode,
        inp: IndexedNode,
        attr: str,
        granularity: Granularity,
    ) -> list[DiffRecord]:
        return self._text_change(
            change_type, ref, inp, getattr(ref.node, attr), getattr(inp.node, attr), granularity
        )

    def _value_type(self, ref: IndexedNode, inp: IndexedNode) -> list[DiffRecord]:
        assert isinstance(inp.node, PropertyNode)
        return self._text_change(
            ECT.VALUETYPE, ref, inp, self._mapped_value_type(ref), inp.node.value_type, Granularity.VALUE
        )

    def _mapped_value_type(self, ref: IndexedNode) -> str:
        """Reference value type name as it is expected to appear in the input model.

        A type identifier that resolves to a matched class yields the
        counterpart's name; otherwise a class rule on ``Schema::TypeName``
        supplies the new name.
        """
        assert isinstance(ref.node, PropertyNode)
        index = self._corr.index
        if ref.node.value_type_id:
            target = index.lookup(Side.REFERENCE, ref.node.value_type_id)
            if target is not None and target.kind is NodeKind.CLASS:
                other = self._corr.counterpart(target.key)
                if other is not None:
                    return other.name
        value_type = ref.node.value_type
        if not value_type.strip():
            return value_type
        renamed = self._class_rules.get(index[ref.schema_key].qualified_name + QUALIFIER + value_type.strip())
        if renamed is not None:
            return renamed.rsplit(QUALIFIER, 1)[-1]
        return value_type

    def _text_change(
        self,
        change_type: ElementChangeType,
        ref: IndexedNode,
        inp: IndexedNode,
        ref_value: str,
        in_value: str,
        granularity: Granularity,
    ) -> list[DiffRecord]:
        # Whitespace-only values count as absent.
        ref_value = ref_value if ref_value.strip() else ""
        in_value = in_value if in_value.strip() else ""
        ignore_case = change_type_facets(change_type).ignore_case
        if texts_equal(ref_value, in_value, ignore_case):
            return []
        script = diff_text(ref_value, in_value, granularity=granularity, ignore_case=ignore_case)
        return [
            DiffRecord(
                change=Operation.CHANGE,
                element_change_type=change_type,
                source=ref.ref(),
                target=inp.ref(),
                edit_script=script,
            )
        ]

    def _multiplicity(self, ref: IndexedNode, inp: IndexedNode) -> list[DiffRecord]:
        assert isinstance(ref.node, PropertyNode) and isinstance(inp.node, PropertyNode)
        ref_mult, in_mult = ref.node.multiplicity, inp.node.multiplicity
        if (ref_mult.lower, ref_mult.upper) == (in_mult.lower, in_mult.upper):
            return []
        return [
            DiffRecord(
                change=Operation.CHANGE,
                element_change_type=ECT.MULTIPLICITY,
                source=ref.ref(),
                target=inp.ref(),
                edit_script=diff_text(ref_mult.render(), in_mult.render(), granularity=Granularity.VALUE),
            )
        ]

    def _values(
        self,
        change_type: ElementChangeType,
        ref: IndexedNode,
        inp: IndexedNode,
        ref_values: Iterable[str],
        in_values: Iterable[str],
        tag: str | None = None,
    ) -> list[DiffRecord]:
        removed, added = pair_values(
            (v for v in ref_values if v.strip()),
            (v for v in in_values if v.strip()),
            ignore_case=change_type_facets(change_type).ignore_case,
        )
        records = [
            DiffRecord(
                change=Operation.DELETE,
                element_change_type=change_type,
                source=ref.ref(),
                edit_script=(EditSegment(op=EditOp.DELETE, text=value),),
                tag=tag,
            )
            for value in removed
        ]
        records.extend(
            DiffRecord(
                change=Operation.INSERT,
                element_change_type=change_type,
                target=inp.ref(),
                edit_script=(EditSegment(op=EditOp.INSERT, text=value),),
                tag=tag,
            )
            for value in added
        )
        return records

    def _tags(self, ref: IndexedNode, inp: IndexedNode) -> list[DiffRecord]:
        ref_tags = ref.node.tagged_values
        in_tags = inp.node.tagged_values
        records: list[DiffRecord] = []
        for name in sorted(set(ref_tags) | set(in_tags)):
            if not self._tag_pattern.fullmatch(name):
                continue
            records.extend(
                self._values(
                    ECT.TAG,
                    ref,
                    inp,
                    self._tag_values(name, ref_tags.get(name, [])),
                    self._tag_values(name, in_tags.get(name, [])),
                    tag=name,
                )
            )
        return records

    def _tag_values(self, name: str, values: list[str]) -> list[str]:
        """Trimmed, non-blank values; comma-split first for tags matching the split pattern."""
        if self._split_pattern is not None and self._split_pattern.fullmatch(name):
            values = [part for value in values for part in value.split(",")]
        return [value.strip() for value in values if value.strip()]

    def _supertypes(self, ref: IndexedNode, inp: IndexedNode) -> list[DiffRecord]:
        ref_tokens = self._corr.supertype_tokens(ref)
        in_tokens = self._corr.supertype_tokens(inp)
        records = [
            _structural(Operation.DELETE, ECT.SUPERTYPE, ref.ref(), sub)
            for token, sub in ref_tokens.items()
            if token not in in_tokens
        ]
        records.extend(
            _structural(Operation.INSERT, ECT.SUPERTYPE, inp.ref(), sub)
            for token, sub in in_tokens.items()
            if token not in ref_tokens
        )
        return records

    def _properties(self, ref: IndexedNode, inp: IndexedNode) -> list[DiffRecord]:
        records: list[DiffRecord] = []
        index = self._corr.index
        ref_type = _property_member_type(ref)
        in_type = _property_member_type(inp)
        for key in ref.property_keys:
            if not self._still_owned(key, inp):
                records.append(_structural(Operation.DELETE, ref_type, ref.ref(), index[key].ref()))
        for key in inp.property_keys:
            if not self._still_owned(key, ref):
                records.append(_structural(Operation.INSERT, in_type, inp.ref(), index[key].ref()))
        return records

    def _members(
        self,
        change_type: ElementChangeType,
        ref: IndexedNode,
        inp: IndexedNode,
        ref_keys: list[str],
        in_keys: list[str],
    ) -> list[DiffRecord]:
        index = self._corr.index
        records = [
            _structural(Operation.DELETE, change_type, ref.ref(), index[key].ref())
            for key in ref_keys
            if not self._still_owned(key, inp)
        ]
        records.extend(
            _structural(Operation.INSERT, change_type, inp.ref(), index[key].ref())
            for key in in_keys
            if not self._still_owned(key, ref)
        )
        return records

    def _still_owned(self, member_key: str, other_owner: IndexedNode) -> bool:
        """Whether the member's counterpart is owned by *other_owner* on the other side."""
        other = self._corr.counterpart(member_key)
        return other is not None and other.owner_key == other_owner.key


    def _is_literal(self, prop: IndexedNode) -> bool:
        """Whether *prop* is a literal of an enumeration or code list."""
        assert prop.owner_key is not None
        return _property_member_type(self._corr.index[prop.owner_key]) is ECT.ENUM


def _property_member_type(cls: IndexedNode) -> ElementChangeType:
    assert isinstance(cls.node, ClassNode)
    return ECT.ENUM if cls.node.category.has_literals else ECT.PROPERTY


def _structural(
    operation: Operation,
    change_type: ElementChangeType,
    owner: ElementRef,
    sub_element: ElementRef | None = None,
) -> DiffRecord:
    if operation is Operation.DELETE:
        return DiffRecord(change=operation, element_change_type=change_type, source=owner, sub_element=sub_element)
    return DiffRecord(change=operation, element_change_type=change_type, target=owner, sub_element=sub_element)


