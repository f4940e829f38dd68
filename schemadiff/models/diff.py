"""Change-set models produced by comparing two versions of an application schema.

A :class:`DiffRecord` is the atomic unit of output: one operation (delete,
insert, change) on one category of the closed :class:`ElementChangeType`
taxonomy.  Records never hold references into the compared trees; elements
are captured as :class:`ElementRef` snapshots so that a change-set outlives
the models it was computed from.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schemadiff.models.schema import NodeKind


class Operation(str, Enum):
    """Kind of change.  Declaration order is the canonical sort order."""

    DELETE = "DELETE"
    INSERT = "INSERT"
    CHANGE = "CHANGE"


class ElementChangeType(str, Enum):
    """Closed taxonomy of what changed.  Declaration order is the sort order."""

    SELF = "SELF"
    NAME = "NAME"
    DOCUMENTATION = "DOCUMENTATION"
    MULTIPLICITY = "MULTIPLICITY"
    VALUETYPE = "VALUETYPE"
    INITIALVALUE = "INITIALVALUE"
    CLASS = "CLASS"
    SUPERTYPE = "SUPERTYPE"
    SUBPACKAGE = "SUBPACKAGE"
    PROPERTY = "PROPERTY"
    ENUM = "ENUM"
    STEREOTYPE = "STEREOTYPE"
    TAG = "TAG"
    ALIAS = "ALIAS"
    DEFINITION = "DEFINITION"
    DESCRIPTION = "DESCRIPTION"
    PRIMARYCODE = "PRIMARYCODE"
    GLOBALIDENTIFIER = "GLOBALIDENTIFIER"
    LEGALBASIS = "LEGALBASIS"
    DATACAPTURESTATEMENT = "DATACAPTURESTATEMENT"
    EXAMPLE = "EXAMPLE"
    LANGUAGE = "LANGUAGE"


class ChangeTypeFacets(NamedTuple):
    multi_valued: bool
    ignore_case: bool


_NO_FACETS = ChangeTypeFacets(multi_valued=False, ignore_case=False)

_FACETS: dict[ElementChangeType, ChangeTypeFacets] = {
    ElementChangeType.STEREOTYPE: ChangeTypeFacets(multi_valued=True, ignore_case=True),
    ElementChangeType.TAG: ChangeTypeFacets(multi_valued=True, ignore_case=True),
    ElementChangeType.DATACAPTURESTATEMENT: ChangeTypeFacets(multi_valued=True, ignore_case=False),
    ElementChangeType.EXAMPLE: ChangeTypeFacets(multi_valued=True, ignore_case=False),
}

OPERATION_ORDER: dict[Operation, int] = {op: i for i, op in enumerate(Operation)}
CHANGE_TYPE_ORDER: dict[ElementChangeType, int] = {t: i for i, t in enumerate(ElementChangeType)}


def change_type_facets(change_type: ElementChangeType) -> ChangeTypeFacets:
    """Return ``(multi_valued, ignore_case)`` for a taxonomy member."""
    return _FACETS.get(change_type, _NO_FACETS)


def parse_change_types(names: list[str] | str | None) -> frozenset[ElementChangeType] | None:
    """Parse change type names (case-insensitive) into an allow-set.

    Accepts a list or a comma-separated string.  Returns ``None`` when no
    names are given, meaning "retain all".

    Raises
    ------
    ValueError
        If a name is not a member of the taxonomy.
    """
    if names is None:
        return None
    if isinstance(names, str):
        names = names.split(",")
    cleaned = [n.strip().upper() for n in names if n.strip()]
    if not cleaned:
        return None
    unknown = sorted(n for n in cleaned if n not in ElementChangeType.__members__)
    if unknown:
        raise ValueError(f"Unknown diff element type(s): {', '.join(unknown)}")
    return frozenset(ElementChangeType[n] for n in cleaned)


class EditOp(str, Enum):
    EQUAL = "EQUAL"
    INSERT = "INSERT"
    DELETE = "DELETE"


class EditSegment(BaseModel):
    """One run of an edit script."""

    model_config = ConfigDict(frozen=True)

    op: EditOp
    text: str


EditScript = tuple[EditSegment, ...]


def script_from_text(script: EditScript) -> str:
    """Reconstruct the reference text (EQUAL + DELETE segments)."""
    return "".join(s.text for s in script if s.op is not EditOp.INSERT)


def script_to_text(script: EditScript) -> str:
    """Reconstruct the input text (EQUAL + INSERT segments)."""
    return "".join(s.text for s in script if s.op is not EditOp.DELETE)


class ElementRef(BaseModel):
    """Owned snapshot of a compared schema element.

    ``id`` is always the element's original identifier as found in its own
    model; private prefixes applied during reconciliation never leak here.
    """

    model_config = ConfigDict(frozen=True)

    kind: NodeKind
    id: str
    name: str
    qualified_name: str

    def sort_key(self) -> tuple[str, str, str]:
        return (self.qualified_name, self.kind.value, self.id)


def _ref_key(ref: ElementRef | None) -> tuple[str, str, str] | None:
    return ref.sort_key() if ref is not None else None


class DiffRecord(BaseModel):
    """A single difference between the reference and the input model.

    Shape conventions:

    * ``CHANGE`` of an attribute: both ``source`` and ``target`` are set and
      ``edit_script`` carries the textual difference.
    * ``DELETE``: only ``source`` (the reference element) is set.  For a
      removed member, ``source`` is the owner and ``sub_element`` the
      removed member; for a removed value of a multi-valued attribute the
      value is held in a single ``DELETE`` segment.
    * ``INSERT``: the mirror image with ``target``.
    """

    model_config = ConfigDict(frozen=True)

    change: Operation
    element_change_type: ElementChangeType
    source: ElementRef | None = None
    target: ElementRef | None = None
    sub_element: ElementRef | None = None
    edit_script: EditScript | None = None
    tag: str | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> DiffRecord:
        if self.change is Operation.DELETE and (self.source is None or self.target is not None):
            raise ValueError("DELETE record requires a source and no target")
        if self.change is Operation.INSERT and (self.target is None or self.source is not None):
            raise ValueError("INSERT record requires a target and no source")
        if self.change is Operation.CHANGE and (self.source is None or self.target is None):
            raise ValueError("CHANGE record requires both source and target")
        if (self.tag is not None) != (self.element_change_type is ElementChangeType.TAG):
            raise ValueError("tag must be set exactly when element_change_type is TAG")
        if self.edit_script is not None and not self.edit_script:
            raise ValueError("edit_script must not be empty when present")
        return self

    @property
    def owner(self) -> ElementRef:
        """The element the change is reported against."""
        ref = self.target if self.change is Operation.INSERT else self.source
        assert ref is not None
        return ref

    def from_text(self) -> str:
        return script_from_text(self.edit_script) if self.edit_script else ""

    def to_text(self) -> str:
        return script_to_text(self.edit_script) if self.edit_script else ""

    def render_inline(self) -> str:
        """Render the edit script with ``[-deleted-]`` and ``{+inserted+}`` markup."""
        if not self.edit_script:
            return ""
        parts: list[str] = []
        for seg in self.edit_script:
            if seg.op is EditOp.DELETE:
                parts.append(f"[-{seg.text}-]")
            elif seg.op is EditOp.INSERT:
                parts.append(f"{{+{seg.text}+}}")
            else:
                parts.append(seg.text)
        return "".join(parts)

    def identity_key(self) -> tuple:
        """Key under which two records are considered duplicates."""
        return (
            self.change,
            self.element_change_type,
            _ref_key(self.source),
            _ref_key(self.target),
            _ref_key(self.sub_element),
            self.tag,
            self.from_text(),
            self.to_text(),
        )


class ChangeSet(BaseModel):
    """Ordered, de-duplicated result of a diff run."""

    records: list[DiffRecord] = Field(
        default_factory=list,
        description="Diff records in canonical order.",
    )
    skipped_schemas: list[str] = Field(
        default_factory=list,
        description="Input schema names without a counterpart in the reference model.",
    )
    abandoned_schemas: list[str] = Field(
        default_factory=list,
        description="Schema pairs not diffed because the run was cancelled.",
    )

    @model_validator(mode="after")
    def _check_unique(self) -> ChangeSet:
        seen: set[tuple] = set()
        for record in self.records:
            key = record.identity_key()
            if key in seen:
                raise ValueError(f"Duplicate diff record: {record.change.value} {record.element_change_type.value}")
            seen.add(key)
        return self

    @property
    def is_empty(self) -> bool:
        return not self.records

    def count_by_operation(self) -> dict[str, int]:
        counts = {op.value: 0 for op in Operation}
        for record in self.records:
            counts[record.change.value] += 1
        return counts

    def of_type(self, change_type: ElementChangeType) -> list[DiffRecord]:
        return [r for r in self.records if r.element_change_type is change_type]
