"""Domain models for the schema diff engine."""

from schemadiff.models.diff import (
    ChangeSet,
    ChangeTypeFacets,
    DiffRecord,
    EditOp,
    EditScript,
    EditSegment,
    ElementChangeType,
    ElementRef,
    Operation,
    change_type_facets,
    parse_change_types,
)
from schemadiff.models.options import ConfigurationError, DiffOptions, MapRule, RuleScope
from schemadiff.models.schema import (
    ClassCategory,
    ClassNode,
    Multiplicity,
    NodeKind,
    PackageNode,
    PropertyNode,
    SchemaElement,
    SchemaNode,
)

__all__ = [
    "ChangeSet",
    "ChangeTypeFacets",
    "ClassCategory",
    "ClassNode",
    "ConfigurationError",
    "DiffOptions",
    "DiffRecord",
    "EditOp",
    "EditScript",
    "EditSegment",
    "ElementChangeType",
    "ElementRef",
    "MapRule",
    "Multiplicity",
    "NodeKind",
    "Operation",
    "PackageNode",
    "PropertyNode",
    "RuleScope",
    "SchemaElement",
    "SchemaNode",
    "change_type_facets",
    "parse_change_types",
]
