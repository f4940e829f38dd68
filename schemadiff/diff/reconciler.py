"""Identity reconciliation between a reference and an input schema tree.

Both trees are indexed into one arena (:class:`NodeIndex`) keyed by
identifier.  Identifiers are only unique within their own model, so every
reference identifier is rewritten with a private prefix before it enters
the arena; a reference element and an unrelated input element that happen
to share an identifier therefore never share an arena key.  The original
identifier stays on the node and is the only one ever reported.

Elements are matched by qualified name:

* package: path from the schema root, ``Schema::Sub::Leaf``;
* class: ``Schema::Class`` (class names are unique per schema, so moving a
  class to another subpackage keeps its identity);
* property: ``Schema::Class::property``.

Rename/relocation rules rewrite the *reference* qualified name into the
key looked up in the input tree.  An exact rule for an element wins;
otherwise the element inherits its owner's rewritten key as prefix, so a
renamed class carries its properties along.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from schemadiff.models.diff import ElementRef
from schemadiff.models.options import QUALIFIER, ConfigurationError, DiffOptions, RuleScope
from schemadiff.models.schema import ClassNode, NodeKind, PackageNode, PropertyNode
from schemadiff.telemetry.profiling import profile_operation

logger = logging.getLogger(__name__)

AnyNode = Union[PackageNode, ClassNode, PropertyNode]

_SCOPE_BY_KIND: dict[NodeKind, RuleScope] = {
    NodeKind.PACKAGE: RuleScope.PACKAGE,
    NodeKind.CLASS: RuleScope.CLASS,
    NodeKind.PROPERTY: RuleScope.PROPERTY,
}


class Side(str, Enum):
    REFERENCE = "reference"
    INPUT = "input"


# ---------------------------------------------------------------------------
# Arena
# ---------------------------------------------------------------------------


@dataclass
class IndexedNode:
    """Arena entry for one schema element."""

    key: str
    node: AnyNode
    kind: NodeKind
    side: Side
    qualified_name: str
    schema_key: str
    owner_key: str | None = None
    subpackage_keys: list[str] = field(default_factory=list)
    class_keys: list[str] = field(default_factory=list)
    property_keys: list[str] = field(default_factory=list)
    _ref: ElementRef | None = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.node.name

    def ref(self) -> ElementRef:
        """Owned reference carrying the original identifier."""
        if self._ref is None:
            self._ref = ElementRef(
                kind=self.kind,
                id=self.node.id,
                name=self.node.name,
                qualified_name=self.qualified_name,
            )
        return self._ref


class NodeIndex:
    """Arena of both models keyed by (reference-prefixed) identifier.

    Parameters
    ----------
    reference_prefix:
        Prefix applied to every reference model identifier.
    """

    def __init__(self, reference_prefix: str) -> None:
        self._prefix = reference_prefix
        self._entries: dict[str, IndexedNode] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __getitem__(self, key: str) -> IndexedNode:
        return self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def key_for(self, side: Side, raw_id: str) -> str:
        return self._prefix + raw_id if side is Side.REFERENCE else raw_id

    def lookup(self, side: Side, raw_id: str) -> IndexedNode | None:
        entry = self._entries.get(self.key_for(side, raw_id))
        if entry is not None and entry.side is side:
            return entry
        return None

    def entries(self, side: Side, kind: NodeKind) -> list[IndexedNode]:
        """Entries of one side and kind, ordered by qualified name then key."""
        return sorted(
            (e for e in self._entries.values() if e.side is side and e.kind is kind),
            key=lambda e: (e.qualified_name, e.key),
        )

    def add_schema(self, root: PackageNode, side: Side) -> IndexedNode:
        """Index a whole schema tree.

        Raises
        ------
        ConfigurationError
            If an identifier occurs twice within the tree.
        """
        return self._add_package(root, side, owner=None, schema_key=None)

    def _register(self, entry: IndexedNode) -> IndexedNode:
        if entry.key in self._entries:
            existing = self._entries[entry.key]
            if existing.side is entry.side:
                raise ConfigurationError(
                    f"Identifier '{entry.node.id}' is used by both '{existing.qualified_name}' and "
                    f"'{entry.qualified_name}' in the {entry.side.value} model"
                )
            raise ConfigurationError(
                f"Input identifier '{entry.node.id}' collides with a prefixed reference identifier; "
                f"choose a different reference_id_prefix than '{self._prefix}'"
            )
        self._entries[entry.key] = entry
        return entry

    def _add_package(
        self,
        package: PackageNode,
        side: Side,
        owner: IndexedNode | None,
        schema_key: str | None,
    ) -> IndexedNode:
        key = self.key_for(side, package.id)
        qname = package.name if owner is None else owner.qualified_name + QUALIFIER + package.name
        entry = self._register(
            IndexedNode(
                key=key,
                node=package,
                kind=NodeKind.PACKAGE,
                side=side,
                qualified_name=qname,
                schema_key=schema_key or key,
                owner_key=owner.key if owner else None,
            )
        )
        schema = self._entries[entry.schema_key]
        for cls in package.classes:
            entry.class_keys.append(self._add_class(cls, side, entry, schema).key)
        for sub in package.subpackages:
            entry.subpackage_keys.append(self._add_package(sub, side, entry, entry.schema_key).key)
        return entry

    def _add_class(self, cls: ClassNode, side: Side, owner: IndexedNode, schema: IndexedNode) -> IndexedNode:
        entry = self._register(
            IndexedNode(
                key=self.key_for(side, cls.id),
                node=cls,
                kind=NodeKind.CLASS,
                side=side,
                qualified_name=schema.name + QUALIFIER + cls.name,
                schema_key=schema.key,
                owner_key=owner.key,
            )
        )
        for prop in cls.properties:
            prop_entry = self._register(
                IndexedNode(
                    key=self.key_for(side, prop.id),
                    node=prop,
                    kind=NodeKind.PROPERTY,
                    side=side,
                    qualified_name=entry.qualified_name + QUALIFIER + prop.name,
                    schema_key=schema.key,
                    owner_key=entry.key,
                )
            )
            entry.property_keys.append(prop_entry.key)
        return entry


# ---------------------------------------------------------------------------
# Correspondence
# ---------------------------------------------------------------------------


@dataclass
class Correspondence:
    """Result of reconciliation: a one-to-one partial mapping between the models."""

    index: NodeIndex
    reference_root: IndexedNode
    input_root: IndexedNode
    ref_to_input: dict[str, str] = field(default_factory=dict)
    input_to_ref: dict[str, str] = field(default_factory=dict)

    def counterpart(self, key: str) -> IndexedNode | None:
        entry = self.index[key]
        mapping = self.ref_to_input if entry.side is Side.REFERENCE else self.input_to_ref
        other = mapping.get(key)
        return self.index[other] if other is not None else None

    def matched_pairs(self, kind: NodeKind) -> list[tuple[IndexedNode, IndexedNode]]:
        return [
            (entry, self.index[self.ref_to_input[entry.key]])
            for entry in self.index.entries(Side.REFERENCE, kind)
            if entry.key in self.ref_to_input
        ]

    def unmatched(self, side: Side, kind: NodeKind) -> list[IndexedNode]:
        mapping = self.ref_to_input if side is Side.REFERENCE else self.input_to_ref
        return [e for e in self.index.entries(side, kind) if e.key not in mapping]

    def supertype_tokens(self, entry: IndexedNode) -> dict[str, ElementRef]:
        """Supertypes of a class as comparable tokens mapped to their references.

        Tokens live in input-model space: a reference supertype that has a
        counterpart is represented by that counterpart's key.  Supertype
        identifiers that do not resolve within the model (e.g. types from
        another schema) are compared by raw identifier.
        """
        assert isinstance(entry.node, ClassNode)
        tokens: dict[str, ElementRef] = {}
        for raw_id in entry.node.supertypes:
            target = self.index.lookup(entry.side, raw_id)
            if target is None or target.kind is not NodeKind.CLASS:
                logger.debug(
                    "Supertype '%s' of %s '%s' does not resolve within its schema; comparing by identifier",
                    raw_id,
                    entry.side.value,
                    entry.qualified_name,
                )
                tokens["raw:" + raw_id] = ElementRef(
                    kind=NodeKind.CLASS, id=raw_id, name=raw_id, qualified_name=raw_id
                )
                continue
            if target.side is Side.REFERENCE:
                other = self.counterpart(target.key)
                token = other.key if other is not None else "unmatched:" + target.key
            else:
                token = target.key
            tokens[token] = target.ref()
        return tokens


class IdentityReconciler:
    """Matches the elements of a reference and an input schema tree.

    Parameters
    ----------
    options:
        Run context providing the rename/relocation rules and the
        reference identifier prefix.
    """

    def __init__(self, options: DiffOptions) -> None:
        self._options = options
        self._rules: dict[RuleScope, dict[str, str]] = {scope: options.rule_map(scope) for scope in RuleScope}

    @profile_operation("diff.reconcile")
    def reconcile(self, reference_root: PackageNode, input_root: PackageNode) -> Correspondence:
        """Index both trees and compute the correspondence.

        Raises
        ------
        ConfigurationError
            If either tree reuses an identifier.
        """
        index = NodeIndex(self._options.reference_id_prefix)
        ref_root = index.add_schema(reference_root, Side.REFERENCE)
        in_root = index.add_schema(input_root, Side.INPUT)
        corr = Correspondence(index=index, reference_root=ref_root, input_root=in_root)

        translated: dict[str, str] = {}
        for kind in (NodeKind.PACKAGE, NodeKind.CLASS, NodeKind.PROPERTY):
            candidates: dict[str, IndexedNode] = {}
            for entry in index.entries(Side.INPUT, kind):
                if entry.qualified_name in candidates:
                    logger.warning(
                        "Input model contains more than one %s named '%s'; only the first takes part in matching",
                        kind.value,
                        entry.qualified_name,
                    )
                    continue
                candidates[entry.qualified_name] = entry

            for entry in index.entries(Side.REFERENCE, kind):
                lookup = self._translate(entry, index, translated)
                match = candidates.get(lookup)
                if match is None:
                    continue
                if match.key in corr.input_to_ref:
                    claimed_by = index[corr.input_to_ref[match.key]]
                    logger.warning(
                        "Reference %s '%s' maps to '%s', which is already matched to '%s'; treating it as unmatched",
                        kind.value,
                        entry.qualified_name,
                        lookup,
                        claimed_by.qualified_name,
                    )
                    continue
                corr.ref_to_input[entry.key] = match.key
                corr.input_to_ref[match.key] = entry.key

        logger.debug(
            "Reconciled schema '%s': %d of %d reference elements matched",
            ref_root.qualified_name,
            len(corr.ref_to_input),
            sum(1 for kind in NodeKind for _ in index.entries(Side.REFERENCE, kind)),
        )
        return corr

    def _translate(self, entry: IndexedNode, index: NodeIndex, memo: dict[str, str]) -> str:
        cached = memo.get(entry.key)
        if cached is not None:
            return cached

        rule_target = self._rules[_SCOPE_BY_KIND[entry.kind]].get(entry.qualified_name)
        if rule_target is not None:
            result = rule_target
        elif entry.kind is NodeKind.PACKAGE and entry.owner_key is None:
            result = entry.qualified_name
        elif entry.kind is NodeKind.CLASS:
            result = self._translate(index[entry.schema_key], index, memo) + QUALIFIER + entry.name
        else:
            assert entry.owner_key is not None
            result = self._translate(index[entry.owner_key], index, memo) + QUALIFIER + entry.name

        memo[entry.key] = result
        return result
