"""Run context for a diff: rename/relocation rules and result filters.

Everything the engine needs besides the two schema trees travels in a
:class:`DiffOptions` instance; there is no module-level state.  Options
are validated up front by :meth:`DiffOptions.validate_rules` so that a
malformed rule or pattern aborts the run before any traversal starts.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemadiff.models.diff import ElementChangeType, parse_change_types

if TYPE_CHECKING:
    from schemadiff.config import Settings

QUALIFIER = "::"

DEFAULT_TAG_PATTERN = ".*"
DEFAULT_REFERENCE_ID_PREFIX = "refmodel_"


class ConfigurationError(ValueError):
    """Raised when rules or filters are malformed.  Always raised before traversal."""


class RuleScope(str, Enum):
    PACKAGE = "package"
    CLASS = "class"
    PROPERTY = "property"


# Number of "::"-separated segments a qualified name must have per scope.
# Packages may be nested arbitrarily deep below the schema.
_SEGMENTS: dict[RuleScope, tuple[int, int | None]] = {
    RuleScope.PACKAGE: (1, None),
    RuleScope.CLASS: (2, 2),
    RuleScope.PROPERTY: (3, 3),
}


class MapRule(BaseModel):
    """States that ``source`` in the reference model is ``target`` in the input model.

    Both sides are qualified names: ``Schema`` or ``Schema::Sub`` for
    packages, ``Schema::Class`` for classes and ``Schema::Class::property``
    for properties.
    """

    model_config = ConfigDict(frozen=True)

    scope: RuleScope
    source: str
    target: str

    @field_validator("source", "target")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()

    def problems(self) -> list[str]:
        """Return human-readable reasons why this rule is malformed."""
        issues: list[str] = []
        low, high = _SEGMENTS[self.scope]
        for label, qname in (("source", self.source), ("target", self.target)):
            if not qname:
                issues.append(f"{label} is empty")
                continue
            parts = qname.split(QUALIFIER)
            if any(not p.strip() for p in parts):
                issues.append(f"{label} '{qname}' contains an empty name segment")
            elif len(parts) < low or (high is not None and len(parts) > high):
                expected = str(low) if high == low else f"at least {low}"
                issues.append(
                    f"{label} '{qname}' has {len(parts)} segment(s); "
                    f"a {self.scope.value} rule expects {expected}"
                )
        return issues

    def describe(self) -> str:
        return f"{self.scope.value} rule '{self.source}' -> '{self.target}'"


class DiffOptions(BaseModel):
    """Explicit run context passed to every engine entry point.

    Parameters
    ----------
    rules:
        Rename/relocation rules.
    change_types:
        Allow-set of change categories to retain.  ``None`` retains all.
    tag_pattern:
        Regular expression (full match) selecting which tagged values take
        part in the comparison.
    tags_to_split:
        Optional regular expression; values of matching tags are split on
        commas before comparison, so ``"a, b"`` equals ``["b", "a"]``.
    reference_id_prefix:
        Private prefix applied to reference model identifiers.
    """

    model_config = ConfigDict(frozen=True)

    rules: tuple[MapRule, ...] = ()
    change_types: frozenset[ElementChangeType] | None = None
    tag_pattern: str = DEFAULT_TAG_PATTERN
    tags_to_split: str | None = None
    reference_id_prefix: str = Field(default=DEFAULT_REFERENCE_ID_PREFIX, min_length=1)

    @classmethod
    def from_settings(cls, settings: Settings, rules: list[MapRule] | None = None) -> DiffOptions:
        """Build validated options from environment settings."""
        try:
            change_types = parse_change_types(settings.diff_element_types)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        options = cls(
            rules=tuple(rules or ()),
            change_types=change_types,
            tag_pattern=settings.tag_pattern,
            tags_to_split=settings.tags_to_split,
            reference_id_prefix=settings.reference_id_prefix,
        )
        options.validate_rules()
        return options

    def validate_rules(self) -> None:
        """Reject malformed rules and patterns.

        Raises
        ------
        ConfigurationError
            Naming every offending rule or pattern.
        """
        errors: list[str] = []
        targets_by_source: dict[tuple[RuleScope, str], str] = {}
        for rule in self.rules:
            problems = rule.problems()
            if problems:
                errors.append(f"{rule.describe()}: {'; '.join(problems)}")
                continue
            key = (rule.scope, rule.source)
            previous = targets_by_source.get(key)
            if previous is not None and previous != rule.target:
                errors.append(
                    f"{rule.describe()}: conflicts with earlier rule mapping "
                    f"'{rule.source}' to '{previous}'"
                )
            targets_by_source.setdefault(key, rule.target)

        for label, pattern in (("tag_pattern", self.tag_pattern), ("tags_to_split", self.tags_to_split)):
            if pattern is None:
                continue
            try:
                re.compile(pattern)
            except re.error as exc:
                errors.append(f"{label} '{pattern}' is not a valid regular expression: {exc}")

        if errors:
            raise ConfigurationError("Invalid diff configuration: " + " | ".join(errors))

    def rule_map(self, scope: RuleScope) -> dict[str, str]:
        """Return ``source -> target`` for all rules of *scope*."""
        return {r.source: r.target for r in self.rules if r.scope is scope}

    def retains(self, change_type: ElementChangeType) -> bool:
        return self.change_types is None or change_type in self.change_types

    def compiled_tag_pattern(self) -> re.Pattern[str]:
        return re.compile(self.tag_pattern)

    def compiled_split_pattern(self) -> re.Pattern[str] | None:
        return re.compile(self.tags_to_split) if self.tags_to_split else None
