"""Unit tests for schemadiff.models.options."""

from __future__ import annotations

import pytest

from schemadiff.config import load_settings
from schemadiff.models.diff import ElementChangeType
from schemadiff.models.options import (
    DEFAULT_REFERENCE_ID_PREFIX,
    DEFAULT_TAG_PATTERN,
    ConfigurationError,
    DiffOptions,
    MapRule,
    RuleScope,
)

# ---------------------------------------------------------------------------
# MapRule
# ---------------------------------------------------------------------------


class TestMapRule:
    def test_whitespace_is_stripped(self):
        rule = MapRule(scope=RuleScope.CLASS, source=" Cadastre::Plot ", target="Cadastre::Parcel")
        assert rule.source == "Cadastre::Plot"
        assert rule.problems() == []

    @pytest.mark.parametrize(
        ("scope", "source"),
        [
            (RuleScope.PACKAGE, "Cadastre"),
            (RuleScope.PACKAGE, "Cadastre::Boundaries::Survey"),
            (RuleScope.CLASS, "Cadastre::Parcel"),
            (RuleScope.PROPERTY, "Cadastre::Parcel::area"),
        ],
    )
    def test_well_formed(self, scope, source):
        assert MapRule(scope=scope, source=source, target=source).problems() == []

    def test_class_rule_needs_two_segments(self):
        problems = MapRule(scope=RuleScope.CLASS, source="Parcel", target="Cadastre::Parcel").problems()
        assert len(problems) == 1
        assert "expects 2" in problems[0]

    def test_property_rule_needs_three_segments(self):
        problems = MapRule(scope=RuleScope.PROPERTY, source="Cadastre::Parcel", target="A::B::c").problems()
        assert "expects 3" in problems[0]

    def test_empty_names(self):
        problems = MapRule(scope=RuleScope.PACKAGE, source="", target=" ").problems()
        assert problems == ["source is empty", "target is empty"]

    def test_empty_segment(self):
        problems = MapRule(scope=RuleScope.CLASS, source="Cadastre::", target="Cadastre::Parcel").problems()
        assert "empty name segment" in problems[0]


# ---------------------------------------------------------------------------
# DiffOptions
# ---------------------------------------------------------------------------


class TestDiffOptions:
    def test_defaults(self):
        options = DiffOptions()
        assert options.rules == ()
        assert options.change_types is None
        assert options.tag_pattern == DEFAULT_TAG_PATTERN
        assert options.reference_id_prefix == DEFAULT_REFERENCE_ID_PREFIX
        options.validate_rules()

    def test_malformed_rule_named_in_error(self):
        options = DiffOptions(rules=(MapRule(scope=RuleScope.CLASS, source="Plot", target="Cadastre::Parcel"),))
        with pytest.raises(ConfigurationError, match="class rule 'Plot' -> 'Cadastre::Parcel'"):
            options.validate_rules()

    def test_conflicting_rules(self):
        options = DiffOptions(
            rules=(
                MapRule(scope=RuleScope.CLASS, source="S::A", target="S::B"),
                MapRule(scope=RuleScope.CLASS, source="S::A", target="S::C"),
            )
        )
        with pytest.raises(ConfigurationError, match="conflicts with earlier rule"):
            options.validate_rules()

    def test_repeated_identical_rule_is_accepted(self):
        rule = MapRule(scope=RuleScope.CLASS, source="S::A", target="S::B")
        DiffOptions(rules=(rule, rule)).validate_rules()

    def test_same_source_in_different_scopes_is_accepted(self):
        DiffOptions(
            rules=(
                MapRule(scope=RuleScope.PACKAGE, source="S", target="T"),
                MapRule(scope=RuleScope.CLASS, source="S::A", target="T::A"),
            )
        ).validate_rules()

    def test_invalid_tag_pattern(self):
        with pytest.raises(ConfigurationError, match="tag_pattern"):
            DiffOptions(tag_pattern="(unclosed").validate_rules()

    def test_invalid_split_pattern(self):
        with pytest.raises(ConfigurationError, match="tags_to_split"):
            DiffOptions(tags_to_split="[").validate_rules()

    def test_all_problems_reported_together(self):
        options = DiffOptions(
            rules=(MapRule(scope=RuleScope.PROPERTY, source="S::A", target="S::A::b"),),
            tag_pattern="(",
        )
        with pytest.raises(ConfigurationError) as exc_info:
            options.validate_rules()
        assert " | " in str(exc_info.value)

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)

    def test_rule_map_by_scope(self):
        options = DiffOptions(
            rules=(
                MapRule(scope=RuleScope.PACKAGE, source="Old", target="New"),
                MapRule(scope=RuleScope.CLASS, source="Old::A", target="New::B"),
            )
        )
        assert options.rule_map(RuleScope.PACKAGE) == {"Old": "New"}
        assert options.rule_map(RuleScope.CLASS) == {"Old::A": "New::B"}
        assert options.rule_map(RuleScope.PROPERTY) == {}

    def test_retains(self):
        options = DiffOptions(change_types=frozenset({ElementChangeType.NAME}))
        assert options.retains(ElementChangeType.NAME)
        assert not options.retains(ElementChangeType.TAG)
        assert DiffOptions().retains(ElementChangeType.TAG)

    def test_empty_prefix_rejected(self):
        with pytest.raises(ValueError):
            DiffOptions(reference_id_prefix="")


class TestFromSettings:
    def test_settings_are_carried_over(self):
        settings = load_settings(
            diff_element_types="documentation,tag",
            tag_pattern="description|alias",
            tags_to_split="codeList",
            reference_id_prefix="ref_",
        )
        rule = MapRule(scope=RuleScope.CLASS, source="S::A", target="S::B")
        options = DiffOptions.from_settings(settings, [rule])
        assert options.change_types == frozenset({ElementChangeType.DOCUMENTATION, ElementChangeType.TAG})
        assert options.tag_pattern == "description|alias"
        assert options.tags_to_split == "codeList"
        assert options.reference_id_prefix == "ref_"
        assert options.rules == (rule,)

    def test_invalid_rules_rejected(self):
        rule = MapRule(scope=RuleScope.CLASS, source="A", target="B")
        with pytest.raises(ConfigurationError):
            DiffOptions.from_settings(load_settings(), [rule])
