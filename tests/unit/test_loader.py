"""Unit tests for schemadiff.loader.snapshot_loader."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from schemadiff.loader.snapshot_loader import SnapshotLoadError, load_rules, load_snapshot
from schemadiff.models.options import RuleScope
from schemadiff.models.schema import ClassCategory


def _write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# load_snapshot
# ---------------------------------------------------------------------------


class TestLoadSnapshot:
    def test_schemas_list(self, tmp_path):
        path = _write(
            tmp_path / "model.yaml",
            """\
            schemas:
              - id: EAPK_1
                name: Cadastre
                classes:
                  - id: EAID_1
                    name: Parcel
                    category: featuretype
                    stereotypes: [featureType]
                    tagged_values:
                      sequenceNumber: ["1"]
                    properties:
                      - id: EAID_2
                        name: area
                        value_type: Real
                        multiplicity: {lower: 1, upper: 1}
              - id: EAPK_2
                name: Hydro
            """,
        )
        schemas = load_snapshot(path)
        assert [s.name for s in schemas] == ["Cadastre", "Hydro"]
        parcel = schemas[0].classes[0]
        assert parcel.category is ClassCategory.FEATURE_TYPE
        assert parcel.tagged_values == {"sequenceNumber": ["1"]}
        assert parcel.properties[0].value_type == "Real"

    def test_single_schema_mapping(self, tmp_path):
        path = _write(
            tmp_path / "model.yaml",
            """\
            id: EAPK_1
            name: Cadastre
            subpackages:
              - id: EAPK_2
                name: Boundaries
            """,
        )
        (schema,) = load_snapshot(path)
        assert schema.subpackages[0].name == "Boundaries"

    def test_json_snapshot(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text(json.dumps({"schemas": [{"id": "S1", "name": "Hydro"}]}), encoding="utf-8")
        assert [s.name for s in load_snapshot(path)] == ["Hydro"]

    def test_unbounded_multiplicity(self, tmp_path):
        path = _write(
            tmp_path / "model.yaml",
            """\
            id: S1
            name: Cadastre
            classes:
              - id: C1
                name: Parcel
                properties:
                  - {id: P1, name: owner, multiplicity: {lower: 0, upper: null}}
            """,
        )
        prop = load_snapshot(path)[0].classes[0].properties[0]
        assert prop.multiplicity.render() == "0..*"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SnapshotLoadError, match="does not exist"):
            load_snapshot(tmp_path / "absent.yaml")

    def test_unparsable_yaml(self, tmp_path):
        path = _write(tmp_path / "bad.yaml", "schemas: [unclosed\n")
        with pytest.raises(SnapshotLoadError, match="Failed to parse"):
            load_snapshot(path)

    def test_not_a_mapping(self, tmp_path):
        path = _write(tmp_path / "list.yaml", "- a\n- b\n")
        with pytest.raises(SnapshotLoadError, match="expected a mapping"):
            load_snapshot(path)

    def test_schemas_not_a_list(self, tmp_path):
        path = _write(tmp_path / "model.yaml", "schemas: Cadastre\n")
        with pytest.raises(SnapshotLoadError, match="must be a list"):
            load_snapshot(path)

    def test_invalid_schema_names_position(self, tmp_path):
        path = _write(
            tmp_path / "model.yaml",
            """\
            schemas:
              - id: S1
                name: Cadastre
              - id: S2
            """,
        )
        with pytest.raises(SnapshotLoadError, match=r"schema #1 is invalid: name"):
            load_snapshot(path)


# ---------------------------------------------------------------------------
# load_rules
# ---------------------------------------------------------------------------


class TestLoadRules:
    def test_rules(self, tmp_path):
        path = _write(
            tmp_path / "rules.yaml",
            """\
            rules:
              - {scope: class, source: "Cadastre::Plot", target: "Cadastre::Parcel"}
              - {scope: package, source: CadastreV1, target: Cadastre}
            """,
        )
        rules = load_rules(path)
        assert [(r.scope, r.source, r.target) for r in rules] == [
            (RuleScope.CLASS, "Cadastre::Plot", "Cadastre::Parcel"),
            (RuleScope.PACKAGE, "CadastreV1", "Cadastre"),
        ]

    def test_empty_file(self, tmp_path):
        assert load_rules(_write(tmp_path / "rules.yaml", "")) == []

    def test_empty_rules_list(self, tmp_path):
        assert load_rules(_write(tmp_path / "rules.yaml", "rules: []\n")) == []

    def test_unknown_scope(self, tmp_path):
        path = _write(tmp_path / "rules.yaml", "rules:\n  - {scope: schema, source: A, target: B}\n")
        with pytest.raises(SnapshotLoadError, match="rule #0 is invalid: scope"):
            load_rules(path)

    def test_rules_not_a_list(self, tmp_path):
        path = _write(tmp_path / "rules.yaml", "rules: {scope: class}\n")
        with pytest.raises(SnapshotLoadError, match="must be a list"):
            load_rules(path)
